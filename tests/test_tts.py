import threading

import pytest

from recalltrainer import tts
from recalltrainer.tts import Narrator


@pytest.fixture
def narrator(monkeypatch):
    """Narrator whose worker blocks on the first utterance until `gate` is set."""
    spoken = []
    started = threading.Event()
    gate = threading.Event()
    heard = {}

    def fake_speak(self, text):
        spoken.append(text)
        started.set()
        gate.wait(5)
        if text in heard:
            heard[text].set()

    monkeypatch.setattr(Narrator, "speak", fake_speak)
    n = Narrator()
    n.spoken = spoken
    n.started = started
    n.gate = gate
    n.heard = heard
    yield n
    gate.set()
    n.shutdown()
    n._worker.join(5)


def test_say_drops_utterances_still_waiting(narrator):
    narrator.say("one")
    assert narrator.started.wait(5)

    narrator.heard["three"] = threading.Event()
    narrator.say("two")
    narrator.say("three")
    narrator.gate.set()

    assert narrator.heard["three"].wait(5)
    assert narrator.spoken == ["one", "three"]


def test_blank_text_is_not_queued(narrator):
    narrator.say("   ")
    narrator.say(None)
    assert narrator._queue.empty()


def test_cancel_clears_queue(narrator):
    narrator.say("one")
    assert narrator.started.wait(5)
    narrator.say("two")
    narrator.cancel()
    assert narrator._queue.empty()


def test_shutdown_stops_worker_and_drops_pending(narrator):
    narrator.say("one")
    assert narrator.started.wait(5)
    narrator.say("two")
    narrator.shutdown()
    narrator.gate.set()

    narrator._worker.join(5)
    assert not narrator._worker.is_alive()
    assert narrator.spoken == ["one"]


def test_worker_survives_speak_errors(monkeypatch):
    done = threading.Event()
    spoken = []

    def flaky_speak(self, text):
        if text == "bad":
            raise OSError("no audio device")
        spoken.append(text)
        done.set()

    monkeypatch.setattr(Narrator, "speak", flaky_speak)
    n = Narrator()
    n._queue.put("bad")
    n._queue.put("good")
    assert done.wait(5)
    assert spoken == ["good"]
    n.shutdown()
    n._worker.join(5)


def test_apply_settings_maps_stored_values(monkeypatch):
    monkeypatch.setattr(Narrator, "speak", lambda self, text: None)
    n = Narrator()
    n.apply_settings({"tts_voice": "", "tts_rate": 1.5, "tts_volume": 0.5})
    assert n.voice is None
    assert n.rate == 195
    assert n.volume == 50

    n.apply_settings({"tts_voice": "voice-id", "tts_volume": 3})
    assert n.voice == "voice-id"
    assert n.volume == 100
    n.shutdown()
    n._worker.join(5)


def test_list_voices_is_empty_without_a_driver(monkeypatch):
    def no_driver():
        raise RuntimeError("no driver")

    monkeypatch.setattr(tts.pyttsx3, "init", no_driver)
    assert tts.list_voices() == []
