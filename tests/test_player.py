import math

import pytest

from recalltrainer.errors import InvalidConfigurationError, InvalidStoryError
from recalltrainer.models import DisplayMode, PauseMode, RevealEvent, Story, StoryComplete
from recalltrainer.player import PlayerState, SequencePlayer

from conftest import RecordingNarrator


def make_player(scheduler, **kw):
    player = SequencePlayer(scheduler, **kw)
    player.revealed = []
    player.completed = []
    player.on_reveal = player.revealed.append
    player.on_complete = player.completed.append
    return player


def run_to_end(player, limit=100):
    events = []
    for _ in range(limit):
        ev = player.step()
        if isinstance(ev, StoryComplete):
            return events
        events.append(ev)
    raise AssertionError("story never completed")


# ---------- start ----------

def test_start_rejects_story_without_sentences(scheduler):
    player = make_player(scheduler)
    with pytest.raises(InvalidStoryError):
        player.start(Story(title="empty", sentences=()))
    assert player.state == PlayerState.IDLE


def test_start_rejects_blank_sentence(scheduler):
    player = make_player(scheduler)
    with pytest.raises(InvalidStoryError):
        player.start(Story(title="blank", sentences=("Fine.", "   ")))


def test_step_before_start_raises(scheduler):
    with pytest.raises(RuntimeError):
        make_player(scheduler).step()


def test_start_schedules_first_step_immediately(scheduler, story):
    player = make_player(scheduler)
    player.start(story)
    assert player.state == PlayerState.PLAYING
    assert scheduler.pending
    assert scheduler.delay_ms == 0

    scheduler.fire()
    assert [e.unit_text for e in player.revealed] == ["Mia found a kite."]


# ---------- reveal counts ----------

def test_full_sentence_mode_reveals_each_sentence_then_completes(scheduler, story):
    player = make_player(scheduler)
    player.start(story)
    events = run_to_end(player)

    assert [e.unit_text for e in events] == list(story.sentences)
    assert all(e.is_sentence_start and e.ends_sentence for e in events)
    assert player.state == PlayerState.COMPLETE
    assert player.completed == [story]


def test_word_by_word_mode_reveals_every_word(scheduler, story):
    player = make_player(scheduler)
    player.set_display_mode(DisplayMode.WORD_BY_WORD)
    player.start(story)
    events = run_to_end(player)

    assert len(events) == 12
    assert [e.unit_text for e in events[:5]] == ["Mia", "found", "a", "kite.", "She"]
    starts = [i for i, e in enumerate(events) if e.is_sentence_start]
    assert starts == [0, 4, 9]
    assert [e.sentence_index for e in events if e.ends_sentence] == [0, 1, 2]


def test_story_complete_is_idempotent(scheduler, story):
    player = make_player(scheduler)
    player.start(story)
    run_to_end(player)

    for _ in range(3):
        assert isinstance(player.step(), StoryComplete)
    assert len(player.completed) == 1
    assert not scheduler.pending


# ---------- timing ----------

def test_auto_advance_schedules_next_step_with_word_delay(scheduler, story):
    player = make_player(scheduler, word_delay_ms=400)
    player.start(story)
    scheduler.fire()
    assert scheduler.delay_ms == 400

    scheduler.fire()
    scheduler.fire()
    assert len(player.revealed) == 3
    scheduler.fire()
    assert player.state == PlayerState.COMPLETE


def test_word_delay_change_applies_to_next_schedule_only(scheduler, story):
    player = make_player(scheduler)
    player.start(story)
    scheduler.fire()
    assert scheduler.delay_ms == 1000

    player.set_word_delay(250)
    assert scheduler.delay_ms == 1000

    scheduler.fire()
    assert scheduler.delay_ms == 250


@pytest.mark.parametrize("bad", [0, -10, "fast", None, True, math.nan, math.inf])
def test_invalid_word_delay_is_rejected_and_previous_kept(scheduler, bad):
    player = make_player(scheduler, word_delay_ms=700)
    with pytest.raises(InvalidConfigurationError):
        player.set_word_delay(bad)
    assert player.word_delay_ms == 700


def test_invalid_initial_word_delay_raises(scheduler):
    with pytest.raises(InvalidConfigurationError):
        SequencePlayer(scheduler, word_delay_ms=0)


# ---------- pause modes ----------

def test_pause_after_each_unit_waits_for_continue(scheduler, story):
    player = make_player(scheduler)
    player.set_pause_mode(PauseMode.AFTER_EACH_UNIT)
    player.start(story)
    scheduler.fire()

    assert player.state == PlayerState.PAUSED
    assert not scheduler.pending

    ev = player.continue_()
    assert isinstance(ev, RevealEvent)
    assert ev.sentence_index == 1
    assert player.state == PlayerState.PAUSED


def test_continue_is_noop_unless_paused(scheduler, story):
    player = make_player(scheduler)
    assert player.continue_() is None
    player.start(story)
    assert player.continue_() is None
    assert player.revealed == []


def test_pause_after_sentence_runs_words_then_stops(scheduler, story):
    player = make_player(scheduler)
    player.set_display_mode(DisplayMode.WORD_BY_WORD)
    player.set_pause_mode(PauseMode.AFTER_SENTENCE)
    player.start(story)

    for _ in range(4):
        assert scheduler.pending
        scheduler.fire()
    assert [e.unit_text for e in player.revealed] == ["Mia", "found", "a", "kite."]
    assert player.state == PlayerState.PAUSED
    assert not scheduler.pending

    ev = player.continue_()
    assert ev.unit_text == "She"
    assert ev.is_sentence_start
    assert player.state == PlayerState.PLAYING


def test_pause_mode_change_applies_from_next_step(scheduler, story):
    player = make_player(scheduler)
    player.start(story)
    scheduler.fire()
    assert scheduler.pending

    player.set_pause_mode(PauseMode.AFTER_EACH_UNIT)
    assert scheduler.pending
    scheduler.fire()
    assert len(player.revealed) == 2
    assert player.state == PlayerState.PAUSED


def test_switch_to_full_sentence_mid_sentence_reveals_the_rest(scheduler, story):
    player = make_player(scheduler)
    player.set_display_mode(DisplayMode.WORD_BY_WORD)
    player.start(story)
    player.step()
    player.step()

    player.set_display_mode(DisplayMode.FULL_SENTENCE)
    ev = player.step()
    assert ev.unit_text == "a kite."
    assert not ev.is_sentence_start
    assert ev.ends_sentence

    ev = player.step()
    assert ev.unit_text == "She ran up the hill."


# ---------- skip ----------

def test_skip_mid_sentence_discards_remaining_words(scheduler, story):
    player = make_player(scheduler)
    player.set_display_mode(DisplayMode.WORD_BY_WORD)
    player.start(story)
    player.step()
    player.step()

    player.skip_to_next_sentence()
    assert scheduler.pending
    assert scheduler.delay_ms == 0

    ev = player.step()
    assert ev.unit_text == "She"
    assert (ev.sentence_index, ev.word_index) == (1, 0)
    assert ev.is_sentence_start


def test_skip_after_full_sentence_goes_to_following_sentence(scheduler, story):
    player = make_player(scheduler)
    player.set_pause_mode(PauseMode.AFTER_EACH_UNIT)
    player.start(story)
    scheduler.fire()
    assert player.state == PlayerState.PAUSED

    player.skip_to_next_sentence()
    assert player.state == PlayerState.PLAYING
    scheduler.fire()
    assert player.revealed[-1].unit_text == "She ran up the hill."


def test_skip_before_first_reveal_skips_nothing_shown(scheduler, story):
    player = make_player(scheduler)
    player.start(story)
    player.skip_to_next_sentence()
    scheduler.fire()
    assert player.revealed[-1].sentence_index == 0


def test_skip_on_last_sentence_completes(scheduler, story):
    player = make_player(scheduler)
    player.set_display_mode(DisplayMode.WORD_BY_WORD)
    player.start(story)
    for _ in range(10):
        player.step()
    assert player.revealed[-1].sentence_index == 2

    player.skip_to_next_sentence()
    scheduler.fire()
    assert player.state == PlayerState.COMPLETE
    assert player.completed == [story]


def test_skip_is_noop_when_idle_or_complete(scheduler, story):
    player = make_player(scheduler)
    player.skip_to_next_sentence()
    assert not scheduler.pending

    player.start(story)
    run_to_end(player)
    player.skip_to_next_sentence()
    assert not scheduler.pending
    assert player.state == PlayerState.COMPLETE


# ---------- stale timers ----------

def test_stale_timer_after_restart_is_ignored(scheduler, story):
    other = Story(title="Other", sentences=("Brand new start.",))
    player = make_player(scheduler)
    player.start(story)
    scheduler.fire()
    stale = scheduler.fn
    assert stale is not None

    player.start(other)
    player.revealed.clear()
    stale()
    assert player.revealed == []

    scheduler.fire()
    assert [e.unit_text for e in player.revealed] == ["Brand new start."]


def test_stale_timer_after_skip_is_ignored(scheduler, story):
    player = make_player(scheduler)
    player.set_display_mode(DisplayMode.WORD_BY_WORD)
    player.start(story)
    scheduler.fire()
    stale = scheduler.fn

    player.skip_to_next_sentence()
    stale()
    assert [e.unit_text for e in player.revealed] == ["Mia"]


def test_stop_cancels_pending_timer(scheduler, story):
    player = make_player(scheduler)
    player.start(story)
    stale = scheduler.fn
    player.stop()

    assert not scheduler.pending
    assert player.state == PlayerState.IDLE
    stale()
    assert player.revealed == []


# ---------- narration / notes / callbacks ----------

def test_narration_prefixes_sentence_start(scheduler, story):
    narrator = RecordingNarrator()
    player = make_player(scheduler, narrator=narrator)
    player.set_display_mode(DisplayMode.WORD_BY_WORD)
    player.set_speech_enabled(True)
    player.start(story)
    player.step()
    player.step()
    assert narrator.said == ["Next sentence. Mia", "found"]


def test_no_narration_when_speech_off(scheduler, story):
    narrator = RecordingNarrator()
    player = make_player(scheduler, narrator=narrator)
    player.start(story)
    player.step()
    assert narrator.said == []


def test_narrator_failure_does_not_stop_playback(scheduler, story):
    class Broken:
        def say(self, text):
            raise OSError("no audio device")

    player = make_player(scheduler, narrator=Broken())
    player.set_speech_enabled(True)
    player.start(story)
    assert len(run_to_end(player)) == 3


def test_reveal_carries_notes_from_lookup(scheduler, story):
    seen = []

    def lookup(word):
        seen.append(word)
        return "girl" if word.lower() == "mia" else None

    player = make_player(scheduler, note_lookup=lookup)
    player.start(story)
    ev = player.step()

    assert "Mia" in seen and "kite" in seen
    assert ev.words[0].note == "girl"
    assert ev.has_notes
    assert ev.display_text(show_notes=True) == "Mia (girl) found a kite."
    assert ev.display_text(show_notes=False) == "Mia found a kite."


def test_state_callback_sequence(scheduler, story):
    states = []
    player = make_player(scheduler)
    player.on_state = states.append
    player.set_pause_mode(PauseMode.AFTER_EACH_UNIT)
    player.start(story)
    scheduler.fire()
    player.continue_()
    assert states[:4] == [PlayerState.PLAYING, PlayerState.PAUSED, PlayerState.PLAYING, PlayerState.PAUSED]


def test_failing_reveal_callback_keeps_timer_running(scheduler, story):
    def broken(event):
        raise RuntimeError("widget destroyed")

    player = SequencePlayer(scheduler)
    player.on_reveal = broken
    player.start(story)

    scheduler.fire()
    assert player.state == PlayerState.PLAYING
    assert scheduler.pending
    assert scheduler.delay_ms == player.word_delay_ms

    for _ in range(3):
        scheduler.fire()
    assert player.state == PlayerState.COMPLETE


def test_failing_state_and_complete_callbacks_do_not_break_playback(scheduler, story):
    def broken(*args):
        raise RuntimeError("boom")

    player = SequencePlayer(scheduler)
    player.on_state = broken
    player.on_complete = broken
    player.set_pause_mode(PauseMode.AFTER_EACH_UNIT)
    player.start(story)

    scheduler.fire()
    assert player.state == PlayerState.PAUSED
    assert player.continue_().sentence_index == 1
    player.continue_()
    assert isinstance(player.continue_(), StoryComplete)
    assert player.state == PlayerState.COMPLETE
