import random

import pytest

from recalltrainer.db import DataLayer
from recalltrainer.models import DisplayMode, PauseMode
from recalltrainer.player import PlayerState
from recalltrainer.session import TrainerContext
from recalltrainer.stories import StoryCatalog

from conftest import RecordingNarrator


@pytest.fixture
def ctx(tmp_path, scheduler, stories_dict):
    catalog = StoryCatalog("", rng=random.Random(1))
    catalog.load_dict(stories_dict)
    dl = DataLayer(str(tmp_path / "t.db"))
    c = TrainerContext(catalog, dl, scheduler, narrator=RecordingNarrator())
    yield c
    c.close()


def test_new_story_marks_completed_and_starts_player(ctx):
    story = ctx.new_story("medium")
    assert story.title == "C"
    assert ctx.completed == ["C"]
    assert ctx.dl.load_completed_stories() == ["C"]
    assert ctx.player.state == PlayerState.PLAYING
    assert ctx.player.story is story


def test_played_stories_are_not_chosen_again(ctx):
    titles = {ctx.new_story("simple").title, ctx.new_story("simple").title}
    assert titles == {"A", "B"}
    assert ctx.new_story("simple") is None
    # the running story is untouched when nothing is left
    assert ctx.player.story.title in titles


def test_reset_stories(ctx):
    ctx.new_story("medium")
    ctx.reset_stories()
    assert ctx.completed == []
    assert ctx.dl.load_completed_stories() == []
    assert ctx.new_story("medium").title == "C"


def test_completed_stories_are_loaded_from_store(tmp_path, scheduler, stories_dict):
    dl = DataLayer(str(tmp_path / "t.db"))
    dl.save_completed_stories(["C"])
    catalog = StoryCatalog("")
    catalog.load_dict(stories_dict)
    ctx = TrainerContext(catalog, dl, scheduler)
    assert ctx.new_story("medium") is None
    ctx.close()


def test_check_recall_records_history(ctx):
    assert ctx.check_recall_full("anything") is None

    ctx.new_story("medium")
    result = ctx.check_recall_full("eight nine tenn eleven")
    assert (result.matched, result.total) == (4, 4)

    partial = ctx.check_recall_partial("eight", 5)
    assert (partial.matched, partial.total) == (1, 4)

    rows = ctx.dl.fetch_attempts()
    assert [r["scope"] for r in rows] == ["partial", "full"]
    assert rows[0]["last_n"] == 1
    assert rows[0]["story_title"] == "C"
    assert rows[0]["difficulty"] == "medium"
    assert rows[1]["wer"] == pytest.approx(0.25)


def test_notes_feed_reveal_events(ctx, scheduler):
    events = []
    ctx.player.on_reveal = events.append
    ctx.notes.upsert("Descriptors", "eight", "number")
    ctx.new_story("medium")
    scheduler.fire()

    assert events[0].words[0].note == "number"
    assert events[0].display_text() == "Eight (number) nine ten eleven."


def test_apply_settings(ctx):
    ctx.apply_settings({
        "word_delay_ms": 300,
        "show_full": 0,
        "pause_after_sentence": 1,
        "speech_enabled": 1,
    })
    assert ctx.player.word_delay_ms == 300
    assert ctx.player.display_mode == DisplayMode.WORD_BY_WORD
    assert ctx.player.pause_mode == PauseMode.AFTER_SENTENCE
    assert ctx.player.speech_enabled


def test_speech_goes_to_narrator(ctx, scheduler):
    ctx.apply_settings({"speech_enabled": 1, "show_full": 1})
    ctx.new_story("medium")
    scheduler.fire()
    assert ctx.narrator.said == ["Next sentence. Eight nine ten eleven."]
