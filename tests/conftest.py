import pytest

from recalltrainer.models import Story
from recalltrainer.scheduler import Scheduler


class ManualScheduler(Scheduler):
    """Holds the pending callback until the test fires it."""

    def __init__(self):
        self.fn = None
        self.delay_ms = None
        self.history = []

    def schedule(self, delay_ms, fn):
        self.fn = fn
        self.delay_ms = delay_ms
        self.history.append(delay_ms)

    def cancel(self):
        self.fn = None
        self.delay_ms = None

    @property
    def pending(self):
        return self.fn is not None

    def fire(self):
        fn, self.fn, self.delay_ms = self.fn, None, None
        if fn is not None:
            fn()


class RecordingNarrator:
    def __init__(self):
        self.said = []

    def say(self, text):
        self.said.append(text)

    def apply_settings(self, settings):
        pass

    def shutdown(self):
        pass


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def story():
    return Story(
        title="The Red Kite",
        difficulty="simple",
        sentences=(
            "Mia found a kite.",
            "She ran up the hill.",
            "It flew high.",
        ),
    )


@pytest.fixture
def stories_dict():
    return {
        "simple": [
            {"title": "A", "sentences": ["One two three.", "Four five."]},
            {"title": "B", "sentences": ["Six seven."]},
        ],
        "medium": [
            {"title": "C", "sentences": ["Eight nine ten eleven."]},
        ],
        "hard": [],
    }
