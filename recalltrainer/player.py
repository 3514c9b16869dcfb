import logging
import math
from enum import Enum
from typing import Callable, List, Optional, Union

from .config import DEFAULT_WORD_DELAY_MS, SENTENCE_PREFIX
from .errors import InvalidConfigurationError, InvalidStoryError
from .models import DisplayMode, PauseMode, RevealedWord, RevealEvent, Story, StoryComplete
from .utils_text import clean_word_for_key

# ==========================================================
# LOGGING
# ==========================================================

logger = logging.getLogger(__name__)

# ==========================================================
# STATE MACHINE
# ==========================================================


class PlayerState(Enum):
    IDLE = 0
    PLAYING = 1
    PAUSED = 2
    COMPLETE = 3


# ==========================================================
# SEQUENCE PLAYER
# ==========================================================


class SequencePlayer:
    """
    Steps through a story one sentence or one word at a time.

    Timing goes through `scheduler` (one pending callback at most). Every
    scheduled callback carries the generation it was created in; `start`,
    `skip_to_next_sentence` and `stop` bump the generation so that a callback
    left over from an earlier run does nothing.
    """

    def __init__(
        self,
        scheduler,
        narrator=None,
        note_lookup: Optional[Callable[[str], Optional[str]]] = None,
        word_delay_ms: Union[int, float] = DEFAULT_WORD_DELAY_MS,
    ):
        self.scheduler = scheduler
        self.narrator = narrator
        self.note_lookup = note_lookup

        self.display_mode = DisplayMode.FULL_SENTENCE
        self.pause_mode = PauseMode.AUTO_ADVANCE
        self.speech_enabled = False
        self.word_delay_ms: Union[int, float] = DEFAULT_WORD_DELAY_MS
        self.set_word_delay(word_delay_ms)

        self.state = PlayerState.IDLE
        self.story: Optional[Story] = None
        self._sentences: List[List[str]] = []
        self._sentence_idx = 0
        self._word_idx = 0
        self._current_sentence = -1
        self._generation = 0

        # presentation callbacks
        self.on_reveal = None
        self.on_complete = None
        self.on_state = None

    # ==========================================================
    # PUBLIC API
    # ==========================================================

    @property
    def sentences(self) -> List[List[str]]:
        return self._sentences

    @property
    def sentence_index(self) -> int:
        return self._sentence_idx

    @property
    def word_index(self) -> int:
        return self._word_idx

    def start(self, story: Story):
        self.stop()

        if story is None or not story.sentences:
            raise InvalidStoryError("Story has no sentences.")
        words = story.words()
        for i, w in enumerate(words):
            if not w:
                raise InvalidStoryError(f"Sentence {i + 1} of '{story.title}' has no words.")

        self.story = story
        self._sentences = words
        self._sentence_idx = 0
        self._word_idx = 0
        self._current_sentence = -1
        self._generation += 1

        logger.info("Start story '%s' (%d sentences)", story.title, len(words))
        self._set_state(PlayerState.PLAYING)
        self._schedule(0)

    def stop(self):
        self.scheduler.cancel()
        self._generation += 1
        self.story = None
        self._sentences = []
        self._sentence_idx = 0
        self._word_idx = 0
        self._current_sentence = -1
        self._set_state(PlayerState.IDLE)

    def step(self) -> Union[RevealEvent, StoryComplete]:
        if self.state == PlayerState.IDLE:
            raise RuntimeError("No story started.")
        if self.state == PlayerState.COMPLETE:
            return StoryComplete(self.story.title if self.story else "")
        if self._sentence_idx >= len(self._sentences):
            return self._complete()

        s = self._sentence_idx
        words = self._sentences[s]
        start = self._word_idx

        if self.display_mode == DisplayMode.FULL_SENTENCE:
            # rest of the sentence (all of it unless switched mid-sentence)
            unit = words[start:]
            self._sentence_idx += 1
            self._word_idx = 0
        else:
            unit = [words[start]]
            if start + 1 >= len(words):
                self._sentence_idx += 1
                self._word_idx = 0
            else:
                self._word_idx = start + 1

        self._current_sentence = s
        event = RevealEvent(
            unit_text=" ".join(unit),
            is_sentence_start=(start == 0),
            sentence_index=s,
            word_index=start,
            words=tuple(RevealedWord(w, self._note_for(w)) for w in unit),
            ends_sentence=(self._sentence_idx != s),
        )

        self._emit("on_reveal", self.on_reveal, event)
        self._narrate(event)
        self._after_reveal(event)
        return event

    def continue_(self) -> Optional[Union[RevealEvent, StoryComplete]]:
        if self.state != PlayerState.PAUSED:
            return None
        self._set_state(PlayerState.PLAYING)
        return self.step()

    def skip_to_next_sentence(self):
        if self.state in (PlayerState.IDLE, PlayerState.COMPLETE):
            return
        self.scheduler.cancel()
        self._generation += 1

        # the sentence after the one on screen, never backwards
        target = max(self._sentence_idx, self._current_sentence + 1)
        logger.debug("Skip to sentence %d (was %d, word %d)", target, self._sentence_idx, self._word_idx)
        self._sentence_idx = target
        self._word_idx = 0

        self._set_state(PlayerState.PLAYING)
        self._schedule(0)

    # ---------- settings (all apply from the next step) ----------
    def set_word_delay(self, ms):
        if isinstance(ms, bool) or not isinstance(ms, (int, float)):
            raise InvalidConfigurationError(f"Word delay must be a number, got {ms!r}.")
        if math.isnan(ms) or math.isinf(ms) or ms <= 0:
            raise InvalidConfigurationError(f"Word delay must be positive, got {ms!r}.")
        self.word_delay_ms = ms

    def set_display_mode(self, mode: DisplayMode):
        self.display_mode = DisplayMode(mode)

    def set_pause_mode(self, mode: PauseMode):
        self.pause_mode = PauseMode(mode)

    def set_speech_enabled(self, enabled: bool):
        self.speech_enabled = bool(enabled)

    # ==========================================================
    # INTERNALS
    # ==========================================================

    def _after_reveal(self, event: RevealEvent):
        pause = self.pause_mode == PauseMode.AFTER_EACH_UNIT or (
            self.pause_mode == PauseMode.AFTER_SENTENCE and event.ends_sentence
        )
        if pause:
            self.scheduler.cancel()
            self._set_state(PlayerState.PAUSED)
        else:
            self._set_state(PlayerState.PLAYING)
            self._schedule(self.word_delay_ms)

    def _complete(self) -> StoryComplete:
        self.scheduler.cancel()
        self._set_state(PlayerState.COMPLETE)
        logger.info("Story complete: '%s'", self.story.title)
        self._emit("on_complete", self.on_complete, self.story)
        return StoryComplete(self.story.title)

    def _schedule(self, delay_ms):
        gen = self._generation
        self.scheduler.schedule(delay_ms, lambda: self._on_timer(gen))

    def _on_timer(self, gen: int):
        if gen != self._generation or self.state != PlayerState.PLAYING:
            logger.debug("Stale timer ignored (gen=%s, current=%s)", gen, self._generation)
            return
        self.step()

    def _note_for(self, word: str) -> Optional[str]:
        if self.note_lookup is None:
            return None
        key = clean_word_for_key(word)
        if not key:
            return None
        return self.note_lookup(key)

    def _narrate(self, event: RevealEvent):
        if not self.speech_enabled or self.narrator is None:
            return
        text = event.unit_text
        if event.is_sentence_start:
            text = f"{SENTENCE_PREFIX} {text}"
        try:
            self.narrator.say(text)
        except Exception:
            logger.warning("Narration failed", exc_info=True)

    def _set_state(self, state: PlayerState):
        if state == self.state:
            return
        logger.debug("Player %s -> %s", self.state.name, state.name)
        self.state = state
        self._emit("on_state", self.on_state, state)

    def _emit(self, name: str, callback: Optional[Callable], *args):
        # a failing view must not stall the timer loop
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception("Player %s callback failed", name)
