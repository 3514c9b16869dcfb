from __future__ import annotations

import logging
from typing import List, Optional

from .models import DisplayMode, PauseMode, ScoreResult, Story
from .notes import MemoryNotes
from .player import SequencePlayer
from .scoring import RecallScorer, clamp_last_n
from .stories import StoryCatalog
from .utils_text import now_iso, recall_wer

logger = logging.getLogger(__name__)


class TrainerContext:
    """
    Application state for one run of the trainer: story catalog, notes,
    completed stories, player and scorer. The UI owns exactly one.
    """

    def __init__(self, catalog: StoryCatalog, dl, scheduler, narrator=None, settings: Optional[dict] = None):
        self.catalog = catalog
        self.dl = dl
        self.narrator = narrator

        self.notes = MemoryNotes(dl)
        self.completed: List[str] = dl.load_completed_stories()

        self.player = SequencePlayer(scheduler, narrator=narrator, note_lookup=self.notes.lookup)
        self.scorer = RecallScorer(self.player)
        if settings:
            self.apply_settings(settings)

    def apply_settings(self, s: dict):
        if "word_delay_ms" in s:
            self.player.set_word_delay(int(s["word_delay_ms"]))
        if "show_full" in s:
            self.player.set_display_mode(
                DisplayMode.FULL_SENTENCE if s["show_full"] else DisplayMode.WORD_BY_WORD
            )
        if "pause_after_sentence" in s:
            self.player.set_pause_mode(
                PauseMode.AFTER_SENTENCE if s["pause_after_sentence"] else PauseMode.AUTO_ADVANCE
            )
        if "speech_enabled" in s:
            self.player.set_speech_enabled(bool(s["speech_enabled"]))
        if self.narrator is not None:
            self.narrator.apply_settings(s)

    # ---------- stories ----------
    def new_story(self, difficulty: str) -> Optional[Story]:
        """Start an unplayed story of `difficulty` and mark it completed. None when none is left."""
        chosen = self.catalog.choose(difficulty, exclude=self.completed)
        if chosen is None:
            logger.info("No unread stories left in '%s'", difficulty)
            return None
        self.player.start(chosen)
        self.mark_story_done(chosen.title)
        logger.info("New story: '%s' (%s)", chosen.title, difficulty)
        return chosen

    def mark_story_done(self, title: str):
        if title not in self.completed:
            self.completed.append(title)
            self.dl.save_completed_stories(self.completed)

    def reset_stories(self):
        self.completed = []
        self.dl.save_completed_stories(self.completed)

    # ---------- recall ----------
    def check_recall_full(self, attempt_text: str) -> Optional[ScoreResult]:
        result = self.scorer.score_full(attempt_text)
        if result is not None:
            self._record(attempt_text, result, scope="full", last_n=None)
        return result

    def check_recall_partial(self, attempt_text: str, last_n) -> Optional[ScoreResult]:
        result = self.scorer.score_partial(attempt_text, last_n)
        if result is not None:
            n = clamp_last_n(last_n, len(self.player.sentences))
            self._record(attempt_text, result, scope="partial", last_n=n)
        return result

    def _record(self, attempt_text: str, result: ScoreResult, scope: str, last_n: Optional[int]):
        story = self.player.story
        try:
            self.dl.save_attempt({
                "created_at": now_iso(),
                "story_title": story.title if story else "",
                "difficulty": story.difficulty if story else "",
                "scope": scope,
                "last_n": last_n,
                "attempt_text": attempt_text if isinstance(attempt_text, str) else "",
                "reference_text": result.reference_text,
                "matched": result.matched,
                "total": result.total,
                "wer": recall_wer(result.reference_text, attempt_text if isinstance(attempt_text, str) else ""),
            })
        except Exception:
            logger.exception("Could not save recall attempt")

    def close(self):
        self.player.stop()
        if self.narrator is not None:
            self.narrator.shutdown()
        self.dl.close()
