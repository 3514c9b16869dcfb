from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .utils_text import append_note_to_text


class DisplayMode(Enum):
    FULL_SENTENCE = "full_sentence"
    WORD_BY_WORD = "word_by_word"


class PauseMode(Enum):
    AUTO_ADVANCE = "auto_advance"
    AFTER_EACH_UNIT = "after_each_unit"
    # word-by-word keeps running inside a sentence, stops at its end
    AFTER_SENTENCE = "after_sentence"


class DiscrepancyKind(str, Enum):
    MISSING = "missing"
    EXTRA = "extra"
    MISMATCH = "mismatch"


@dataclass(frozen=True)
class Story:
    title: str
    difficulty: str = "simple"
    sentences: Tuple[str, ...] = ()

    def words(self) -> List[List[str]]:
        """Whitespace-split tokens per sentence (casing and punctuation kept)."""
        return [s.split() for s in self.sentences]


@dataclass(frozen=True)
class Note:
    word: str
    desc: str = ""

    def to_json_dict(self):
        return {"word": self.word, "desc": self.desc}


@dataclass(frozen=True)
class RevealedWord:
    text: str
    note: Optional[str] = None

    def display(self, show_notes: bool = True) -> str:
        if show_notes and self.note:
            return append_note_to_text(self.text, self.note)
        return self.text


@dataclass(frozen=True)
class RevealEvent:
    unit_text: str
    is_sentence_start: bool
    sentence_index: int
    word_index: int
    words: Tuple[RevealedWord, ...] = ()
    # True when this unit revealed the last word of its sentence
    ends_sentence: bool = False

    def display_text(self, show_notes: bool = True) -> str:
        if not self.words:
            return self.unit_text
        return " ".join(w.display(show_notes) for w in self.words)

    @property
    def has_notes(self) -> bool:
        return any(w.note for w in self.words)


@dataclass(frozen=True)
class StoryComplete:
    title: str = ""


@dataclass(frozen=True)
class Discrepancy:
    kind: DiscrepancyKind
    position: int
    expected: Optional[str] = None
    actual: Optional[str] = None

    def describe(self) -> str:
        if self.kind == DiscrepancyKind.MISSING:
            return f"#{self.position + 1}: missing '{self.expected}'"
        if self.kind == DiscrepancyKind.EXTRA:
            return f"#{self.position + 1}: extra '{self.actual}'"
        return f"#{self.position + 1}: expected '{self.expected}', got '{self.actual}'"


@dataclass(frozen=True)
class ScoreResult:
    matched: int
    total: int
    discrepancies: Tuple[Discrepancy, ...] = field(default_factory=tuple)
    reference_text: str = ""

    @property
    def accuracy(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.matched / float(self.total)

    def summary(self) -> str:
        return f"Matched words: {self.matched}/{self.total}"
