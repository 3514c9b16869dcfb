"""Memory notes: category name -> ordered list of (word, description).

Word matching is case-insensitive. Lookup walks categories in insertion
order and returns the first match.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .config import DEFAULT_NOTE_CATEGORIES
from .models import Note

logger = logging.getLogger(__name__)


def notes_from_json_dict(data: Any) -> Dict[str, List[Note]]:
    """Validate an exported notes document. Raises ValueError when malformed."""
    if not isinstance(data, dict):
        raise ValueError("Invalid notes format")
    out: Dict[str, List[Note]] = {}
    for cat, items in data.items():
        if not isinstance(cat, str) or not isinstance(items, list):
            raise ValueError("Invalid notes format")
        notes: List[Note] = []
        for it in items:
            if not isinstance(it, dict) or not isinstance(it.get("word"), str):
                raise ValueError("Invalid notes format")
            desc = it.get("desc")
            notes.append(Note(word=it["word"], desc=desc if isinstance(desc, str) else ""))
        out[cat] = notes
    return out


class MemoryNotes:
    def __init__(self, dl=None):
        self.dl = dl
        self._cats: Dict[str, List[Note]] = {}
        if dl is not None:
            try:
                self._cats = notes_from_json_dict(dl.load_notes())
            except ValueError:
                logger.warning("Stored notes are malformed, starting empty")
                self._cats = {}
        for cat in DEFAULT_NOTE_CATEGORIES:
            self._cats.setdefault(cat, [])
        self._save()

    # ---------- read ----------
    def categories(self) -> List[str]:
        return list(self._cats.keys())

    def notes(self, category: str) -> List[Note]:
        return list(self._cats.get(category, []))

    def find(self, category: str, word: str) -> Optional[Note]:
        key = (word or "").lower()
        for n in self._cats.get(category, []):
            if n.word.lower() == key:
                return n
        return None

    def category_of(self, word: str) -> Optional[str]:
        """First category holding `word`, i.e. the one `lookup` reads from."""
        for cat in self._cats:
            if self.find(cat, word) is not None:
                return cat
        return None

    def lookup(self, word: str) -> Optional[str]:
        """Description for `word` in the first category that has it (None if absent or blank)."""
        key = (word or "").lower()
        if not key:
            return None
        for notes in self._cats.values():
            for n in notes:
                if n.word.lower() == key:
                    return n.desc or None
        return None

    def search(self, query: str) -> List[Tuple[str, Note]]:
        q = (query or "").strip().lower()
        if not q:
            return []
        return [(cat, n) for cat, notes in self._cats.items() for n in notes if q in n.word.lower()]

    # ---------- write ----------
    def add_category(self, name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise ValueError("Category name is empty.")
        self._cats.setdefault(name, [])
        self._save()
        return name

    def remove_category(self, name: str) -> None:
        if self._cats.pop(name, None) is not None:
            self._save()

    def upsert(self, category: str, word: str, desc: str = "") -> Optional[str]:
        """Insert or update a note. Returns the previous description when the word existed."""
        category = (category or "").strip()
        word = (word or "").strip()
        if not category:
            raise ValueError("Category name is empty.")
        if not word:
            raise ValueError("Word is empty.")
        desc = (desc or "").strip()

        notes = self._cats.setdefault(category, [])
        for i, n in enumerate(notes):
            if n.word.lower() == word.lower():
                notes[i] = Note(word=n.word, desc=desc)
                self._save()
                return n.desc
        notes.append(Note(word=word, desc=desc))
        self._save()
        return None

    def delete(self, category: str, index: int) -> Note:
        note = self._cats[category].pop(index)
        self._save()
        return note

    def replace_all(self, data: Any) -> None:
        """Replace every note with `data` (exported format). Nothing changes if it is malformed."""
        self._cats = notes_from_json_dict(data)
        self._save()

    # ---------- import / export ----------
    def to_json_dict(self) -> Dict[str, List[Dict[str, str]]]:
        return {cat: [n.to_json_dict() for n in notes] for cat, notes in self._cats.items()}

    def export_json(self, path: str) -> None:
        Path(path).write_text(json.dumps(self.to_json_dict(), ensure_ascii=False, indent=2), encoding="utf-8")

    def import_json(self, path: str) -> None:
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except ValueError as e:
            raise ValueError("Invalid notes format") from e
        self.replace_all(data)
        logger.info("Imported notes from %s (%d categories)", path, len(self._cats))

    def _save(self) -> None:
        if self.dl is not None:
            self.dl.save_notes(self.to_json_dict())
