import json
import logging
import os
import random
from typing import Dict, Iterable, List, Optional

from .config import DIFFICULTIES
from .models import Story

logger = logging.getLogger(__name__)


class StoryCatalog:
    """Loads stories.json (one list of stories per difficulty) and picks unplayed stories."""

    def __init__(self, stories_path: str, rng: Optional[random.Random] = None):
        self.path = stories_path
        self.stories: Dict[str, List[Story]] = {d: [] for d in DIFFICULTIES}
        self._rng = rng or random.Random()

    def load(self) -> int:
        self.stories = {d: [] for d in DIFFICULTIES}
        if not self.path or not os.path.exists(self.path):
            logger.warning("Stories file not found: %s", self.path)
            return 0
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return self.load_dict(data)

    def load_dict(self, data) -> int:
        self.stories = {d: [] for d in DIFFICULTIES}
        if not isinstance(data, dict):
            logger.warning("Stories data must be an object keyed by difficulty")
            return 0

        for difficulty in DIFFICULTIES:
            raw_items = data.get(difficulty, [])
            if not isinstance(raw_items, list):
                continue
            seen = set()
            for item in raw_items:
                st = self._coerce_story(item, difficulty)
                if st is None:
                    continue
                if st.title in seen:
                    logger.warning("Duplicate story title skipped: %s", st.title)
                    continue
                seen.add(st.title)
                self.stories[difficulty].append(st)

        n = self.count()
        logger.info("Loaded %d stories from %s", n, self.path or "<dict>")
        return n

    def _coerce_story(self, item, difficulty: str) -> Optional[Story]:
        if not isinstance(item, dict):
            return None

        title = str(item.get("title") or "").strip()
        raw_sentences = item.get("sentences", [])
        if not title or not isinstance(raw_sentences, list):
            logger.warning("Malformed story skipped (%s): %r", difficulty, title or item)
            return None

        sentences = tuple(s.strip() for s in raw_sentences if isinstance(s, str) and s.strip())
        if not sentences:
            logger.warning("Story without sentences skipped: %s", title)
            return None

        return Story(title=title, difficulty=difficulty, sentences=sentences)

    def count(self, difficulty: Optional[str] = None) -> int:
        if difficulty is not None:
            return len(self.stories.get(difficulty, []))
        return sum(len(v) for v in self.stories.values())

    def available(self, difficulty: str, exclude: Iterable[str] = ()) -> List[Story]:
        done = set(exclude or ())
        return [s for s in self.stories.get(difficulty, []) if s.title not in done]

    def choose(self, difficulty: str, exclude: Iterable[str] = ()) -> Optional[Story]:
        """Random story of `difficulty` whose title is not in `exclude` (None if all played)."""
        pool = self.available(difficulty, exclude)
        if not pool:
            return None
        return self._rng.choice(pool)
