# recalltrainer/settings.py
import logging
import sqlite3
from typing import Any, Dict

from recalltrainer.config import DEFAULT_DB_PATH, DEFAULT_WORD_DELAY_MS

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    "difficulty": "simple",
    "word_delay_ms": DEFAULT_WORD_DELAY_MS,
    "show_full": 0,
    "pause_after_sentence": 0,
    "speech_enabled": 0,
    "show_notes": 1,
    "tts_voice": "",
    "tts_rate": 1.0,     # 0.5 → 1.5
    "tts_volume": 1.0,   # 0.0 → 1.0
}

_COLUMNS = [
    ("difficulty", "TEXT"),
    ("word_delay_ms", "INTEGER"),
    ("show_full", "INTEGER"),
    ("pause_after_sentence", "INTEGER"),
    ("speech_enabled", "INTEGER"),
    ("show_notes", "INTEGER"),
    ("tts_voice", "TEXT"),
    ("tts_rate", "REAL"),
    ("tts_volume", "REAL"),
]


class SettingsManager:
    """Minimal settings persistence using sqlite3 directly."""

    def __init__(self, db_path: str = str(DEFAULT_DB_PATH)):
        self.db_path = db_path
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        con = sqlite3.connect(self.db_path)
        con.row_factory = sqlite3.Row
        return con

    def _init_db(self) -> None:
        with self._connect() as con:
            con.execute(
                "CREATE TABLE IF NOT EXISTS user_settings (id INTEGER PRIMARY KEY CHECK (id = 1))"
            )
            # Migrate older DBs: add columns if missing
            cols = [r[1] for r in con.execute("PRAGMA table_info(user_settings)").fetchall()]
            for name, typ in _COLUMNS:
                if name not in cols:
                    con.execute(f"ALTER TABLE user_settings ADD COLUMN {name} {typ}")

            names = [c for c, _ in _COLUMNS]
            con.execute(
                f"INSERT OR IGNORE INTO user_settings (id, {', '.join(names)}) "
                f"VALUES (1, {', '.join('?' for _ in names)})",
                tuple(DEFAULT_SETTINGS[n] for n in names),
            )
            con.commit()

    def load(self) -> Dict[str, Any]:
        names = [c for c, _ in _COLUMNS]
        with self._connect() as con:
            row = con.execute(f"SELECT {', '.join(names)} FROM user_settings WHERE id=1").fetchone()

        if not row:
            return DEFAULT_SETTINGS.copy()

        out = DEFAULT_SETTINGS.copy()
        for name, typ in _COLUMNS:
            v = row[name]
            if v is None:
                continue
            try:
                if typ == "INTEGER":
                    out[name] = int(v)
                elif typ == "REAL":
                    out[name] = float(v)
                else:
                    out[name] = str(v)
            except (TypeError, ValueError):
                logger.warning("Bad stored setting %s=%r, using default", name, v)
        if out["word_delay_ms"] <= 0:
            out["word_delay_ms"] = DEFAULT_SETTINGS["word_delay_ms"]
        return out

    def save(self, s: Dict[str, Any]) -> None:
        merged = self.load()
        merged.update({k: v for k, v in (s or {}).items() if k in DEFAULT_SETTINGS})

        values = []
        for name, typ in _COLUMNS:
            v = merged[name]
            if typ == "INTEGER":
                values.append(int(v or 0))
            elif typ == "REAL":
                values.append(float(v))
            else:
                values.append(str(v or ""))

        with self._connect() as con:
            con.execute(
                f"UPDATE user_settings SET {', '.join(f'{c}=?' for c, _ in _COLUMNS)} WHERE id=1",
                tuple(values),
            )
            con.commit()
