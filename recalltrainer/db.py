import json
import logging
import sqlite3
import threading
from typing import Any, Dict, List, Optional

from .utils_text import now_iso

logger = logging.getLogger(__name__)

DDL = """
CREATE TABLE IF NOT EXISTS kv(
  key TEXT PRIMARY KEY,
  value TEXT,
  updated_at TEXT
);

CREATE TABLE IF NOT EXISTS recall_attempts(
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  created_at TEXT,
  story_title TEXT,
  difficulty TEXT,
  scope TEXT,
  last_n INTEGER,
  attempt_text TEXT,
  reference_text TEXT,
  matched INTEGER,
  total INTEGER,
  wer REAL
);

CREATE INDEX IF NOT EXISTS idx_recall_attempts_created
ON recall_attempts(created_at);
"""

KEY_NOTES = "memory_notes"
KEY_COMPLETED = "completed_stories"


def _column_exists(cur: sqlite3.Cursor, table: str, col: str) -> bool:
    cur.execute(f"PRAGMA table_info({table})")
    return any(r[1] == col for r in cur.fetchall())


def migrate_db(conn: sqlite3.Connection) -> None:
    cur = conn.cursor()
    cur.executescript(DDL)

    add_cols = [
        ("recall_attempts", "difficulty", "TEXT"),
        ("recall_attempts", "last_n", "INTEGER"),
        ("recall_attempts", "wer", "REAL"),
    ]
    for table, col, typ in add_cols:
        if not _column_exists(cur, table, col):
            cur.execute(f"ALTER TABLE {table} ADD COLUMN {col} {typ}")
    conn.commit()


class DataLayer:
    """Repository SQLite (thread-safe): key-value store + recall history."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.lock = threading.Lock()
        with self.lock:
            migrate_db(self.conn)

    def close(self):
        try:
            self.conn.close()
        except sqlite3.Error:
            logger.warning("DB close failed", exc_info=True)

    # --- key-value
    def get_json(self, key: str, default: Any = None) -> Any:
        with self.lock:
            cur = self.conn.cursor()
            cur.execute("SELECT value FROM kv WHERE key=?", (key,))
            row = cur.fetchone()
        if not row or row["value"] is None:
            return default
        try:
            return json.loads(row["value"])
        except ValueError:
            logger.warning("Corrupted JSON value for key %s, using default", key)
            return default

    def set_json(self, key: str, value: Any) -> None:
        with self.lock:
            cur = self.conn.cursor()
            cur.execute(
                "INSERT INTO kv(key, value, updated_at) VALUES(?,?,?) "
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at",
                (key, json.dumps(value, ensure_ascii=False), now_iso()),
            )
            self.conn.commit()

    # --- completed stories
    def load_completed_stories(self) -> List[str]:
        data = self.get_json(KEY_COMPLETED, [])
        if not isinstance(data, list):
            return []
        return [str(t) for t in data]

    def save_completed_stories(self, titles: List[str]) -> None:
        self.set_json(KEY_COMPLETED, list(titles))

    # --- notes
    def load_notes(self) -> Dict[str, Any]:
        data = self.get_json(KEY_NOTES, {})
        return data if isinstance(data, dict) else {}

    def save_notes(self, notes: Dict[str, Any]) -> None:
        self.set_json(KEY_NOTES, notes)

    # --- recall history
    def save_attempt(self, a: Dict[str, Any]) -> int:
        cols = [
            "created_at", "story_title", "difficulty", "scope", "last_n",
            "attempt_text", "reference_text", "matched", "total", "wer",
        ]
        values = [a.get(c) for c in cols]
        if values[0] is None:
            values[0] = now_iso()
        with self.lock:
            cur = self.conn.cursor()
            cur.execute(
                f"INSERT INTO recall_attempts({','.join(cols)}) VALUES({','.join(['?'] * len(cols))})",
                values,
            )
            self.conn.commit()
            return cur.lastrowid

    def fetch_attempts(self, story_title: Optional[str] = None, limit: int = 500):
        with self.lock:
            cur = self.conn.cursor()
            order = "ORDER BY created_at DESC, id DESC"
            if story_title:
                cur.execute(
                    f"SELECT * FROM recall_attempts WHERE story_title=? {order} LIMIT ?",
                    (story_title, limit),
                )
            else:
                cur.execute(f"SELECT * FROM recall_attempts {order} LIMIT ?", (limit,))
            return cur.fetchall()

    def delete_attempts_by_ids(self, ids: List[int]):
        if not ids:
            return
        with self.lock:
            cur = self.conn.cursor()
            cur.executemany("DELETE FROM recall_attempts WHERE id=?", [(i,) for i in ids])
            self.conn.commit()
