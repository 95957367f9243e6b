"""
Local persistent cache (SQLite).

Stores the last known task and project collections as JSON under a fixed
namespace key, so the next session can render them before any remote fetch
completes. Cache failures are logged and never propagate.
"""
import sqlite3
import json
import logging
from pathlib import Path
from typing import Optional, Dict, Any
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


def _connect(db_path: str) -> sqlite3.Connection:
    """Open a connection in WAL mode."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


class LocalCache:
    """SQLite-backed key/value store for session state."""

    def __init__(self, db_path: str = None):
        """Initialize cache and create the table if needed."""
        if db_path is None:
            db_path = str(Path.home() / ".local" / "share" / "nexus" / "state.db")
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _init_schema(self):
        with _connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS persisted_state (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.commit()

    def save(self, key: str, payload: Dict[str, Any]) -> bool:
        """Write payload as JSON under key, replacing any previous value."""
        try:
            now = datetime.now(timezone.utc).isoformat()
            with _connect(self.db_path) as conn:
                conn.execute("""
                    INSERT INTO persisted_state (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
                """, (key, json.dumps(payload), now))
                conn.commit()
            return True
        except (sqlite3.Error, TypeError, ValueError) as e:
            logger.warning(f"Error saving cache entry {key}: {e}")
            return False

    def load(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the payload stored under key, or None if absent or unreadable."""
        try:
            with _connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT value FROM persisted_state WHERE key = ?",
                    (key,)
                ).fetchone()
        except sqlite3.Error as e:
            logger.warning(f"Error reading cache entry {key}: {e}")
            return None

        if not row:
            return None
        try:
            payload = json.loads(row["value"])
        except (json.JSONDecodeError, TypeError):
            logger.warning(f"Discarding corrupt cache entry {key}")
            return None
        return payload if isinstance(payload, dict) else None

    def clear(self, key: str) -> bool:
        try:
            with _connect(self.db_path) as conn:
                conn.execute("DELETE FROM persisted_state WHERE key = ?", (key,))
                conn.commit()
            return True
        except sqlite3.Error as e:
            logger.warning(f"Error clearing cache entry {key}: {e}")
            return False
