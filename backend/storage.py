"""SQLite-backed persistence for the topology aggregate (devices, cables, logs, stats)."""

from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from models import NetworkState

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "network_topology_state"


class StateStore:
    def __init__(self, db_path: Path, key: str = DEFAULT_STORAGE_KEY):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.key = key
        self._lock = threading.Lock()
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _init_db(self) -> None:
        with self._lock:
            with self._connect() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS network_state (
                        key TEXT PRIMARY KEY,
                        saved_at TEXT NOT NULL,
                        state_json TEXT NOT NULL
                    )
                    """
                )
                conn.execute("PRAGMA journal_mode=WAL")
                conn.execute("PRAGMA synchronous=NORMAL")
                conn.commit()

    def save(self, state: NetworkState) -> None:
        try:
            payload = state.model_dump_json(by_alias=True)
            with self._lock:
                with self._connect() as conn:
                    conn.execute(
                        """
                        INSERT INTO network_state (key, saved_at, state_json)
                        VALUES (?, ?, ?)
                        ON CONFLICT(key) DO UPDATE SET
                            saved_at = excluded.saved_at,
                            state_json = excluded.state_json
                        """,
                        (self.key, datetime.now(timezone.utc).isoformat(), payload),
                    )
                    conn.commit()
        except Exception as exc:
            logger.warning("Failed to save network state: %s", exc)

    def load(self) -> Optional[NetworkState]:
        try:
            with self._lock:
                with self._connect() as conn:
                    row = conn.execute(
                        "SELECT state_json FROM network_state WHERE key = ?",
                        (self.key,),
                    ).fetchone()
            if not row:
                return None
            return NetworkState.model_validate_json(row[0])
        except Exception as exc:
            logger.warning("Failed to load network state: %s", exc)
            return None

    def clear(self) -> bool:
        try:
            with self._lock:
                with self._connect() as conn:
                    cursor = conn.execute("DELETE FROM network_state WHERE key = ?", (self.key,))
                    conn.commit()
                    return cursor.rowcount > 0
        except Exception as exc:
            logger.warning("Failed to clear network state: %s", exc)
            return False
