"""Simple SQLite-based storage for session values."""

from __future__ import annotations

import json
import os
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from teamgraph.trace import TeamTrace


class SessionStore:
    """SQLite store keyed by (session_id, key); values are JSON documents."""

    def __init__(self, db_path: str = "data/sessions.db"):
        """Initialize the session store.

        Args:
            db_path: Path to SQLite database file
        """
        db_dir = os.path.dirname(db_path)
        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir, exist_ok=True)

        self.db_path = db_path
        self._init_db()

    def _init_db(self):
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS session_values (
                    session_id TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value_json TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (session_id, key)
                )
            """)
            conn.commit()
        finally:
            conn.close()

    def save(self, session_id: str, key: str, value: Any):
        """Insert or update one named value of a session."""
        conn = sqlite3.connect(self.db_path)
        try:
            value_json = self._serialize(value)
            now = datetime.now(timezone.utc).isoformat()
            conn.execute(
                """INSERT INTO session_values (session_id, key, value_json, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?)
                   ON CONFLICT(session_id, key)
                   DO UPDATE SET value_json = excluded.value_json, updated_at = excluded.updated_at""",
                (session_id, key, value_json, now, now),
            )
            conn.commit()
        finally:
            conn.close()

    def load(self, session_id: str, key: str) -> Optional[Any]:
        """Load one value, or None if not found."""
        conn = sqlite3.connect(self.db_path)
        try:
            row = conn.execute(
                "SELECT value_json FROM session_values WHERE session_id = ? AND key = ?",
                (session_id, key),
            ).fetchone()
            return self._deserialize(row[0]) if row else None
        finally:
            conn.close()

    def load_all(self, session_id: str) -> Dict[str, Any]:
        conn = sqlite3.connect(self.db_path)
        try:
            rows = conn.execute(
                "SELECT key, value_json FROM session_values WHERE session_id = ?",
                (session_id,),
            ).fetchall()
            return {key: self._deserialize(value_json) for key, value_json in rows}
        finally:
            conn.close()

    def list_sessions(self) -> List[tuple]:
        """List stored sessions.

        Returns:
            List of (session_id, value_count, updated_at) tuples, newest first
        """
        conn = sqlite3.connect(self.db_path)
        try:
            cursor = conn.execute(
                """SELECT session_id, COUNT(*), MAX(updated_at)
                   FROM session_values
                   GROUP BY session_id
                   ORDER BY MAX(updated_at) DESC"""
            )
            return cursor.fetchall()
        finally:
            conn.close()

    def delete(self, session_id: str, key: Optional[str] = None):
        """Delete one value, or the whole session when ``key`` is None."""
        conn = sqlite3.connect(self.db_path)
        try:
            if key is None:
                conn.execute("DELETE FROM session_values WHERE session_id = ?", (session_id,))
            else:
                conn.execute(
                    "DELETE FROM session_values WHERE session_id = ? AND key = ?",
                    (session_id, key),
                )
            conn.commit()
        finally:
            conn.close()

    def _serialize(self, value: Any) -> str:
        """Serialize a value to JSON, tagging traces so they can be rebuilt."""

        def serialize_obj(obj):
            if isinstance(obj, TeamTrace):
                return {"__type__": "team_trace", **obj.to_dict()}
            elif isinstance(obj, dict):
                return {k: serialize_obj(v) for k, v in obj.items()}
            elif isinstance(obj, (list, tuple)):
                return [serialize_obj(item) for item in obj]
            else:
                return obj

        return json.dumps(serialize_obj(value), ensure_ascii=False)

    def _deserialize(self, value_json: str) -> Any:
        def deserialize_obj(obj):
            if isinstance(obj, dict):
                if obj.get("__type__") == "team_trace":
                    data = {k: v for k, v in obj.items() if k != "__type__"}
                    return TeamTrace.from_dict(data)
                return {k: deserialize_obj(v) for k, v in obj.items()}
            elif isinstance(obj, list):
                return [deserialize_obj(item) for item in obj]
            else:
                return obj

        return deserialize_obj(json.loads(value_json))


__all__ = ["SessionStore"]
