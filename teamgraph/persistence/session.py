"""Session abstraction: named values keyed by session id."""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from teamgraph.config import get_settings
from teamgraph.persistence.session_store import SessionStore

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class AgentSession(Protocol):
    session_id: str

    def get(self, key: str, default: Any = None) -> Any:
        ...

    def put(self, key: str, value: Any) -> None:
        ...

    def remove(self, key: str) -> None:
        ...

    def child(self, suffix: str) -> "AgentSession":
        ...


class InMemorySession:
    """Process-local session; values live as long as the object."""

    def __init__(self, session_id: Optional[str] = None) -> None:
        self.session_id = session_id or uuid.uuid4().hex
        self._values: Dict[str, Any] = {}
        self._children: Dict[str, "InMemorySession"] = {}
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._values.get(key, default)

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._values.pop(key, None)

    def keys(self):
        with self._lock:
            return list(self._values)

    def child(self, suffix: str) -> "InMemorySession":
        """Return the nested session for ``suffix``; the same object on every call."""
        with self._lock:
            if suffix not in self._children:
                self._children[suffix] = self._new_child(f"{self.session_id}/{suffix}")
            return self._children[suffix]

    def _new_child(self, session_id: str) -> "InMemorySession":
        return InMemorySession(session_id)

    def __repr__(self) -> str:
        return f"InMemorySession({self.session_id!r})"


class StoredSession(InMemorySession):
    """Write-through session persisted to a SQLite ``SessionStore``.

    Existing values are loaded on construction, so a new process can resume
    a stored trace with the same session id.
    """

    def __init__(self, store: SessionStore, session_id: Optional[str] = None) -> None:
        super().__init__(session_id)
        self.store = store
        self._values.update(store.load_all(self.session_id))
        if self._values:
            LOGGER.info(f"Session {self.session_id} restored with keys {list(self._values)}")

    def put(self, key: str, value: Any) -> None:
        super().put(key, value)
        self.store.save(self.session_id, key, value)

    def remove(self, key: str) -> None:
        super().remove(key)
        self.store.delete(self.session_id, key)

    def _new_child(self, session_id: str) -> "StoredSession":
        return StoredSession(self.store, session_id)

    def __repr__(self) -> str:
        return f"StoredSession({self.session_id!r}, db={self.store.db_path!r})"


def open_session(session_id: Optional[str] = None, db_path: Optional[str] = None) -> InMemorySession:
    """Return a ``StoredSession`` when a database path is configured, else an in-memory one.

    ``db_path`` defaults to ``SESSION_DB_PATH`` from the observability settings.
    """
    if db_path is None:
        db_path = get_settings().observability.session_db_path
    if not db_path:
        return InMemorySession(session_id)
    return StoredSession(SessionStore(db_path), session_id)


__all__ = ["AgentSession", "InMemorySession", "StoredSession", "open_session"]
