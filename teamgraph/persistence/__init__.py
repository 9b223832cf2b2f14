"""Session abstraction and SQLite-backed storage."""

from .session import AgentSession, InMemorySession, StoredSession, open_session
from .session_store import SessionStore

__all__ = ["AgentSession", "InMemorySession", "SessionStore", "StoredSession", "open_session"]
