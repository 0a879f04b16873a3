"""Session store abstractions and an in-process implementation.

The transport layer owns session lifetime (cookies, expiry); the engine only
needs a mutable :class:`SessionState` per session key.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
import logging
import threading

from item_search.domain.session import SessionState


logger = logging.getLogger(__name__)


class AbstractSessionStore(ABC):
    """Abstract per-key session storage."""

    @abstractmethod
    def get(self, session_key: str) -> SessionState | None:
        """Return the stored session or ``None``."""
        raise NotImplementedError

    @abstractmethod
    def get_or_create(self, session_key: str) -> SessionState:
        """Return the stored session, creating an uninitialized one on first contact."""
        raise NotImplementedError

    @abstractmethod
    def discard(self, session_key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def keys(self) -> list[str]:
        raise NotImplementedError

    def __iter__(self) -> Iterator[SessionState]:
        for session_key in self.keys():
            session = self.get(session_key)
            if session is not None:
                yield session


class InMemorySessionStore(AbstractSessionStore):
    """Dictionary-backed store for single-process deployments and tests."""

    def __init__(self) -> None:
        self._sessions: dict[str, SessionState] = {}
        self._lock = threading.Lock()

    def get(self, session_key: str) -> SessionState | None:
        return self._sessions.get(session_key)

    def get_or_create(self, session_key: str) -> SessionState:
        with self._lock:
            session = self._sessions.get(session_key)
            if session is None:
                session = SessionState()
                self._sessions[session_key] = session
                logger.debug("Created session state for %s", session_key)
            return session

    def discard(self, session_key: str) -> None:
        with self._lock:
            self._sessions.pop(session_key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)
