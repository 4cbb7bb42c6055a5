"""SessionStore — in-memory registry of conversation sessions."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator

from acp_bridge.errors import SessionNotFoundError
from acp_bridge.session.models import Message, Session

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Async readers-writer lock.

    Any number of readers may hold the lock together; a writer holds it
    alone.  A waiting writer blocks new readers so writes are not starved.
    Waiters suspend on a condition and never spin.
    """

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextlib.asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(
                lambda: not self._writer and self._writers_waiting == 0
            )
            self._readers += 1
        try:
            yield
        finally:
            async with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextlib.asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        async with self._cond:
            self._writers_waiting += 1
            try:
                await self._cond.wait_for(
                    lambda: not self._writer and self._readers == 0
                )
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            async with self._cond:
                self._writer = False
                self._cond.notify_all()


class SessionStore:
    """Concurrent key-value store of :class:`Session` objects.

    Every operation goes through one :class:`ReadWriteLock`.  Sessions are
    deep-copied on the way in and out, so callers never hold a reference
    into the store.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = ReadWriteLock()

    async def create(self, system_prompt: str | None = None) -> Session:
        """Create and register a new session.  Never fails."""
        session = Session.new(system_prompt)
        async with self._lock.write():
            self._sessions[session.id] = session
        logger.debug("created session %s", session.id)
        return session.copy_deep()

    async def create_with_title(
        self, title: str, system_prompt: str | None = None
    ) -> Session:
        """Create a session with *title* set atomically."""
        session = Session.new(system_prompt)
        session.title = title
        async with self._lock.write():
            self._sessions[session.id] = session
        logger.debug("created session %s (%s)", session.id, title)
        return session.copy_deep()

    async def get(self, session_id: str) -> Session:
        async with self._lock.read():
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)
            return session.copy_deep()

    async def update(self, session: Session) -> None:
        """Replace an existing session.  No upsert."""
        async with self._lock.write():
            if session.id not in self._sessions:
                raise SessionNotFoundError(session.id)
            self._sessions[session.id] = session.copy_deep()

    async def delete(self, session_id: str) -> Session:
        """Remove a session and return its last value."""
        async with self._lock.write():
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)
        logger.debug("deleted session %s", session_id)
        return session

    async def list(self) -> list[Session]:
        async with self._lock.read():
            return [s.copy_deep() for s in self._sessions.values()]

    async def add_message(self, session_id: str, message: Message) -> None:
        async with self._lock.write():
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)
            session.add_message(message)

    async def get_or_create(self, session_id: str) -> Session:
        """Return the session for *session_id*, or a fresh, unrelated one.

        A freshly created session gets its own id; it is NOT registered
        under *session_id*.
        """
        try:
            return await self.get(session_id)
        except SessionNotFoundError:
            session = await self.create()
            logger.warning(
                "session %s not found; created unrelated session %s",
                session_id,
                session.id,
            )
            return session

    async def exists(self, session_id: str) -> bool:
        async with self._lock.read():
            return session_id in self._sessions

    async def count(self) -> int:
        async with self._lock.read():
            return len(self._sessions)

    async def clear(self) -> None:
        async with self._lock.write():
            self._sessions.clear()
