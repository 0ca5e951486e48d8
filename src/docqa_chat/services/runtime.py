"""Per-view session runtime.

Holds the one session a hosting view renders, together with whatever is
wired to it: a reply dispatcher when a backend is configured and a history
writer when a repository is.
"""

import asyncio
from typing import Optional
from uuid import UUID

import structlog

from ..domain.session import ConversationSession
from ..repositories.base import HistoryRepository
from .backend import Backend
from .dispatcher import ReplyDispatcher
from .history import HistoryWriter, open_session

logger = structlog.get_logger()


class SessionRuntime:
    """Owns a session and its collaborators for the lifetime of a view."""

    def __init__(
        self,
        backend: Optional[Backend] = None,
        repository: Optional[HistoryRepository] = None,
        session_id: Optional[UUID] = None,
        reply_timeout: float = 30.0,
    ) -> None:
        self.backend = backend
        self.repository = repository
        self.session_id = session_id
        self.reply_timeout = reply_timeout
        self.session: Optional[ConversationSession] = None
        self.dispatcher: Optional[ReplyDispatcher] = None
        self.history_writer: Optional[HistoryWriter] = None
        self._lock = asyncio.Lock()

    async def open(self) -> ConversationSession:
        """Return the session, creating it on first use."""
        async with self._lock:
            if self.session is not None:
                return self.session

            if self.repository is not None:
                session = await open_session(self.repository, self.session_id)
                self.history_writer = HistoryWriter(session, self.repository)
            else:
                session = ConversationSession(session_id=self.session_id)

            if self.backend is not None:
                self.dispatcher = ReplyDispatcher(
                    session, self.backend, reply_timeout=self.reply_timeout
                )

            self.session = session
            logger.info(
                "runtime_opened",
                session_id=str(session.id),
                backend=self.backend is not None,
                persistent=self.repository is not None,
            )
            return session

    async def wait_idle(self) -> None:
        """Wait for any outstanding reply and pending history writes."""
        if self.dispatcher is not None:
            await self.dispatcher.wait_idle()
        if self.history_writer is not None:
            await self.history_writer.flush()

    async def close(self) -> None:
        """Tear down the session: cancel replies, flush history."""
        async with self._lock:
            if self.session is None:
                return
            if self.dispatcher is not None:
                await self.dispatcher.close()
            if self.history_writer is not None:
                await self.history_writer.close()
            logger.info("runtime_closed", session_id=str(self.session.id))
            self.session = None
            self.dispatcher = None
            self.history_writer = None
