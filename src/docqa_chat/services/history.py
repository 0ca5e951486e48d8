"""Session hydration and write-through to a history repository."""

import asyncio
from typing import Callable, Optional
from uuid import UUID

import structlog

from ..domain.models import Message
from ..domain.session import ConversationSession
from ..repositories.base import HistoryRepository

logger = structlog.get_logger()


async def open_session(
    repository: HistoryRepository,
    session_id: Optional[UUID] = None,
) -> ConversationSession:
    """Hydrate a session from stored history.

    A session with no stored history starts from the welcome sequence,
    which is stored right away so later appends follow it.
    """
    history = await repository.load_history(session_id) if session_id else []
    session = ConversationSession.from_history(history, session_id=session_id)

    if not history:
        for message in session.messages:
            await repository.append_message(session.id, message)

    logger.info(
        "session_opened",
        session_id=str(session.id),
        hydrated=len(history),
    )
    return session


class HistoryWriter:
    """Mirrors every message appended to a session into a repository.

    Writes go through a single worker task so the stored order always
    matches the log order.
    """

    def __init__(self, session: ConversationSession, repository: HistoryRepository) -> None:
        self.session = session
        self.repository = repository
        self._queue: "asyncio.Queue[Message]" = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self._unsubscribe: Optional[Callable[[], None]] = session.subscribe(self._on_message)

    def _on_message(self, message: Message) -> None:
        # writes need a worker task, so appends made outside a loop are not stored
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error(
                "history_write_skipped",
                session_id=str(self.session.id),
                message_id=message.id,
                reason="no running event loop",
            )
            return
        self._queue.put_nowait(message)
        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(self._process_queue())

    async def _process_queue(self) -> None:
        session_id = str(self.session.id)
        try:
            while True:
                message = await self._queue.get()
                try:
                    await self.repository.append_message(self.session.id, message)
                except Exception as e:
                    logger.error(
                        "history_write_failed",
                        session_id=session_id,
                        message_id=message.id,
                        error=str(e),
                    )
                finally:
                    self._queue.task_done()
        except asyncio.CancelledError:
            logger.info("history_writer_cancelled", session_id=session_id)

    async def flush(self) -> None:
        """Wait until every appended message has been written."""
        await self._queue.join()

    async def close(self) -> None:
        """Flush outstanding writes and stop following the session."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.flush()
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            await asyncio.gather(self._worker, return_exceptions=True)
        self._worker = None
