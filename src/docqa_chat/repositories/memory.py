"""In-memory history repository implementation."""

import asyncio
from typing import Dict, List
from uuid import UUID

import structlog

from ..domain.models import Message
from .base import HistoryRepository

logger = structlog.get_logger()


class InMemoryHistoryRepository(HistoryRepository):
    """History repository backed by a dict, guarded by an asyncio lock."""

    def __init__(self) -> None:
        self._histories: Dict[UUID, List[Message]] = {}
        self._async_lock = asyncio.Lock()
        logger.info("repository_initialized")

    async def list_sessions(self) -> List[UUID]:
        async with self._async_lock:
            return list(self._histories.keys())

    async def load_history(self, session_id: UUID) -> List[Message]:
        async with self._async_lock:
            history = self._histories.get(session_id)
            if history is None:
                logger.warning("history_not_found", session_id=str(session_id))
                return []
            return list(history)

    async def append_message(self, session_id: UUID, message: Message) -> Message:
        async with self._async_lock:
            history = self._histories.setdefault(session_id, [])

            if history and message.id <= history[-1].id:
                logger.error(
                    "history_out_of_order",
                    session_id=str(session_id),
                    message_id=message.id,
                    last_id=history[-1].id,
                )
                raise ValueError(
                    f"Message {message.id} does not follow stored message {history[-1].id}"
                )

            history.append(message)
            logger.debug(
                "history_message_stored",
                session_id=str(session_id),
                message_id=message.id,
                role=message.role.value,
            )
            return message
