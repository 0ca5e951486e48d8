"""Base history repository interface."""

from abc import ABC, abstractmethod
from typing import List
from uuid import UUID

from ..domain.models import Message


class HistoryRepository(ABC):
    """Abstract base class for conversation history storage."""

    @abstractmethod
    async def list_sessions(self) -> List[UUID]:
        """List the ids of stored sessions."""
        pass

    @abstractmethod
    async def load_history(self, session_id: UUID) -> List[Message]:
        """Load a session's messages in id order."""
        pass

    @abstractmethod
    async def append_message(self, session_id: UUID, message: Message) -> Message:
        """Store a message at the end of a session's history."""
        pass
