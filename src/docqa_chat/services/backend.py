"""Backend collaborator boundary.

The backend answers a user's question given the conversation so far.
Retrieval and answer generation live behind this interface; the session
core only ever sees finished answer text.
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Sequence

import structlog

from ..domain.models import Message

logger = structlog.get_logger()

AskFunction = Callable[[str, Sequence[Message]], Awaitable[str]]


class BackendError(Exception):
    """Base class for backend failures."""


class BackendUnavailableError(BackendError):
    """Raised when no backend can be reached."""


class Backend(ABC):
    """Abstract question-answering backend."""

    @abstractmethod
    async def ask(self, question: str, context: Sequence[Message]) -> str:
        """Answer ``question`` given the ordered prior messages."""
        pass


class UnavailableBackend(Backend):
    """Stand-in used until a real backend is wired in."""

    async def ask(self, question: str, context: Sequence[Message]) -> str:
        logger.warning("backend_unavailable", question_length=len(question))
        raise BackendUnavailableError("No document backend is configured")


class CallableBackend(Backend):
    """Adapts a plain coroutine function to the Backend interface."""

    def __init__(self, ask: AskFunction, name: str = "callable") -> None:
        self._ask = ask
        self.name = name

    async def ask(self, question: str, context: Sequence[Message]) -> str:
        logger.debug(
            "backend_ask",
            backend=self.name,
            question_length=len(question),
            context_size=len(context),
        )
        return await self._ask(question, context)
