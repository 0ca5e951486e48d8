"""Conversation session core.

Owns the ordered message log for one session, allocates message ids and
mediates the submit/append protocol between the UI and a backend responder.
All mutation happens synchronously on the caller's thread; asynchronous
backends resolve replies through ``complete_reply``/``fail_reply`` from the
same event loop.
"""

from collections import deque
from typing import Callable, Deque, Iterable, List, Optional, Sequence, Tuple
from uuid import UUID, uuid4

import structlog

from .models import (
    WELCOME_SEQUENCE,
    Message,
    Role,
    SessionState,
    SubmitOutcome,
    SubmitResult,
)

logger = structlog.get_logger()

Observer = Callable[[Message], None]
Responder = Callable[[Message, Tuple[Message, ...]], None]

DISPATCH_FAILED_NOTICE = "Your question could not be sent to the document assistant."


class SessionError(Exception):
    """Base class for session errors."""


class SessionStateError(SessionError):
    """Raised when a reply is resolved while none is pending."""


class HistoryOrderError(SessionError, ValueError):
    """Raised when stored history breaks id ordering."""


class ConversationSession:
    """In-memory conversation log for a single session."""

    def __init__(
        self,
        seed: Optional[Iterable[Message]] = None,
        session_id: Optional[UUID] = None,
    ) -> None:
        self.id = session_id or uuid4()
        self.draft = ""
        self._messages: List[Message] = []
        self._state = SessionState.IDLE
        self._pending: Deque[str] = deque()
        self._observers: List[Observer] = []
        self._responder: Optional[Responder] = None

        if seed is None:
            seed = [
                Message(id=index, role=role, content=content)
                for index, (role, content) in enumerate(WELCOME_SEQUENCE, start=1)
            ]
        for message in seed:
            if message.id <= self.last_id:
                raise HistoryOrderError(
                    f"Message id {message.id} does not follow id {self.last_id}"
                )
            self._messages.append(message)

        logger.info("session_started", session_id=str(self.id), seeded=len(self._messages))

    @classmethod
    def from_history(
        cls,
        messages: Sequence[Message],
        session_id: Optional[UUID] = None,
    ) -> "ConversationSession":
        """Rebuild a session from stored history, or start fresh if there is none."""
        if not messages:
            return cls(session_id=session_id)
        return cls(seed=messages, session_id=session_id)

    @property
    def messages(self) -> Tuple[Message, ...]:
        """Snapshot of the log for rendering."""
        return tuple(self._messages)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def pending(self) -> Tuple[str, ...]:
        return tuple(self._pending)

    @property
    def last_id(self) -> int:
        return self._messages[-1].id if self._messages else 0

    def __len__(self) -> int:
        return len(self._messages)

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer for appended messages; returns an unsubscribe callable."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def set_responder(self, responder: Optional[Responder]) -> None:
        """Attach (or detach with None) the backend integration."""
        self._responder = responder

    def submit(self, draft: Optional[str] = None) -> SubmitResult:
        """Validate a draft and append it as a user message.

        Blank drafts are a no-op. While a reply is outstanding, valid drafts
        are queued and appended in order once it lands.
        """
        text = (self.draft if draft is None else draft).strip()
        if not text:
            logger.debug("submission_rejected_empty", session_id=str(self.id))
            return SubmitResult(outcome=SubmitOutcome.REJECTED_EMPTY)

        self.draft = ""

        if self._state is SessionState.AWAITING_REPLY:
            self._pending.append(text)
            logger.info(
                "submission_queued",
                session_id=str(self.id),
                pending=len(self._pending),
            )
            return SubmitResult(outcome=SubmitOutcome.QUEUED)

        message = self._append_user(text)
        return SubmitResult(outcome=SubmitOutcome.ACCEPTED, message=message)

    def complete_reply(self, content: str) -> Message:
        """Append the assistant's answer to the outstanding question."""
        return self._resolve(Role.ASSISTANT, content)

    def fail_reply(self, notice: str) -> Message:
        """Append a system notice in place of the assistant's answer."""
        return self._resolve(Role.SYSTEM, notice)

    def cancel_reply(self) -> None:
        """Stop waiting for the outstanding reply without appending anything."""
        if self._state is not SessionState.AWAITING_REPLY:
            return
        self._state = SessionState.IDLE
        logger.info("reply_cancelled", session_id=str(self.id))
        self._release_pending()

    def discard_pending(self) -> int:
        """Drop queued submissions, returning how many were dropped."""
        dropped = len(self._pending)
        self._pending.clear()
        if dropped:
            logger.info("pending_discarded", session_id=str(self.id), dropped=dropped)
        return dropped

    def _resolve(self, role: Role, content: str) -> Message:
        if self._state is not SessionState.AWAITING_REPLY:
            raise SessionStateError(f"Session {self.id} is not awaiting a reply")
        message = self._append(role, content)
        self._state = SessionState.IDLE
        self._release_pending()
        return message

    def _release_pending(self) -> None:
        if self._pending and self._state is SessionState.IDLE:
            self._append_user(self._pending.popleft())

    def _append_user(self, text: str) -> Message:
        context = self.messages
        message = self._append(Role.USER, text)

        if self._responder is not None:
            self._state = SessionState.AWAITING_REPLY
            try:
                self._responder(message, context)
            except Exception as e:
                logger.error(
                    "responder_failed",
                    session_id=str(self.id),
                    message_id=message.id,
                    error=str(e),
                )
                self.fail_reply(DISPATCH_FAILED_NOTICE)

        return message

    def _append(self, role: Role, content: str) -> Message:
        message = Message(id=self.last_id + 1, role=role, content=content)
        self._messages.append(message)
        logger.info(
            "message_appended",
            session_id=str(self.id),
            message_id=message.id,
            role=message.role.value,
        )

        for observer in list(self._observers):
            try:
                observer(message)
            except Exception as e:
                logger.error(
                    "observer_failed",
                    session_id=str(self.id),
                    message_id=message.id,
                    error=str(e),
                )

        return message
