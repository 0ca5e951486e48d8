"""Conversation domain: messages and the session core."""

from .models import Message, Role, SessionState, SubmitOutcome, SubmitResult
from .session import (
    ConversationSession,
    HistoryOrderError,
    SessionError,
    SessionStateError,
)

__all__ = [
    "ConversationSession",
    "HistoryOrderError",
    "Message",
    "Role",
    "SessionError",
    "SessionState",
    "SessionStateError",
    "SubmitOutcome",
    "SubmitResult",
]
