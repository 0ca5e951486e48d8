"""Domain models for the conversation session core."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Role(str, Enum):
    """Who authored a message."""

    SYSTEM = "system"
    ASSISTANT = "assistant"
    USER = "user"


class Message(BaseModel):
    """One immutable turn in the dialogue."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(gt=0)
    role: Role
    content: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message content must not be blank")
        return value


class SessionState(str, Enum):
    """Whether the session is waiting on the backend."""

    IDLE = "idle"
    AWAITING_REPLY = "awaiting_reply"


class SubmitOutcome(str, Enum):
    """What happened to a submitted draft."""

    ACCEPTED = "accepted"
    QUEUED = "queued"
    REJECTED_EMPTY = "rejected_empty"


class SubmitResult(BaseModel):
    """Result of a submit call.

    ``message`` is only set for accepted drafts. Queued drafts become
    messages once the reply they are waiting behind has landed.
    """

    model_config = ConfigDict(frozen=True)

    outcome: SubmitOutcome
    message: Optional[Message] = None

    @property
    def accepted(self) -> bool:
        return self.outcome is not SubmitOutcome.REJECTED_EMPTY


# Fixed welcome sequence every new session starts with (ids 1..n)
WELCOME_SEQUENCE: Tuple[Tuple[Role, str], ...] = (
    (
        Role.SYSTEM,
        "You are a local document assistant. Answer only from the documents the user has loaded.",
    ),
    (
        Role.ASSISTANT,
        "Hi! Load a document and ask me anything about it.",
    ),
)
