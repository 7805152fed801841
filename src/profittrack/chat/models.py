"""Chat message and session models."""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ChatMessage(BaseModel):
    """One message in a conversation."""
    id: str
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=utc_now)

    @classmethod
    def create(cls, role: str, content: str, timestamp: Optional[datetime] = None) -> "ChatMessage":
        return cls(
            id=f"{role}-{uuid.uuid4().hex}",
            role=role,
            content=content,
            timestamp=timestamp or utc_now()
        )


class ConversationSession(BaseModel):
    """Persisted form of a chat session."""
    messages: List[ChatMessage] = Field(default_factory=list)
    last_updated_at: datetime = Field(default_factory=utc_now)


class ChatState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"


class TurnOutcome(str, Enum):
    """How a call to ChatSession.send ended."""
    SUCCEEDED = "succeeded"
    FAILED_TERMINAL = "failed_terminal"
    FAILED_AFTER_RETRIES = "failed_after_retries"
    REJECTED = "rejected"
    DISCARDED = "discarded"  # session closed or cleared while the turn was in flight


class ChatSnapshot(BaseModel):
    """Read-only view of a session for UI layers."""
    state: ChatState
    messages: Tuple[ChatMessage, ...]
    last_error: Optional[str] = None
    is_open: bool = False
