"""Conversation records: sessions, turns and immutable message versions.

A session owns an ordered list of turns. Each turn holds the ids of one or
more message *versions*; ``active_version`` selects the one shown in the
conversation. Messages themselves live in the key-value store under their id
and are never modified after creation.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageRole(str, Enum):
    """Message sender role."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChatInput(BaseModel):
    """What the user submits: typed text, an image, or both."""

    text: Optional[str] = None
    image_uri: Optional[str] = None  # sent to the model (hosted URL or data URI)
    original_uri: Optional[str] = None  # shown on device only


class ChatMessage(BaseModel):
    """One immutable message version."""

    model_config = ConfigDict(frozen=True)

    id: str
    role: MessageRole
    content: Optional[str] = None
    image_uri: Optional[str] = None
    original_uri: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)
    turn_index: int
    version_index: int

    @property
    def has_image(self) -> bool:
        return bool(self.image_uri)


class ChatTurn(BaseModel):
    """One position in the conversation and its message versions."""

    turn_index: int
    role: MessageRole
    message_ids: list[str]
    active_version: int = 0

    @model_validator(mode="after")
    def _check_versions(self) -> "ChatTurn":
        if not self.message_ids:
            raise ValueError(f"turn {self.turn_index} has no message versions")
        if not 0 <= self.active_version < len(self.message_ids):
            raise ValueError(
                f"turn {self.turn_index} active version {self.active_version} "
                f"out of range for {len(self.message_ids)} versions"
            )
        return self

    @property
    def active_message_id(self) -> str:
        return self.message_ids[self.active_version]


class ChatSession(BaseModel):
    """Persisted session record.

    ``id`` stays empty until the session is first written; ``message_seq`` is
    the highest message number ever allocated in this session.
    """

    id: str = ""
    title: str = ""
    timestamp: datetime = Field(default_factory=utcnow)
    turns: list[ChatTurn] = Field(default_factory=list)
    message_seq: int = 0


class HistoryPage(BaseModel):
    """One page of the reverse-chronological session listing."""

    cursor: int
    sessions: list[ChatSession]
