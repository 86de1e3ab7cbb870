"""Chat history request and response schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# Superset of every feature that stores chats. Storage keeps ``type`` as an
# open string; only the HTTP boundary is restricted to these values.
SessionType = Literal["fund", "stock", "fund-intelligence", "discovery"]
MessageRole = Literal["user", "model"]


class ConversationTurn(BaseModel):
    """One turn of a conversation as exchanged with the AI service."""

    role: MessageRole
    content: str


class ChatMessageResponse(BaseModel):
    """Persisted chat message."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    session_id: str
    role: str
    content: str
    created_at: datetime


class ChatSessionResponse(BaseModel):
    """Chat session without its messages."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str
    user_id: str
    type: str
    context_id: str
    title: str
    preview: str | None = None
    created_at: datetime
    updated_at: datetime


class ChatSessionDetail(ChatSessionResponse):
    """Chat session together with its messages, oldest first."""

    messages: list[ChatMessageResponse] = Field(default_factory=list)


class GetOrCreateSessionResponse(ChatSessionDetail):
    """Result of get-or-create.

    ``is_temporary`` sessions were never stored: the owner could not be
    verified, so the conversation will not survive a reload.
    """

    is_new: bool
    is_temporary: bool = False


class ChatSessionListResponse(BaseModel):
    """User's sessions, most recently updated first."""

    model_config = ConfigDict(frozen=True)

    sessions: list[ChatSessionResponse]


class CreateSessionRequest(BaseModel):
    """Request to create (or get-or-create) a session."""

    type: SessionType
    context_id: str = Field(..., min_length=1, max_length=255)
    title: str = Field(..., min_length=1, max_length=255)


class AppendMessageRequest(BaseModel):
    """Request to append a message to a session."""

    role: MessageRole
    content: str = Field(..., min_length=1)


class UpdateTitleRequest(BaseModel):
    """Request to update a session title."""

    title: str = Field(..., min_length=1, max_length=255)


class GenerateTitleRequest(BaseModel):
    """Conversation used to derive a session title."""

    messages: list[ConversationTurn] = Field(..., min_length=1)


class GeneratedTitleResponse(BaseModel):
    """Generated title, or ``None`` when generation failed."""

    model_config = ConfigDict(frozen=True)

    title: str | None = None
