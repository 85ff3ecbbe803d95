"""Conversation and message models."""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


class MessageRole(str, Enum):
    """Author of a persisted message."""

    USER = "user"
    ASSISTANT = "assistant"


class FileAttachment(BaseModel):
    """An uploaded file referenced by a chat message."""

    id: str
    original_name: str
    filename: str
    path: str
    size: int
    mimetype: str
    uploaded_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    content: str | None = None  # Extracted text for documents
    processed: bool = False


class Message(BaseModel):
    """A single committed message in a conversation."""

    id: str = Field(default_factory=lambda: f"msg_{uuid4().hex}")
    conversation_id: str
    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    attachments: list[FileAttachment] = Field(default_factory=list)


class Conversation(BaseModel):
    """A conversation and its committed message history."""

    id: str = Field(default_factory=lambda: f"conv_{uuid4().hex}")
    title: str = "New Conversation"
    created: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated: datetime = Field(default_factory=lambda: datetime.now(UTC))
    messages: list[Message] = Field(default_factory=list)
