"""Chat request and response models."""

from pydantic import BaseModel, Field

from athas_assistant.models.conversation import FileAttachment, Message


class ChatRequest(BaseModel):
    """Chat request from the browser client."""

    message: str = ""
    conversation_id: str | None = None
    attachments: list[FileAttachment] = Field(default_factory=list)


class ChatResponse(BaseModel):
    """Completed assistant reply."""

    conversation_id: str
    message: Message
    iterations: int = 1
    bounded: bool = False  # True when the tool loop hit its iteration bound


class ConversationCreate(BaseModel):
    """Body for creating an empty conversation."""

    title: str | None = None


class ProviderQuery(BaseModel):
    """Body for inspecting one tool provider."""

    server: str
    query: str = "list-tools"
