"""Pydantic models shared across the assistant."""

from athas_assistant.models.chat import (
    ChatRequest,
    ChatResponse,
    ConversationCreate,
    ProviderQuery,
)
from athas_assistant.models.conversation import (
    Conversation,
    FileAttachment,
    Message,
    MessageRole,
)
from athas_assistant.models.provider import (
    NAME_SEPARATOR,
    ProviderState,
    ProviderStatus,
    ToolDescriptor,
    ToolProviderConfig,
    ToolResult,
)

__all__ = [
    "ChatRequest",
    "ChatResponse",
    "ConversationCreate",
    "Conversation",
    "FileAttachment",
    "Message",
    "MessageRole",
    "NAME_SEPARATOR",
    "ProviderQuery",
    "ProviderState",
    "ProviderStatus",
    "ToolDescriptor",
    "ToolProviderConfig",
    "ToolResult",
]
