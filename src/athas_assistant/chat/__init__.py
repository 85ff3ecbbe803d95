"""Chat orchestration: catalog, loop engine, progress reporting."""

from athas_assistant.chat.catalog import (
    NamespacedToolDescriptor,
    build_catalog,
    qualify_name,
    split_qualified_name,
)
from athas_assistant.chat.engine import (
    FALLBACK_RESPONSE,
    ConversationLoop,
    ConversationTurn,
    LoopPhase,
    LoopResult,
    LoopState,
)
from athas_assistant.chat.progress import (
    EVENT_ERROR,
    EVENT_FINAL,
    EVENT_PROGRESS,
    ProgressChannel,
    ProgressEvent,
)
from athas_assistant.chat.service import ChatService

__all__ = [
    "EVENT_ERROR",
    "EVENT_FINAL",
    "EVENT_PROGRESS",
    "FALLBACK_RESPONSE",
    "ChatService",
    "ConversationLoop",
    "ConversationTurn",
    "LoopPhase",
    "LoopResult",
    "LoopState",
    "NamespacedToolDescriptor",
    "ProgressChannel",
    "ProgressEvent",
    "build_catalog",
    "qualify_name",
    "split_qualified_name",
]
