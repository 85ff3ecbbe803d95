"""Tool providers: MCP sessions and the registry that owns them."""

from athas_assistant.providers.base import ToolProvider
from athas_assistant.providers.registry import ToolProviderRegistry
from athas_assistant.providers.session import (
    SessionToolProvider,
    SseToolProvider,
    StdioToolProvider,
    create_provider,
)

__all__ = [
    "SessionToolProvider",
    "SseToolProvider",
    "StdioToolProvider",
    "ToolProvider",
    "ToolProviderRegistry",
    "create_provider",
]
