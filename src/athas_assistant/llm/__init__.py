"""Language model clients."""

from athas_assistant.llm.base import (
    ContentBlock,
    ModelClient,
    ModelResponse,
    TextBlock,
    ToolUseBlock,
)
from athas_assistant.llm.claude import ClaudeClient

__all__ = [
    "ClaudeClient",
    "ContentBlock",
    "ModelClient",
    "ModelResponse",
    "TextBlock",
    "ToolUseBlock",
]
