"""Athas Assistant - campaign chat assistant with MCP tool routing."""

__version__ = "0.1.0"

from athas_assistant.exceptions import (
    AssistantError,
    ModelRequestError,
    ToolProviderError,
)

__all__ = ["__version__", "AssistantError", "ModelRequestError", "ToolProviderError"]
