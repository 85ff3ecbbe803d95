"""Anthropic Claude API wrapper with retry logic."""

import asyncio
import logging
from typing import Any

from anthropic import APIConnectionError, APIError, AsyncAnthropic, RateLimitError

from athas_assistant.config import Settings, get_settings
from athas_assistant.exceptions import ModelRequestError
from athas_assistant.llm.base import ContentBlock, ModelResponse, TextBlock, ToolUseBlock

logger = logging.getLogger(__name__)


class ClaudeClient:
    """Wrapper for the Anthropic Messages API with retry logic."""

    name: str = "claude"

    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self.client = AsyncAnthropic(api_key=settings.anthropic_api_key)
        self.model = settings.claude_model
        self.max_tokens = settings.claude_max_tokens
        self.max_retries = settings.claude_max_retries
        self.base_delay = settings.claude_retry_base_delay

    async def create_message(
        self,
        *,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> ModelResponse:
        """Send one conversation to Claude.

        Args:
            system: System prompt
            messages: Ordered conversation turns in API format
            tools: Tool catalog; omitted from the request when empty

        Returns:
            The reply as ordered content blocks

        Raises:
            ModelRequestError: If the request fails after retries
        """
        request: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "system": system,
            "messages": messages,
        }
        if tools:
            request["tools"] = tools

        for attempt in range(self.max_retries):
            try:
                response = await self.client.messages.create(**request)
                return self._convert_response(response)

            except RateLimitError as e:
                if attempt == self.max_retries - 1:
                    raise ModelRequestError(f"Rate limited: {e}") from e
                delay = self.base_delay * (2**attempt)
                logger.warning(f"Rate limited, retrying in {delay}s: {e}")
                await asyncio.sleep(delay)

            except APIConnectionError as e:
                if attempt == self.max_retries - 1:
                    raise ModelRequestError(f"Connection error: {e}") from e
                delay = self.base_delay * (2**attempt)
                logger.warning(f"Connection error, retrying in {delay}s: {e}")
                await asyncio.sleep(delay)

            except APIError as e:
                status_code = getattr(e, "status_code", None)
                if attempt == self.max_retries - 1 or not status_code or status_code < 500:
                    raise ModelRequestError(f"Claude API error: {e}") from e
                delay = self.base_delay * (2**attempt)
                logger.warning(f"Server error, retrying in {delay}s: {e}")
                await asyncio.sleep(delay)

        raise ModelRequestError("Max retries exceeded")

    @staticmethod
    def _convert_response(response: Any) -> ModelResponse:
        """Keep text and tool_use blocks; other block kinds are ignored."""
        blocks: list[ContentBlock] = []
        for block in response.content:
            if block.type == "text":
                blocks.append(TextBlock(text=block.text))
            elif block.type == "tool_use":
                blocks.append(ToolUseBlock(
                    id=block.id,
                    name=block.name,
                    input=dict(block.input or {}),
                ))
        return ModelResponse(
            content=tuple(blocks),
            stop_reason=getattr(response, "stop_reason", None),
        )
