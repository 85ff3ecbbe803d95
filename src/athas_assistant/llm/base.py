"""Model API boundary: response blocks and the client protocol."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class TextBlock:
    """Plain text emitted by the model."""

    text: str
    type: str = field(default="text", init=False)

    def to_api(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ToolUseBlock:
    """A request from the model to invoke a tool."""

    id: str
    name: str
    input: dict[str, Any]
    type: str = field(default="tool_use", init=False)

    def to_api(self) -> dict[str, Any]:
        return {"type": "tool_use", "id": self.id, "name": self.name, "input": self.input}


ContentBlock = TextBlock | ToolUseBlock


@dataclass(frozen=True)
class ModelResponse:
    """Ordered content blocks of one model reply."""

    content: tuple[ContentBlock, ...]
    stop_reason: str | None = None

    @property
    def tool_uses(self) -> list[ToolUseBlock]:
        return [b for b in self.content if isinstance(b, ToolUseBlock)]

    @property
    def has_tool_use(self) -> bool:
        return any(isinstance(b, ToolUseBlock) for b in self.content)

    @property
    def text(self) -> str:
        """Text blocks joined in order."""
        return "\n".join(b.text for b in self.content if isinstance(b, TextBlock))

    @property
    def has_text(self) -> bool:
        return any(isinstance(b, TextBlock) for b in self.content)


@runtime_checkable
class ModelClient(Protocol):
    """Anything that can answer a conversation with content blocks."""

    async def create_message(
        self,
        *,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> ModelResponse: ...
