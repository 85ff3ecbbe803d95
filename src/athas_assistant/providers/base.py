"""Tool provider protocol for the provider registry."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from athas_assistant.models.provider import ToolDescriptor, ToolProviderConfig, ToolResult


@runtime_checkable
class ToolProvider(Protocol):
    """Capability every tool provider must satisfy, whatever its transport.

    The registry only ever talks to providers through this interface.
    """

    @property
    def config(self) -> ToolProviderConfig: ...

    @property
    def name(self) -> str: ...

    @property
    def is_connected(self) -> bool: ...

    @property
    def last_error(self) -> str | None: ...

    async def connect(self) -> None: ...

    async def list_tools(self) -> list[ToolDescriptor]: ...

    async def call_tool(self, tool_name: str, arguments: dict[str, Any]) -> ToolResult: ...

    async def disconnect(self) -> None: ...
