"""Fake providers and models shared by the tests."""

import asyncio
import copy
from collections.abc import Callable
from typing import Any

from athas_assistant.llm.base import ModelResponse, TextBlock, ToolUseBlock
from athas_assistant.models.provider import ToolDescriptor, ToolProviderConfig, ToolResult
from athas_assistant.providers.registry import ToolProviderRegistry


def text(value: str) -> TextBlock:
    return TextBlock(text=value)


def tool_use(block_id: str, name: str, **arguments: Any) -> ToolUseBlock:
    return ToolUseBlock(id=block_id, name=name, input=arguments)


def reply(*blocks: TextBlock | ToolUseBlock) -> ModelResponse:
    return ModelResponse(content=tuple(blocks))


def make_config(name: str) -> ToolProviderConfig:
    return ToolProviderConfig(name=name, command="fake-mcp-server")


class FakeProvider:
    """In-memory ToolProvider.

    ``tools`` maps tool name to a string result, a ToolResult, an exception
    to raise, or an async callable taking the arguments.
    """

    def __init__(
        self,
        name: str,
        tools: dict[str, Any] | None = None,
        *,
        connect_delay: float = 0.0,
        connect_error: Exception | None = None,
        list_error: Exception | None = None,
        disconnect_error: Exception | None = None,
    ) -> None:
        self._config = make_config(name)
        self.tools = tools or {}
        self.connect_delay = connect_delay
        self.connect_error = connect_error
        self.list_error = list_error
        self.disconnect_error = disconnect_error
        self.connected = False
        self.disconnect_calls = 0
        self.calls: list[tuple[str, dict[str, Any]]] = []

    @property
    def config(self) -> ToolProviderConfig:
        return self._config

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def is_connected(self) -> bool:
        return self.connected

    @property
    def last_error(self) -> str | None:
        return None

    async def connect(self) -> None:
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    async def list_tools(self) -> list[ToolDescriptor]:
        if self.list_error is not None:
            raise self.list_error
        return [
            ToolDescriptor(name=tool, description=f"{tool} on {self.name}")
            for tool in self.tools
        ]

    async def call_tool(self, tool_name: str, arguments: dict[str, Any]) -> ToolResult:
        self.calls.append((tool_name, arguments))
        if tool_name not in self.tools:
            return ToolResult(content=f"Unknown tool: {tool_name}", is_error=True)
        outcome = self.tools[tool_name]
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, ToolResult):
            return outcome
        if callable(outcome):
            return await outcome(arguments)
        return ToolResult(content=str(outcome))

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.connected = False
        if self.disconnect_error is not None:
            raise self.disconnect_error


def make_registry(*providers: FakeProvider, connect_timeout: float = 1.0) -> ToolProviderRegistry:
    by_name = {provider.name: provider for provider in providers}
    return ToolProviderRegistry(
        [provider.config for provider in providers],
        connect_timeout=connect_timeout,
        provider_factory=lambda config: by_name[config.name],
    )


async def connected_registry(*providers: FakeProvider) -> ToolProviderRegistry:
    registry = make_registry(*providers)
    await registry.connect_all()
    return registry


class ScriptedModel:
    """ModelClient returning queued responses, recording every request.

    A queued exception is raised instead of returned. ``repeat`` builds a
    response from the call number once the queue is empty.
    """

    def __init__(
        self,
        responses: list[ModelResponse | Exception] | None = None,
        repeat: Callable[[int], ModelResponse] | None = None,
    ) -> None:
        self.responses = list(responses or [])
        self.repeat = repeat
        self.calls: list[dict[str, Any]] = []

    async def create_message(
        self,
        *,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> ModelResponse:
        self.calls.append({
            "system": system,
            "messages": copy.deepcopy(messages),
            "tools": tools,
        })
        if self.responses:
            item = self.responses.pop(0)
        elif self.repeat is not None:
            item = self.repeat(len(self.calls))
        else:
            raise AssertionError("ScriptedModel ran out of responses")
        if isinstance(item, Exception):
            raise item
        return item
