"""MCP client sessions backing the tool providers.

Each provider owns one background task that enters the transport and the
``ClientSession`` contexts and keeps them open until disconnect. Keeping
enter and exit in the same task is required by the anyio cancel scopes the
``mcp`` transports use.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Any

from mcp import ClientSession, StdioServerParameters
from mcp.client.sse import sse_client
from mcp.client.stdio import get_default_environment, stdio_client

from athas_assistant.exceptions import NotConnectedError
from athas_assistant.models.provider import ToolDescriptor, ToolProviderConfig, ToolResult

logger = logging.getLogger(__name__)


def _render_content(result: Any) -> str:
    """Flatten MCP result content into text for the model."""
    parts: list[str] = []
    for item in result.content or []:
        item_type = getattr(item, "type", None)
        if item_type == "text":
            parts.append(item.text)
        elif item_type == "image":
            parts.append(f"[image: {getattr(item, 'mimeType', 'unknown')}]")
        elif item_type == "resource":
            resource = item.resource
            text = getattr(resource, "text", None)
            parts.append(text if text is not None else f"[resource: {resource.uri}]")
        else:
            parts.append(str(item))
    return "\n".join(parts)


class SessionToolProvider(ABC):
    """Tool provider backed by an MCP ``ClientSession``.

    Subclasses only choose the transport. Calls to one provider are
    serialized: most MCP servers handle a single request at a time.
    """

    def __init__(self, config: ToolProviderConfig) -> None:
        self._config = config
        self._session: ClientSession | None = None
        self._runner: asyncio.Task | None = None
        self._closing: asyncio.Event | None = None
        self._lock = asyncio.Lock()
        self._last_error: str | None = None

    @property
    def config(self) -> ToolProviderConfig:
        return self._config

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def is_connected(self) -> bool:
        return self._session is not None

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @abstractmethod
    def _open_transport(self) -> AbstractAsyncContextManager[tuple[Any, ...]]:
        """Return the transport context yielding (read_stream, write_stream, ...)."""

    async def connect(self) -> None:
        """Start the session and wait for the MCP initialize handshake.

        The caller applies the connect timeout; on cancellation the
        half-open session is torn down.
        """
        if self._runner is not None:
            return

        ready: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._closing = asyncio.Event()
        self._last_error = None
        self._runner = asyncio.create_task(
            self._run(ready), name=f"mcp-session:{self.name}"
        )
        try:
            await ready
        except BaseException:
            # Handshake never completed
            await self._stop_runner(graceful=False)
            raise

    async def _run(self, ready: asyncio.Future[None]) -> None:
        try:
            async with self._open_transport() as streams:
                read_stream, write_stream = streams[0], streams[1]
                async with ClientSession(read_stream, write_stream) as session:
                    await session.initialize()
                    self._session = session
                    if not ready.done():
                        ready.set_result(None)
                    await self._closing.wait()
        except Exception as e:
            self._last_error = str(e) or type(e).__name__
            if not ready.done():
                ready.set_exception(e)
            else:
                logger.warning(f"Session for {self.name} ended: {self._last_error}")
        finally:
            self._session = None

    async def _stop_runner(self, graceful: bool = True) -> None:
        runner, self._runner = self._runner, None
        if runner is None:
            return
        if graceful and self._closing is not None:
            self._closing.set()
            try:
                await asyncio.wait_for(runner, timeout=5.0)
            except asyncio.TimeoutError:
                logger.warning(f"Session for {self.name} did not close in time; cancelled")
        if not runner.done():
            runner.cancel()
            try:
                await runner
            except asyncio.CancelledError:
                pass
        self._session = None

    def _require_session(self) -> ClientSession:
        if self._session is None:
            raise NotConnectedError(self.name)
        return self._session

    async def list_tools(self) -> list[ToolDescriptor]:
        async with self._lock:
            session = self._require_session()
            result = await session.list_tools()
        return [
            ToolDescriptor(
                name=tool.name,
                description=tool.description or "",
                input_schema=tool.inputSchema or {"type": "object", "properties": {}},
            )
            for tool in result.tools
        ]

    async def call_tool(self, tool_name: str, arguments: dict[str, Any]) -> ToolResult:
        async with self._lock:
            session = self._require_session()
            result = await session.call_tool(tool_name, arguments)
        return ToolResult(content=_render_content(result), is_error=bool(result.isError))

    async def disconnect(self) -> None:
        await self._stop_runner()
        logger.info(f"Closed connection to {self.name}")


class StdioToolProvider(SessionToolProvider):
    """Provider launched as a subprocess speaking MCP over stdio."""

    def _open_transport(self) -> AbstractAsyncContextManager[tuple[Any, ...]]:
        params = StdioServerParameters(
            command=self._config.command,
            args=list(self._config.args),
            env={**get_default_environment(), **self._config.env} if self._config.env else None,
        )
        return stdio_client(params)


class SseToolProvider(SessionToolProvider):
    """Provider reached over a remote MCP SSE session."""

    def _open_transport(self) -> AbstractAsyncContextManager[tuple[Any, ...]]:
        return sse_client(self._config.url)


_TRANSPORTS: dict[str, type[SessionToolProvider]] = {
    "stdio": StdioToolProvider,
    "sse": SseToolProvider,
}


def create_provider(config: ToolProviderConfig) -> SessionToolProvider:
    """Build the provider instance for a config's transport."""
    return _TRANSPORTS[config.transport](config)
