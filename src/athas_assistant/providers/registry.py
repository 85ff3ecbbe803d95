"""Registry of named tool providers.

Tracks a fixed set of configured providers, each independently connectable.
One provider failing never affects the others: connect failures are
recorded and reported, tool failures are returned to the caller.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Any

from athas_assistant.exceptions import (
    NotConnectedError,
    ProviderConnectError,
    ProviderQueryError,
    ToolExecutionError,
    ToolProviderError,
)
from athas_assistant.models.provider import (
    ProviderState,
    ProviderStatus,
    ToolDescriptor,
    ToolProviderConfig,
    ToolResult,
)
from athas_assistant.providers.base import ToolProvider
from athas_assistant.providers.session import create_provider

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[ToolProviderConfig], ToolProvider]


class ToolProviderRegistry:
    """Owns provider connections, keyed by provider name."""

    def __init__(
        self,
        configs: Iterable[ToolProviderConfig] = (),
        connect_timeout: float = 10.0,
        provider_factory: ProviderFactory = create_provider,
    ) -> None:
        """Initialize the registry.

        Args:
            configs: Provider descriptors, in display order
            connect_timeout: Seconds to wait for a provider handshake
            provider_factory: Builds a provider instance from its config
        """
        self._configs: dict[str, ToolProviderConfig] = {}
        for config in configs:
            if config.name in self._configs:
                raise ValueError(f"Provider '{config.name}' already configured")
            self._configs[config.name] = config
        self._connect_timeout = connect_timeout
        self._factory = provider_factory
        self._providers: dict[str, ToolProvider] = {}
        self._errors: dict[str, str] = {}

    @property
    def configs(self) -> list[ToolProviderConfig]:
        return list(self._configs.values())

    async def connect(self, config: ToolProviderConfig | str) -> None:
        """Connect one provider.

        Args:
            config: The provider config, or the name of a configured provider

        Raises:
            ProviderConnectError: On timeout or transport failure
        """
        if isinstance(config, str):
            if config not in self._configs:
                raise ProviderConnectError(config, "provider is not configured")
            config = self._configs[config]
        else:
            self._configs.setdefault(config.name, config)

        name = config.name
        if name in self._providers:
            await self.disconnect(name)

        provider = self._factory(config)
        try:
            await asyncio.wait_for(provider.connect(), timeout=self._connect_timeout)
        except asyncio.TimeoutError:
            reason = f"Connection timeout after {self._connect_timeout}s"
            self._errors[name] = reason
            logger.error(f"Failed to connect to {name}: {reason}")
            await self._safe_disconnect(provider)
            raise ProviderConnectError(name, reason) from None
        except Exception as e:
            reason = str(e) or type(e).__name__
            self._errors[name] = reason
            logger.error(f"Failed to connect to {name}: {reason}")
            await self._safe_disconnect(provider)
            raise ProviderConnectError(name, reason) from e

        self._providers[name] = provider
        self._errors.pop(name, None)
        logger.info(f"Connected to {name}")

    async def connect_all(self, names: Iterable[str] | None = None) -> dict[str, str | None]:
        """Connect providers concurrently; never raises.

        Args:
            names: Subset of configured providers to connect (default: all)

        Returns:
            Mapping of provider name to error message, or None on success
        """
        targets = list(names) if names is not None else list(self._configs)
        results = await asyncio.gather(
            *(self.connect(name) for name in targets),
            return_exceptions=True,
        )
        outcome: dict[str, str | None] = {}
        for name, result in zip(targets, results):
            outcome[name] = str(result) if isinstance(result, BaseException) else None
        return outcome

    def _live(self, name: str) -> ToolProvider:
        provider = self._providers.get(name)
        if provider is None or not provider.is_connected:
            raise NotConnectedError(name)
        return provider

    async def list_tools(self, name: str) -> list[ToolDescriptor]:
        """Query a provider for the tools it currently advertises.

        Raises:
            NotConnectedError: If the provider has no live session
            ProviderQueryError: If the provider fails to answer
        """
        provider = self._live(name)
        try:
            return await provider.list_tools()
        except ToolProviderError:
            raise
        except Exception as e:
            raise ProviderQueryError(name, str(e) or type(e).__name__) from e

    async def call_tool(
        self,
        name: str,
        tool_name: str,
        arguments: dict[str, Any] | None = None,
    ) -> ToolResult:
        """Invoke one tool on one provider.

        A failure reported by the provider itself comes back as an
        error-tagged ToolResult, not an exception.

        Raises:
            NotConnectedError: If the provider has no live session
            ToolExecutionError: If the transport fails during the call
        """
        provider = self._live(name)
        try:
            return await provider.call_tool(tool_name, arguments or {})
        except ToolProviderError:
            raise
        except Exception as e:
            logger.error(f"Tool call failed for {name}/{tool_name}: {e}")
            raise ToolExecutionError(name, tool_name, str(e) or type(e).__name__) from e

    def status(self) -> list[ProviderStatus]:
        """Snapshot the state of every configured provider."""
        statuses: list[ProviderStatus] = []
        for name in self._configs:
            provider = self._providers.get(name)
            if provider is not None and provider.is_connected:
                statuses.append(ProviderStatus(name=name, state=ProviderState.CONNECTED))
            elif provider is not None:
                # Session ended after a successful connect
                statuses.append(ProviderStatus(
                    name=name,
                    state=ProviderState.ERROR,
                    error=provider.last_error or "session closed",
                ))
            elif name in self._errors:
                statuses.append(ProviderStatus(
                    name=name,
                    state=ProviderState.ERROR,
                    error=self._errors[name],
                ))
            else:
                statuses.append(ProviderStatus(name=name, state=ProviderState.DISCONNECTED))
        return statuses

    def connected_names(self) -> list[str]:
        return [s.name for s in self.status() if s.state == ProviderState.CONNECTED]

    async def disconnect(self, name: str) -> None:
        """Disconnect one provider. Idempotent."""
        provider = self._providers.pop(name, None)
        if provider is not None:
            await provider.disconnect()

    async def disconnect_all(self) -> None:
        """Best-effort shutdown of every live session."""
        providers, self._providers = self._providers, {}
        for name, provider in providers.items():
            try:
                await provider.disconnect()
            except Exception as e:
                logger.error(f"Error closing {name}: {e}")

    async def _safe_disconnect(self, provider: ToolProvider) -> None:
        try:
            await provider.disconnect()
        except Exception as e:
            logger.debug(f"Cleanup after failed connect to {provider.name}: {e}")

    def __len__(self) -> int:
        return len(self._configs)

    def __contains__(self, name: str) -> bool:
        return name in self._configs
