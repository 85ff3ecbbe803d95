"""Aggregated, namespaced tool catalog offered to the model."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from athas_assistant.models.provider import NAME_SEPARATOR, ProviderState
from athas_assistant.providers.registry import ToolProviderRegistry

logger = logging.getLogger(__name__)


def qualify_name(provider: str, tool: str) -> str:
    """Join provider and tool into the name the model sees."""
    return f"{provider}{NAME_SEPARATOR}{tool}"


def split_qualified_name(qualified_name: str) -> tuple[str, str]:
    """Split on the first separator back into (provider, tool).

    Raises:
        ValueError: If the name carries no provider namespace
    """
    provider, sep, tool = qualified_name.partition(NAME_SEPARATOR)
    if not sep or not provider or not tool:
        raise ValueError(f"Tool name '{qualified_name}' is not namespaced")
    return provider, tool


@dataclass(frozen=True)
class NamespacedToolDescriptor:
    """One catalog entry, routed back to its provider by qualified name."""

    provider: str
    tool: str
    description: str
    input_schema: dict[str, Any]

    @property
    def qualified_name(self) -> str:
        return qualify_name(self.provider, self.tool)

    def to_api(self) -> dict[str, Any]:
        """Anthropic tool definition."""
        return {
            "name": self.qualified_name,
            "description": self.description,
            "input_schema": self.input_schema,
        }


async def build_catalog(registry: ToolProviderRegistry) -> list[NamespacedToolDescriptor]:
    """Collect the current tools of every connected provider.

    Providers that are not connected, or whose tool listing fails, are
    left out of this build. The result may be empty.
    """
    names = [s.name for s in registry.status() if s.state == ProviderState.CONNECTED]
    listings = await asyncio.gather(
        *(registry.list_tools(name) for name in names),
        return_exceptions=True,
    )

    catalog: list[NamespacedToolDescriptor] = []
    for name, listing in zip(names, listings):
        if isinstance(listing, BaseException):
            logger.error(f"Failed to get tools from {name}: {listing}")
            continue
        for tool in listing:
            catalog.append(NamespacedToolDescriptor(
                provider=name,
                tool=tool.name,
                description=tool.description,
                input_schema=tool.input_schema,
            ))

    logger.info(f"Loaded {len(catalog)} tools from {len(names)} connected servers")
    return catalog
