"""Application context wiring the assistant's collaborators together.

Built once at startup and torn down at shutdown; routes receive it through
a FastAPI dependency instead of reaching for module globals.
"""

import logging
from dataclasses import dataclass

from athas_assistant.chat.engine import ConversationLoop
from athas_assistant.chat.prompts import DEFAULT_SYSTEM_PROMPT
from athas_assistant.chat.service import ChatService
from athas_assistant.config import Settings
from athas_assistant.llm.base import ModelClient
from athas_assistant.llm.claude import ClaudeClient
from athas_assistant.providers.config import load_provider_configs, startup_provider_names
from athas_assistant.providers.registry import ToolProviderRegistry
from athas_assistant.storage.memory import ConversationStore
from athas_assistant.uploads import UploadStore

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything a request handler needs."""

    settings: Settings
    registry: ToolProviderRegistry
    store: ConversationStore
    uploads: UploadStore
    model: ModelClient
    loop: ConversationLoop
    chat: ChatService

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        model: ModelClient | None = None,
        registry: ToolProviderRegistry | None = None,
    ) -> "AppContext":
        """Build the context; model and registry may be supplied for tests."""
        if registry is None:
            registry = ToolProviderRegistry(
                load_provider_configs(settings),
                connect_timeout=settings.provider_connect_timeout,
            )
        model = model if model is not None else ClaudeClient(settings)
        loop = ConversationLoop(
            model=model,
            registry=registry,
            system_prompt=settings.system_prompt or DEFAULT_SYSTEM_PROMPT,
            max_iterations=settings.max_tool_iterations,
            parallel_tool_calls=settings.parallel_tool_calls,
        )
        store = ConversationStore()
        return cls(
            settings=settings,
            registry=registry,
            store=store,
            uploads=UploadStore(settings.upload_dir, settings.max_upload_bytes),
            model=model,
            loop=loop,
            chat=ChatService(store, loop, settings.progress_buffer_size),
        )

    async def start(self) -> None:
        """Create upload dirs and connect the startup providers."""
        self.uploads.ensure_dirs()
        names = startup_provider_names(self.settings, self.registry.configs)
        logger.info(f"Configured servers: {[c.name for c in self.registry.configs]}")
        await self.registry.connect_all(names)
        connected = len(self.registry.connected_names())
        logger.info(f"MCP servers: {connected}/{len(self.registry)} connected")

    async def close(self) -> None:
        await self.chat.shutdown()
        await self.registry.disconnect_all()
