"""Tool provider configuration loading."""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from athas_assistant.config import Settings
from athas_assistant.models.provider import ToolProviderConfig

logger = logging.getLogger(__name__)

# Always connected at startup; the others require RUN_LOCAL_MCP
FOUNDRY_PROVIDER = "foundry-vtt"


def _filesystem_provider(name: str, root: str) -> ToolProviderConfig:
    return ToolProviderConfig(
        name=name,
        command="npx",
        args=("-y", "@modelcontextprotocol/server-filesystem", root),
    )


def load_file_configs(path: str | Path) -> list[ToolProviderConfig]:
    """Load extra provider configs from a JSON file.

    The file holds an object of ``name -> {command, args, env, transport, url}``.
    Invalid entries are logged and skipped.
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to load MCP config from {path}: {e}")
        return []

    if not isinstance(raw, dict):
        logger.error(f"MCP config {path} must be a JSON object of server entries")
        return []

    configs: list[ToolProviderConfig] = []
    for name, entry in raw.items():
        try:
            configs.append(ToolProviderConfig(name=name, **entry))
        except (TypeError, ValidationError) as e:
            logger.error(f"Skipping invalid MCP server '{name}' in {path}: {e}")
    return configs


def load_provider_configs(settings: Settings) -> list[ToolProviderConfig]:
    """Build the provider set for this process from settings."""
    configs = [
        _filesystem_provider("obsidian-vault", settings.obsidian_vault_path),
        _filesystem_provider("dark-sun-materials", settings.dark_sun_materials_path),
        ToolProviderConfig(
            name=FOUNDRY_PROVIDER,
            command="node",
            args=(settings.foundry_mcp_path,),
            env={
                "FOUNDRY_HOST": "localhost",
                "FOUNDRY_PORT": "31415",
                "FOUNDRY_NAMESPACE": "/foundry-mcp",
                "FOUNDRY_CONNECTION_TIMEOUT": "10000",
                "LOG_LEVEL": "info",
            },
        ),
    ]

    if settings.notion_api_key and settings.notion_profile:
        configs.append(ToolProviderConfig(
            name="notion",
            command="npx",
            args=(
                "-y",
                "@smithery/cli@latest",
                "run",
                "@smithery/notion",
                "--key",
                settings.notion_api_key,
                "--profile",
                settings.notion_profile,
            ),
        ))
    else:
        logger.info("Notion MCP server not configured (NOTION_API_KEY or NOTION_PROFILE missing)")

    if settings.mcp_config_path:
        known = {c.name for c in configs}
        for config in load_file_configs(settings.mcp_config_path):
            if config.name in known:
                logger.warning(f"Ignoring duplicate MCP server '{config.name}' from config file")
                continue
            known.add(config.name)
            configs.append(config)

    return configs


def startup_provider_names(settings: Settings, configs: list[ToolProviderConfig]) -> list[str]:
    """Names of the providers to connect at startup."""
    if settings.run_local_mcp:
        return [c.name for c in configs]
    return [c.name for c in configs if c.name == FOUNDRY_PROVIDER]
