"""Configuration and environment loading for Athas Assistant."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Anthropic
    anthropic_api_key: str

    # Claude model config
    claude_model: str = "claude-sonnet-4-5-20250929"
    claude_max_tokens: int = 8096
    claude_max_retries: int = 3
    claude_retry_base_delay: float = 1.0

    # Conversation loop
    max_tool_iterations: int = 10
    parallel_tool_calls: bool = False
    system_prompt: str | None = None  # None = built-in campaign persona

    # Tool providers (MCP servers)
    provider_connect_timeout: float = 10.0
    run_local_mcp: bool = False
    foundry_mcp_path: str = "foundry-vtt-mcp/packages/mcp-server/dist/index.js"
    obsidian_vault_path: str = "vault"
    dark_sun_materials_path: str = "materials"
    notion_api_key: str | None = None
    notion_profile: str | None = None
    mcp_config_path: str | None = None

    # Progress streaming
    progress_buffer_size: int = 32
    stream_keepalive_seconds: float = 15.0

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = False
    log_level: str = "INFO"
    public_dir: str = "public"
    upload_dir: str = "uploads"
    max_upload_bytes: int = 50 * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
