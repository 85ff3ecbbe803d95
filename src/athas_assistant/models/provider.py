"""Tool provider configuration and runtime models."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Joins provider and tool names into a qualified tool name
NAME_SEPARATOR = "__"


class ProviderState(str, Enum):
    """Connection state of a tool provider."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    ERROR = "error"


class ToolProviderConfig(BaseModel):
    """Immutable launch descriptor for one tool provider.

    Attributes:
        name: Unique provider name, also the tool namespace.
        transport: "stdio" launches a subprocess, "sse" attaches to a remote session.
        command: Executable for stdio providers.
        args: Command-line arguments for stdio providers.
        env: Environment overrides applied on top of the default environment.
        url: Endpoint for sse providers.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    transport: Literal["stdio", "sse"] = "stdio"
    command: str | None = None
    args: tuple[str, ...] = ()
    env: dict[str, str] | None = None
    url: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        if not value:
            raise ValueError("Provider name must not be empty")
        if NAME_SEPARATOR in value:
            raise ValueError(
                f"Provider name '{value}' must not contain '{NAME_SEPARATOR}'"
            )
        return value

    @model_validator(mode="after")
    def validate_transport(self) -> "ToolProviderConfig":
        if self.transport == "stdio" and not self.command:
            raise ValueError(f"stdio provider '{self.name}' requires a command")
        if self.transport == "sse" and not self.url:
            raise ValueError(f"sse provider '{self.name}' requires a url")
        return self


class ProviderStatus(BaseModel):
    """Point-in-time status of a configured provider."""

    name: str
    state: ProviderState
    error: str | None = None


class ToolDescriptor(BaseModel):
    """A tool as advertised by its provider."""

    name: str
    description: str = ""
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )


class ToolResult(BaseModel):
    """Outcome of one tool call, error-tagged when the provider reported failure."""

    content: str
    is_error: bool = False
