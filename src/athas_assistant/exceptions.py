"""Custom exceptions for Athas Assistant."""


class AssistantError(Exception):
    """Base class for all assistant errors."""


class ToolProviderError(AssistantError):
    """Base class for failures contained to a single tool provider."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(message)


class ProviderConnectError(ToolProviderError):
    """Raised when a provider session cannot be established."""

    def __init__(self, provider: str, reason: str) -> None:
        self.reason = reason
        super().__init__(provider, f"Failed to connect to {provider}: {reason}")


class ProviderQueryError(ToolProviderError):
    """Raised when listing a provider's tools fails."""

    def __init__(self, provider: str, reason: str) -> None:
        self.reason = reason
        super().__init__(provider, f"Failed to list tools for {provider}: {reason}")


class NotConnectedError(ToolProviderError):
    """Raised when a provider has no live session."""

    def __init__(self, provider: str) -> None:
        super().__init__(provider, f"Server {provider} not connected")


class ToolExecutionError(ToolProviderError):
    """Raised when a tool call fails at the transport level."""

    def __init__(self, provider: str, tool: str, reason: str) -> None:
        self.tool = tool
        self.reason = reason
        super().__init__(provider, f"Tool {provider}/{tool} failed: {reason}")


class ModelRequestError(AssistantError):
    """Raised when the language model API request fails after retries."""


class ConversationNotFoundError(AssistantError):
    """Raised when a conversation id is unknown."""

    def __init__(self, conversation_id: str) -> None:
        self.conversation_id = conversation_id
        super().__init__(f"Conversation {conversation_id} not found")


class UploadError(AssistantError):
    """Raised when an uploaded file is rejected."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        self.status_code = status_code
        super().__init__(message)
