"""HTTP API."""

from athas_assistant.api.routes import get_context, router

__all__ = ["get_context", "router"]
