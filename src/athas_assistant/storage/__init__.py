"""Conversation persistence."""

from athas_assistant.storage.memory import ConversationStore

__all__ = ["ConversationStore"]
