"""Volatile in-memory conversation store.

Conversations live only as long as the process. This is a placeholder for
a real database; nothing here is durable.
"""

import logging
from datetime import UTC, datetime

from athas_assistant.exceptions import ConversationNotFoundError
from athas_assistant.models.conversation import (
    Conversation,
    FileAttachment,
    Message,
    MessageRole,
)

logger = logging.getLogger(__name__)


class ConversationStore:
    """In-memory map of conversation id to conversation."""

    def __init__(self) -> None:
        self._conversations: dict[str, Conversation] = {}

    def create_conversation(self, title: str | None = None) -> Conversation:
        conversation = Conversation(title=title or "New Conversation")
        self._conversations[conversation.id] = conversation
        logger.debug(f"Created conversation {conversation.id}")
        return conversation

    def get_conversation(self, conversation_id: str) -> Conversation | None:
        return self._conversations.get(conversation_id)

    def list_conversations(self) -> list[Conversation]:
        """Return all conversations, most recently updated first."""
        return sorted(
            self._conversations.values(),
            key=lambda c: c.updated,
            reverse=True,
        )

    def add_message(
        self,
        conversation_id: str,
        role: MessageRole | str,
        content: str,
        attachments: list[FileAttachment] | None = None,
    ) -> Message:
        """Append a message to a conversation.

        Raises:
            ConversationNotFoundError: If the conversation does not exist
        """
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)

        message = Message(
            conversation_id=conversation_id,
            role=MessageRole(role),
            content=content,
            attachments=attachments or [],
        )
        conversation.messages.append(message)
        conversation.updated = datetime.now(UTC)
        return message

    def delete_conversation(self, conversation_id: str) -> bool:
        return self._conversations.pop(conversation_id, None) is not None

    def clear(self) -> None:
        self._conversations.clear()

    def __len__(self) -> int:
        return len(self._conversations)
