"""Chat request handling on top of the conversation loop.

Both exposure modes run the same path: ``chat()`` returns the completed
reply, ``start_stream()`` reports through a ProgressChannel. The user
message and the final assistant message are committed together, and only
after the loop succeeds.
"""

import asyncio
import base64
import logging
from pathlib import Path
from typing import Any

from athas_assistant.chat.engine import ConversationLoop, ConversationTurn
from athas_assistant.chat.progress import ProgressChannel
from athas_assistant.exceptions import ModelRequestError
from athas_assistant.models.chat import ChatRequest, ChatResponse
from athas_assistant.models.conversation import Conversation, FileAttachment, MessageRole
from athas_assistant.storage.memory import ConversationStore

logger = logging.getLogger(__name__)

_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})


def _attachment_block(attachment: FileAttachment) -> dict[str, Any] | None:
    """Content block for one attachment, or None if nothing usable."""
    if attachment.mimetype in _IMAGE_TYPES:
        path = Path(attachment.path)
        if not path.is_file():
            logger.warning(f"Attachment {attachment.original_name} missing on disk")
            return None
        return {
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": attachment.mimetype,
                "data": base64.b64encode(path.read_bytes()).decode("ascii"),
            },
        }
    if attachment.content:
        return {
            "type": "text",
            "text": f"[Attachment: {attachment.original_name}]\n{attachment.content}",
        }
    return None


def build_user_turn(message: str, attachments: list[FileAttachment]) -> ConversationTurn:
    """Build the new user turn, folding in attachment content."""
    blocks = [b for b in (_attachment_block(a) for a in attachments) if b is not None]
    if not blocks:
        return ConversationTurn.user(message)
    return ConversationTurn.user([*blocks, {"type": "text", "text": message}])


class ChatService:
    """Runs chat requests against the loop and commits the results."""

    def __init__(
        self,
        store: ConversationStore,
        loop: ConversationLoop,
        progress_buffer_size: int = 32,
    ) -> None:
        self.store = store
        self.loop = loop
        self.progress_buffer_size = progress_buffer_size
        self._streams: set[asyncio.Task] = set()

    def resolve_conversation(self, conversation_id: str | None) -> Conversation:
        """Fetch the conversation, or start a new one if unknown."""
        conversation = self.store.get_conversation(conversation_id) if conversation_id else None
        if conversation is None:
            conversation = self.store.create_conversation()
        return conversation

    async def chat(
        self,
        request: ChatRequest,
        reporter: ProgressChannel | None = None,
    ) -> ChatResponse:
        """Answer one chat request.

        Raises:
            ValueError: If the message is empty
            ModelRequestError: If the model call fails
        """
        if not request.message.strip():
            raise ValueError("Message is required")
        conversation = self.resolve_conversation(request.conversation_id)
        return await self._complete(conversation, request, reporter)

    async def _complete(
        self,
        conversation: Conversation,
        request: ChatRequest,
        reporter: ProgressChannel | None,
    ) -> ChatResponse:
        history = [
            ConversationTurn(message.role.value, message.content)
            for message in conversation.messages
        ]
        # Image attachments are read from disk
        user_turn = await asyncio.to_thread(
            build_user_turn, request.message, request.attachments
        )

        result = await self.loop.run(history, user_turn, reporter)

        self.store.add_message(
            conversation.id, MessageRole.USER, request.message, request.attachments
        )
        assistant_message = self.store.add_message(
            conversation.id, MessageRole.ASSISTANT, result.text
        )
        logger.info(
            f"Conversation {conversation.id}: answered in {result.iterations} "
            f"iteration(s), {result.tool_calls} tool call(s), phase={result.phase.value}"
        )
        return ChatResponse(
            conversation_id=conversation.id,
            message=assistant_message,
            iterations=result.iterations,
            bounded=result.bounded,
        )

    async def stream(self, request: ChatRequest, channel: ProgressChannel) -> None:
        """Run a chat request, ending the channel with final or error."""
        if not request.message.strip():
            channel.error("Message is required")
            return

        conversation = self.resolve_conversation(request.conversation_id)
        try:
            response = await self._complete(conversation, request, channel)
        except ModelRequestError as e:
            logger.error(f"Chat error in {conversation.id}: {e}")
            channel.error(str(e), conversation_id=conversation.id)
        except Exception:
            logger.exception(f"Chat error in {conversation.id}")
            channel.error("Internal server error", conversation_id=conversation.id)
        else:
            channel.final(**response.model_dump(mode="json"))

    def start_stream(self, request: ChatRequest) -> ProgressChannel:
        """Start a streamed chat request in the background.

        The request runs to completion even if nobody reads the channel.
        """
        channel = ProgressChannel(max_progress=self.progress_buffer_size)
        task = asyncio.create_task(self.stream(request, channel))
        self._streams.add(task)
        task.add_done_callback(self._streams.discard)
        return channel

    async def shutdown(self) -> None:
        """Cancel streamed requests that are still running."""
        tasks = list(self._streams)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
