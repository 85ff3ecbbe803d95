"""FastAPI routes for chat, conversations, tool providers and uploads."""

import asyncio
import json
import logging
from datetime import UTC, datetime
from typing import Annotated, AsyncIterator

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile, status
from starlette.responses import Response, StreamingResponse

from athas_assistant import __version__
from athas_assistant.chat.catalog import build_catalog
from athas_assistant.context import AppContext
from athas_assistant.exceptions import (
    ModelRequestError,
    NotConnectedError,
    ProviderQueryError,
    UploadError,
)
from athas_assistant.models.chat import (
    ChatRequest,
    ChatResponse,
    ConversationCreate,
    ProviderQuery,
)
from athas_assistant.models.conversation import Conversation

logger = logging.getLogger(__name__)

router = APIRouter()


def get_context(request: Request) -> AppContext:
    """Dependency returning the context built at startup."""
    return request.app.state.context


Context = Annotated[AppContext, Depends(get_context)]


@router.get("/health")
async def health(context: Context) -> dict:
    """Health check with per-provider connection status."""
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": __version__,
        "mcp_servers": [s.model_dump(mode="json") for s in context.registry.status()],
    }


# -----------------------------------------------------------------------------
# Conversations
# -----------------------------------------------------------------------------


@router.get("/conversations", response_model=list[Conversation])
async def list_conversations(context: Context) -> list[Conversation]:
    return context.store.list_conversations()


@router.get("/conversations/{conversation_id}", response_model=Conversation)
async def get_conversation(conversation_id: str, context: Context) -> Conversation:
    conversation = context.store.get_conversation(conversation_id)
    if conversation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Conversation not found",
        )
    return conversation


@router.post(
    "/conversations",
    response_model=Conversation,
    status_code=status.HTTP_201_CREATED,
)
async def create_conversation(
    context: Context,
    payload: ConversationCreate | None = None,
) -> Conversation:
    return context.store.create_conversation(payload.title if payload else None)


@router.delete("/conversations/{conversation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_conversation(conversation_id: str, context: Context) -> Response:
    if not context.store.delete_conversation(conversation_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Conversation not found",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# -----------------------------------------------------------------------------
# Chat
# -----------------------------------------------------------------------------


@router.post("/chat", response_model=ChatResponse)
async def chat(payload: ChatRequest, context: Context) -> ChatResponse:
    """Answer a message, running tool calls until the model is done.

    Raises:
        HTTPException: 400 for an empty message, 502 if the model call
            fails, 500 for anything else
    """
    if not payload.message.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Message is required",
        )

    logger.info(f"Received chat message: {payload.message[:50]}...")
    try:
        return await context.chat.chat(payload)
    except ModelRequestError as e:
        logger.error(f"Chat error: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    except Exception:
        logger.exception("Chat error")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        )


@router.post("/chat/stream")
async def chat_stream(payload: ChatRequest, context: Context) -> StreamingResponse:
    """Answer a message via Server-Sent Events.

    Emits progress events while tools run, then one final or error event,
    after which the stream ends. A client that disconnects early does not
    stop the request; its result is still committed.
    """
    if not payload.message.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Message is required",
        )

    logger.info(f"Received streamed chat message: {payload.message[:50]}...")
    channel = context.chat.start_stream(payload)
    keepalive = context.settings.stream_keepalive_seconds

    async def event_generator() -> AsyncIterator[str]:
        while True:
            try:
                event = await asyncio.wait_for(channel.get(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            yield f"data: {json.dumps(event.to_dict())}\n\n"
            if event.is_terminal:
                break

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


# -----------------------------------------------------------------------------
# Tool providers
# -----------------------------------------------------------------------------


@router.get("/tools")
async def list_tools(context: Context) -> list[dict]:
    """The namespaced tool catalog as the model would see it now."""
    catalog = await build_catalog(context.registry)
    return [
        {
            "name": entry.qualified_name,
            "provider": entry.provider,
            "tool": entry.tool,
            "description": entry.description,
        }
        for entry in catalog
    ]


@router.post("/mcp/query")
async def query_provider(payload: ProviderQuery, context: Context) -> dict:
    """List one provider's current tools."""
    if payload.server not in context.registry:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Server {payload.server} not configured",
        )

    try:
        tools = await context.registry.list_tools(payload.server)
    except NotConnectedError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except ProviderQueryError as e:
        return {
            "server": payload.server,
            "query": payload.query,
            "error": e.reason,
            "status": "error",
        }

    return {
        "server": payload.server,
        "query": payload.query,
        "available_tools": [tool.model_dump() for tool in tools],
        "status": "connected",
    }


# -----------------------------------------------------------------------------
# Uploads
# -----------------------------------------------------------------------------


@router.post("/upload")
async def upload_file(context: Context, file: UploadFile = File(...)) -> dict:
    """Store an uploaded file and extract its text where possible."""
    data = await file.read()
    try:
        attachment = await asyncio.to_thread(
            context.uploads.save,
            file.filename or "upload",
            file.content_type or "application/octet-stream",
            data,
        )
    except UploadError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    return {
        "success": True,
        "file": attachment.model_dump(mode="json"),
        "message": (
            "File uploaded and processed successfully"
            if attachment.processed
            else "File uploaded successfully"
        ),
    }


@router.get("/files")
async def list_files(context: Context) -> dict:
    files = context.uploads.list_files()
    for entry in files:
        entry["modified"] = entry["modified"].isoformat()
    return {"files": files}


@router.delete("/files/{filename}")
async def delete_file(filename: str, context: Context) -> dict:
    try:
        deleted = context.uploads.delete(filename)
    except UploadError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return {"success": True, "message": "File deleted successfully"}
