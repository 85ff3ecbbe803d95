"""Tests for the HTTP API."""

import json

import pytest
from httpx import ASGITransport, AsyncClient

from athas_assistant.config import Settings
from athas_assistant.context import AppContext
from athas_assistant.exceptions import ModelRequestError
from athas_assistant.main import create_app

from helpers import FakeProvider, ScriptedModel, make_registry, reply, text, tool_use


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        anthropic_api_key="test-key",
        upload_dir=str(tmp_path / "uploads"),
        public_dir=str(tmp_path / "public"),
        stream_keepalive_seconds=5.0,
    )


def _client(settings, model=None, *providers) -> tuple[AppContext, AsyncClient]:
    context = AppContext.from_settings(
        settings,
        model=model or ScriptedModel(),
        registry=make_registry(*providers),
    )
    app = create_app(context)
    transport = ASGITransport(app=app)
    return context, AsyncClient(transport=transport, base_url="http://test")


def _sse_events(body: str) -> list[dict]:
    return [
        json.loads(line[len("data: "):])
        for line in body.splitlines()
        if line.startswith("data: ")
    ]


# ---------------------------------------------------------------------------
# TestHealth
# ---------------------------------------------------------------------------

class TestHealth:
    """GET /api/health."""

    @pytest.mark.asyncio
    async def test_reports_provider_status(self, settings):
        """Every configured provider is listed with its state."""
        lore = FakeProvider("lore")
        broken = FakeProvider("broken", connect_error=OSError("spawn failed"))
        context, client = _client(settings, None, lore, broken)
        await context.registry.connect_all()

        async with client:
            response = await client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["mcp_servers"] == [
            {"name": "lore", "state": "connected", "error": None},
            {"name": "broken", "state": "error", "error": "spawn failed"},
        ]


# ---------------------------------------------------------------------------
# TestConversations
# ---------------------------------------------------------------------------

class TestConversations:
    """Conversation CRUD endpoints."""

    @pytest.mark.asyncio
    async def test_create_list_get_delete(self, settings):
        """A created conversation can be listed, fetched and deleted."""
        _, client = _client(settings)

        async with client:
            created = await client.post("/api/conversations", json={"title": "Raam"})
            conversation_id = created.json()["id"]
            listed = await client.get("/api/conversations")
            fetched = await client.get(f"/api/conversations/{conversation_id}")
            deleted = await client.delete(f"/api/conversations/{conversation_id}")
            missing = await client.get(f"/api/conversations/{conversation_id}")

        assert created.status_code == 201
        assert created.json()["title"] == "Raam"
        assert [c["id"] for c in listed.json()] == [conversation_id]
        assert fetched.json()["messages"] == []
        assert deleted.status_code == 204
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_create_without_body(self, settings):
        """A conversation can be created without a body."""
        _, client = _client(settings)

        async with client:
            response = await client.post("/api/conversations")

        assert response.status_code == 201
        assert response.json()["title"] == "New Conversation"

    @pytest.mark.asyncio
    async def test_delete_missing(self, settings):
        """Deleting an unknown conversation is a 404."""
        _, client = _client(settings)

        async with client:
            response = await client.delete("/api/conversations/conv_missing")

        assert response.status_code == 404


# ---------------------------------------------------------------------------
# TestChat
# ---------------------------------------------------------------------------

class TestChat:
    """POST /api/chat."""

    @pytest.mark.asyncio
    async def test_chat_with_tool_round(self, settings):
        """A chat runs the tool loop and returns the final message."""
        model = ScriptedModel([
            reply(tool_use("t1", "lore__search", q="Tyr")),
            reply(text("Kalak rules Tyr.")),
        ])
        lore = FakeProvider("lore", {"search": "Kalak"})
        context, client = _client(settings, model, lore)
        await context.registry.connect_all()

        async with client:
            response = await client.post("/api/chat", json={"message": "Who rules Tyr?"})

        assert response.status_code == 200
        data = response.json()
        assert data["message"]["content"] == "Kalak rules Tyr."
        assert data["iterations"] == 2
        assert lore.calls == [("search", {"q": "Tyr"})]
        assert len(context.store.get_conversation(data["conversation_id"]).messages) == 2

    @pytest.mark.asyncio
    async def test_empty_message(self, settings):
        """A blank message is a 400."""
        _, client = _client(settings)

        async with client:
            response = await client.post("/api/chat", json={"message": "  "})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_model_failure(self, settings):
        """A model failure is a 502 and nothing is committed."""
        model = ScriptedModel([ModelRequestError("Claude API error: overloaded")])
        context, client = _client(settings, model)

        async with client:
            response = await client.post("/api/chat", json={"message": "hi"})

        assert response.status_code == 502
        assert "overloaded" in response.json()["detail"]
        (conversation,) = context.store.list_conversations()
        assert conversation.messages == []


# ---------------------------------------------------------------------------
# TestChatStream
# ---------------------------------------------------------------------------

class TestChatStream:
    """POST /api/chat/stream."""

    @pytest.mark.asyncio
    async def test_stream_ends_with_final(self, settings):
        """Progress events are followed by exactly one final event."""
        model = ScriptedModel([
            reply(tool_use("t1", "lore__search")),
            reply(text("Done")),
        ])
        context, client = _client(settings, model, FakeProvider("lore", {"search": "x"}))
        await context.registry.connect_all()

        async with client:
            response = await client.post("/api/chat/stream", json={"message": "go"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = _sse_events(response.text)
        assert [e["event"] for e in events] == ["progress", "progress", "final"]
        assert events[0]["provider"] == "lore"
        assert events[-1]["message"]["content"] == "Done"

    @pytest.mark.asyncio
    async def test_stream_error_event(self, settings):
        """A model failure ends the stream with an error event."""
        model = ScriptedModel([ModelRequestError("Rate limited")])
        _, client = _client(settings, model)

        async with client:
            response = await client.post("/api/chat/stream", json={"message": "go"})

        events = _sse_events(response.text)
        assert len(events) == 1
        assert events[0]["event"] == "error"
        assert events[0]["error"] == "Rate limited"

    @pytest.mark.asyncio
    async def test_stream_empty_message(self, settings):
        """A blank streamed message is rejected before streaming."""
        _, client = _client(settings)

        async with client:
            response = await client.post("/api/chat/stream", json={"message": ""})

        assert response.status_code == 400


# ---------------------------------------------------------------------------
# TestProviders
# ---------------------------------------------------------------------------

class TestProviders:
    """Tool catalog and provider query endpoints."""

    @pytest.mark.asyncio
    async def test_tools_catalog(self, settings):
        """GET /api/tools lists qualified tool names."""
        context, client = _client(
            settings,
            None,
            FakeProvider("lore", {"search": ""}),
            FakeProvider("notes", {"create": ""}),
        )
        await context.registry.connect_all()

        async with client:
            response = await client.get("/api/tools")

        names = sorted(t["name"] for t in response.json())
        assert names == ["lore__search", "notes__create"]

    @pytest.mark.asyncio
    async def test_query_connected(self, settings):
        """Querying a connected provider lists its tools."""
        context, client = _client(settings, None, FakeProvider("lore", {"search": ""}))
        await context.registry.connect_all()

        async with client:
            response = await client.post("/api/mcp/query", json={"server": "lore"})

        data = response.json()
        assert data["status"] == "connected"
        assert [t["name"] for t in data["available_tools"]] == ["search"]

    @pytest.mark.asyncio
    async def test_query_not_connected(self, settings):
        """Querying a configured but disconnected provider is a 503."""
        _, client = _client(settings, None, FakeProvider("lore"))

        async with client:
            response = await client.post("/api/mcp/query", json={"server": "lore"})

        assert response.status_code == 503
        assert response.json()["detail"] == "Server lore not connected"

    @pytest.mark.asyncio
    async def test_query_unknown(self, settings):
        """Querying an unconfigured provider is a 404."""
        _, client = _client(settings)

        async with client:
            response = await client.post("/api/mcp/query", json={"server": "ghost"})

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_query_failure(self, settings):
        """A failing listing is reported as an error status."""
        broken = FakeProvider("lore", list_error=RuntimeError("boom"))
        context, client = _client(settings, None, broken)
        await context.registry.connect_all()

        async with client:
            response = await client.post("/api/mcp/query", json={"server": "lore"})

        assert response.json() == {
            "server": "lore",
            "query": "list-tools",
            "error": "boom",
            "status": "error",
        }


# ---------------------------------------------------------------------------
# TestUploads
# ---------------------------------------------------------------------------

class TestUploads:
    """Upload and file management endpoints."""

    @pytest.mark.asyncio
    async def test_upload_list_delete(self, settings):
        """An uploaded file can be listed, served and deleted."""
        _, client = _client(settings)

        async with client:
            uploaded = await client.post(
                "/api/upload",
                files={"file": ("notes.txt", b"Nibenay", "text/plain")},
            )
            filename = uploaded.json()["file"]["filename"]
            listed = await client.get("/api/files")
            served = await client.get(f"/uploads/documents/{filename}")
            deleted = await client.delete(f"/api/files/{filename}")
            again = await client.delete(f"/api/files/{filename}")

        assert uploaded.status_code == 200
        assert uploaded.json()["file"]["content"] == "Nibenay"
        assert uploaded.json()["message"] == "File uploaded and processed successfully"
        assert [f["name"] for f in listed.json()["files"]] == [filename]
        assert served.text == "Nibenay"
        assert deleted.json()["success"] is True
        assert again.status_code == 404

    @pytest.mark.asyncio
    async def test_upload_rejects_type(self, settings):
        """Disallowed types are rejected."""
        _, client = _client(settings)

        async with client:
            response = await client.post(
                "/api/upload",
                files={"file": ("run.sh", b"echo", "application/x-sh")},
            )

        assert response.status_code == 400
