"""
Tests for chat over the knowledge base (SSE replies).
"""

import json

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.models.models import ActivityLog, KnowledgeFile
from app.services import chat as chat_service
from app.services.chat import EMPTY_KNOWLEDGE_BASE, build_system_prompt


def _events(body: str) -> list[dict]:
    return [json.loads(line[len("data: "):]) for line in body.splitlines() if line.startswith("data: ")]


class TestSessions:

    @pytest.mark.anyio
    async def test_create_defaults_title(self, client: AsyncClient):
        response = await client.post("/api/chat-sessions", json={})
        assert response.status_code == 201
        assert response.json()["title"] == "New chat"

        sessions = (await client.get("/api/chat-sessions")).json()
        assert [s["id"] for s in sessions] == [response.json()["id"]]

    @pytest.mark.anyio
    async def test_foreign_session_not_found(self, client_for, alice, bob):
        session = (await client_for(alice.id).post("/api/chat-sessions", json={"title": "Mine"})).json()
        bob_client = client_for(bob.id)

        assert (await bob_client.get(f"/api/chat-sessions/{session['id']}/messages")).status_code == 404
        response = await bob_client.post(
            f"/api/chat-sessions/{session['id']}/messages", json={"content": "peek"}
        )
        assert response.status_code == 404


class TestStreamingReply:

    @pytest.mark.anyio
    async def test_reply_streams_and_is_persisted(self, client: AsyncClient, db, fake_ai):
        session = (await client.post("/api/chat-sessions", json={"title": "Pricing"})).json()

        response = await client.post(
            f"/api/chat-sessions/{session['id']}/messages", json={"content": "What is our price?"}
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert _events(response.text) == [{"content": "Hello"}, {"content": " world"}, {"done": True}]

        messages = (await client.get(f"/api/chat-sessions/{session['id']}/messages")).json()
        assert [(m["role"], m["content"]) for m in messages] == [
            ("user", "What is our price?"),
            ("assistant", "Hello world"),
        ]

        logs = (await db.execute(select(ActivityLog))).scalars().all()
        assert [(log.action, log.module) for log in logs] == [("chat", "knowledge")]

    @pytest.mark.anyio
    async def test_system_prompt_holds_truncated_documents(self, client: AsyncClient, db, alice, fake_ai):
        db.add(KnowledgeFile(
            user_id=alice.id, file_name="catalog.txt", file_type="txt",
            file_size=5000, content="x" * 5000,
        ))
        await db.commit()
        session = (await client.post("/api/chat-sessions", json={})).json()

        await client.post(f"/api/chat-sessions/{session['id']}/messages", json={"content": "Summarize"})

        system = fake_ai.streams[0]["system"]
        assert "catalog.txt" in system
        assert "x" * 3000 in system
        assert "x" * 3001 not in system

    @pytest.mark.anyio
    async def test_history_limited_to_last_ten_messages(self, client: AsyncClient, db, alice, fake_ai):
        session = (await client.post("/api/chat-sessions", json={})).json()
        for i in range(12):
            role = "user" if i % 2 == 0 else "assistant"
            await chat_service.add_message(db, session["id"], alice.id, role, f"message {i}")

        await client.post(f"/api/chat-sessions/{session['id']}/messages", json={"content": "latest"})

        turns = fake_ai.streams[0]["messages"]
        assert len(turns) == 10
        assert turns[0].text == "message 3"
        assert turns[-1].role == "user"
        assert turns[-1].text == "latest"

    @pytest.mark.anyio
    async def test_failure_ends_with_error_and_persists_nothing(self, client: AsyncClient, fake_ai):
        fake_ai.fail_after = 1
        session = (await client.post("/api/chat-sessions", json={})).json()

        response = await client.post(f"/api/chat-sessions/{session['id']}/messages", json={"content": "Hi"})
        events = _events(response.text)
        assert events[0] == {"content": "Hello"}
        assert "error" in events[-1]

        messages = (await client.get(f"/api/chat-sessions/{session['id']}/messages")).json()
        assert [m["role"] for m in messages] == ["user"]

    @pytest.mark.anyio
    async def test_client_disconnect_discards_reply(self, client: AsyncClient, db, alice, fake_ai):
        session = (await client.post("/api/chat-sessions", json={})).json()
        await chat_service.add_message(db, session["id"], alice.id, "user", "Hi")

        events = chat_service.reply_events(session["id"], alice.id, "Hi", fake_ai)
        first = await events.__anext__()
        assert json.loads(first[len("data: "):].strip()) == {"content": "Hello"}
        await events.aclose()

        messages = (await client.get(f"/api/chat-sessions/{session['id']}/messages")).json()
        assert [m["role"] for m in messages] == ["user"]
        logs = (await db.execute(select(ActivityLog).where(ActivityLog.action == "chat"))).scalars().all()
        assert logs == []

    @pytest.mark.anyio
    async def test_empty_message_rejected(self, client: AsyncClient, fake_ai):
        session = (await client.post("/api/chat-sessions", json={})).json()
        response = await client.post(f"/api/chat-sessions/{session['id']}/messages", json={"content": ""})
        assert response.status_code == 400
        assert fake_ai.streams == []


class TestSystemPrompt:

    def test_empty_knowledge_base_placeholder(self):
        assert EMPTY_KNOWLEDGE_BASE in build_system_prompt([], 3000)
