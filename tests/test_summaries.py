"""
Tests for daily summaries: streaming generation, drafts, send-to-superior.
"""

import json

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.models.models import ActivityLog, DailySummary, Notification
from app.services.summaries import summary_events


def _events(body: str) -> list[dict]:
    return [json.loads(line[len("data: "):]) for line in body.splitlines() if line.startswith("data: ")]


async def _set_superior(db, user, superior_id: str) -> None:
    user.superior_id = superior_id
    await db.commit()


class TestGenerateSummary:
    """POST /api/daily-summary streams the report and stores it as a draft."""

    @pytest.mark.anyio
    async def test_stream_then_draft_saved(self, client: AsyncClient, db, fake_ai):
        await client.post("/api/tasks", json={"title": "Quote for Acme", "status": "done"})
        await client.post("/api/tasks", json={"title": "Follow up Globex"})
        fake_ai.chunks = ["Good ", "day."]

        response = await client.post("/api/daily-summary")
        assert response.headers["content-type"].startswith("text/event-stream")
        assert _events(response.text) == [{"content": "Good "}, {"content": "day."}, {"done": True}]

        prompt = fake_ai.streams[0]["messages"][0].text
        assert "Quote for Acme" in prompt
        assert "[todo] Follow up Globex" in prompt

        drafts = (await client.get("/api/daily-summaries")).json()
        assert [(d["content"], d["status"]) for d in drafts] == [("Good day.", "draft")]

        actions = (await db.execute(select(ActivityLog.action))).scalars().all()
        assert "generate_summary" in actions

    @pytest.mark.anyio
    async def test_stream_failure_saves_nothing(self, client: AsyncClient, db, fake_ai):
        fake_ai.fail_after = 1

        response = await client.post("/api/daily-summary")
        events = _events(response.text)
        assert events[0] == {"content": "Hello"}
        assert "error" in events[-1]
        assert {"done": True} not in events

        assert (await db.execute(select(DailySummary))).scalars().all() == []


    @pytest.mark.anyio
    async def test_client_disconnect_saves_nothing(self, db, alice, fake_ai):
        events = summary_events(alice.id, fake_ai)
        first = await events.__anext__()
        assert json.loads(first[len("data: "):].strip()) == {"content": "Hello"}
        await events.aclose()

        assert (await db.execute(select(DailySummary))).scalars().all() == []
        logs = (await db.execute(select(ActivityLog).where(ActivityLog.action == "generate_summary"))).scalars().all()
        assert logs == []


class TestSendSummary:

    @pytest.mark.anyio
    async def test_send_notifies_superior_and_locks_summary(self, client_for, db, alice, bob):
        await _set_superior(db, alice, bob.id)
        alice_client = client_for(alice.id)

        summary = (await alice_client.post("/api/daily-summaries", json={"content": "Did things"})).json()
        assert summary["status"] == "draft"

        sent = await alice_client.post(f"/api/daily-summary/{summary['id']}/send")
        assert sent.status_code == 200
        assert sent.json()["status"] == "sent"
        assert sent.json()["sent_to_user_id"] == "bob"
        assert sent.json()["sent_at"] is not None

        again = await alice_client.post(f"/api/daily-summary/{summary['id']}/send")
        assert again.status_code == 400

        deleted = await alice_client.delete(f"/api/daily-summary/{summary['id']}")
        assert deleted.status_code == 400

        received = (await client_for(bob.id).get("/api/daily-summaries/received")).json()
        assert [(r["id"], r["author_name"]) for r in received] == [(summary["id"], "Alice Chen")]

        db.expire_all()
        notes = (await db.execute(select(Notification))).scalars().all()
        assert [(n.user_id, n.type, n.from_user_id) for n in notes] == [("bob", "summary_received", "alice")]

    @pytest.mark.anyio
    async def test_send_without_superior_rejected(self, client: AsyncClient):
        summary = (await client.post("/api/daily-summaries", json={"content": "Did things"})).json()
        response = await client.post(f"/api/daily-summary/{summary['id']}/send")
        assert response.status_code == 400
        assert (await client.get("/api/daily-summaries")).json()[0]["status"] == "draft"

    @pytest.mark.anyio
    async def test_draft_can_be_deleted(self, client: AsyncClient):
        summary = (await client.post("/api/daily-summaries", json={"content": "Scratch"})).json()
        response = await client.delete(f"/api/daily-summary/{summary['id']}")
        assert response.json() == {"status": "deleted", "id": summary["id"]}
        assert (await client.get("/api/daily-summaries")).json() == []

    @pytest.mark.anyio
    async def test_other_users_summary_not_found(self, client_for, alice, bob):
        summary = (await client_for(alice.id).post("/api/daily-summaries", json={"content": "Mine"})).json()
        response = await client_for(bob.id).delete(f"/api/daily-summary/{summary['id']}")
        assert response.status_code == 404

    @pytest.mark.anyio
    async def test_empty_content_rejected(self, client: AsyncClient):
        response = await client.post("/api/daily-summaries", json={"content": " "})
        assert response.status_code == 400
