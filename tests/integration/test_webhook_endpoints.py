"""Integration tests for the /webhook endpoints."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from src.api.app import create_app
from src.audit.logger import AuditLogger, read_events
from src.config import Settings
from src.models import AuditEventType
from src.store.conversations import ConversationStore
from tests.conftest import make_text_message, make_webhook_payload


@pytest.fixture
def app(settings: Settings, store: ConversationStore) -> Any:
    return create_app(settings, store=store)


class TestWebhookVerification:
    @pytest.mark.asyncio
    async def test_valid_subscribe_echoes_challenge(self, app: Any) -> None:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get(
                "/webhook",
                params={
                    "hub.mode": "subscribe",
                    "hub.verify_token": "test_verify",
                    "hub.challenge": "1158201444",
                },
            )
            assert resp.status_code == 200
            assert resp.text == "1158201444"
            assert resp.headers["content-type"].startswith("text/plain")

    @pytest.mark.asyncio
    async def test_wrong_token_401(self, app: Any) -> None:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get(
                "/webhook",
                params={
                    "hub.mode": "subscribe",
                    "hub.verify_token": "wrong",
                    "hub.challenge": "ch",
                },
            )
            assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_wrong_mode_401(self, app: Any) -> None:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get(
                "/webhook",
                params={
                    "hub.mode": "unsubscribe",
                    "hub.verify_token": "test_verify",
                    "hub.challenge": "ch",
                },
            )
            assert resp.status_code == 401


class TestWebhookReceive:
    @pytest.mark.asyncio
    async def test_text_message_stored(self, app: Any, store: ConversationStore) -> None:
        payload = make_webhook_payload(make_text_message(text="hi", phone="5551234"))
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.post("/webhook", json=payload)
            assert resp.status_code == 200

        messages = store.get("5551234")
        assert messages is not None
        assert len(messages) == 1
        assert messages[0].body == "hi"
        assert messages[0].direction.value == "in"

    @pytest.mark.asyncio
    async def test_interactive_button_reply_stored(
        self, app: Any, store: ConversationStore,
    ) -> None:
        payload = make_webhook_payload({
            "from": "5551234",
            "id": "wamid.btn",
            "type": "interactive",
            "interactive": {
                "type": "button_reply",
                "button_reply": {"id": "confirm", "title": "Yes"},
            },
        })
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            await client.post("/webhook", json=payload)

        assert [m.body for m in store.get("5551234") or []] == ["Yes"]

    @pytest.mark.asyncio
    async def test_interactive_without_reply_stored_as_placeholder(
        self, app: Any, store: ConversationStore,
    ) -> None:
        payload = make_webhook_payload({
            "from": "5551234",
            "id": "wamid.int",
            "type": "interactive",
            "interactive": {"type": "unknown"},
        })
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            await client.post("/webhook", json=payload)

        assert [m.body for m in store.get("5551234") or []] == ["(interactive)"]

    @pytest.mark.asyncio
    async def test_unparsable_body_still_200(
        self, app: Any, store: ConversationStore,
    ) -> None:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.post(
                "/webhook",
                content=b"{not json",
                headers={"content-type": "application/json"},
            )
            assert resp.status_code == 200
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_non_utf8_body_still_200(
        self, app: Any, store: ConversationStore,
    ) -> None:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.post("/webhook", content=b"\xff\xfe\x00")
            assert resp.status_code == 200
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_unexpected_shape_still_200(
        self, app: Any, store: ConversationStore,
    ) -> None:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            for body in ([1, 2, 3], {"entry": {"oops": True}}, "string"):
                resp = await client.post("/webhook", json=body)
                assert resp.status_code == 200
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_ingest_error_still_200(
        self, settings: Settings,
    ) -> None:
        class BrokenStore(ConversationStore):
            def append(self, contact_id: str, message: Any) -> None:
                raise RuntimeError("boom")

        app = create_app(settings, store=BrokenStore())
        payload = make_webhook_payload(make_text_message())
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.post("/webhook", json=payload)
            assert resp.status_code == 200

    @pytest.mark.asyncio
    async def test_receipt_audited(self, settings: Settings, tmp_path: Path) -> None:
        log_file = tmp_path / "audit.jsonl"
        app = create_app(settings, audit_logger=AuditLogger(str(log_file)))
        payload = make_webhook_payload(make_text_message(msg_id="wamid.A"))
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            await client.post("/webhook", content=json.dumps(payload))

        [event] = read_events(log_file)
        assert event.event_type == AuditEventType.WEBHOOK_MESSAGE
        assert event.details == {"message_id": "wamid.A", "type": "text"}
