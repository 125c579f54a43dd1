"""Shared test fixtures for the inbox relay."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from unittest.mock import MagicMock

import pytest

from src.audit.logger import AuditLogger
from src.config import Settings
from src.models import ChatMessage, Direction
from src.store.conversations import ConversationStore


@pytest.fixture
def settings() -> Settings:
    return Settings(
        access_token="test_access_token",
        phone_number_id="123456",
        verify_token="test_verify",
    )


@pytest.fixture
def store() -> ConversationStore:
    return ConversationStore()


@pytest.fixture
def mock_audit_logger() -> MagicMock:
    return MagicMock(spec=AuditLogger)


# --- Factory functions for test data ---


def make_chat_message(**kwargs: Any) -> ChatMessage:
    """Factory for ChatMessage with sensible defaults."""
    defaults: dict[str, object] = {
        "id": "wamid.TEST",
        "wa_id": "5551234",
        "direction": Direction.INBOUND,
        "body": "hello",
        "ts": datetime(2024, 1, 1, 12, 0, tzinfo=UTC),
    }
    defaults.update(kwargs)
    return ChatMessage(**defaults)  # type: ignore[arg-type]


def make_webhook_payload(*messages: dict[str, Any]) -> dict[str, Any]:
    """Wrap raw message objects in a WhatsApp Cloud API notification."""
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "BUSINESS_ID",
                "changes": [
                    {
                        "value": {
                            "messaging_product": "whatsapp",
                            "metadata": {"phone_number_id": "PHONE_ID"},
                            "messages": list(messages),
                        },
                        "field": "messages",
                    }
                ],
            }
        ],
    }


def make_text_message(
    text: str = "hi",
    phone: str = "5551234",
    msg_id: str = "wamid.1",
) -> dict[str, Any]:
    return {
        "from": phone,
        "id": msg_id,
        "timestamp": "1700000000",
        "type": "text",
        "text": {"body": text},
    }
