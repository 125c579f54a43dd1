"""Shared Pydantic data models for the inbox relay."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# --- Enums ---


class Direction(str, Enum):
    INBOUND = "in"
    OUTBOUND = "out"


class AuditEventType(str, Enum):
    WEBHOOK_VERIFY = "webhook_verify"
    WEBHOOK_MESSAGE = "webhook_message"
    MESSAGE_SENT = "message_sent"
    SEND_FAILED = "send_failed"


# --- Conversation Models ---


class ChatMessage(BaseModel):
    """One message in a contact's conversation."""

    model_config = ConfigDict(frozen=True)

    id: str
    wa_id: str
    direction: Direction
    body: str | None = None
    ts: datetime


# Sorts before any real message timestamp.
EPOCH_MIN = datetime.min.replace(tzinfo=UTC)


class ConversationSummary(BaseModel):
    """Latest message of one contact, derived from the store on demand."""

    model_config = ConfigDict(frozen=True)

    wa_id: str = Field(serialization_alias="waId")
    last_body: str = Field(default="", serialization_alias="lastBody")
    last_ts: datetime = Field(default=EPOCH_MIN, serialization_alias="lastTs")


class SendRequest(BaseModel):
    """Outbound reply requested by the UI."""

    to: str | None = ""
    text: str | None = ""
    reply_to: str | None = Field(
        default=None,
        validation_alias=AliasChoices("replyTo", "reply_to"),
    )

    def missing_fields(self) -> list[str]:
        """Names of required fields that are null, empty or whitespace."""
        return [
            name for name, value in (("to", self.to), ("text", self.text))
            if value is None or not value.strip()
        ]


# --- Audit Models ---


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class AuditEvent(BaseModel):
    timestamp: str = Field(default_factory=_now_iso)
    event_type: AuditEventType
    action: str
    result: str  # "success" | "failure" | "ignored"
    contact_id: str | None = None
    details: dict[str, object] | None = None
