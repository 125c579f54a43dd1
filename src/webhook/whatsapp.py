"""WhatsApp Cloud API client.

Handles the Meta verification challenge, turns webhook notifications into
stored inbound messages, and sends text replies through the Graph API.
"""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import httpx

from src.models import AuditEvent, AuditEventType, ChatMessage, Direction
from src.webhook.models import SendResult, VerificationResult
from src.webhook.normalizer import iter_messages, normalize_message

if TYPE_CHECKING:
    from src.audit.logger import AuditLogger
    from src.config import Settings
    from src.store.conversations import ConversationStore

logger = logging.getLogger(__name__)


class SendUnavailableError(Exception):
    """Raised when the Graph API call failed at the transport level."""


def build_text_payload(to: str, text: str, reply_to: str | None = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "messaging_product": "whatsapp",
        "to": to,
        "type": "text",
        "text": {"body": text},
    }
    if reply_to and reply_to.strip():
        payload["context"] = {"message_id": reply_to}
    return payload


class WhatsAppClient:
    """Bridges the WhatsApp Cloud API and the conversation store."""

    def __init__(
        self,
        settings: Settings,
        store: ConversationStore,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._settings = settings
        self._store = store
        self._audit = audit_logger

    @property
    def messages_url(self) -> str:
        base = self._settings.api_base.rstrip("/")
        return f"{base}/{self._settings.phone_number_id}/messages"

    def handle_verification(self, params: dict[str, str]) -> VerificationResult:
        """Answer Meta's subscription handshake (GET /webhook).

        Echoes ``hub.challenge`` only for mode ``subscribe`` with the exact
        configured verify token; everything else is 401.
        """
        mode = params.get("hub.mode", "")
        token = params.get("hub.verify_token", "")
        logger.info(
            "Webhook verification: mode=%s provided_len=%d expected_len=%d",
            mode, len(token), len(self._settings.verify_token),
        )

        accepted = mode == "subscribe" and token == self._settings.verify_token
        if self._audit:
            self._audit.log(AuditEvent(
                event_type=AuditEventType.WEBHOOK_VERIFY,
                action="verify",
                result="success" if accepted else "failure",
                details={"mode": mode},
            ))
        if accepted:
            return VerificationResult(
                status_code=200, content=params.get("hub.challenge", ""),
            )
        return VerificationResult(status_code=401)

    def ingest(self, payload: Any) -> list[ChatMessage]:
        """Store every usable message in a webhook notification.

        Messages without a sender are dropped. The receipt time is used as
        the timestamp; the payload's own timestamp is ignored.
        """
        stored: list[ChatMessage] = []
        for raw in iter_messages(payload):
            inbound = normalize_message(raw)
            if inbound is None:
                logger.debug("Dropping message without sender: %s", raw.get("id"))
                continue

            message = ChatMessage(
                id=inbound.message_id,
                wa_id=inbound.contact_id,
                direction=Direction.INBOUND,
                body=inbound.body,
                ts=datetime.now(UTC),
            )
            self._store.append(inbound.contact_id, message)
            stored.append(message)
            logger.info(
                "Inbound %s message %s from %s",
                inbound.type, inbound.message_id, inbound.contact_id,
            )
            if self._audit:
                self._audit.log(AuditEvent(
                    event_type=AuditEventType.WEBHOOK_MESSAGE,
                    action="receive",
                    result="success",
                    contact_id=inbound.contact_id,
                    details={"message_id": inbound.message_id, "type": inbound.type},
                ))
        return stored

    async def send_text(
        self, to: str, text: str, reply_to: str | None = None,
    ) -> SendResult:
        """Send one text message; no retry.

        On a 2xx answer the message is recorded as outbound. Any other
        status is returned untouched and the store is left alone.
        """
        payload = build_text_payload(to, text, reply_to)
        headers = {"Authorization": f"Bearer {self._settings.access_token}"}

        try:
            async with httpx.AsyncClient(verify=True) as client:
                resp = await client.post(
                    self.messages_url,
                    json=payload,
                    headers=headers,
                    timeout=self._settings.send_timeout,
                )
        except httpx.TransportError as exc:
            logger.warning("Messaging API unavailable sending to %s: %s", to, exc)
            self._log_send_failure(to, {"error": type(exc).__name__})
            raise SendUnavailableError(str(exc)) from exc

        result = SendResult(status_code=resp.status_code, content=resp.content)
        if not result.ok:
            logger.warning("Messaging API rejected send to %s: %d", to, resp.status_code)
            self._log_send_failure(to, {"status_code": resp.status_code})
            return result

        # Local id; the wamid in the response body is not parsed.
        message = ChatMessage(
            id=f"out-{int(time.time() * 1000)}",
            wa_id=to,
            direction=Direction.OUTBOUND,
            body=text,
            ts=datetime.now(UTC),
        )
        self._store.append(to, message)
        if self._audit:
            self._audit.log(AuditEvent(
                event_type=AuditEventType.MESSAGE_SENT,
                action="send",
                result="success",
                contact_id=to,
                details={"message_id": message.id, "reply_to": reply_to},
            ))
        return result

    def _log_send_failure(self, to: str, details: dict[str, object]) -> None:
        if self._audit:
            self._audit.log(AuditEvent(
                event_type=AuditEventType.SEND_FAILED,
                action="send",
                result="failure",
                contact_id=to,
                details=details,
            ))
