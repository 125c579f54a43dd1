"""Data models for the WhatsApp webhook and send path."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class InboundMessage:
    """One message pulled out of a webhook notification."""

    contact_id: str
    message_id: str
    body: str
    type: str  # "text", "button", "interactive", ...


@dataclass(frozen=True)
class VerificationResult:
    status_code: int
    content: str = ""


@dataclass(frozen=True)
class SendResult:
    """Raw Graph API answer, relayed to the caller as-is."""

    status_code: int
    content: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300
