"""Flatten WhatsApp Cloud API webhook notifications into chat messages.

Notifications nest as ``entry[] -> changes[] -> value -> messages[]``. Any
level that is missing or has the wrong shape is skipped without raising so a
single malformed entry never spoils the rest of the delivery.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from typing import Any

from src.webhook.models import InboundMessage

INTERACTIVE_PLACEHOLDER = "(interactive)"


def dig(node: Any, *path: str) -> Any:
    """Follow ``path`` through nested dicts, returning None when any key is absent.

    A non-dict node along the way counts as absent too.
    """
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
        if node is None:
            return None
    return node


def _dig_str(node: Any, *path: str) -> str | None:
    value = dig(node, *path)
    return value if isinstance(value, str) else None


def _dicts(value: Any) -> Iterator[dict[str, Any]]:
    if not isinstance(value, list):
        return
    for item in value:
        if isinstance(item, dict):
            yield item


def iter_messages(payload: Any) -> Iterator[dict[str, Any]]:
    """Yield every raw message object carried by a webhook notification."""
    for entry in _dicts(dig(payload, "entry")):
        for change in _dicts(entry.get("changes")):
            yield from _dicts(dig(change, "value", "messages"))


def extract_body(message: dict[str, Any]) -> str:
    msg_type = _dig_str(message, "type")

    text: str | None = None
    if msg_type == "text":
        text = _dig_str(message, "text", "body")
    elif msg_type == "button":
        text = _dig_str(message, "button", "text")
    elif msg_type == "interactive":
        text = _dig_str(message, "interactive", "button_reply", "title")
        if text is None:
            text = _dig_str(message, "interactive", "list_reply", "title")
        if text is None:
            text = INTERACTIVE_PLACEHOLDER

    if text is None:
        return f"[{msg_type or ''}]"
    return text


def normalize_message(message: dict[str, Any]) -> InboundMessage | None:
    """Reduce one raw message to an InboundMessage, or None when it has no sender."""
    contact_id = _dig_str(message, "from")
    if contact_id is None or not contact_id.strip():
        return None

    message_id = _dig_str(message, "id")
    if message_id is None:
        message_id = uuid.uuid4().hex

    return InboundMessage(
        contact_id=contact_id,
        message_id=message_id,
        body=extract_body(message),
        type=_dig_str(message, "type") or "",
    )
