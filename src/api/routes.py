"""Inbox API endpoints consumed by the UI.

Provides endpoints for:
- Listing conversations, most recent first
- Reading one contact's message history
- Sending a text reply through the WhatsApp Cloud API
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from src.models import SendRequest
from src.webhook.whatsapp import SendUnavailableError

if TYPE_CHECKING:
    from src.store.conversations import ConversationStore
    from src.webhook.whatsapp import WhatsAppClient

logger = logging.getLogger(__name__)


def create_inbox_router(
    store: ConversationStore,
    whatsapp: WhatsAppClient,
) -> APIRouter:
    """Create the /api router over an injected store and client."""
    router = APIRouter(prefix="/api")

    @router.get("/conversations")
    async def list_conversations() -> JSONResponse:
        summaries = sorted(
            store.list_conversations(), key=lambda s: s.last_ts, reverse=True,
        )
        return JSONResponse([
            s.model_dump(mode="json", by_alias=True) for s in summaries
        ])

    @router.get("/messages/{wa_id}")
    async def get_messages(wa_id: str) -> JSONResponse:
        messages = store.get(wa_id) or []
        return JSONResponse([m.model_dump(mode="json") for m in messages])

    @router.post("/send")
    async def send(request: Request) -> Response:
        raw = await request.body()
        try:
            body = json.loads(raw) if raw else {}
            send_request = SendRequest.model_validate(body)
        except (ValueError, ValidationError):
            return JSONResponse(
                {"error": "Body must be a JSON object with string fields to and text"},
                status_code=400,
            )

        missing = send_request.missing_fields()
        if missing:
            logger.info("Rejected send with missing fields: %s", missing)
            return JSONResponse(
                {"error": f"Missing required fields: {', '.join(missing)}"},
                status_code=400,
            )

        try:
            result = await whatsapp.send_text(
                send_request.to or "", send_request.text or "", send_request.reply_to,
            )
        except SendUnavailableError:
            return JSONResponse(
                {"error": "Messaging API unavailable"},
                status_code=502,
            )

        return Response(
            content=result.content,
            status_code=200 if result.ok else result.status_code,
            media_type="application/json",
        )

    return router
