"""FastAPI application for the WhatsApp inbox relay."""

from __future__ import annotations

import json
import logging
import os

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException
from starlette.types import Scope

from src.api.routes import create_inbox_router
from src.audit.logger import AuditLogger
from src.config import Settings
from src.store.conversations import ConversationStore
from src.webhook.whatsapp import WhatsAppClient

logger = logging.getLogger(__name__)


class UIFiles(StaticFiles):
    """Static UI mount that answers unknown client-side routes with index.html.

    Paths whose last segment looks like a file name still 404.
    """

    async def get_response(self, path: str, scope: Scope) -> Response:
        try:
            return await super().get_response(path, scope)
        except HTTPException as exc:
            last_segment = path.rsplit("/", 1)[-1]
            if exc.status_code != 404 or "." in last_segment:
                raise
            return await super().get_response("index.html", scope)


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables."""
    settings = Settings.from_env()
    audit_logger = (
        AuditLogger.from_env(settings.audit_log_path)
        if settings.audit_log_path else None
    )
    return create_app(settings, audit_logger=audit_logger)


def create_app(
    settings: Settings,
    store: ConversationStore | None = None,
    audit_logger: AuditLogger | None = None,
) -> FastAPI:
    """Create the relay app around one conversation store."""
    for problem in settings.warnings():
        logger.warning("Configuration: %s", problem)

    if store is None:
        store = ConversationStore()
    whatsapp = WhatsAppClient(settings, store, audit_logger)

    app = FastAPI(docs_url=None, redoc_url=None)
    app.state.store = store

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/webhook")
    async def verify_webhook(request: Request) -> Response:
        result = whatsapp.handle_verification(dict(request.query_params))
        if result.status_code == 200:
            return PlainTextResponse(result.content)
        return JSONResponse({"error": "Verification failed"}, status_code=401)

    @app.post("/webhook")
    async def receive_webhook(request: Request) -> JSONResponse:
        # Meta redelivers on anything but 200, so this always answers ok.
        raw = await request.body()
        logger.debug("Webhook raw body: %s", raw.decode(errors="replace"))

        try:
            payload = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring webhook with unparsable body (%d bytes)", len(raw))
            return JSONResponse({"status": "ok"})

        try:
            whatsapp.ingest(payload)
        except Exception:
            logger.exception("Failed to process webhook payload")
        return JSONResponse({"status": "ok"})

    app.include_router(create_inbox_router(store, whatsapp))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if settings.static_dir:
        if os.path.isdir(settings.static_dir):
            app.mount("/", UIFiles(directory=settings.static_dir, html=True), name="ui")
        else:
            logger.warning("UI_STATIC_DIR %s is not a directory; UI not served", settings.static_dir)

    return app
