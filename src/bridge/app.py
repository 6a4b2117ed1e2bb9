"""FastAPI webhook bridge application."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.responses import PlainTextResponse

from src.bridge.dispatcher import WebhookDispatcher
from src.config import BridgeSettings, load_settings
from src.relay.openclaw import OpenClawWaker
from src.relay.orchestrator import RelayOrchestrator
from src.wecom.client import WeComClient
from src.wecom.crypto import CryptoError, WeComCryptor

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/wecom"


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables."""
    return create_app(load_settings())


def build_orchestrator(settings: BridgeSettings) -> RelayOrchestrator:
    client = WeComClient(
        corp_id=settings.corp_id,
        corp_secret=settings.corp_secret,
        agent_id=settings.agent_id,
        api_base=settings.wecom_api_base,
    )
    waker = OpenClawWaker(settings.openclaw_url, settings.openclaw_token)
    return RelayOrchestrator(
        waker=waker,
        client=client,
        sessions_dir=settings.sessions_dir,
        reply_timeout=settings.reply_timeout_seconds,
    )


def create_app(
    settings: BridgeSettings,
    orchestrator: RelayOrchestrator | None = None,
) -> FastAPI:
    """Create the bridge FastAPI app with the WeCom callback endpoint."""
    cryptor = WeComCryptor(settings.wecom_token, settings.wecom_aes_key, settings.corp_id)
    dispatcher = WebhookDispatcher(cryptor, orchestrator or build_orchestrator(settings))

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        if dispatcher.pending:
            logger.info("Waiting for %d in-flight messages", dispatcher.pending)
        await dispatcher.drain()

    app = FastAPI(docs_url=None, redoc_url=None, lifespan=lifespan)
    app.state.dispatcher = dispatcher

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get(WEBHOOK_PATH)
    async def verify_url(request: Request) -> Response:
        logger.info("Received handshake request")
        try:
            challenge = dispatcher.handshake(request.query_params)
        except CryptoError as exc:
            logger.error("URL validation failed: %s", exc)
            return PlainTextResponse("Validation failed", status_code=400)
        logger.info("URL validation successful")
        return PlainTextResponse(challenge)

    @app.post(WEBHOOK_PATH)
    async def receive_message(request: Request) -> Response:
        logger.info("Received message callback")
        body = await request.body()
        dispatcher.accept(body, request.query_params)
        return PlainTextResponse("success")

    return app
