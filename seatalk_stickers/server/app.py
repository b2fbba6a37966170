"""FastAPI application: SeaTalk webhook endpoint and health check.

WHY: SeaTalk delivers bot events by POSTing JSON to one callback URL and
expects a fast answer. FastAPI validates the body against the event
models, and its lifespan hook owns the long-lived SeaTalk and Telegram
clients.

HOW: The lifespan loads config, enters AsyncSeatalk (bootstrapping the
access token) and TelegramStickerDownloader (validating the bot token)
on one AsyncExitStack, builds the JobRunner and WebhookDispatcher, and
stores them on app.state. POST / parses an InboundEvent and hands it to
the dispatcher. On shutdown running jobs are drained before the clients
close.

RULES:
- Startup fails if credentials are missing or either token check fails
- POST / answers 200 with {"seatalk_challenge": ...} for verification,
  an empty 200 otherwise, 422 for unknown event shapes, and an empty
  500 on WebhookError
- Targets Python 3.10+, written without match/case or PEP 604 unions
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack, asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from seatalk_stickers import __version__
from seatalk_stickers.api.auth import Auth
from seatalk_stickers.api.seatalk import AsyncSeatalk
from seatalk_stickers.api.webhooks import InboundEvent
from seatalk_stickers.config import (
    LOG_LEVEL,
    SEATALK_HOST,
    SEATALK_PROTOCOL,
    SEATALK_RATE_LIMIT_INTERVAL_S,
    SERVER_HOST,
    SERVER_PORT,
    TELEGRAM_BASE_URL,
    WHITELIST_GROUP_IDS,
    load_group_invite_image,
    load_seatalk_credentials,
    load_telegram_token,
)
from seatalk_stickers.server.dispatch import WebhookDispatcher, WebhookError
from seatalk_stickers.server.jobs import JobRunner
from seatalk_stickers.server.models import HealthResponse
from seatalk_stickers.telegram import TelegramStickerDownloader

logger = logging.getLogger(__name__)

_CLEANUP_INTERVAL_S = 300

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------


async def _periodic_cleanup(runner: JobRunner) -> None:
    """Drop expired job records every 5 minutes."""
    while True:
        await asyncio.sleep(_CLEANUP_INTERVAL_S)
        runner.cleanup_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the SeaTalk and Telegram clients for the app's lifetime."""
    credentials = load_seatalk_credentials()
    telegram_token = load_telegram_token()
    invite_image = load_group_invite_image()
    if not WHITELIST_GROUP_IDS:
        logger.warning("WHITELIST_GROUP_IDS is empty; no group can run /convert")

    runner = JobRunner()
    async with AsyncExitStack() as stack:
        seatalk = await stack.enter_async_context(
            AsyncSeatalk(
                SEATALK_HOST,
                Auth(credentials),
                protocol=SEATALK_PROTOCOL,
                rate_limit_interval_s=SEATALK_RATE_LIMIT_INTERVAL_S,
            )
        )
        telegram = await stack.enter_async_context(
            TelegramStickerDownloader(telegram_token, TELEGRAM_BASE_URL)
        )
        app.state.runner = runner
        app.state.dispatcher = WebhookDispatcher(
            seatalk,
            telegram,
            runner,
            WHITELIST_GROUP_IDS,
            invite_image,
        )
        cleanup_task = asyncio.create_task(_periodic_cleanup(runner))
        logger.info("SeaTalk sticker bridge ready (%d allow-listed groups)", len(WHITELIST_GROUP_IDS))
        try:
            yield
        finally:
            cleanup_task.cancel()
            try:
                await cleanup_task
            except asyncio.CancelledError:
                pass
            await runner.shutdown()


app = FastAPI(
    lifespan=lifespan,
    title="SeaTalk Sticker Bridge",
    description=(
        "SeaTalk bot webhook that converts Telegram sticker and emoji sets "
        "into images posted back into the group chat."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.exception_handler(WebhookError)
async def webhook_error_handler(request: Request, exc: WebhookError) -> Response:
    logger.error("Error handling webhook request: %s", exc, exc_info=exc)
    return Response(status_code=500)


# ---------------------------------------------------------------------------
# Endpoints: Webhook
# ---------------------------------------------------------------------------


@app.post(
    "/",
    tags=["webhook"],
    summary="SeaTalk event callback",
    description=(
        "Receives SeaTalk bot events. Verification events are answered with "
        "the challenge; group /convert commands start a background job."
    ),
    responses={
        200: {"description": "Event handled (challenge echoed for verification)."},
        422: {"description": "Unknown or malformed event."},
        500: {"description": "SeaTalk could not be reached while answering."},
    },
)
async def receive_event(event: InboundEvent, request: Request) -> Response:
    dispatcher: WebhookDispatcher = request.app.state.dispatcher
    result = await dispatcher.dispatch(event.root)
    if result is not None:
        return JSONResponse(content=result.model_dump())
    return Response(status_code=200)


# ---------------------------------------------------------------------------
# Endpoints: Health
# ---------------------------------------------------------------------------


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
    description="Liveness check with the number of running conversion jobs.",
)
async def health_check(request: Request) -> HealthResponse:
    runner = getattr(request.app.state, "runner", None)
    active = runner.active_jobs() if runner is not None else 0
    return HealthResponse(status="ok", version=__version__, active_jobs=active)


def run_server() -> None:
    """Entry point for the seatalk-stickers console script."""
    import uvicorn

    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    # httpx logs full request URLs at INFO, and Telegram URLs carry the bot token.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    uvicorn.run(app, host=SERVER_HOST, port=SERVER_PORT, log_level=LOG_LEVEL.lower())
