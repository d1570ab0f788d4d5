"""Catwatch — Trigger API.

FastAPI application exposing the pipeline to an external scheduler
(cron service, uptime pinger, ...):

    GET|POST /api/check-cats   run one check, secret required
    GET      /health           liveness probe

The shared secret is accepted as `Authorization: Bearer <secret>` or as
`?secret=<secret>`. The response body is the RunResult; status is 200
when the run succeeded and 500 otherwise.

Serve with:
    uvicorn catwatch.api.app:create_app --factory
"""

from __future__ import annotations

import hmac
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from catwatch.config import AppConfig, load_config
from catwatch.database.db import Database
from catwatch.database.models import RunResult
from catwatch.database.novelty import NoveltyStore
from catwatch.notifier.dispatcher import NotificationDispatcher
from catwatch.notifier.subscribers import SubscriberDirectory
from catwatch.notifier.telegram_bot import TelegramNotifier
from catwatch.scraper.pipeline import CheckPipeline
from catwatch.utils.logger import get_logger

logger = get_logger(__name__)

RunCheck = Callable[[], Awaitable[RunResult]]

router = APIRouter()


def _provided_secret(request: Request) -> str:
    auth = request.headers.get("authorization", "")
    if auth.startswith("Bearer "):
        return auth[len("Bearer "):].strip()
    return request.query_params.get("secret", "")


def build_pipeline(config: AppConfig, db: Database) -> tuple[CheckPipeline, TelegramNotifier]:
    """Wire the pipeline and its collaborators around an open database."""
    telegram = TelegramNotifier(config.telegram)
    pipeline = CheckPipeline(
        config,
        store=NoveltyStore(db, retention_days=config.store.retention_days),
        directory=SubscriberDirectory(db, config.telegram.fallback_chat_id),
        dispatcher=NotificationDispatcher(config.telegram, telegram, config.listing.check_url),
    )
    return pipeline, telegram


@router.api_route("/api/check-cats", methods=["GET", "POST"])
async def check_cats(request: Request) -> JSONResponse:
    """Authenticate the caller and run one check."""
    config: AppConfig = request.app.state.config
    expected = config.server.cron_secret

    if not expected:
        logger.error("Trigger called but no cron secret is configured")
        return JSONResponse(
            status_code=500,
            content={"error": "Server misconfigured", "details": "Missing cron secret"},
        )

    if not hmac.compare_digest(_provided_secret(request).encode(), expected.encode()):
        logger.warning("Rejected trigger with invalid secret")
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    run_check: RunCheck = request.app.state.run_check
    try:
        result = await run_check()
    except Exception as e:
        logger.exception("Error in check-cats handler")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "message": str(e)},
        )

    return JSONResponse(status_code=200 if result.ok else 500, content=result.to_dict())


@router.get("/health")
async def health() -> dict[str, bool]:
    return {"ok": True}


def create_app(
    config: Optional[AppConfig] = None,
    run_check: Optional[RunCheck] = None,
) -> FastAPI:
    """Return a configured FastAPI application.

    Args:
        config: Application config; loaded from config/settings.yaml if None.
        run_check: Override for the check coroutine. When omitted, the
            lifespan opens the database and wires the real pipeline.
    """
    app_config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if run_check is not None:
            app.state.run_check = run_check
            yield
            return

        db = Database(app_config.store.database_path)
        await db.initialize()
        pipeline, telegram = build_pipeline(app_config, db)
        app.state.run_check = pipeline.run
        try:
            yield
        finally:
            await telegram.close()
            await db.close()

    app = FastAPI(
        title="Catwatch",
        description="Checks an adoption listing for new animals and notifies Telegram subscribers.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.config = app_config
    app.include_router(router)
    return app
