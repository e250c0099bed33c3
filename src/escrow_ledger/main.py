"""FastAPI application entry point for the Escrow Ledger.

Lifecycle:
    1. Startup: Initialize logging, database (tables + ledger state), Redis.
    2. Running: Serve the REST API at /api/v1/* on a single Uvicorn process.
    3. Shutdown: Close database and Redis connections gracefully.

Run with:
    uv run uvicorn escrow_ledger.main:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from escrow_ledger.config import get_settings
from escrow_ledger.logging_config import get_logger, setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    settings = get_settings()

    setup_logging(
        log_level=settings.app_log_level,
        json_logs=not settings.is_development,
        static_context={"env": settings.app_env, "owner": settings.escrow_owner},
    )
    logger = get_logger(__name__)
    logger.info(
        "app.starting",
        env=settings.app_env,
        owner=settings.escrow_owner,
        payout_fee_basis=settings.payout_fee_basis.value,
    )

    from escrow_ledger.infrastructure.database.engine import close_db, init_db

    await init_db()

    # Redis only backs idempotency keys; run without it if unreachable
    from escrow_ledger.infrastructure.redis_client import close_redis, init_redis

    try:
        await init_redis()
    except Exception as exc:
        logger.warning("app.redis_unavailable", error=str(exc))

    logger.info("app.started", host=settings.app_host, port=settings.app_port)

    yield

    logger.info("app.shutting_down")
    await close_db()
    await close_redis()
    logger.info("app.stopped")


def create_app() -> FastAPI:
    """Application factory — creates and configures the FastAPI app."""
    settings = get_settings()

    app = FastAPI(
        title="Escrow Ledger",
        description=(
            "Tri-party escrow with middleman arbitration and pull-based payouts."
        ),
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.app_debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    from escrow_ledger.api.middleware import setup_middleware

    setup_middleware(app)

    from escrow_ledger.api.routes.admin import router as admin_router
    from escrow_ledger.api.routes.agreements import router as agreements_router
    from escrow_ledger.api.routes.balances import router as balances_router
    from escrow_ledger.api.routes.health import router as health_router

    app.include_router(health_router)
    app.include_router(agreements_router)
    app.include_router(balances_router)
    app.include_router(admin_router)

    return app


# The app instance used by Uvicorn
app = create_app()
