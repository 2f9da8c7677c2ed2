"""FastAPI application entrypoint and lifespan."""

from __future__ import annotations

import asyncio
import random
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from farmeasy.config import get_settings
from farmeasy.errors import FarmEasyError
from farmeasy.middleware.logging import RequestLoggingMiddleware, configure_structured_logging
from farmeasy.routes import assistant, dashboard, legacy, profile
from farmeasy.services.aggregator import FarmDataAggregator
from farmeasy.services.profile_store import ProfileStore
from farmeasy.services.providers import ProviderGateway
from farmeasy.services.snapshot_store import SnapshotStore

logger = structlog.get_logger("farmeasy")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application startup / shutdown lifecycle.

    Startup:
      1. Initialize structured logging
      2. Load the profile and rebuild the snapshot index from disk
      3. Build the provider gateway and aggregator
      4. Check the chat agent when one is configured (failure is logged only)
    """
    settings = get_settings()
    configure_structured_logging(settings)
    logger.info(
        "farmeasy_starting",
        port=settings.port,
        cors_origin=settings.cors_origin,
        search_zones_configured=settings.search_zones_configured,
        chat_configured=settings.chat_configured,
        auth_enabled=bool(settings.auth_token),
    )

    profile_store = ProfileStore(settings.resolved_profile_path)
    await asyncio.to_thread(profile_store.load)
    snapshot_store = SnapshotStore(settings.resolved_snapshot_dir)
    await asyncio.to_thread(snapshot_store.rebuild_index)
    gateway = ProviderGateway(settings)

    app.state.profile_store = profile_store
    app.state.snapshot_store = snapshot_store
    app.state.legacy_store = SnapshotStore(settings.resolved_legacy_output_dir)
    app.state.gateway = gateway
    app.state.aggregator = FarmDataAggregator(gateway)
    app.state.rng = random.Random()

    if settings.chat_configured:
        try:
            agent = await gateway.verify_agent()
            logger.info("chat_agent_verified", agent_name=agent.get("name"))
        except (FarmEasyError, httpx.HTTPError) as exc:
            logger.warning("chat_agent_unavailable", error=str(exc))

    yield

    logger.info("farmeasy_shutting_down")


app = FastAPI(
    title="FarmEasy API",
    description=(
        "Farm advisory API that aggregates per-location agronomic data "
        "into timestamped snapshots and serves dashboard views from them."
    ),
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── Middleware ──────────────────────────────────────────────────────────────
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[get_settings().cors_origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Error handlers ──────────────────────────────────────────────────────────
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    content: dict[str, Any] = exc.detail if isinstance(exc.detail, dict) else {"error": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "error": "validation_error",
            "message": "Request body is invalid",
            "details": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "unhandled_error",
        method=request.method,
        path=request.url.path,
        error=str(exc),
    )
    return JSONResponse(status_code=500, content={"error": "An unexpected error occurred."})


# ── Health check ────────────────────────────────────────────────────────────
@app.get("/", tags=["system"])
async def root() -> dict[str, str]:
    return {
        "status": "ok",
        "message": "Farm Easy Backend API",
        "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
    }


@app.get("/health", tags=["system"])
async def health_check() -> dict[str, str]:
    """Liveness probe; touches neither storage nor providers."""
    return {
        "status": "ok",
        "service": "farmeasy",
        "version": "0.1.0",
    }


# ── Router registration ────────────────────────────────────────────────────
app.include_router(profile.router, prefix="/api")
app.include_router(dashboard.router, prefix="/api")
app.include_router(assistant.router, prefix="/api")
app.include_router(legacy.router, prefix="/api")


def run() -> None:
    settings = get_settings()
    uvicorn.run("farmeasy.main:app", host="0.0.0.0", port=settings.port)
