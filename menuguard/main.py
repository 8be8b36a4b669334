"""
MenuGuard — FastAPI application entry point.
Lifespan: create DB tables → seed dietary restrictions → verify connectivity.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from menuguard import __version__
from menuguard.config import settings
from menuguard.database import AsyncSessionLocal, check_db_connectivity, engine
from menuguard.models import Base
from menuguard.routers import (
    customers,
    dietary,
    dishes,
    health,
    ingredients,
    onboarding,
    restaurants,
)
from menuguard.services.restrictions import seed_restrictions

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan handler.
    1. Create all tables (idempotent).
    2. Seed the dietary restriction catalogue (idempotent).
    3. Verify DB connectivity.
    """
    logger.info("Starting MenuGuard (env=%s)", settings.app_env)

    # Step 1: create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created/verified.")

    # Step 2: seed restrictions
    async with AsyncSessionLocal() as session:
        await seed_restrictions(session)

    # Step 3: connectivity check
    ok = await check_db_connectivity()
    if not ok:
        logger.error("Database connectivity check FAILED at startup.")
    else:
        logger.info("Database connectivity verified.")

    if not settings.ai_configured:
        logger.warning("GOOGLE_API_KEY is not set; AI-backed features will return no signal.")

    yield

    logger.info("Shutting down MenuGuard.")
    await engine.dispose()


app = FastAPI(
    title="MenuGuard",
    description="Restaurant menu allergen disclosure and dietary classification.",
    version=__version__,
    lifespan=lifespan,
)

# ── CORS ─────────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────────────────────

app.include_router(health.router)
app.include_router(restaurants.router)
app.include_router(dishes.router)
app.include_router(ingredients.router)
app.include_router(onboarding.router)
app.include_router(dietary.router)
app.include_router(customers.router)


# ── Global exception handler ─────────────────────────────────────────────────

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return a machine-readable error for any unhandled exception."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "code": "SERVICE_UNAVAILABLE"},
    )
