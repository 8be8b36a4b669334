"""Health check endpoints — used by load balancers and uptime monitoring."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from menuguard import __version__
from menuguard.config import settings
from menuguard.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    """Liveness probe — returns 200 if the process is running."""
    return {"status": "ok", "version": __version__}


@router.get("/ready")
async def ready(db: AsyncSession = Depends(get_db)) -> JSONResponse:
    """
    Readiness probe — checks DB connectivity.
    Returns 200 with {"db": "ok", ...} when ready, 503 with "db": "error"
    otherwise. A missing AI key is reported but does not fail readiness,
    since every AI-backed feature degrades to "no signal".
    """
    status: dict[str, str] = {}

    try:
        await db.execute(text("SELECT 1"))
        status["db"] = "ok"
    except Exception as exc:
        logger.warning("Readiness DB check failed: %s", exc)
        status["db"] = "error"

    status["ai"] = "configured" if settings.ai_configured else "unconfigured"

    http_status = 200 if status["db"] == "ok" else 503
    return JSONResponse(content=status, status_code=http_status)
