"""
Shared router dependencies: header authentication and 404 lookups.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from menuguard.config import settings
from menuguard.database import get_db
from menuguard.models import CustomerProfile, Dish, Restaurant

# ── Auth dependencies ────────────────────────────────────────────────────────


async def verify_service_token(
    x_service_token: str = Header(..., alias="X-Service-Token"),
) -> None:
    """Verify that the staff service token matches the configured secret."""
    if x_service_token != settings.service_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid service token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def require_session_token(
    x_session_token: Optional[str] = Header(default=None, alias="X-Session-Token"),
) -> str:
    """
    Return the caller-supplied customer session token.
    Tokens are opaque, 1–128 printable characters; this service never mints them.
    """
    token = (x_session_token or "").strip()
    if not token or len(token) > 128 or not token.isprintable():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Session-Token header is missing or invalid",
            headers={"X-Error-Code": "INVALID_SESSION"},
        )
    return token


# ── Lookups ──────────────────────────────────────────────────────────────────


def not_found(detail: str, code: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=detail,
        headers={"X-Error-Code": code},
    )


async def get_restaurant_or_404(
    restaurant_id: str,
    db: AsyncSession = Depends(get_db),
) -> Restaurant:
    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is None:
        raise not_found("Restaurant not found", "RESTAURANT_NOT_FOUND")
    return restaurant


async def get_restaurant_by_qr(db: AsyncSession, qr_code: str) -> Restaurant:
    result = await db.execute(select(Restaurant).where(Restaurant.qr_code == qr_code))
    restaurant = result.scalars().first()
    if restaurant is None:
        raise not_found("Restaurant not found", "RESTAURANT_NOT_FOUND")
    return restaurant


async def get_active_dish_or_404(db: AsyncSession, dish_id: str) -> Dish:
    dish = await db.get(Dish, dish_id)
    if dish is None or not dish.is_active:
        raise not_found("Dish not found", "DISH_NOT_FOUND")
    return dish


async def find_profile(db: AsyncSession, session_token: str) -> Optional[CustomerProfile]:
    result = await db.execute(
        select(CustomerProfile).where(CustomerProfile.session_token == session_token)
    )
    return result.scalars().first()


def save_failed(what: str) -> HTTPException:
    """Flat 500 for a write that could not be committed."""
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {what}",
    )
