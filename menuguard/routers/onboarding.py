"""
Menu onboarding by photo — staff only, protected by X-Service-Token.

POST /restaurants/{id}/scan reads dishes off a menu photo and flags those
resembling dishes already on the menu; POST /restaurants/{id}/scan/apply
applies the staff's create / update / skip decision for each one.
"""

from __future__ import annotations

import logging
import math

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from menuguard.config import settings
from menuguard.database import get_db
from menuguard.models import Dish, Restaurant
from menuguard.routers.deps import get_restaurant_or_404, save_failed, verify_service_token
from menuguard.schemas.dish import DishDraft
from menuguard.schemas.scan import (
    CatalogDish,
    ImagePayload,
    ScanApplyRequest,
    ScanApplyResult,
    ScannedDish,
    ScanResult,
)
from menuguard.services import ai_client
from menuguard.services.ai_client import Err
from menuguard.services.dish_writer import create_dish
from menuguard.services.matcher import detect_scan_conflicts

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/restaurants",
    tags=["onboarding"],
    dependencies=[Depends(verify_service_token)],
)


def parse_price(raw: str) -> float:
    """Scanned prices are digit strings; anything unparseable or non-finite becomes 0."""
    try:
        value = float(raw)
    except ValueError:
        return 0.0
    return max(value, 0.0) if math.isfinite(value) else 0.0


async def _catalog(db: AsyncSession, restaurant_id: str) -> list[CatalogDish]:
    result = await db.execute(
        select(Dish.id, Dish.name, Dish.category)
        .where(Dish.restaurant_id == restaurant_id, Dish.is_active.is_(True))
        .order_by(Dish.name)
    )
    return [CatalogDish(id=r.id, name=r.name, category=r.category) for r in result.fetchall()]


@router.post("/{restaurant_id}/scan", response_model=ScanResult)
async def scan_menu(
    body: ImagePayload,
    restaurant: Restaurant = Depends(get_restaurant_or_404),
    db: AsyncSession = Depends(get_db),
) -> ScanResult:
    """
    Extract dishes from a menu photo. Nothing is saved. When the model is
    unavailable the result is empty with an explanatory message.
    """
    outcome = await ai_client.scan_menu_image(body.image)
    if isinstance(outcome, Err):
        logger.warning("Menu scan for %s failed: %s", restaurant.id, outcome.error)
        return ScanResult(message="Could not read the menu photo. Please add dishes manually.")

    scanned = outcome.value
    existing = await _catalog(db, restaurant.id)
    conflicts, fresh = detect_scan_conflicts(scanned, existing, settings.match_threshold)
    message = None if scanned else "No dishes were found on the photo."
    return ScanResult(dishes=scanned, conflicts=conflicts, new_dishes=fresh, message=message)


def _draft(scanned: ScannedDish) -> DishDraft:
    return DishDraft(
        name=scanned.name,
        category=scanned.category or "Other",
        price=parse_price(scanned.price),
        description=scanned.description or None,
    )


@router.post("/{restaurant_id}/scan/apply", response_model=ScanApplyResult)
async def apply_scan(
    body: ScanApplyRequest,
    restaurant: Restaurant = Depends(get_restaurant_or_404),
    db: AsyncSession = Depends(get_db),
) -> ScanApplyResult:
    """
    Apply staff decisions: create a new dish, overwrite an existing dish's
    name, category, price and description, or skip. An update aimed at a
    dish that is gone or belongs elsewhere is created as a new dish instead.
    """
    result = ScanApplyResult()
    for resolution in body.resolutions:
        if resolution.action == "skip":
            result.skipped += 1
            continue

        target = None
        if resolution.action == "update" and resolution.existing_id:
            target = await db.get(Dish, resolution.existing_id)
            if target is not None and (
                target.restaurant_id != restaurant.id or not target.is_active
            ):
                target = None

        scanned = resolution.scanned
        if target is None:
            try:
                dish_id = await create_dish(db, restaurant.id, _draft(scanned))
            except Exception as exc:
                raise save_failed("save dish") from exc
            result.created.append(dish_id)
            continue

        target.name = scanned.name
        target.category = scanned.category or "Other"
        target.price = parse_price(scanned.price)
        if scanned.description:
            target.description = scanned.description
        try:
            await db.commit()
        except Exception as exc:
            await db.rollback()
            logger.error("Failed to update dish %s from scan: %s", target.id, exc)
            raise save_failed("update dish") from exc
        result.updated.append(target.id)

    logger.info(
        "Scan applied for %s: %d created, %d updated, %d skipped",
        restaurant.id, len(result.created), len(result.updated), result.skipped,
    )
    return result
