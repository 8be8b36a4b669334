"""Dietary-category views of a restaurant menu — staff only."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from menuguard.database import get_db
from menuguard.models import Restaurant
from menuguard.routers.deps import get_restaurant_or_404, not_found, verify_service_token
from menuguard.schemas.allergen import DietaryCategoryResult
from menuguard.services.dietary_classifier import UnknownCategoryError, classify, classify_menu
from menuguard.services.menu_loader import load_menu_bundles

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/restaurants",
    tags=["dietary"],
    dependencies=[Depends(verify_service_token)],
)


@router.get("/{restaurant_id}/dietary", response_model=list[DietaryCategoryResult])
async def dietary_overview(
    restaurant: Restaurant = Depends(get_restaurant_or_404),
    db: AsyncSession = Depends(get_db),
) -> list[DietaryCategoryResult]:
    """Every dietary category with its qualifying dishes and menu status."""
    dishes = await load_menu_bundles(db, restaurant.id)
    return await classify_menu(dishes)


@router.get("/{restaurant_id}/dietary/{category_id}", response_model=DietaryCategoryResult)
async def dietary_category(
    category_id: str,
    restaurant: Restaurant = Depends(get_restaurant_or_404),
    db: AsyncSession = Depends(get_db),
) -> DietaryCategoryResult:
    dishes = await load_menu_bundles(db, restaurant.id)
    try:
        return await classify(category_id, dishes)
    except UnknownCategoryError as exc:
        raise not_found(str(exc), "UNKNOWN_CATEGORY") from exc
