"""Ingredient catalogue endpoints for staff — protected by X-Service-Token."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from menuguard.database import get_db
from menuguard.models import Ingredient, Restaurant
from menuguard.routers.deps import get_restaurant_or_404, verify_service_token
from menuguard.schemas.ingredient import (
    IngredientCreate,
    IngredientDetectRequest,
    IngredientDetectResponse,
    IngredientRead,
)
from menuguard.services.allergen_resolver import resolve_allergens
from menuguard.services.ingredients import get_or_create_ingredient, list_ingredients
from menuguard.services.normalizer import normalize_sorted

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ingredients"], dependencies=[Depends(verify_service_token)])


@router.get("/restaurants/{restaurant_id}/ingredients", response_model=list[IngredientRead])
async def get_ingredients(
    restaurant: Restaurant = Depends(get_restaurant_or_404),
    db: AsyncSession = Depends(get_db),
) -> list[Ingredient]:
    return await list_ingredients(db, restaurant.id)


@router.post(
    "/restaurants/{restaurant_id}/ingredients",
    response_model=IngredientRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_ingredient(
    body: IngredientCreate,
    restaurant: Restaurant = Depends(get_restaurant_or_404),
    db: AsyncSession = Depends(get_db),
) -> Ingredient:
    """
    Add an ingredient to the restaurant's catalogue. An existing ingredient
    of the same name (ignoring case) is returned unchanged.
    """
    try:
        return await get_or_create_ingredient(db, restaurant.id, body.name, body.allergens)
    except Exception as exc:
        logger.error("Failed to save ingredient %r: %s", body.name, exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save ingredient",
        ) from exc


@router.post("/ingredients/detect", response_model=IngredientDetectResponse)
async def detect_ingredient_allergens(body: IngredientDetectRequest) -> IngredientDetectResponse:
    """
    Allergens the AI collaborator finds in an ingredient name, normalized.
    An empty list means no signal, not a guarantee of absence.
    """
    found = await resolve_allergens(body.name)
    return IngredientDetectResponse(name=body.name.strip(), allergens=normalize_sorted(found))
