"""
Ingredient catalogue helpers. Ingredient names are unique per restaurant,
case-insensitively; a concurrent insert of the same name is recovered by
reading back the row that won.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from menuguard.models import Ingredient
from menuguard.schemas.ingredient import name_key
from menuguard.services.allergen_resolver import resolve_allergens
from menuguard.services.normalizer import normalize_sorted

logger = logging.getLogger(__name__)


async def find_ingredient(
    db: AsyncSession,
    restaurant_id: str,
    name: str,
) -> Optional[Ingredient]:
    result = await db.execute(
        select(Ingredient).where(
            Ingredient.restaurant_id == restaurant_id,
            Ingredient.name_key == name_key(name),
        )
    )
    return result.scalars().first()


async def get_or_create_ingredient(
    db: AsyncSession,
    restaurant_id: str,
    name: str,
    allergens: Optional[list[str]] = None,
) -> Ingredient:
    """
    Return the restaurant's ingredient called `name`, creating it if needed.

    A new ingredient gets `allergens` normalized, or auto-detected ones when
    allergens is None. The insert is committed on its own so a uniqueness
    collision can roll back without losing other pending work.
    """
    existing = await find_ingredient(db, restaurant_id, name)
    if existing is not None:
        return existing

    if allergens is None:
        detected = await resolve_allergens(name)
        contains = normalize_sorted(detected)
    else:
        contains = normalize_sorted(allergens)

    ingredient = Ingredient(
        restaurant_id=restaurant_id,
        name=" ".join(name.split()),
        name_key=name_key(name),
        contains_allergens=contains,
    )
    db.add(ingredient)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info("Ingredient %r already exists for %s, reusing it", name, restaurant_id)
        existing = await find_ingredient(db, restaurant_id, name)
        if existing is None:
            raise
        return existing
    return ingredient


async def list_ingredients(db: AsyncSession, restaurant_id: str) -> list[Ingredient]:
    result = await db.execute(
        select(Ingredient)
        .where(Ingredient.restaurant_id == restaurant_id)
        .order_by(Ingredient.name_key)
    )
    return list(result.scalars().all())
