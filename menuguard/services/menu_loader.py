"""
Menu loader — joined reads of dishes with their ingredient links,
substitutes and cooking steps, converted into core DishBundle values.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from menuguard.models import CookingStep, Dish, DishIngredient, IngredientSubstitute
from menuguard.schemas.menu import (
    NUTRITION_FIELDS,
    DishBundle,
    IngredientUse,
    StepInfo,
    SubstituteInfo,
)
from menuguard.services.normalizer import normalize_sorted

logger = logging.getLogger(__name__)


def _dish_options() -> list:
    links = selectinload(Dish.ingredient_links)
    return [
        links.selectinload(DishIngredient.ingredient),
        links.selectinload(DishIngredient.substitutes).selectinload(
            IngredientSubstitute.substitute_ingredient
        ),
        selectinload(Dish.cooking_steps),
    ]


async def load_dish(
    db: AsyncSession,
    dish_id: str,
    include_inactive: bool = False,
) -> Optional[Dish]:
    """Fetch one dish with everything the aggregator needs, or None."""
    stmt = (
        select(Dish)
        .where(Dish.id == dish_id)
        .options(*_dish_options())
        .execution_options(populate_existing=True)
    )
    if not include_inactive:
        stmt = stmt.where(Dish.is_active.is_(True))
    result = await db.execute(stmt)
    return result.scalars().first()


async def load_menu(db: AsyncSession, restaurant_id: str) -> list[Dish]:
    """Active dishes of a restaurant ordered by category, then name."""
    result = await db.execute(
        select(Dish)
        .where(Dish.restaurant_id == restaurant_id, Dish.is_active.is_(True))
        .options(*_dish_options())
        .order_by(Dish.category, Dish.name)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


def bundle_from_row(dish: Dish) -> DishBundle:
    """Convert an ORM dish (relationships loaded) into a DishBundle."""
    ingredients = [
        IngredientUse(
            link_id=link.id,
            ingredient_id=link.ingredient_id,
            name=link.ingredient.name,
            allergens=normalize_sorted(link.ingredient.contains_allergens),
            amount_value=link.amount_value,
            amount_unit=link.amount_unit,
            is_removable=link.is_removable,
            is_substitutable=link.is_substitutable,
            substitutes=[
                SubstituteInfo(
                    name=sub.substitute_ingredient.name,
                    allergens=normalize_sorted(sub.substitute_ingredient.contains_allergens),
                )
                for sub in link.substitutes
            ] if link.is_substitutable else [],
        )
        for link in dish.ingredient_links
    ]
    steps = [_step_info(step) for step in dish.cooking_steps]
    return DishBundle(
        id=dish.id,
        name=dish.name,
        category=dish.category,
        price=dish.price,
        description=dish.description,
        description_allergens=normalize_sorted(dish.description_allergens),
        ingredients=ingredients,
        cooking_steps=steps,
        **{f: getattr(dish, f) for f in NUTRITION_FIELDS},
    )


def _step_info(step: CookingStep) -> StepInfo:
    return StepInfo(
        step_number=step.step_number,
        description=step.description or "",
        cross_contact_risk=normalize_sorted(step.cross_contact_risk),
        is_modifiable=step.is_modifiable,
        modifiable_allergens=normalize_sorted(step.modifiable_allergens),
        modification_notes=step.modification_notes,
    )


async def load_menu_bundles(db: AsyncSession, restaurant_id: str) -> list[DishBundle]:
    """load_menu() converted to DishBundle values."""
    dishes = await load_menu(db, restaurant_id)
    logger.debug("Loaded %d dishes for restaurant %s", len(dishes), restaurant_id)
    return [bundle_from_row(d) for d in dishes]
