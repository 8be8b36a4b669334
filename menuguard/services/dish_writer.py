"""
Dish persistence — turns a DishDraft into rows, filling in allergen lists
the staff form left for auto-detection.

Ingredients are get-or-created (and committed) first; the dish, its links,
substitutes and steps are then written in one transaction.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from menuguard.database import generate_uuid
from menuguard.models import CookingStep, Dish, DishIngredient, IngredientSubstitute
from menuguard.schemas.dish import DishDraft, IngredientDraft, StepDraft
from menuguard.schemas.menu import NUTRITION_FIELDS
from menuguard.services.allergen_resolver import (
    resolve_cross_contact,
    resolve_description_allergens,
)
from menuguard.services.ingredients import get_or_create_ingredient
from menuguard.services.normalizer import normalize_sorted

logger = logging.getLogger(__name__)


async def _empty() -> set[str]:
    return set()


async def description_allergens_for(
    description: Optional[str],
    given: Optional[list[str]],
) -> list[str]:
    """Normalized allergens as given, or detected from the description when None."""
    if given is not None:
        return normalize_sorted(given)
    return normalize_sorted(await resolve_description_allergens(description or ""))


async def step_risks_for(steps: list[StepDraft]) -> list[list[str]]:
    """Cross-contact risks per step, detecting concurrently where none were given."""
    detected = await asyncio.gather(*(
        resolve_cross_contact(s.description) if s.cross_contact_risk is None else _empty()
        for s in steps
    ))
    return [
        normalize_sorted(s.cross_contact_risk) if s.cross_contact_risk is not None
        else normalize_sorted(found)
        for s, found in zip(steps, detected)
    ]


async def resolve_ingredient(
    db: AsyncSession,
    restaurant_id: str,
    draft: IngredientDraft,
) -> tuple[str, list[str]]:
    """Get-or-create an ingredient and its substitutes; return their ids."""
    ingredient = await get_or_create_ingredient(db, restaurant_id, draft.name, draft.allergens)
    substitute_ids: list[str] = []
    if draft.is_substitutable:
        for substitute in draft.substitutes:
            row = await get_or_create_ingredient(
                db, restaurant_id, substitute.name, substitute.allergens
            )
            if row.id not in substitute_ids and row.id != ingredient.id:
                substitute_ids.append(row.id)
    return ingredient.id, substitute_ids


def build_link(
    dish_id: str,
    draft: IngredientDraft,
    position: int,
    ingredient_id: str,
    substitute_ids: list[str],
) -> DishIngredient:
    """Join row for one ingredient of a dish, with its substitutes."""
    link = DishIngredient(
        dish_id=dish_id,
        ingredient_id=ingredient_id,
        position=position,
        amount_value=draft.amount_value,
        amount_unit=draft.amount_unit,
        is_removable=draft.is_removable,
        is_substitutable=draft.is_substitutable,
    )
    link.substitutes = [
        IngredientSubstitute(substitute_ingredient_id=sid) for sid in substitute_ids
    ]
    return link


def build_step(dish_id: str, step_number: int, draft: StepDraft, risks: list[str]) -> CookingStep:
    return CookingStep(
        dish_id=dish_id,
        step_number=step_number,
        description=draft.description,
        cross_contact_risk=risks,
        is_modifiable=draft.is_modifiable,
        modifiable_allergens=normalize_sorted(draft.modifiable_allergens),
        modification_notes=draft.modification_notes,
    )


async def create_dish(db: AsyncSession, restaurant_id: str, draft: DishDraft) -> str:
    """
    Persist a full dish draft and return the new dish id.
    Raises on commit failure after rolling back; callers map that to a 500.
    """
    description_allergens, risks = await asyncio.gather(
        description_allergens_for(draft.description, draft.description_allergens),
        step_risks_for(draft.steps),
    )
    # One session cannot run statements concurrently, so ingredients go in order
    resolved = [
        await resolve_ingredient(db, restaurant_id, ingredient)
        for ingredient in draft.ingredients
    ]

    dish_id = generate_uuid()
    dish = Dish(
        id=dish_id,
        restaurant_id=restaurant_id,
        name=draft.name.strip(),
        category=draft.category.strip() or "Other",
        price=draft.price,
        description=draft.description,
        description_allergens=description_allergens,
        is_active=True,
        **{f: getattr(draft, f) for f in NUTRITION_FIELDS},
    )
    links = [
        build_link(dish_id, ingredient, position, ingredient_id, substitute_ids)
        for position, (ingredient, (ingredient_id, substitute_ids))
        in enumerate(zip(draft.ingredients, resolved))
    ]
    steps = [
        build_step(dish_id, n, step, step_risks)
        for n, (step, step_risks) in enumerate(zip(draft.steps, risks), start=1)
    ]
    db.add(dish)
    db.add_all(links + steps)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        logger.exception("Failed to save dish %r", draft.name)
        raise
    logger.info("Created dish %s (%s) for restaurant %s", dish_id, dish.name, restaurant_id)
    return dish_id


def renumber_steps(steps: list[CookingStep]) -> None:
    """Rewrite step numbers to 1..n in the given order."""
    for n, step in enumerate(steps, start=1):
        step.step_number = n
