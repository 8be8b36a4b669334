"""
Dish endpoints for staff — all protected by X-Service-Token.

Dishes are created from a full DishDraft, then edited piecewise: own fields,
ingredient links (with substitutes) and cooking steps. Every read returns the
aggregated allergen view recomputed from fresh rows.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from menuguard.database import get_db
from menuguard.models import CookingStep, DishIngredient, IngredientSubstitute, Restaurant
from menuguard.routers.deps import (
    get_active_dish_or_404,
    get_restaurant_or_404,
    not_found,
    save_failed,
    verify_service_token,
)
from menuguard.schemas.allergen import AllergenAggregate
from menuguard.schemas.dish import (
    DishDetail,
    DishDraft,
    DishPatch,
    DishSummary,
    DraftPreview,
    IngredientDraft,
    IngredientLinkPatch,
    StepDraft,
    StepPatch,
)
from menuguard.schemas.ingredient import IngredientSuggestion
from menuguard.schemas.menu import Nutrition
from menuguard.services import ai_client
from menuguard.services.ai_client import Err
from menuguard.services.aggregator import aggregate
from menuguard.services.dish_writer import (
    build_link,
    build_step,
    create_dish,
    renumber_steps,
    resolve_ingredient,
    step_risks_for,
)
from menuguard.services.drafts import to_bundle
from menuguard.services.ingredients import get_or_create_ingredient, list_ingredients
from menuguard.services.menu_loader import bundle_from_row, load_dish, load_menu_bundles
from menuguard.services.normalizer import normalize_sorted

logger = logging.getLogger(__name__)

router = APIRouter(tags=["dishes"], dependencies=[Depends(verify_service_token)])

_REQUIRED_DISH_FIELDS = ("name", "category", "price")


# ── Helpers ──────────────────────────────────────────────────────────────────


async def _detail(db: AsyncSession, dish_id: str) -> DishDetail:
    dish = await load_dish(db, dish_id)
    if dish is None:
        raise not_found("Dish not found", "DISH_NOT_FOUND")
    bundle = bundle_from_row(dish)
    return DishDetail(
        **bundle.model_dump(),
        restaurant_id=dish.restaurant_id,
        is_active=dish.is_active,
        allergens=aggregate(bundle),
    )


async def _commit(db: AsyncSession, what: str) -> None:
    try:
        await db.commit()
    except Exception as exc:
        await db.rollback()
        logger.error("Failed to %s: %s", what, exc)
        raise save_failed(what) from exc


async def _link_or_404(db: AsyncSession, dish_id: str, link_id: str) -> DishIngredient:
    link = await db.get(DishIngredient, link_id)
    if link is None or link.dish_id != dish_id:
        raise not_found("Ingredient not found on this dish", "INGREDIENT_NOT_FOUND")
    return link


async def _steps(db: AsyncSession, dish_id: str) -> list[CookingStep]:
    result = await db.execute(
        select(CookingStep)
        .where(CookingStep.dish_id == dish_id)
        .order_by(CookingStep.step_number)
    )
    return list(result.scalars().all())


def _step_or_404(steps: list[CookingStep], step_number: int) -> CookingStep:
    if not 1 <= step_number <= len(steps):
        raise not_found("Step not found", "STEP_NOT_FOUND")
    return steps[step_number - 1]


# ── Menu ─────────────────────────────────────────────────────────────────────


@router.get("/restaurants/{restaurant_id}/dishes", response_model=list[DishSummary])
async def list_dishes(
    restaurant: Restaurant = Depends(get_restaurant_or_404),
    db: AsyncSession = Depends(get_db),
) -> list[DishSummary]:
    """Active dishes ordered by category, then name."""
    bundles = await load_menu_bundles(db, restaurant.id)
    return [
        DishSummary(
            id=b.id,
            name=b.name,
            category=b.category,
            price=b.price,
            description=b.description,
            all_allergens=aggregate(b).all_allergens,
        )
        for b in bundles
    ]


@router.post(
    "/restaurants/{restaurant_id}/dishes",
    response_model=DishDetail,
    status_code=status.HTTP_201_CREATED,
)
async def create_dish_endpoint(
    draft: DishDraft,
    restaurant: Restaurant = Depends(get_restaurant_or_404),
    db: AsyncSession = Depends(get_db),
) -> DishDetail:
    """
    Save a complete dish draft. Allergen lists left as null are detected
    by the AI collaborator; when it is unavailable they are saved empty.
    """
    try:
        dish_id = await create_dish(db, restaurant.id, draft)
    except Exception as exc:
        raise save_failed("save dish") from exc
    return await _detail(db, dish_id)


@router.post("/restaurants/{restaurant_id}/dishes/preview", response_model=DraftPreview)
async def preview_dish(
    draft: DishDraft,
    restaurant: Restaurant = Depends(get_restaurant_or_404),
) -> DraftPreview:
    """Aggregate an unsaved draft. Nothing is detected or written."""
    bundle = to_bundle(draft)
    return DraftPreview(dish=bundle, allergens=aggregate(bundle))


# ── Single dish ──────────────────────────────────────────────────────────────


@router.get("/dishes/{dish_id}", response_model=DishDetail)
async def get_dish(dish_id: str, db: AsyncSession = Depends(get_db)) -> DishDetail:
    return await _detail(db, dish_id)


@router.patch("/dishes/{dish_id}", response_model=DishDetail)
async def patch_dish(
    dish_id: str,
    body: DishPatch,
    db: AsyncSession = Depends(get_db),
) -> DishDetail:
    """Update a dish's own fields; only the fields sent are changed."""
    dish = await get_active_dish_or_404(db, dish_id)
    changes = body.model_dump(exclude_unset=True)
    if "description_allergens" in changes:
        changes["description_allergens"] = normalize_sorted(changes["description_allergens"] or [])
    for field, value in changes.items():
        if value is None and field in _REQUIRED_DISH_FIELDS:
            continue
        setattr(dish, field, value)
    await _commit(db, "update dish")
    return await _detail(db, dish_id)


@router.delete("/dishes/{dish_id}")
async def delete_dish(dish_id: str, db: AsyncSession = Depends(get_db)) -> Response:
    """Soft-delete: the dish disappears from menus but its rows are kept."""
    dish = await get_active_dish_or_404(db, dish_id)
    dish.is_active = False
    await _commit(db, "delete dish")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/dishes/{dish_id}/allergens", response_model=AllergenAggregate)
async def dish_allergens(dish_id: str, db: AsyncSession = Depends(get_db)) -> AllergenAggregate:
    return (await _detail(db, dish_id)).allergens


# ── Ingredient links ─────────────────────────────────────────────────────────


@router.post(
    "/dishes/{dish_id}/ingredients",
    response_model=DishDetail,
    status_code=status.HTTP_201_CREATED,
)
async def add_dish_ingredient(
    dish_id: str,
    body: IngredientDraft,
    db: AsyncSession = Depends(get_db),
) -> DishDetail:
    """Link an ingredient (created on first use) to a dish."""
    dish = await get_active_dish_or_404(db, dish_id)
    ingredient_id, substitute_ids = await resolve_ingredient(db, dish.restaurant_id, body)

    linked = await db.execute(
        select(DishIngredient.id).where(
            DishIngredient.dish_id == dish_id,
            DishIngredient.ingredient_id == ingredient_id,
        )
    )
    if linked.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"{body.name} is already an ingredient of this dish",
            headers={"X-Error-Code": "INGREDIENT_ALREADY_LINKED"},
        )

    last = await db.execute(
        select(func.max(DishIngredient.position)).where(DishIngredient.dish_id == dish_id)
    )
    top = last.scalar()
    position = 0 if top is None else top + 1
    db.add(build_link(dish_id, body, position, ingredient_id, substitute_ids))
    await _commit(db, "add ingredient")
    return await _detail(db, dish_id)


@router.patch("/dishes/{dish_id}/ingredients/{link_id}", response_model=DishDetail)
async def patch_dish_ingredient(
    dish_id: str,
    link_id: str,
    body: IngredientLinkPatch,
    db: AsyncSession = Depends(get_db),
) -> DishDetail:
    """
    Update amount and modification flags of an ingredient link.
    A link that is not substitutable keeps no substitutes.
    """
    dish = await get_active_dish_or_404(db, dish_id)
    restaurant_id = dish.restaurant_id
    link = await _link_or_404(db, dish_id, link_id)
    ingredient_id = link.ingredient_id
    substitutable = (
        body.is_substitutable if body.is_substitutable is not None else link.is_substitutable
    )

    # Substitutes are get-or-created first; each creation commits on its own
    substitute_ids: Optional[list[str]] = None
    if not substitutable:
        substitute_ids = []
    elif body.substitutes is not None:
        substitute_ids = []
        for substitute in body.substitutes:
            row = await get_or_create_ingredient(
                db, restaurant_id, substitute.name, substitute.allergens
            )
            if row.id not in substitute_ids and row.id != ingredient_id:
                substitute_ids.append(row.id)

    link = await _link_or_404(db, dish_id, link_id)
    for field, value in body.model_dump(exclude_unset=True, exclude={"substitutes"}).items():
        if value is not None or field in ("amount_value", "amount_unit"):
            setattr(link, field, value)

    if substitute_ids is not None:
        current = await db.execute(
            select(IngredientSubstitute).where(IngredientSubstitute.link_id == link.id)
        )
        for row in current.scalars().all():
            await db.delete(row)
        db.add_all(
            IngredientSubstitute(link_id=link.id, substitute_ingredient_id=sid)
            for sid in substitute_ids
        )
    await _commit(db, "update ingredient")
    return await _detail(db, dish_id)


@router.delete("/dishes/{dish_id}/ingredients/{link_id}", response_model=DishDetail)
async def delete_dish_ingredient(
    dish_id: str,
    link_id: str,
    db: AsyncSession = Depends(get_db),
) -> DishDetail:
    await get_active_dish_or_404(db, dish_id)
    link = await _link_or_404(db, dish_id, link_id)
    # Substitute rows go with the link through the relationship cascade
    await db.delete(link)
    await _commit(db, "remove ingredient")
    return await _detail(db, dish_id)


# ── Cooking steps ────────────────────────────────────────────────────────────


@router.post(
    "/dishes/{dish_id}/steps",
    response_model=DishDetail,
    status_code=status.HTTP_201_CREATED,
)
async def add_step(
    dish_id: str,
    body: StepDraft,
    db: AsyncSession = Depends(get_db),
) -> DishDetail:
    """Append a cooking step; risks left null are auto-detected."""
    await get_active_dish_or_404(db, dish_id)
    (risks,) = await step_risks_for([body])
    steps = await _steps(db, dish_id)
    db.add(build_step(dish_id, len(steps) + 1, body, risks))
    await _commit(db, "add step")
    return await _detail(db, dish_id)


@router.patch("/dishes/{dish_id}/steps/{step_number}", response_model=DishDetail)
async def patch_step(
    dish_id: str,
    step_number: int,
    body: StepPatch,
    db: AsyncSession = Depends(get_db),
) -> DishDetail:
    """Edit a step. Sending step_number moves it to that position."""
    await get_active_dish_or_404(db, dish_id)
    steps = await _steps(db, dish_id)
    step = _step_or_404(steps, step_number)
    changes = body.model_dump(exclude_unset=True, exclude={"step_number"})
    for field in ("cross_contact_risk", "modifiable_allergens"):
        if field in changes:
            changes[field] = normalize_sorted(changes[field] or [])
    for field, value in changes.items():
        if value is not None or field == "modification_notes":
            setattr(step, field, value)

    if body.step_number is not None and body.step_number != step_number:
        _step_or_404(steps, body.step_number)
        steps.insert(body.step_number - 1, steps.pop(step_number - 1))
        renumber_steps(steps)
    await _commit(db, "update step")
    return await _detail(db, dish_id)


@router.delete("/dishes/{dish_id}/steps/{step_number}", response_model=DishDetail)
async def delete_step(
    dish_id: str,
    step_number: int,
    db: AsyncSession = Depends(get_db),
) -> DishDetail:
    """Delete a step; the following steps are renumbered to stay contiguous."""
    await get_active_dish_or_404(db, dish_id)
    steps = await _steps(db, dish_id)
    step = _step_or_404(steps, step_number)
    await db.delete(step)
    steps.remove(step)
    renumber_steps(steps)
    await _commit(db, "delete step")
    return await _detail(db, dish_id)


# ── AI helpers ───────────────────────────────────────────────────────────────


@router.post("/dishes/{dish_id}/nutrition/estimate", response_model=Nutrition)
async def estimate_nutrition(
    dish_id: str,
    apply: bool = Query(default=False),
    db: AsyncSession = Depends(get_db),
) -> Nutrition:
    """
    Estimate nutrition from ingredient amounts. With apply=true the estimate
    overwrites the dish's panel. An unavailable model returns an empty panel.
    """
    detail = await _detail(db, dish_id)
    ingredients = [
        {"name": i.name, "amount": i.amount_value, "unit": i.amount_unit}
        for i in detail.ingredients
    ]
    outcome = await ai_client.estimate_nutrition(detail.name, ingredients)
    if isinstance(outcome, Err):
        return Nutrition()

    estimate = outcome.value
    if apply:
        dish = await get_active_dish_or_404(db, dish_id)
        for field, value in estimate.model_dump().items():
            setattr(dish, field, value)
        await _commit(db, "save nutrition")
    return estimate


@router.post("/dishes/{dish_id}/ingredients/suggest", response_model=list[IngredientSuggestion])
async def suggest_ingredients(
    dish_id: str,
    db: AsyncSession = Depends(get_db),
) -> list[IngredientSuggestion]:
    """Likely ingredients for the dish, preferring the restaurant's known ones."""
    dish = await get_active_dish_or_404(db, dish_id)
    known = await list_ingredients(db, dish.restaurant_id)
    existing = [
        {"id": i.id, "name": i.name, "allergens": list(i.contains_allergens or [])}
        for i in known
    ]
    outcome = await ai_client.suggest_ingredients(dish.name, dish.description or "", existing)
    if isinstance(outcome, Err):
        return []
    for suggestion in outcome.value:
        suggestion.allergens = normalize_sorted(suggestion.allergens)
    return outcome.value
