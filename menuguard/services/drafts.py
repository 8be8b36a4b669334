"""
Dish draft builder — pure update functions over DishDraft.

Every function returns a new draft and leaves its input untouched, so the
staff form state can be replayed and previewed through the aggregator
without a database.
"""

from __future__ import annotations

from typing import Any

from menuguard.schemas.dish import DishDraft, IngredientDraft, StepDraft, SubstituteDraft
from menuguard.schemas.ingredient import name_key
from menuguard.schemas.menu import (
    NUTRITION_FIELDS,
    DishBundle,
    IngredientUse,
    StepInfo,
    SubstituteInfo,
)
from menuguard.services.normalizer import normalize_sorted

DRAFT_DISH_ID = "draft"


class DraftError(ValueError):
    """Raised when an update would break a draft invariant."""


def _index_of(draft: DishDraft, name: str) -> int:
    for index, ingredient in enumerate(draft.ingredients):
        if name_key(ingredient.name) == name_key(name):
            return index
    raise DraftError(f"No ingredient named {name!r} in draft")


def _step_index(draft: DishDraft, step_number: int) -> int:
    if not 1 <= step_number <= len(draft.steps):
        raise DraftError(f"No step {step_number} in draft")
    return step_number - 1


def _with(draft: DishDraft, **changes: Any) -> DishDraft:
    # model_validate re-runs the draft validators on the new state
    return DishDraft.model_validate({**draft.model_dump(), **changes})


# ── Ingredients ──────────────────────────────────────────────────────────────


def add_ingredient(draft: DishDraft, ingredient: IngredientDraft) -> DishDraft:
    """Append an ingredient; names must stay unique (case-insensitive)."""
    if any(name_key(i.name) == name_key(ingredient.name) for i in draft.ingredients):
        raise DraftError(f"Ingredient {ingredient.name!r} is already in the draft")
    return _with(
        draft,
        ingredients=[i.model_dump() for i in draft.ingredients] + [ingredient.model_dump()],
    )


def remove_ingredient(draft: DishDraft, name: str) -> DishDraft:
    index = _index_of(draft, name)
    kept = [i.model_dump() for n, i in enumerate(draft.ingredients) if n != index]
    return _with(draft, ingredients=kept)


def update_ingredient(draft: DishDraft, name: str, **changes: Any) -> DishDraft:
    """
    Change fields of one ingredient. Turning is_substitutable off drops its
    substitutes.
    """
    index = _index_of(draft, name)
    ingredients = [i.model_dump() for i in draft.ingredients]
    ingredients[index] = {**ingredients[index], **changes}
    if "name" in changes:
        others = [name_key(i["name"]) for n, i in enumerate(ingredients) if n != index]
        if name_key(changes["name"]) in others:
            raise DraftError(f"Ingredient {changes['name']!r} is already in the draft")
    return _with(draft, ingredients=ingredients)


def add_substitute(draft: DishDraft, name: str, substitute: SubstituteDraft) -> DishDraft:
    """Attach a substitute to a substitutable ingredient."""
    index = _index_of(draft, name)
    ingredient = draft.ingredients[index]
    if not ingredient.is_substitutable:
        raise DraftError(f"{ingredient.name} is not marked substitutable")
    if any(name_key(s.name) == name_key(substitute.name) for s in ingredient.substitutes):
        return draft
    substitutes = [s.model_dump() for s in ingredient.substitutes] + [substitute.model_dump()]
    return update_ingredient(draft, name, substitutes=substitutes)


# ── Steps ────────────────────────────────────────────────────────────────────


def add_step(draft: DishDraft, step: StepDraft) -> DishDraft:
    """Append a step; it becomes step len(steps) + 1."""
    return _with(draft, steps=[s.model_dump() for s in draft.steps] + [step.model_dump()])


def remove_step(draft: DishDraft, step_number: int) -> DishDraft:
    """Delete a step; later steps move up so numbering stays 1..n."""
    index = _step_index(draft, step_number)
    kept = [s.model_dump() for n, s in enumerate(draft.steps) if n != index]
    return _with(draft, steps=kept)


def move_step(draft: DishDraft, step_number: int, new_number: int) -> DishDraft:
    """Move a step to a new 1-based position."""
    index = _step_index(draft, step_number)
    target = _step_index(draft, new_number)
    steps = [s.model_dump() for s in draft.steps]
    steps.insert(target, steps.pop(index))
    return _with(draft, steps=steps)


def update_step(draft: DishDraft, step_number: int, **changes: Any) -> DishDraft:
    index = _step_index(draft, step_number)
    steps = [s.model_dump() for s in draft.steps]
    steps[index] = {**steps[index], **changes}
    return _with(draft, steps=steps)


# ── Conversion ───────────────────────────────────────────────────────────────


def to_bundle(draft: DishDraft, dish_id: str = DRAFT_DISH_ID) -> DishBundle:
    """
    Build the core DishBundle for a draft. Allergen lists still marked for
    auto-detection (None) are treated as empty.
    """
    ingredients = [
        IngredientUse(
            name=i.name.strip(),
            allergens=normalize_sorted(i.allergens or []),
            amount_value=i.amount_value,
            amount_unit=i.amount_unit,
            is_removable=i.is_removable,
            is_substitutable=i.is_substitutable,
            substitutes=[
                SubstituteInfo(name=s.name, allergens=normalize_sorted(s.allergens or []))
                for s in i.substitutes
            ],
        )
        for i in draft.ingredients
    ]
    steps = [
        StepInfo(
            step_number=n,
            description=s.description,
            cross_contact_risk=normalize_sorted(s.cross_contact_risk or []),
            is_modifiable=s.is_modifiable,
            modifiable_allergens=normalize_sorted(s.modifiable_allergens),
            modification_notes=s.modification_notes,
        )
        for n, s in enumerate(draft.steps, start=1)
    ]
    return DishBundle(
        id=dish_id,
        name=draft.name,
        category=draft.category,
        price=draft.price,
        description=draft.description,
        description_allergens=normalize_sorted(draft.description_allergens or []),
        ingredients=ingredients,
        cooking_steps=steps,
        **{f: getattr(draft, f) for f in NUTRITION_FIELDS},
    )
