"""
AllergenAggregator — pure allergen merge for a single dish.
No LLM calls. No DB calls.

Sources, in order of authority:
  1. Description allergens   — always cannot_modify
  2. Cooking-step risks      — cannot_modify unless the step is modifiable
                               for that allergen
  3. Ingredient links        — can_modify when removable or substitutable to
                               a substitute free of the allergen

A safe source never downgrades an existing cannot_modify. An unsafe source
always sets cannot_modify. The result does not depend on source order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from menuguard.schemas.allergen import AllergenAggregate
from menuguard.schemas.menu import DishBundle, IngredientUse, StepInfo
from menuguard.services.normalizer import normalize
from menuguard.utils.allergen_data import (
    CANNOT_MODIFY,
    CAN_MODIFY,
    CANONICAL_ALLERGENS,
    NOT_PRESENT,
)

logger = logging.getLogger(__name__)


@dataclass
class _StatusMap:
    """Per-allergen status with the one-way upgrade rule baked in."""

    statuses: dict[str, str] = field(
        default_factory=lambda: {a: NOT_PRESENT for a in CANONICAL_ALLERGENS}
    )

    def mark_unsafe(self, allergen: str) -> None:
        self.statuses[allergen] = CANNOT_MODIFY

    def mark_safe(self, allergen: str) -> None:
        if self.statuses[allergen] != CANNOT_MODIFY:
            self.statuses[allergen] = CAN_MODIFY

    def present(self) -> list[str]:
        return sorted(a for a, s in self.statuses.items() if s != NOT_PRESENT)


def is_safe_source(link: IngredientUse, allergen: str) -> bool:
    """
    True when this ingredient link can be made free of `allergen`:
    it is removable, or substitutable with at least one named substitute
    that does not itself contain the allergen.
    """
    if link.is_removable:
        return True
    if link.is_substitutable:
        return any(allergen not in normalize(s.allergens) for s in link.substitutes)
    return False


def step_modifiable_allergens(step: StepInfo) -> set[str]:
    """Allergens a modifiable step can avoid; empty for fixed steps."""
    if not step.is_modifiable:
        return set()
    return normalize(step.modifiable_allergens)


class AllergenAggregator:
    """Merges description, ingredient and cooking-step allergens for a dish."""

    def aggregate(
        self,
        dish: DishBundle,
        ingredient_links: Optional[Iterable[IngredientUse]] = None,
        cooking_steps: Optional[Iterable[StepInfo]] = None,
    ) -> AllergenAggregate:
        """
        Return the sorted allergen set and the three-way status per allergen.
        When links or steps are omitted, the dish's own joined rows are used.
        """
        links = list(dish.ingredients if ingredient_links is None else ingredient_links)
        steps = list(dish.cooking_steps if cooking_steps is None else cooking_steps)

        status = _StatusMap()

        # ── Description ────────────────────────────────────────────────────
        for allergen in normalize(dish.description_allergens):
            status.mark_unsafe(allergen)

        # ── Cooking steps ──────────────────────────────────────────────────
        for step in steps:
            avoidable = step_modifiable_allergens(step)
            for allergen in normalize(step.cross_contact_risk):
                if allergen in avoidable:
                    status.mark_safe(allergen)
                else:
                    status.mark_unsafe(allergen)

        # ── Ingredients ────────────────────────────────────────────────────
        for link in links:
            for allergen in normalize(link.allergens):
                if is_safe_source(link, allergen):
                    status.mark_safe(allergen)
                else:
                    status.mark_unsafe(allergen)

        result = AllergenAggregate(
            all_allergens=status.present(),
            per_allergen_status=dict(status.statuses),
        )
        logger.debug("Aggregated dish %s: %s", dish.id, result.all_allergens)
        return result


_aggregator = AllergenAggregator()


def aggregate(
    dish: DishBundle,
    ingredient_links: Optional[Iterable[IngredientUse]] = None,
    cooking_steps: Optional[Iterable[StepInfo]] = None,
) -> AllergenAggregate:
    """Module-level shortcut for AllergenAggregator().aggregate()."""
    return _aggregator.aggregate(dish, ingredient_links, cooking_steps)
