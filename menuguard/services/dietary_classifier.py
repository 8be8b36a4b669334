"""
DietaryClassifier — decides which dishes on a menu qualify for each dietary
category and derives a menu-level status.

Allergen-free categories are computed locally from allergen sets.
Dietary-style categories (vegetarian, vegan, low-carb, low-sodium) are
delegated to the AI collaborator; when it returns Err the local rule for the
category is used instead. Vegan and vegetarian verdicts from the model are
also checked against the local allergen rule, which can veto them.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from menuguard.schemas.allergen import (
    AvailableDish,
    DietaryCategoryResult,
    DishAnalysis,
    DishSafety,
)
from menuguard.schemas.menu import DishBundle
from menuguard.services import ai_client
from menuguard.services.ai_client import Err
from menuguard.services.aggregator import step_modifiable_allergens
from menuguard.services.normalizer import normalize
from menuguard.utils.allergen_data import (
    CANONICAL_ALLERGENS,
    DIETARY_CATEGORIES,
    DIETARY_CATEGORY_BY_ID,
    LIMITED_THRESHOLD,
    LOW_CARB_MAX_G,
    LOW_SODIUM_MAX_MG,
    SAFETY_LABELS,
    UNAVAILABLE_STYLE_REASONS,
)

logger = logging.getLogger(__name__)

_ALLERGEN_RULE_STYLES = ("vegan", "vegetarian")


class UnknownCategoryError(Exception):
    """Raised for a dietary category id that is not in DIETARY_CATEGORIES."""

    def __init__(self, category_id: str) -> None:
        super().__init__(f"Unknown dietary category: {category_id}")
        self.category_id = category_id


def _ordered(allergens: Iterable[str]) -> list[str]:
    found = set(allergens)
    return [a for a in CANONICAL_ALLERGENS if a in found]


# ── Per-dish rule ────────────────────────────────────────────────────────────


def analyze_dish_for_allergens(dish: DishBundle, avoid: Iterable[str]) -> DishAnalysis:
    """
    Can `dish` be served free of every allergen in `avoid`?

    An allergen escapes when its ingredient is removable, when the ingredient
    is substitutable with a substitute free of every avoided allergen, or
    when it is only a cross-contact risk on a step modifiable for it.
    Description allergens never escape.
    """
    avoided = normalize(avoid)
    modifications: list[str] = []
    blockers: list[str] = []
    if not avoided:
        return DishAnalysis(safe=True)

    for allergen in _ordered(normalize(dish.description_allergens) & avoided):
        blockers.append(f"Mentioned in description: {allergen}")

    for link in dish.ingredients:
        hits = normalize(link.allergens) & avoided
        if not hits:
            continue
        listed = ", ".join(_ordered(hits))
        if link.is_removable:
            modifications.append(f"Remove {link.name}")
            continue
        if link.is_substitutable:
            safe_subs = [
                s.name for s in link.substitutes
                if not (normalize(s.allergens) & avoided)
            ]
            if safe_subs:
                modifications.append(
                    f"Substitute {link.name} with {' or '.join(safe_subs)}"
                )
                continue
            blockers.append(f"{link.name} contains {listed} and has no safe substitute")
            continue
        blockers.append(f"{link.name} contains {listed}")

    for step in dish.cooking_steps:
        hits = normalize(step.cross_contact_risk) & avoided
        if not hits:
            continue
        fixed = hits - step_modifiable_allergens(step)
        if fixed:
            blockers.append(
                f"Step {step.step_number} cross-contact risk: {', '.join(_ordered(fixed))}"
            )
        else:
            note = step.modification_notes or step.description
            modifications.append(f"Modify step {step.step_number}: {note}")

    safe = not blockers
    return DishAnalysis(
        safe=safe,
        requires_modification=safe and bool(modifications),
        modifications=list(dict.fromkeys(modifications)) if safe else [],
        blockers=blockers,
    )


def _local_style_verdict(category_id: str, dish: DishBundle) -> DishAnalysis:
    """Fallback rule for a dietary-style category when the model gives no signal."""
    if category_id in _ALLERGEN_RULE_STYLES:
        return analyze_dish_for_allergens(
            dish, DIETARY_CATEGORY_BY_ID[category_id]["allergens"]
        )
    if category_id == "low-carb":
        ok = dish.carbs_g is not None and dish.carbs_g < LOW_CARB_MAX_G
        return DishAnalysis(safe=ok, blockers=[] if ok else ["Carbohydrates unknown or too high"])
    if category_id == "low-sodium":
        ok = dish.sodium_mg is not None and dish.sodium_mg < LOW_SODIUM_MAX_MG
        return DishAnalysis(safe=ok, blockers=[] if ok else ["Sodium unknown or too high"])
    raise UnknownCategoryError(category_id)


# ── Menu-level status ────────────────────────────────────────────────────────


def derive_status(
    category: dict,
    available: list[AvailableDish],
) -> tuple[str, Optional[str], Optional[str]]:
    """Return (status, reason, warning) for a category from its qualifying dishes."""
    count = len(available)
    label = category["name"].lower()
    allergen_free = category["type"] == "allergen-free"

    if count == 0:
        if allergen_free:
            reason = (
                f"No {label} items on your menu. All dishes contain "
                f"{' or '.join(category['allergens'])} or have cross-contamination "
                "risks that cannot be eliminated."
            )
        else:
            reason = f"No {label} items on your menu. {UNAVAILABLE_STYLE_REASONS[category['id']]}"
        return "unavailable", reason, None

    if count < LIMITED_THRESHOLD:
        noun = "dish" if count == 1 else "dishes"
        suffix = " for better accessibility" if allergen_free else ""
        warning = f"Only {count} {noun} available. Consider adding more {label} options{suffix}."
        return "limited", None, warning

    return "available", None, None


def _result(
    category: dict,
    available: list[AvailableDish],
    ai_used: bool = False,
) -> DietaryCategoryResult:
    status, reason, warning = derive_status(category, available)
    return DietaryCategoryResult(
        category_id=category["id"],
        name=category["name"],
        type=category["type"],
        status=status,
        available_dishes=available,
        total_available=len(available),
        reason=reason,
        warning=warning,
        ai_used=ai_used,
    )


def _available(dish: DishBundle, analysis: DishAnalysis) -> AvailableDish:
    return AvailableDish(
        id=dish.id,
        name=dish.name,
        requires_modification=analysis.requires_modification,
        modifications=analysis.modifications,
    )


# ── Strategies ───────────────────────────────────────────────────────────────


def classify_allergen_free(category: dict, dishes: list[DishBundle]) -> DietaryCategoryResult:
    """Local classification for an allergen-free category."""
    available = []
    for dish in dishes:
        analysis = analyze_dish_for_allergens(dish, category["allergens"])
        if analysis.safe:
            available.append(_available(dish, analysis))
    return _result(category, available)


async def classify_dietary_style(category: dict, dishes: list[DishBundle]) -> DietaryCategoryResult:
    """Model-backed classification for a dietary-style category, with local fallback."""
    category_id = category["id"]
    outcome = await ai_client.classify_dietary_style(category_id, dishes)

    if isinstance(outcome, Err):
        logger.warning(
            "Dietary classification for '%s' fell back to local rules (%s)",
            category_id,
            outcome.error.kind,
        )
        available = []
        for dish in dishes:
            analysis = _local_style_verdict(category_id, dish)
            if analysis.safe:
                available.append(_available(dish, analysis))
        return _result(category, available)

    by_id = {d.id: d for d in dishes}
    available: list[AvailableDish] = []
    seen: set[str] = set()
    for verdict in outcome.value:
        dish = by_id.get(verdict.dish_id)
        if dish is None:
            logger.warning("Dropping verdict for unknown dish id %r", verdict.dish_id)
            continue
        if not verdict.safe or dish.id in seen:
            continue
        modifications = list(verdict.modifications)
        if category_id in _ALLERGEN_RULE_STYLES:
            local = analyze_dish_for_allergens(
                dish, DIETARY_CATEGORY_BY_ID[category_id]["allergens"]
            )
            if not local.safe:
                logger.info(
                    "Local %s rule vetoed dish %s: %s", category_id, dish.id, local.blockers
                )
                continue
            modifications = list(dict.fromkeys(modifications + local.modifications))
        seen.add(dish.id)
        available.append(
            AvailableDish(
                id=dish.id,
                name=dish.name,
                requires_modification=verdict.requires_modification or bool(modifications),
                modifications=modifications,
            )
        )
    return _result(category, available, ai_used=True)


# ── Entry points ─────────────────────────────────────────────────────────────


async def classify(category_id: str, dishes: list[DishBundle]) -> DietaryCategoryResult:
    """Classify a menu against one dietary category."""
    category = DIETARY_CATEGORY_BY_ID.get(category_id)
    if category is None:
        raise UnknownCategoryError(category_id)
    if category["type"] == "allergen-free":
        return classify_allergen_free(category, dishes)
    return await classify_dietary_style(category, dishes)


async def classify_menu(dishes: list[DishBundle]) -> list[DietaryCategoryResult]:
    """
    Classify a menu against every dietary category, in catalogue order.
    The model-backed categories run concurrently.
    """
    local = {
        c["id"]: classify_allergen_free(c, dishes)
        for c in DIETARY_CATEGORIES
        if c["type"] == "allergen-free"
    }
    delegated = [c for c in DIETARY_CATEGORIES if c["type"] != "allergen-free"]
    remote = await asyncio.gather(*(classify_dietary_style(c, dishes) for c in delegated))
    results = {**local, **{r.category_id: r for r in remote}}
    return [results[c["id"]] for c in DIETARY_CATEGORIES]


def assess_dish_for_customer(dish: DishBundle, customer_allergens: Iterable[str]) -> DishSafety:
    """Safe / safe with modifications / unsafe verdict for one customer."""
    analysis = analyze_dish_for_allergens(dish, customer_allergens)
    if not analysis.safe:
        status = "unsafe"
    elif analysis.requires_modification:
        status = "safe_with_modifications"
    else:
        status = "safe"
    return DishSafety(
        dish_id=dish.id,
        status=status,
        label=SAFETY_LABELS[status],
        suggestions=analysis.modifications,
        reasons=analysis.blockers,
    )


def effective_allergens(
    custom_allergens: Iterable[str],
    restriction_allergens: Iterable[Iterable[str]],
) -> list[str]:
    """
    Everything a customer must avoid: their custom allergen strings plus the
    allergens of each declared restriction, normalized, in vocabulary order.
    """
    found = normalize(custom_allergens)
    for allergens in restriction_allergens:
        found |= normalize(allergens)
    return _ordered(found)
