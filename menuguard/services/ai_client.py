"""
AI client — typed boundary around every Gemini-backed capability.

Every public coroutine returns a Result: Ok(value) on success or
Err(ClassificationError) when the model is unavailable or its reply cannot
be used. Nothing here raises to the caller. Individual malformed records in
an otherwise usable reply are dropped and logged.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Generic, Literal, Optional, TypeVar, Union

from menuguard.schemas.ingredient import IngredientSuggestion
from menuguard.schemas.menu import NUTRITION_FIELDS, DishBundle, Nutrition
from menuguard.schemas.scan import BoundingBox, DetectedItem, ScannedDish
from menuguard.services.gemini import GeminiError, call_gemini
from menuguard.utils.prompts import (
    build_allergen_detection_prompt,
    build_cross_contact_prompt,
    build_description_allergen_prompt,
    build_dietary_style_prompt,
    build_ingredient_suggestion_prompt,
    build_menu_photo_prompt,
    build_menu_scan_prompt,
    build_nutrition_prompt,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

ErrorKind = Literal["unavailable", "malformed"]


class ClassificationError(Exception):
    """Why an AI capability produced no usable value."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: ClassificationError


Result = Union[Ok[T], Err]


@dataclass
class StyleVerdict:
    """One dish judgement returned by dietary-style classification."""

    dish_id: str
    safe: bool
    requires_modification: bool = False
    modifications: list[str] = field(default_factory=list)
    reason: Optional[str] = None


# ── Response parsing ─────────────────────────────────────────────────────────

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def strip_fences(text: str) -> str:
    """Return the body of the first markdown code fence, or the text as-is."""
    match = _FENCE_RE.search(text)
    return match.group(1).strip() if match else text.strip()


def _extract(text: str, pattern: re.Pattern[str]) -> Any:
    match = pattern.search(strip_fences(text))
    if not match:
        return None
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        logger.warning("Model JSON did not parse: %s", exc)
        return None


def extract_json_array(text: str) -> Optional[list]:
    """Best-effort extraction of the outermost JSON array in a reply."""
    value = _extract(text, _ARRAY_RE)
    return value if isinstance(value, list) else None


def extract_json_object(text: str) -> Optional[dict]:
    """Best-effort extraction of the outermost JSON object in a reply."""
    value = _extract(text, _OBJECT_RE)
    return value if isinstance(value, dict) else None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _malformed(what: str, raw: str) -> Err:
    logger.warning("Malformed %s reply from model", what)
    logger.debug("Raw reply: %s", raw)
    return Err(ClassificationError("malformed", f"Could not parse {what} reply"))


async def _ask(prompt: str, image: Optional[str] = None, **kwargs: Any) -> Result[str]:
    """Call the model and wrap transport failures as Err(unavailable)."""
    try:
        return Ok(await call_gemini(prompt, image=image, **kwargs))
    except GeminiError as exc:
        logger.warning("AI collaborator unavailable: %s", exc)
        return Err(ClassificationError("unavailable", str(exc)))


async def _ask_for_strings(prompt: str, what: str) -> Result[list[str]]:
    reply = await _ask(prompt, temperature=0.1, max_output_tokens=256)
    if isinstance(reply, Err):
        return reply
    items = extract_json_array(reply.value)
    if items is None:
        return _malformed(what, reply.value)
    return Ok([i.strip() for i in items if isinstance(i, str) and i.strip()])


# ── Capabilities ─────────────────────────────────────────────────────────────


async def detect_allergens(ingredient_name: str) -> Result[list[str]]:
    """Raw allergen category strings for one ingredient (not yet normalized)."""
    return await _ask_for_strings(
        build_allergen_detection_prompt(ingredient_name), "allergen detection"
    )


async def detect_description_allergens(description: str) -> Result[list[str]]:
    """Raw allergen category strings mentioned in a dish description."""
    return await _ask_for_strings(
        build_description_allergen_prompt(description), "description allergen"
    )


async def detect_cross_contact(step_description: str) -> Result[list[str]]:
    """Raw allergen category strings a cooking step may introduce."""
    return await _ask_for_strings(
        build_cross_contact_prompt(step_description), "cross-contact"
    )


async def scan_menu_image(image: str) -> Result[list[ScannedDish]]:
    """Extract {name, category, price, description} records from a menu photo."""
    reply = await _ask(build_menu_scan_prompt(), image=image, temperature=0.1, max_output_tokens=4096)
    if isinstance(reply, Err):
        return reply
    records = extract_json_array(reply.value)
    if records is None:
        return _malformed("menu scan", reply.value)

    dishes: list[ScannedDish] = []
    for record in records:
        if not isinstance(record, dict):
            logger.debug("Dropping non-object scan record: %r", record)
            continue
        name = str(record.get("name") or "").strip()
        if not name:
            logger.debug("Dropping scan record without a name: %r", record)
            continue
        price = re.sub(r"[^0-9.]", "", str(record.get("price") or "")) or "0.00"
        dishes.append(
            ScannedDish(
                name=name,
                category=str(record.get("category") or "Other").strip() or "Other",
                price=price,
                description=str(record.get("description") or "").strip(),
            )
        )
    return Ok(dishes)


async def analyze_menu_photo(image: str) -> Result[list[DetectedItem]]:
    """Read dish names with approximate bounding boxes off a menu photo."""
    reply = await _ask(build_menu_photo_prompt(), image=image, temperature=0.1, max_output_tokens=3000)
    if isinstance(reply, Err):
        return reply
    parsed = extract_json_object(reply.value)
    if parsed is None or not isinstance(parsed.get("items"), list):
        return _malformed("menu photo", reply.value)

    named = [
        item for item in parsed["items"]
        if isinstance(item, dict) and str(item.get("name") or "").strip()
    ]
    detected: list[DetectedItem] = []
    for index, item in enumerate(named):
        box = item.get("boundingBox") if isinstance(item.get("boundingBox"), dict) else {}
        # Missing coordinates fall back to a two-column grid layout
        bounding_box = BoundingBox(
            x=box["x"] if _is_number(box.get("x")) else 5 + (index % 2) * 45,
            y=box["y"] if _is_number(box.get("y")) else 10 + (index // 2) * 8,
            width=box["width"] if _is_number(box.get("width")) else 40,
            height=box["height"] if _is_number(box.get("height")) else 6,
        )
        price = item.get("price")
        detected.append(
            DetectedItem(
                name=str(item["name"]).strip(),
                bounding_box=bounding_box,
                confidence=item["confidence"] if _is_number(item.get("confidence")) else 70,
                price=str(price) if price is not None else None,
            )
        )
    logger.info("Detected %d menu items on photo", len(detected))
    return Ok(detected)


async def suggest_ingredients(
    dish_name: str,
    dish_description: str,
    existing: list[dict[str, Any]],
) -> Result[list[IngredientSuggestion]]:
    """
    Likely ingredients for a dish, most confident first.
    `existing` holds {"id", "name", "allergens"} dicts of known ingredients;
    suggestions matching one by name (case-insensitive) carry its id.
    """
    prompt = build_ingredient_suggestion_prompt(
        dish_name, dish_description, [e["name"] for e in existing]
    )
    reply = await _ask(prompt, temperature=0.3, max_output_tokens=1500)
    if isinstance(reply, Err):
        return reply
    records = extract_json_array(reply.value)
    if records is None:
        return _malformed("ingredient suggestion", reply.value)

    by_name = {e["name"].lower(): e for e in existing}
    suggestions: list[IngredientSuggestion] = []
    for record in records:
        if not isinstance(record, dict):
            continue
        name = str(record.get("name") or "").strip()
        if not name:
            continue
        match = by_name.get(name.lower())
        raw_allergens = record.get("allergens")
        if not isinstance(raw_allergens, list):
            raw_allergens = match["allergens"] if match else []
        suggestions.append(
            IngredientSuggestion(
                name=name,
                existing_id=match["id"] if match else None,
                allergens=[a for a in raw_allergens if isinstance(a, str)],
                confidence=record["confidence"] if _is_number(record.get("confidence")) else 50,
            )
        )
    suggestions.sort(key=lambda s: s.confidence, reverse=True)
    return Ok(suggestions)


async def estimate_nutrition(
    dish_name: str,
    ingredients: list[dict[str, Any]],
) -> Result[Nutrition]:
    """
    Per-serving nutrition estimate from ingredient amounts.
    Ingredients without a positive amount are ignored; with none left the
    estimate is an empty panel and the model is not called.
    """
    usable = [i for i in ingredients if _is_number(i.get("amount")) and i["amount"] > 0]
    if not usable:
        return Ok(Nutrition())

    reply = await _ask(build_nutrition_prompt(dish_name, usable), temperature=0.2, max_output_tokens=300)
    if isinstance(reply, Err):
        return reply
    parsed = extract_json_object(reply.value)
    if parsed is None:
        return _malformed("nutrition", reply.value)

    values: dict[str, Optional[float]] = {}
    for name in NUTRITION_FIELDS:
        raw = parsed.get(name)
        if not _is_number(raw):
            values[name] = None
        elif name in ("calories", "sodium_mg", "cholesterol_mg"):
            values[name] = round(raw)
        else:
            values[name] = round(raw, 1)
    return Ok(Nutrition(**values))


async def classify_dietary_style(
    category_id: str,
    dishes: list[DishBundle],
) -> Result[list[StyleVerdict]]:
    """Judge every dish against a dietary style (vegetarian, vegan, low-carb, low-sodium)."""
    if not dishes:
        return Ok([])

    dish_list = [
        {
            "id": d.id,
            "name": d.name,
            "description": d.description,
            "ingredients": [
                {
                    "name": i.name,
                    "removable": i.is_removable,
                    "substitutable": i.is_substitutable,
                    "substitutes": [s.name for s in i.substitutes],
                }
                for i in d.ingredients
            ],
            "carbs_g": d.carbs_g,
            "sodium_mg": d.sodium_mg,
        }
        for d in dishes
    ]
    reply = await _ask(
        build_dietary_style_prompt(category_id, dish_list),
        temperature=0.2,
        max_output_tokens=3000,
    )
    if isinstance(reply, Err):
        return reply
    parsed = extract_json_object(reply.value)
    if parsed is None or not isinstance(parsed.get("dishes"), list):
        return _malformed("dietary classification", reply.value)

    verdicts: list[StyleVerdict] = []
    for record in parsed["dishes"]:
        if not isinstance(record, dict) or not isinstance(record.get("safe"), bool):
            logger.debug("Dropping malformed dietary verdict: %r", record)
            continue
        dish_id = record.get("id")
        if not isinstance(dish_id, str):
            continue
        mods = record.get("modifications")
        modifications = [m for m in mods if isinstance(m, str)] if isinstance(mods, list) else []
        reason = record.get("reason")
        verdicts.append(
            StyleVerdict(
                dish_id=dish_id,
                safe=record["safe"],
                requires_modification=bool(record.get("requiresModification")) or bool(modifications),
                modifications=modifications,
                reason=reason if isinstance(reason, str) else None,
            )
        )
    return Ok(verdicts)
