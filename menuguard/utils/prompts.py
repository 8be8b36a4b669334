"""
Prompt template builders for all Gemini calls.
All prompt strings live here — no hardcoded prompts elsewhere in the codebase.
"""

from __future__ import annotations

import json
from typing import Any

from menuguard.utils.allergen_data import (
    ALLERGEN_MAPPING_REFERENCE,
    CANONICAL_ALLERGENS,
    DIETARY_STYLE_DEFINITIONS,
)

_CATEGORY_LIST = ", ".join(CANONICAL_ALLERGENS)


# ── Menu photo scanning ──────────────────────────────────────────────────────


def build_menu_scan_prompt() -> str:
    """Prompt for extracting dish records from a menu photo."""
    return """You are a menu analysis assistant. Extract dish information from the attached menu image.

## RULES
- Categories: Appetizers, Main Courses, Sides, Desserts, Beverages, or Other
- Price: numbers only (e.g. "12.99" not "$12.99"); use "0.00" when not visible
- Extract ALL dishes you can see clearly
- Keep descriptions brief (under 100 characters)

## OUTPUT FORMAT
Output only a valid JSON array. No markdown fences. No preamble.

[{"name": "Dish Name", "category": "Category", "price": "00.00", "description": "Brief description"}]"""


def build_menu_photo_prompt() -> str:
    """Prompt for reading dish names and their approximate positions."""
    return """You are a menu OCR expert. Read the attached menu image and find ALL food and drink items listed.

For EACH item provide:
1. name: the dish name as written
2. boundingBox: approximate position in percent (0-100), x/y is the top-left corner
3. confidence: how sure you are this is a menu item (0-100)
4. price: the price if visible (e.g. "$12.99")

## RULES
- Ignore section headers such as "APPETIZERS" and only include actual dish names
- Ignore the restaurant name, address and opening hours
- Include partially readable items with a lower confidence

## OUTPUT FORMAT
Output only valid JSON. No markdown fences. No preamble.

{"items": [{"name": "Dish Name", "boundingBox": {"x": 10, "y": 20, "width": 30, "height": 5}, "confidence": 95, "price": "$12.99"}]}"""


# ── Allergen detection ───────────────────────────────────────────────────────


def build_allergen_detection_prompt(ingredient_name: str) -> str:
    """Prompt mapping one ingredient onto allergen CATEGORIES."""
    return f"""You are a food allergen expert. Identify which ALLERGEN CATEGORIES the ingredient belongs to.

## VALID CATEGORIES (use these exact names only)
{_CATEGORY_LIST}
{ALLERGEN_MAPPING_REFERENCE}
## INGREDIENT
"{ingredient_name}"

## OUTPUT FORMAT
Return category names, never ingredient names (e.g. "Shellfish" not "shrimp").
Output only a JSON array of strings, or [] if the ingredient carries no allergens.
No markdown fences. No explanation."""


def build_description_allergen_prompt(description: str) -> str:
    """Prompt for allergens explicitly mentioned or strongly implied by a description."""
    return f"""You are a food allergen expert. Identify allergens that a dish description explicitly mentions or strongly implies.

## VALID CATEGORIES (use these exact names only)
{_CATEGORY_LIST}
{ALLERGEN_MAPPING_REFERENCE}
## DISH DESCRIPTION
"{description}"

## OUTPUT FORMAT
Only include allergens you are confident about.
Output only a JSON array of category names, or []. No markdown fences."""


def build_cross_contact_prompt(step_description: str) -> str:
    """Prompt for cross-contact risks introduced by one cooking step."""
    return f"""You are a food safety expert. Identify allergens that could contaminate a dish during this cooking step through shared equipment, oil or surfaces.

## EXAMPLES
- "Fry in shared fryer" → risks from other fried items (Shellfish, Fish, Wheat)
- "Prepare on shared cutting board" → any allergen commonly handled on boards
- "Toast with sesame bun station" → Sesame, Wheat

## VALID CATEGORIES (use these exact names only)
{_CATEGORY_LIST}

## COOKING STEP
"{step_description}"

## OUTPUT FORMAT
Output only a JSON array of category names, or [] if the step adds no risk.
No markdown fences. No explanation."""


# ── Ingredient suggestions & nutrition ───────────────────────────────────────


def build_ingredient_suggestion_prompt(
    dish_name: str,
    dish_description: str,
    existing_names: list[str],
) -> str:
    """Prompt for likely ingredients of a dish, preferring known ingredients."""
    existing = ", ".join(existing_names) if existing_names else "None yet"
    description_line = f"\nDescription: {dish_description}" if dish_description else ""
    return f"""You are a culinary and allergen expert. Suggest the likely ingredients of a dish WITH their allergen categories.

Prefer ingredients from the existing database when they match.
Existing ingredients: {existing}

## VALID CATEGORIES (use these exact names only)
{_CATEGORY_LIST}
{ALLERGEN_MAPPING_REFERENCE}
## DISH
Name: "{dish_name}"{description_line}

## OUTPUT FORMAT
Output only a JSON array, 5-15 items, most likely first. No markdown fences.
[{{"name": "Olive Oil", "allergens": [], "confidence": 90}}]
"confidence" is 0-100. "allergens" holds category names only."""


def build_nutrition_prompt(
    dish_name: str,
    ingredients: list[dict[str, Any]],
) -> str:
    """Prompt for a full per-serving nutrition estimate."""
    lines = "\n".join(
        f"- {i['name']}: {i['amount']} {i.get('unit') or 'g'}" for i in ingredients
    )
    return f"""You are a nutrition expert. Estimate the nutrition of one serving from its ingredients and amounts.
Use standard USDA values and account for cooking methods.

## DISH
{dish_name}

## INGREDIENTS
{lines}

## OUTPUT FORMAT
Output only a JSON object with these keys (null when unknown). No markdown fences.
{{
  "calories": <integer>, "protein_g": <number>, "carbs_g": <number>,
  "carbs_fiber_g": <number>, "carbs_sugar_g": <number>,
  "carbs_added_sugar_g": <number>, "fat_g": <number>,
  "fat_saturated_g": <number>, "fat_trans_g": <number>,
  "fat_polyunsaturated_g": <number>, "fat_monounsaturated_g": <number>,
  "sodium_mg": <integer>, "cholesterol_mg": <integer>
}}
carbs_g and fat_g are totals."""


# ── Dietary-style classification ─────────────────────────────────────────────


def build_dietary_style_prompt(category_id: str, dishes: list[dict[str, Any]]) -> str:
    """
    Prompt for judging every dish of a menu against one dietary style.
    Dish ids in the reply must be copied from the input.
    """
    definition = DIETARY_STYLE_DEFINITIONS[category_id]
    return f"""You are a dietary expert. Decide which dishes can be served for a dietary requirement.

## REQUIREMENT
{definition}

## RULES
- Be strict about the requirement
- Consider hidden ingredients (butter in sauces, chicken broth, etc.)
- An ingredient marked "removable" CAN be removed
- An ingredient marked "substitutable" may be swapped for one of its listed substitutes
- For low-carb and low-sodium use the provided nutrition values when present

## DISHES
{json.dumps(dishes, indent=2)}

## OUTPUT FORMAT
Output only valid JSON. No markdown fences. No preamble.
{{
  "dishes": [
    {{"id": "dish-id", "safe": true, "requiresModification": false,
      "modifications": ["Remove X", "Substitute Y with Z"], "reason": "why not, if unsafe"}}
  ]
}}"""
