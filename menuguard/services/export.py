"""
CSV allergen report for a restaurant menu.

Layout: UTF-8 BOM, every field double-quoted, "\\n" line endings. One header
row, then per category a category row, one row per dish and a blank
separator row.
"""

from __future__ import annotations

import csv
import io
import re
from typing import Optional

from menuguard.schemas.menu import DishBundle
from menuguard.services.normalizer import normalize
from menuguard.utils.allergen_data import CANONICAL_ALLERGENS

CSV_HEADERS = [
    "Category",
    "Dish Name",
    "Description",
    "Price",
    "Allergens",
    "Cross-Contact Risks",
    "Removable Ingredients",
    "Substitutable Ingredients",
    "Calories",
    "Protein (g)",
]

BOM = "\ufeff"


class EmptyMenuError(Exception):
    """Raised when a restaurant has no active dishes to export."""


def _ordered(allergens: set[str]) -> list[str]:
    return [a for a in CANONICAL_ALLERGENS if a in allergens]


def _number(value: Optional[float]) -> str:
    if value is None:
        return ""
    return str(int(value)) if float(value).is_integer() else str(value)


def dish_row(dish: DishBundle) -> list[str]:
    """The ten report columns for one dish (category column left blank)."""
    allergens: set[str] = normalize(dish.description_allergens)
    removable: list[str] = []
    substitutable: list[str] = []
    for link in dish.ingredients:
        allergens |= normalize(link.allergens)
        if link.is_removable:
            info = f" ({', '.join(link.allergens)})" if link.allergens else ""
            removable.append(f"{link.name}{info}")
        if link.is_substitutable:
            subs = ", ".join(s.name for s in link.substitutes)
            substitutable.append(f"{link.name} -> {subs}" if subs else link.name)

    risks: set[str] = set()
    for step in dish.cooking_steps:
        risks |= normalize(step.cross_contact_risk)

    return [
        "",
        dish.name,
        dish.description or "",
        f"${dish.price:.2f}" if dish.price is not None else "",
        ", ".join(_ordered(allergens)),
        ", ".join(_ordered(risks)),
        "; ".join(removable),
        "; ".join(substitutable),
        _number(dish.calories),
        _number(dish.protein_g),
    ]


def render_menu_csv(dishes: list[DishBundle]) -> str:
    """Render dishes (already ordered by category, then name) as the CSV report."""
    if not dishes:
        raise EmptyMenuError("No menu items to export")

    grouped: dict[str, list[DishBundle]] = {}
    for dish in dishes:
        grouped.setdefault(dish.category or "Other", []).append(dish)

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    blank = [""] * len(CSV_HEADERS)
    for category, items in grouped.items():
        writer.writerow([category] + blank[1:])
        for dish in items:
            writer.writerow(dish_row(dish))
        writer.writerow(blank)
    return BOM + buffer.getvalue().rstrip("\n")


def report_filename(restaurant_name: str) -> str:
    slug = re.sub(r"\s+", "-", restaurant_name.strip())
    return f"{slug}-allergen-report.csv"
