"""
import_menu.py — bulk-import dishes for one restaurant from a CSV file.

Expected columns (header names are case-insensitive):
    name, category, price, description,
    ingredients   ingredient names separated by ';'
    removable     subset of ingredients a customer may leave out, ';'-separated
    allergens     optional description allergens, ';'-separated
plus any nutrition column named like the API fields (calories, protein_g, ...).

Ingredient allergens are auto-detected unless --no-detect is given, in which
case new ingredients are stored with no allergens for staff to fill in.

Usage:
    python scripts/import_menu.py --csv menu.csv --restaurant <id>
    python scripts/import_menu.py --csv menu.csv --restaurant <id> --dry-run
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import re
import sys
from pathlib import Path
from typing import Optional

import pandas as pd

sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from menuguard.database import AsyncSessionLocal, engine
from menuguard.models import Dish, Restaurant
from menuguard.schemas.dish import DishDraft, IngredientDraft
from menuguard.schemas.menu import NUTRITION_FIELDS
from menuguard.services.dish_writer import create_dish

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)

# ── Column mapping helpers ───────────────────────────────────────────────────


def _text(val: object) -> str:
    if pd.isna(val):
        return ""
    return str(val).strip()


def _split(val: object) -> list[str]:
    """'Pasta; Parmesan ;' → ['Pasta', 'Parmesan']."""
    return [part.strip() for part in _text(val).split(";") if part.strip()]


def _parse_price(val: object) -> float:
    """Strip currency symbols and separators; unparseable prices become 0."""
    cleaned = re.sub(r"[^0-9.]", "", _text(val))
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def _parse_number(val: object) -> Optional[float]:
    if pd.isna(val):
        return None
    try:
        return float(val)
    except (TypeError, ValueError):
        return None


def row_to_draft(row: pd.Series, detect: bool = True) -> Optional[DishDraft]:
    """Build a DishDraft from one CSV row, or None when the row has no name."""
    name = _text(row.get("name"))
    if not name:
        return None

    removable = {r.lower() for r in _split(row.get("removable"))}
    ingredients: list[IngredientDraft] = []
    seen: set[str] = set()
    for ingredient in _split(row.get("ingredients")):
        if ingredient.lower() in seen:
            continue
        seen.add(ingredient.lower())
        ingredients.append(
            IngredientDraft(
                name=ingredient,
                allergens=None if detect else [],
                is_removable=ingredient.lower() in removable,
            )
        )

    description_allergens = _split(row.get("allergens"))
    return DishDraft(
        name=name,
        category=_text(row.get("category")) or "Other",
        price=_parse_price(row.get("price")),
        description=_text(row.get("description")) or None,
        description_allergens=description_allergens or (None if detect else []),
        ingredients=ingredients,
        **{f: _parse_number(row.get(f)) for f in NUTRITION_FIELDS},
    )


# ── Import ───────────────────────────────────────────────────────────────────


async def run_import(
    csv_path: str,
    restaurant_id: str,
    dry_run: bool = False,
    detect: bool = True,
) -> None:
    """Read the CSV and create one dish per row, skipping names already on the menu."""
    df = pd.read_csv(csv_path, dtype=str, keep_default_na=True)
    df.columns = [c.strip().lower() for c in df.columns]
    if "name" not in df.columns:
        logger.error("CSV has no 'name' column; columns found: %s", list(df.columns))
        return

    total = len(df)
    logger.info("Loaded %d rows from %s", total, csv_path)

    drafts: list[DishDraft] = []
    for idx, row in df.iterrows():
        try:
            draft = row_to_draft(row, detect=detect)
        except ValueError as exc:
            logger.warning("Row %d is invalid: %s", idx, exc)
            continue
        if draft is not None:
            drafts.append(draft)

    if dry_run:
        for draft in drafts:
            logger.info(
                "[dry-run] %s (%s, %.2f): %d ingredients",
                draft.name, draft.category, draft.price, len(draft.ingredients),
            )
        logger.info("Dry run complete. %d of %d rows parsed.", len(drafts), total)
        return

    inserted = skipped = 0
    async with AsyncSessionLocal() as session:
        restaurant = await session.get(Restaurant, restaurant_id)
        if restaurant is None:
            logger.error("Restaurant %s not found", restaurant_id)
            await engine.dispose()
            return

        result = await session.execute(
            select(Dish.name).where(Dish.restaurant_id == restaurant_id, Dish.is_active.is_(True))
        )
        existing = {name.lower() for name in result.scalars().all()}

        for draft in drafts:
            if draft.name.lower() in existing:
                logger.info("Skipping %r: already on the menu", draft.name)
                skipped += 1
                continue
            try:
                await create_dish(session, restaurant_id, draft)
            except Exception as exc:
                logger.warning("Failed to import %r: %s", draft.name, exc)
                skipped += 1
                continue
            existing.add(draft.name.lower())
            inserted += 1

    logger.info("Import complete. Inserted: %d, Skipped: %d", inserted, skipped)
    await engine.dispose()


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Import a menu CSV into a restaurant.")
    parser.add_argument("--csv", required=True, help="Path to the menu CSV")
    parser.add_argument("--restaurant", required=True, help="Restaurant id to import into")
    parser.add_argument("--dry-run", action="store_true", help="Parse only, no DB writes")
    parser.add_argument(
        "--no-detect", action="store_true", help="Do not call the AI to detect allergens"
    )
    args = parser.parse_args()

    asyncio.run(
        run_import(
            csv_path=args.csv,
            restaurant_id=args.restaurant,
            dry_run=args.dry_run,
            detect=not args.no_detect,
        )
    )


if __name__ == "__main__":
    main()
