"""
Dietary restriction catalogue: seeding and lookup.

Restrictions are named allergen bundles ("Vegan", "Nut Allergy") that
customers declare instead of listing each allergen.
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from menuguard.models import DietaryRestriction
from menuguard.utils.allergen_data import DIETARY_RESTRICTIONS

logger = logging.getLogger(__name__)


async def seed_restrictions(db: AsyncSession) -> int:
    """Insert any catalogue restriction that is missing. Returns how many were added."""
    result = await db.execute(text("SELECT name FROM dietary_restrictions"))
    present = {row.name for row in result.fetchall()}
    missing = [r for r in DIETARY_RESTRICTIONS if r["name"] not in present]
    db.add_all(
        DietaryRestriction(
            name=r["name"],
            allergens=list(r["allergens"]),
            description=r["description"],
        )
        for r in missing
    )
    await db.commit()
    if missing:
        logger.info("Seeded %d dietary restrictions.", len(missing))
    return len(missing)


async def list_restrictions(db: AsyncSession) -> list[DietaryRestriction]:
    result = await db.execute(select(DietaryRestriction).order_by(DietaryRestriction.name))
    return list(result.scalars().all())


async def resolve_restrictions(
    db: AsyncSession,
    names: Iterable[str],
) -> dict[str, list[str]]:
    """
    Map declared restriction names to their allergen lists, matching names
    case-insensitively. Unknown names are dropped; the catalogue spelling wins.
    """
    wanted = {n.strip().lower() for n in names if n and n.strip()}
    if not wanted:
        return {}
    resolved: dict[str, list[str]] = {}
    for restriction in await list_restrictions(db):
        if restriction.name.lower() in wanted:
            resolved[restriction.name] = list(restriction.allergens or [])
    dropped = wanted - {n.lower() for n in resolved}
    if dropped:
        logger.info("Ignoring unknown dietary restrictions: %s", sorted(dropped))
    return resolved
