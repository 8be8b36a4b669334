"""
Allergen resolver — asks the AI collaborator for allergen categories and
forces the answer through the normalizer. An Err from the collaborator is
"no signal": the resolver returns an empty set and never blocks the caller.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from menuguard.services import ai_client
from menuguard.services.ai_client import Err, Result
from menuguard.services.normalizer import normalize

logger = logging.getLogger(__name__)


async def _resolve(
    text: str,
    detector: Callable[[str], Awaitable[Result[list[str]]]],
    what: str,
) -> set[str]:
    if not text or not text.strip():
        return set()
    result = await detector(text.strip())
    if isinstance(result, Err):
        logger.info(
            "No %s allergen signal for %r (%s)", what, text, result.error.kind
        )
        return set()
    return normalize(result.value)


async def resolve_allergens(ingredient_name: str) -> set[str]:
    """Canonical allergen categories of one ingredient."""
    return await _resolve(ingredient_name, ai_client.detect_allergens, "ingredient")


async def resolve_description_allergens(description: str) -> set[str]:
    """Canonical allergens explicitly mentioned in a dish description."""
    return await _resolve(
        description, ai_client.detect_description_allergens, "description"
    )


async def resolve_cross_contact(step_description: str) -> set[str]:
    """Canonical cross-contact risks introduced by a cooking step."""
    return await _resolve(
        step_description, ai_client.detect_cross_contact, "cross-contact"
    )
