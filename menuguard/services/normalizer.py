"""
Allergen normalizer — maps free-text allergen mentions onto the canonical
vocabulary. Output only ever contains members of CANONICAL_ALLERGENS;
unrecognised text is dropped without error.
"""

from __future__ import annotations

import logging
from typing import Iterable

from menuguard.utils.allergen_data import (
    ALLERGEN_ALIASES,
    CANONICAL_ALLERGENS,
    NON_ALLERGEN_TERMS,
)

logger = logging.getLogger(__name__)

_SPAN_BREAK = "|"


def _build_term_table() -> list[tuple[str, str | None]]:
    """
    Flatten aliases into (term, category) pairs, longest term first.
    Non-allergen terms carry category None and win ties against aliases.
    """
    pairs: dict[str, str | None] = {}
    for category in CANONICAL_ALLERGENS:
        pairs.setdefault(category.lower(), category)
        for alias in ALLERGEN_ALIASES.get(category, []):
            pairs.setdefault(alias.lower(), category)
    for term in NON_ALLERGEN_TERMS:
        pairs[term.lower()] = None
    return sorted(pairs.items(), key=lambda kv: (-len(kv[0]), kv[1] is not None))


_TERMS = _build_term_table()
_CANONICAL_BY_LOWER = {c.lower(): c for c in CANONICAL_ALLERGENS}


def normalize_one(candidate: str) -> set[str]:
    """Return the canonical categories mentioned in a single string."""
    if not candidate:
        return set()
    text = candidate.strip().lower()
    if not text:
        return set()

    exact = _CANONICAL_BY_LOWER.get(text)
    if exact:
        return {exact}

    found: set[str] = set()
    for term, category in _TERMS:
        if term not in text:
            continue
        if category is not None:
            found.add(category)
        # Consume the span so shorter terms cannot re-match inside it
        text = text.replace(term, _SPAN_BREAK)
    return found


def normalize(candidates: Iterable[str] | None) -> set[str]:
    """
    Normalize a sequence of free-text allergen mentions.

    Matching is case-insensitive substring containment against the alias
    table. Anything unmatched is silently dropped.
    """
    result: set[str] = set()
    if not candidates:
        return result
    for candidate in candidates:
        if not isinstance(candidate, str):
            logger.debug("Skipping non-string allergen candidate: %r", candidate)
            continue
        result |= normalize_one(candidate)
    return result


def normalize_sorted(candidates: Iterable[str] | None) -> list[str]:
    """normalize() ordered by canonical vocabulary order, for storage."""
    found = normalize(candidates)
    return [c for c in CANONICAL_ALLERGENS if c in found]
