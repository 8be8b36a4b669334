"""
Fuzzy name matcher — normalised Levenshtein similarity on a 0–100 scale.

Used to flag re-scanned dishes that already exist on the menu and to pair
OCR-detected photo items with catalog dishes. Ties keep the first candidate
in input order.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from rapidfuzz.distance import Levenshtein

from menuguard.schemas.scan import (
    CatalogDish,
    DetectedItem,
    DetectedMatch,
    ScanConflict,
    ScannedDish,
)

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 60


def similarity(a: str, b: str) -> int:
    """
    Case-insensitive similarity between two names.
    Identical after trimming → 100; otherwise
    round((1 - distance / max_len) * 100), rounding halves up.
    """
    left = (a or "").strip().lower()
    right = (b or "").strip().lower()
    if left == right:
        return 100
    longest = max(len(left), len(right))
    distance = Levenshtein.distance(left, right)
    return int((1 - distance / longest) * 100 + 0.5)


def find_best_match(
    name: str,
    candidates: Sequence[str],
    threshold: int = DEFAULT_THRESHOLD,
) -> Optional[tuple[int, int]]:
    """
    Return (index, score) of the most similar candidate, or None.

    A candidate replaces the current best only with a strictly higher score,
    so the earliest candidate wins ties. Scores below threshold never match.
    """
    best_index: Optional[int] = None
    best_score = 0
    for index, candidate in enumerate(candidates):
        score = similarity(name, candidate)
        if score > best_score and score >= threshold:
            best_index, best_score = index, score
    if best_index is None:
        return None
    return best_index, best_score


def detect_scan_conflicts(
    scanned: Sequence[ScannedDish],
    existing: Sequence[CatalogDish],
    threshold: int = DEFAULT_THRESHOLD,
) -> tuple[list[ScanConflict], list[ScannedDish]]:
    """Split freshly scanned dishes into (conflicts, new dishes)."""
    names = [d.name for d in existing]
    conflicts: list[ScanConflict] = []
    fresh: list[ScannedDish] = []
    for dish in scanned:
        match = find_best_match(dish.name, names, threshold)
        if match is None:
            fresh.append(dish)
            continue
        index, score = match
        conflicts.append(ScanConflict(scanned=dish, existing=existing[index], score=score))
    logger.info(
        "Scan conflict check: %d conflicts, %d new", len(conflicts), len(fresh)
    )
    return conflicts, fresh


def match_detected_items(
    items: Sequence[DetectedItem],
    catalog: Sequence[CatalogDish],
    threshold: int = DEFAULT_THRESHOLD,
) -> list[DetectedMatch]:
    """Pair every detected photo item with its closest catalog dish, if any."""
    names = [d.name for d in catalog]
    matches: list[DetectedMatch] = []
    for item in items:
        match = find_best_match(item.name, names, threshold)
        if match is None:
            matches.append(DetectedMatch(item=item))
        else:
            index, score = match
            matches.append(DetectedMatch(item=item, dish=catalog[index], score=score))
    return matches
