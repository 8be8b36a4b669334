"""Pydantic schemas for menu photo scanning and OCR item matching."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field


class ImagePayload(BaseModel):
    """Body carrying a base64 image, optionally as a data: URL."""

    image: str = Field(..., min_length=1)


class ScannedDish(BaseModel):
    """A dish record extracted from a menu photo."""

    name: str
    category: str = "Other"
    price: str = "0.00"
    description: str = ""


class CatalogDish(BaseModel):
    """Minimal existing-dish view used for name matching."""

    id: str
    name: str
    category: Optional[str] = None


class ScanConflict(BaseModel):
    """A scanned dish that resembles a dish already on the menu."""

    scanned: ScannedDish
    existing: CatalogDish
    score: int


class ScanResult(BaseModel):
    """Scanned dishes split into likely duplicates and new entries."""

    dishes: list[ScannedDish] = Field(default_factory=list)
    conflicts: list[ScanConflict] = Field(default_factory=list)
    new_dishes: list[ScannedDish] = Field(default_factory=list)
    message: Optional[str] = None


class ScanResolution(BaseModel):
    """Staff decision for one scanned dish."""

    scanned: ScannedDish
    action: Literal["create", "update", "skip"] = "create"
    existing_id: Optional[str] = None


class ScanApplyRequest(BaseModel):
    """Body for POST /restaurants/{id}/scan/apply."""

    resolutions: list[ScanResolution] = Field(default_factory=list)


class ScanApplyResult(BaseModel):
    created: list[str] = Field(default_factory=list)
    updated: list[str] = Field(default_factory=list)
    skipped: int = 0


class BoundingBox(BaseModel):
    """Position on the photo in percent (0–100), x/y is the top-left corner."""

    x: float
    y: float
    width: float
    height: float


class DetectedItem(BaseModel):
    """A menu item name read off a photo."""

    name: str
    bounding_box: BoundingBox
    confidence: float = 70
    price: Optional[str] = None


class DetectedMatch(BaseModel):
    """A detected item paired with the catalog dish it most resembles."""

    item: DetectedItem
    dish: Optional[CatalogDish] = None
    score: int = 0


class PhotoMatchResult(BaseModel):
    matches: list[DetectedMatch] = Field(default_factory=list)
    total_items: int = 0
    message: Optional[str] = None
