"""Pydantic schemas for restaurant ingredients."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def name_key(name: str) -> str:
    """Case- and whitespace-insensitive lookup key for an ingredient name."""
    return " ".join(name.split()).lower()


class IngredientCreate(BaseModel):
    """Body for POST /restaurants/{id}/ingredients. Omit allergens to auto-detect."""

    name: str = Field(..., min_length=1, max_length=200)
    allergens: Optional[list[str]] = None


class IngredientRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    contains_allergens: list[str] = Field(default_factory=list)


class IngredientDetectRequest(BaseModel):
    """Body for POST /ingredients/detect."""

    name: str = Field(..., min_length=1, max_length=200)


class IngredientDetectResponse(BaseModel):
    name: str
    allergens: list[str]


class IngredientSuggestion(BaseModel):
    """An ingredient the model believes a dish contains."""

    name: str
    existing_id: Optional[str] = None
    allergens: list[str] = Field(default_factory=list)
    confidence: float = 50
