"""Result types produced by the aggregator and the dietary classifier."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

AllergenStatus = Literal["not_present", "can_modify", "cannot_modify"]
MenuStatus = Literal["available", "limited", "unavailable"]
SafetyStatus = Literal["safe", "safe_with_modifications", "unsafe"]


class AllergenAggregate(BaseModel):
    """Merged allergen view of one dish."""

    all_allergens: list[str] = Field(default_factory=list)
    per_allergen_status: dict[str, AllergenStatus] = Field(default_factory=dict)


class DishAnalysis(BaseModel):
    """Whether a dish can be served while avoiding a set of allergens."""

    safe: bool
    requires_modification: bool = False
    modifications: list[str] = Field(default_factory=list)
    blockers: list[str] = Field(default_factory=list)


class AvailableDish(BaseModel):
    """A dish that qualifies for a dietary category."""

    id: str
    name: str
    requires_modification: bool = False
    modifications: list[str] = Field(default_factory=list)


class DietaryCategoryResult(BaseModel):
    """Menu-level availability for one dietary category."""

    category_id: str
    name: str
    type: str
    status: MenuStatus
    available_dishes: list[AvailableDish] = Field(default_factory=list)
    total_available: int = 0
    reason: Optional[str] = None
    warning: Optional[str] = None
    ai_used: bool = False


class DishSafety(BaseModel):
    """Customer-facing safety verdict for one dish."""

    dish_id: str
    status: SafetyStatus
    label: str
    suggestions: list[str] = Field(default_factory=list)
    reasons: list[str] = Field(default_factory=list)


class MatrixRow(BaseModel):
    """One dish row of the staff allergen matrix."""

    dish_id: str
    name: str
    category: Optional[str] = None
    all_allergens: list[str] = Field(default_factory=list)
    statuses: dict[str, AllergenStatus] = Field(default_factory=dict)


class AllergenMatrix(BaseModel):
    """Allergen matrix for a restaurant, grouped by menu category."""

    restaurant_id: str
    allergens: list[str]
    categories: dict[str, list[MatrixRow]] = Field(default_factory=dict)
