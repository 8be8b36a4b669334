"""
Core domain types consumed by the allergen aggregator, the dietary classifier
and the export renderer. Built from ORM rows by services.menu_loader or from
drafts by services.drafts.to_bundle.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

NUTRITION_FIELDS = (
    "calories",
    "protein_g",
    "carbs_g",
    "carbs_fiber_g",
    "carbs_sugar_g",
    "carbs_added_sugar_g",
    "fat_g",
    "fat_saturated_g",
    "fat_trans_g",
    "fat_polyunsaturated_g",
    "fat_monounsaturated_g",
    "sodium_mg",
    "cholesterol_mg",
)


class Nutrition(BaseModel):
    """Per-serving nutrition panel. Unknown values stay None."""

    calories: Optional[float] = None
    protein_g: Optional[float] = None
    carbs_g: Optional[float] = None
    carbs_fiber_g: Optional[float] = None
    carbs_sugar_g: Optional[float] = None
    carbs_added_sugar_g: Optional[float] = None
    fat_g: Optional[float] = None
    fat_saturated_g: Optional[float] = None
    fat_trans_g: Optional[float] = None
    fat_polyunsaturated_g: Optional[float] = None
    fat_monounsaturated_g: Optional[float] = None
    sodium_mg: Optional[float] = None
    cholesterol_mg: Optional[float] = None


class SubstituteInfo(BaseModel):
    """A named replacement ingredient and its own allergen set."""

    name: str
    allergens: list[str] = Field(default_factory=list)


class IngredientUse(BaseModel):
    """One ingredient as used in one dish (the dish↔ingredient join row)."""

    link_id: Optional[str] = None
    ingredient_id: Optional[str] = None
    name: str
    allergens: list[str] = Field(default_factory=list)
    amount_value: Optional[float] = None
    amount_unit: Optional[str] = None
    is_removable: bool = False
    is_substitutable: bool = False
    substitutes: list[SubstituteInfo] = Field(default_factory=list)


class StepInfo(BaseModel):
    """A cooking step with its cross-contact risks."""

    step_number: int = Field(..., ge=1)
    description: str = ""
    cross_contact_risk: list[str] = Field(default_factory=list)
    is_modifiable: bool = False
    modifiable_allergens: list[str] = Field(default_factory=list)
    modification_notes: Optional[str] = None


class DishBundle(Nutrition):
    """A dish with its ingredient links and cooking steps fully joined."""

    id: str
    name: str
    category: Optional[str] = None
    price: Optional[float] = None
    description: Optional[str] = None
    description_allergens: list[str] = Field(default_factory=list)
    ingredients: list[IngredientUse] = Field(default_factory=list)
    cooking_steps: list[StepInfo] = Field(default_factory=list)

    def nutrition(self) -> dict[str, Optional[float]]:
        """Return the nutrition panel as a plain dict."""
        return {f: getattr(self, f) for f in NUTRITION_FIELDS}
