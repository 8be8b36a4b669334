"""
Pydantic schemas for dishes: the editable draft structure submitted by the
staff form, partial updates, and read models.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, model_validator

from menuguard.schemas.allergen import AllergenAggregate
from menuguard.schemas.ingredient import name_key
from menuguard.schemas.menu import DishBundle, Nutrition


class SubstituteDraft(BaseModel):
    """A replacement ingredient offered on a draft. allergens=None means auto-detect."""

    name: str = Field(..., min_length=1, max_length=200)
    allergens: Optional[list[str]] = None


class IngredientDraft(BaseModel):
    """An ingredient line of a dish draft. allergens=None means auto-detect."""

    name: str = Field(..., min_length=1, max_length=200)
    allergens: Optional[list[str]] = None
    amount_value: Optional[float] = Field(default=None, ge=0)
    amount_unit: Optional[str] = Field(default=None, max_length=20)
    is_removable: bool = False
    is_substitutable: bool = False
    substitutes: list[SubstituteDraft] = Field(default_factory=list)

    @model_validator(mode="after")
    def _substitutes_need_flag(self) -> "IngredientDraft":
        if not self.is_substitutable and self.substitutes:
            self.substitutes = []
        return self


class StepDraft(BaseModel):
    """A cooking step of a dish draft. cross_contact_risk=None means auto-detect."""

    description: str = Field(..., min_length=1, max_length=1000)
    cross_contact_risk: Optional[list[str]] = None
    is_modifiable: bool = False
    modifiable_allergens: list[str] = Field(default_factory=list)
    modification_notes: Optional[str] = None


class DishDraft(Nutrition):
    """
    Complete editable state of one dish. Step order is list order, so step
    numbers are always 1..n. Ingredient names are unique case-insensitively.
    """

    name: str = Field(..., min_length=1, max_length=200)
    category: str = Field(default="Other", max_length=100)
    price: float = Field(default=0.0, ge=0)
    description: Optional[str] = None
    description_allergens: Optional[list[str]] = None
    ingredients: list[IngredientDraft] = Field(default_factory=list)
    steps: list[StepDraft] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_ingredient_names(self) -> "DishDraft":
        seen: set[str] = set()
        for ingredient in self.ingredients:
            key = name_key(ingredient.name)
            if key in seen:
                raise ValueError(f"Duplicate ingredient: {ingredient.name}")
            seen.add(key)
        return self


class DishPatch(Nutrition):
    """Partial update of a dish's own fields (not its ingredients or steps)."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[str] = Field(default=None, max_length=100)
    price: Optional[float] = Field(default=None, ge=0)
    description: Optional[str] = None
    description_allergens: Optional[list[str]] = None


class IngredientLinkPatch(BaseModel):
    amount_value: Optional[float] = Field(default=None, ge=0)
    amount_unit: Optional[str] = Field(default=None, max_length=20)
    is_removable: Optional[bool] = None
    is_substitutable: Optional[bool] = None
    substitutes: Optional[list[SubstituteDraft]] = None


class StepPatch(BaseModel):
    description: Optional[str] = Field(default=None, min_length=1, max_length=1000)
    cross_contact_risk: Optional[list[str]] = None
    is_modifiable: Optional[bool] = None
    modifiable_allergens: Optional[list[str]] = None
    modification_notes: Optional[str] = None
    step_number: Optional[int] = Field(default=None, ge=1)


class DishSummary(BaseModel):
    """Compact dish row for menu listings."""

    id: str
    name: str
    category: Optional[str] = None
    price: Optional[float] = None
    description: Optional[str] = None
    all_allergens: list[str] = Field(default_factory=list)


class DishDetail(DishBundle):
    """Full dish with its aggregated allergen view."""

    restaurant_id: Optional[str] = None
    is_active: bool = True
    allergens: AllergenAggregate


class DraftPreview(BaseModel):
    """Aggregated allergens of an unsaved draft."""

    dish: DishBundle
    allergens: AllergenAggregate
