"""Pydantic schemas package."""

from menuguard.schemas.menu import (
    DishBundle,
    IngredientUse,
    Nutrition,
    StepInfo,
    SubstituteInfo,
)
from menuguard.schemas.allergen import (
    AllergenAggregate,
    AllergenMatrix,
    AvailableDish,
    DietaryCategoryResult,
    DishAnalysis,
    DishSafety,
)
from menuguard.schemas.dish import DishDraft, IngredientDraft, StepDraft, SubstituteDraft

__all__ = [
    "DishBundle", "IngredientUse", "Nutrition", "StepInfo", "SubstituteInfo",
    "AllergenAggregate", "AllergenMatrix", "AvailableDish",
    "DietaryCategoryResult", "DishAnalysis", "DishSafety",
    "DishDraft", "IngredientDraft", "StepDraft", "SubstituteDraft",
]
