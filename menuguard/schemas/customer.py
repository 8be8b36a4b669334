"""Pydantic schemas for the customer-facing menu and profiles."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from menuguard.schemas.allergen import AllergenAggregate, DishSafety
from menuguard.schemas.menu import DishBundle


class DietaryRestrictionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    allergens: list[str] = Field(default_factory=list)
    description: Optional[str] = None


class ProfileUpdate(BaseModel):
    """Body for PUT /customers/profile — full replace."""

    dietary_restrictions: list[str] = Field(default_factory=list)
    custom_allergens: list[str] = Field(default_factory=list)
    severity_level: Literal["mild", "moderate", "severe"] = "moderate"
    additional_notes: Optional[str] = Field(default=None, max_length=1000)


class ProfileRead(BaseModel):
    dietary_restrictions: list[str] = Field(default_factory=list)
    custom_allergens: list[str] = Field(default_factory=list)
    severity_level: str = "moderate"
    additional_notes: Optional[str] = None
    effective_allergens: list[str] = Field(default_factory=list)


class CustomerDish(BaseModel):
    """A dish as shown to a customer, with its safety verdict."""

    id: str
    name: str
    category: Optional[str] = None
    price: Optional[float] = None
    description: Optional[str] = None
    all_allergens: list[str] = Field(default_factory=list)
    safety: DishSafety


class CustomerMenu(BaseModel):
    restaurant_name: str
    effective_allergens: list[str] = Field(default_factory=list)
    dishes: list[CustomerDish] = Field(default_factory=list)


class CustomerDishDetail(BaseModel):
    """Full dish view for a customer."""

    dish: DishBundle
    allergens: AllergenAggregate
    safety: DishSafety
