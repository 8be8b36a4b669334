"""Pydantic schemas for restaurant endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class RestaurantCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    owner_ref: Optional[str] = Field(default=None, max_length=200)


class RestaurantRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    qr_code: str
    owner_ref: Optional[str] = None
    terms_accepted: bool = False
    terms_accepted_at: Optional[datetime] = None
    onboarding_completed: bool = False


class MenuUrlResponse(BaseModel):
    qr_code: str
    url: str


class ChefRequestCreate(BaseModel):
    """Body for POST /menu/{qr_code}/requests."""

    dish_id: str
    requested_modifications: str = Field(..., min_length=1, max_length=2000)
    dietary_concerns: list[str] = Field(default_factory=list)


class ChefRequestRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    restaurant_id: str
    dish_id: Optional[str] = None
    dish_name: str
    requested_modifications: str
    dietary_concerns: list[str] = Field(default_factory=list)
    status: str
    response: Optional[str] = None
    created_at: Optional[datetime] = None


class ChefRequestPatch(BaseModel):
    """Staff decision on a chef request."""

    status: Literal["approved", "declined"]
    response: Optional[str] = Field(default=None, max_length=2000)
