"""SQLAlchemy ORM models package."""

from menuguard.database import Base
from menuguard.models.restaurant import Restaurant
from menuguard.models.ingredient import Ingredient
from menuguard.models.dish import CookingStep, Dish, DishIngredient, IngredientSubstitute
from menuguard.models.customer import CustomerProfile, DietaryRestriction
from menuguard.models.chef_request import ChefRequest

__all__ = [
    "Base", "Restaurant", "Ingredient",
    "Dish", "DishIngredient", "IngredientSubstitute", "CookingStep",
    "CustomerProfile", "DietaryRestriction", "ChefRequest",
]
