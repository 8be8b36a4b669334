"""Dish ORM models: dishes, ingredient links, substitutes and cooking steps."""

from sqlalchemy import (
    Boolean, Column, Float, ForeignKey, Integer, JSON, String, Text,
    TIMESTAMP, func,
)
from sqlalchemy.orm import relationship

from menuguard.database import Base, generate_uuid


class Dish(Base):
    """
    A menu item. Soft-deleted through is_active so historical links and
    requests stay valid.
    """

    __tablename__ = "dishes"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    restaurant_id = Column(
        String(36),
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(Text, nullable=False)
    category = Column(Text, nullable=False, default="Other")
    price = Column(Float, nullable=False, default=0.0)
    description = Column(Text, nullable=True)
    description_allergens = Column(JSON, nullable=False, default=list)

    # Nutrition per serving (all optional)
    calories = Column(Float, nullable=True)
    protein_g = Column(Float, nullable=True)
    carbs_g = Column(Float, nullable=True)
    carbs_fiber_g = Column(Float, nullable=True)
    carbs_sugar_g = Column(Float, nullable=True)
    carbs_added_sugar_g = Column(Float, nullable=True)
    fat_g = Column(Float, nullable=True)
    fat_saturated_g = Column(Float, nullable=True)
    fat_trans_g = Column(Float, nullable=True)
    fat_polyunsaturated_g = Column(Float, nullable=True)
    fat_monounsaturated_g = Column(Float, nullable=True)
    sodium_mg = Column(Float, nullable=True)
    cholesterol_mg = Column(Float, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationships
    restaurant = relationship("Restaurant", back_populates="dishes")
    ingredient_links = relationship(
        "DishIngredient",
        back_populates="dish",
        cascade="all, delete-orphan",
        order_by="DishIngredient.position",
    )
    cooking_steps = relationship(
        "CookingStep",
        back_populates="dish",
        cascade="all, delete-orphan",
        order_by="CookingStep.step_number",
    )


class DishIngredient(Base):
    """Join row: one ingredient used in one dish, with modification flags."""

    __tablename__ = "dish_ingredients"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    dish_id = Column(
        String(36),
        ForeignKey("dishes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    ingredient_id = Column(
        String(36),
        ForeignKey("ingredients.id", ondelete="CASCADE"),
        nullable=False,
    )
    position = Column(Integer, nullable=False, default=0)
    amount_value = Column(Float, nullable=True)
    amount_unit = Column(String(20), nullable=True)
    is_removable = Column(Boolean, nullable=False, default=False)
    is_substitutable = Column(Boolean, nullable=False, default=False)

    # Relationships
    dish = relationship("Dish", back_populates="ingredient_links")
    ingredient = relationship("Ingredient")
    substitutes = relationship(
        "IngredientSubstitute",
        back_populates="link",
        cascade="all, delete-orphan",
    )


class IngredientSubstitute(Base):
    """A named replacement for a substitutable ingredient link."""

    __tablename__ = "ingredient_substitutes"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    link_id = Column(
        String(36),
        ForeignKey("dish_ingredients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    substitute_ingredient_id = Column(
        String(36),
        ForeignKey("ingredients.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Relationships
    link = relationship("DishIngredient", back_populates="substitutes")
    substitute_ingredient = relationship("Ingredient")


class CookingStep(Base):
    """A preparation step. step_number is 1-based and contiguous per dish."""

    __tablename__ = "cooking_steps"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    dish_id = Column(
        String(36),
        ForeignKey("dishes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    step_number = Column(Integer, nullable=False)
    description = Column(Text, nullable=False, default="")
    cross_contact_risk = Column(JSON, nullable=False, default=list)
    is_modifiable = Column(Boolean, nullable=False, default=False)
    modifiable_allergens = Column(JSON, nullable=False, default=list)
    modification_notes = Column(Text, nullable=True)

    # Relationships
    dish = relationship("Dish", back_populates="cooking_steps")
