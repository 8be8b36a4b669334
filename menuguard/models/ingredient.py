"""Ingredient ORM model — shared across a restaurant's dishes."""

from sqlalchemy import (
    Column, ForeignKey, JSON, String, Text, TIMESTAMP, UniqueConstraint, func,
)
from sqlalchemy.orm import relationship

from menuguard.database import Base, generate_uuid


class Ingredient(Base):
    """
    A named ingredient with its canonical allergen categories.
    Names are unique per restaurant, case-insensitively, via name_key.
    """

    __tablename__ = "ingredients"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "name_key", name="uq_ingredient_name"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    restaurant_id = Column(
        String(36),
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(Text, nullable=False)
    name_key = Column(Text, nullable=False)   # lower(trim(name))
    contains_allergens = Column(JSON, nullable=False, default=list)

    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )

    # Relationships
    restaurant = relationship("Restaurant", back_populates="ingredients")
