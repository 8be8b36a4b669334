"""Restaurant ORM model."""

from sqlalchemy import Boolean, Column, String, Text, TIMESTAMP, func
from sqlalchemy.orm import relationship

from menuguard.database import Base, generate_uuid


class Restaurant(Base):
    """
    A restaurant and its onboarding state. The qr_code token is the only
    way customers address its menu.
    """

    __tablename__ = "restaurants"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(Text, nullable=False)
    qr_code = Column(String(32), nullable=False, unique=True, index=True)
    owner_ref = Column(Text, nullable=True, index=True)

    terms_accepted = Column(Boolean, nullable=False, default=False)
    terms_accepted_at = Column(TIMESTAMP(timezone=True), nullable=True)
    onboarding_completed = Column(Boolean, nullable=False, default=False)

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
    dishes = relationship(
        "Dish", back_populates="restaurant", cascade="all, delete-orphan"
    )
    ingredients = relationship(
        "Ingredient", back_populates="restaurant", cascade="all, delete-orphan"
    )
