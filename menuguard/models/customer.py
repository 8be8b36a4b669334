"""Customer profile and dietary restriction catalogue models."""

from sqlalchemy import Column, JSON, String, Text, TIMESTAMP, func

from menuguard.database import Base, generate_uuid


class CustomerProfile(Base):
    """
    Anonymous customer profile keyed by a caller-supplied session token.
    Token lifecycle belongs to whoever issues it; no expiry is applied here.
    """

    __tablename__ = "customer_profiles"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    session_token = Column(String(128), nullable=False, unique=True, index=True)
    dietary_restrictions = Column(JSON, nullable=False, default=list)
    custom_allergens = Column(JSON, nullable=False, default=list)
    severity_level = Column(String(20), nullable=False, default="moderate")
    additional_notes = Column(Text, nullable=True)

    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class DietaryRestriction(Base):
    """A named restriction customers can declare, mapped to allergen categories."""

    __tablename__ = "dietary_restrictions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(Text, nullable=False, unique=True)
    allergens = Column(JSON, nullable=False, default=list)
    description = Column(Text, nullable=True)
