"""Chef modification request model."""

from sqlalchemy import Column, ForeignKey, JSON, String, Text, TIMESTAMP, func

from menuguard.database import Base, generate_uuid


class ChefRequest(Base):
    """
    A customer's request to the kitchen to modify a dish.
    status: 'pending' → 'approved' | 'declined'
    """

    __tablename__ = "chef_requests"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    restaurant_id = Column(
        String(36),
        ForeignKey("restaurants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    dish_id = Column(
        String(36),
        ForeignKey("dishes.id", ondelete="SET NULL"),
        nullable=True,
    )
    customer_profile_id = Column(
        String(36),
        ForeignKey("customer_profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    dish_name = Column(Text, nullable=False)
    requested_modifications = Column(Text, nullable=False)
    dietary_concerns = Column(JSON, nullable=False, default=list)
    status = Column(String(20), nullable=False, default="pending", index=True)
    response = Column(Text, nullable=True)

    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
