from sqlalchemy import Column, Enum as SQLEnum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from fitmate.models.base import Base
from fitmate.schemas.enums import Role


class MembershipPurchase(Base):
    """A completed membership purchase that granted a tier role."""
    __tablename__ = "membership_purchases"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_id = Column(String, nullable=False)
    role = Column(SQLEnum(Role, name="role"), nullable=False)
    amount = Column(Integer, nullable=False)  # minor currency units
    currency = Column(String(3), nullable=False)
    reference = Column(String, nullable=True, unique=True)

    # Relationships
    user = relationship("User", back_populates="membership_purchases")
