from sqlalchemy import Column, Enum as SQLEnum, String
from sqlalchemy.orm import relationship

from .base import Base
from fitmate.schemas.enums import Role


class User(Base):
    """User model for members, trainers and admins."""
    __tablename__ = "users"

    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    name = Column(String, nullable=True)
    role = Column(SQLEnum(Role, name="role"), nullable=False, default=Role.USER)
    # Id of the outstanding password reset token, if any
    reset_token_id = Column(String, nullable=True)

    # Relationships
    enrollments = relationship("ClassEnrollment", back_populates="user", passive_deletes=True)
    trained_classes = relationship("FitnessClass", back_populates="trainer", foreign_keys="FitnessClass.trainer_id", passive_deletes=True)
    reviews_written = relationship("Review", back_populates="reviewer", foreign_keys="Review.reviewer_id", passive_deletes=True)
    reviews_received = relationship("Review", back_populates="trainer", foreign_keys="Review.trainer_id", passive_deletes=True)
    membership_purchases = relationship("MembershipPurchase", back_populates="user", passive_deletes=True)
    payment_proofs = relationship("PaymentProof", back_populates="user", passive_deletes=True)
