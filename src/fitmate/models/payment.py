from sqlalchemy import Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from fitmate.models.base import Base


class PaymentProof(Base):
    """An uploaded transfer slip waiting for manual review.

    The image itself lives in the proof store under ``storage_key``.
    """
    __tablename__ = "payment_proofs"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    amount = Column(Integer, nullable=False)
    note = Column(Text, nullable=True)
    filename = Column(String, nullable=False)
    mime_type = Column(String, nullable=False)
    storage_key = Column(String, nullable=False, unique=True)

    # Relationships
    user = relationship("User", back_populates="payment_proofs")
