from .base import Base
from .core import User
from .fitness_class import ClassCategory, FitnessClass, ClassEnrollment
from .review import Review
from .membership import MembershipPurchase
from .contact import ContactRequest
from .payment import PaymentProof

__all__ = [
    "Base",
    "User",
    "ClassCategory",
    "FitnessClass",
    "ClassEnrollment",
    "Review",
    "MembershipPurchase",
    "ContactRequest",
    "PaymentProof",
]
