from typing import Optional

from .base import BaseSchema, BaseResponseSchema
from .enums import Role
from .user import UserPublic


class MembershipPlan(BaseSchema):
    """A purchasable plan and the tier it grants."""
    id: str
    role: Role
    amount: int
    currency: str
    label: str


class PurchaseCreate(BaseSchema):
    """A completed purchase reported for fulfilment."""
    user_id: int
    plan_id: str
    reference: Optional[str] = None


class PurchaseResponse(BaseResponseSchema):
    user_id: int
    plan_id: str
    role: Role
    amount: int
    currency: str
    reference: Optional[str] = None


class PurchaseResult(BaseSchema):
    purchase: PurchaseResponse
    user: UserPublic
