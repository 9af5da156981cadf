"""
Membership plans and fulfilment of completed purchases.

A purchase is recorded once the payment has been confirmed elsewhere; recording
it grants the plan's tier to the buyer.
"""
import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fitmate.core.errors import BadRequestError, ConflictError, NotFoundError
from fitmate.core.roles import STAFF_ROLES, is_strict_upgrade
from fitmate.crud.crud_membership import membership_purchase as crud_purchase
from fitmate.crud.crud_user import user as crud_user
from fitmate.schemas.enums import Role
from fitmate.schemas.membership import MembershipPlan, PurchaseCreate, PurchaseResponse, PurchaseResult
from fitmate.schemas.user import UserPublic

# Amounts are in satang (1/100 THB)
MEMBERSHIP_PLANS: tuple[MembershipPlan, ...] = (
    MembershipPlan(id="bronze", role=Role.USER_BRONZE, amount=49900, currency="THB", label="Bronze 499"),
    MembershipPlan(id="gold", role=Role.USER_GOLD, amount=129900, currency="THB", label="Gold 1299"),
    MembershipPlan(id="platinum", role=Role.USER_PLATINUM, amount=299900, currency="THB", label="Platinum 2999"),
)

ALREADY_AT_TIER = "User already has an equal or higher role"


def get_plan(plan_id: str) -> Optional[MembershipPlan]:
    normalized = plan_id.strip().lower()
    return next((plan for plan in MEMBERSHIP_PLANS if plan.id == normalized), None)


class MembershipService:
    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def list_plans(self) -> List[MembershipPlan]:
        return list(MEMBERSHIP_PLANS)

    async def record_purchase(self, db: AsyncSession, *, obj_in: PurchaseCreate) -> PurchaseResult:
        """Record a completed purchase and upgrade the buyer's tier.

        The purchase row and the role change are committed together.

        Raises:
            BadRequestError: Unknown plan, or the buyer is a trainer or admin
            NotFoundError: If the buyer does not exist
            ConflictError: If the buyer already holds the tier or a higher one,
                or the payment reference was already recorded
        """
        plan = get_plan(obj_in.plan_id)
        if not plan:
            raise BadRequestError("invalid planId")

        buyer = await crud_user.get(db, id=obj_in.user_id)
        if not buyer:
            raise NotFoundError("User not found")
        if buyer.role in STAFF_ROLES:
            raise BadRequestError("Memberships can only be purchased by member accounts")
        if not is_strict_upgrade(buyer.role, plan.role):
            raise ConflictError(ALREADY_AT_TIER)

        try:
            purchase = await crud_purchase.create(
                db,
                obj_in={
                    "user_id": buyer.id,
                    "plan_id": plan.id,
                    "role": plan.role,
                    "amount": plan.amount,
                    "currency": plan.currency,
                    "reference": obj_in.reference,
                },
                commit=False,
            )
            previous_role = buyer.role
            buyer.role = plan.role
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("Purchase reference already recorded")

        self.logger.info(f"User {buyer.id} upgraded {previous_role.value} -> {plan.role.value} via plan {plan.id}")
        return PurchaseResult(
            purchase=PurchaseResponse.model_validate(purchase),
            user=UserPublic.model_validate(buyer),
        )

    async def list_purchases(self, db: AsyncSession, *, user_id: Optional[int] = None) -> List[PurchaseResponse]:
        purchases = await crud_purchase.list_purchases(db, user_id=user_id)
        return [PurchaseResponse.model_validate(p) for p in purchases]


membership_service = MembershipService()
