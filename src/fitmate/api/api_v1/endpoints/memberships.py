from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from fitmate.core.pbac import require_permission
from fitmate.db.session import SessionDep
from fitmate.schemas.auth import TokenUser
from fitmate.schemas.membership import MembershipPlan, PurchaseCreate, PurchaseResponse, PurchaseResult
from fitmate.services.membership_service import membership_service
from fitmate.utils.validation import parse_id

router = APIRouter()


@router.get("/plans", response_model=list[MembershipPlan])
async def read_plans() -> list[MembershipPlan]:
    """Purchasable membership plans and the tier each one grants."""
    return membership_service.list_plans()


@router.post("/purchases", response_model=PurchaseResult, status_code=status.HTTP_201_CREATED)
async def record_purchase(
    purchase_in: PurchaseCreate,
    db: SessionDep,
    current_user: Annotated[TokenUser, Depends(require_permission("create", "purchases"))],
) -> PurchaseResult:
    """
    Record a purchase whose payment has been confirmed and upgrade
    the buyer's tier. The buyer must sign in again or reissue their
    token to carry the new role.
    """
    return await membership_service.record_purchase(db, obj_in=purchase_in)


@router.get("/purchases", response_model=list[PurchaseResponse])
async def read_purchases(
    db: SessionDep,
    current_user: Annotated[TokenUser, Depends(require_permission("read", "purchases"))],
    user_id: Annotated[Optional[str], Query(alias="userId")] = None,
) -> list[PurchaseResponse]:
    filter_id = parse_id(user_id, "userId") if user_id is not None else None
    return await membership_service.list_purchases(db, user_id=filter_id)


@router.get("/me", response_model=list[PurchaseResponse])
async def read_my_purchases(
    db: SessionDep,
    current_user: Annotated[TokenUser, Depends(require_permission("read", "own_purchases"))],
) -> list[PurchaseResponse]:
    return await membership_service.list_purchases(db, user_id=current_user.id)
