from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fitmate.crud.base import CRUDBase
from fitmate.models.membership import MembershipPurchase
from fitmate.schemas.membership import PurchaseCreate


class CRUDMembershipPurchase(CRUDBase[MembershipPurchase, PurchaseCreate, BaseModel]):
    """CRUD operations for membership purchases."""

    async def list_purchases(self, db: AsyncSession, *, user_id: Optional[int] = None) -> List[MembershipPurchase]:
        stmt = select(MembershipPurchase).order_by(MembershipPurchase.created_at.desc(), MembershipPurchase.id.desc())
        if user_id is not None:
            stmt = stmt.where(MembershipPurchase.user_id == user_id)
        result = await db.execute(stmt)
        return list(result.scalars().all())


membership_purchase = CRUDMembershipPurchase(MembershipPurchase)
