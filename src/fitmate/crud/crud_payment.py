from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fitmate.crud.base import CRUDBase
from fitmate.models.payment import PaymentProof


class CRUDPaymentProof(CRUDBase[PaymentProof, BaseModel, BaseModel]):
    """CRUD operations for uploaded payment proofs."""

    async def list_proofs(self, db: AsyncSession, *, user_id: Optional[int] = None) -> List[PaymentProof]:
        stmt = select(PaymentProof).order_by(PaymentProof.created_at.desc(), PaymentProof.id.desc())
        if user_id is not None:
            stmt = stmt.where(PaymentProof.user_id == user_id)
        result = await db.execute(stmt)
        return list(result.scalars().all())


payment_proof = CRUDPaymentProof(PaymentProof)
