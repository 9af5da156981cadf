from typing import List

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fitmate.crud.base import CRUDBase
from fitmate.models.contact import ContactRequest
from fitmate.schemas.contact import ContactCreate


class CRUDContactRequest(CRUDBase[ContactRequest, ContactCreate, BaseModel]):
    """CRUD operations for contact form messages."""

    async def list_newest_first(self, db: AsyncSession) -> List[ContactRequest]:
        stmt = select(ContactRequest).order_by(ContactRequest.created_at.desc(), ContactRequest.id.desc())
        result = await db.execute(stmt)
        return list(result.scalars().all())


contact_request = CRUDContactRequest(ContactRequest)
