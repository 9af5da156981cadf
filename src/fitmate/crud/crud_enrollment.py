from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy import DateTime, func, insert, literal, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fitmate.core.admission import utc_now
from fitmate.crud.base import CRUDBase
from fitmate.models.fitness_class import ClassEnrollment, FitnessClass


class CRUDEnrollment(CRUDBase[ClassEnrollment, BaseModel, BaseModel]):
    """CRUD operations for class enrollments."""

    async def get_for(self, db: AsyncSession, *, user_id: int, class_id: int) -> Optional[ClassEnrollment]:
        stmt = select(ClassEnrollment).where(
            ClassEnrollment.user_id == user_id,
            ClassEnrollment.class_id == class_id,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def count_for_class(self, db: AsyncSession, *, class_id: int) -> int:
        stmt = select(func.count()).select_from(ClassEnrollment).where(ClassEnrollment.class_id == class_id)
        result = await db.execute(stmt)
        return result.scalar_one()

    async def create_if_room(
        self, db: AsyncSession, *, class_id: int, user_id: int, capacity: Optional[int]
    ) -> Optional[ClassEnrollment]:
        """Insert an enrollment only while the class still has a free seat.

        The seat count and the insert are one statement, so two writers can
        never both take the last seat. Returns None when the class is full.
        Does not commit.
        """
        now = utc_now()
        row = select(
            literal(class_id),
            literal(user_id),
            literal(now, DateTime),
            literal(now, DateTime),
        )
        if capacity is not None:
            taken = (
                select(func.count())
                .select_from(ClassEnrollment)
                .where(ClassEnrollment.class_id == class_id)
                .scalar_subquery()
            )
            row = row.where(taken < capacity)
        stmt = insert(ClassEnrollment).from_select(["class_id", "user_id", "created_at", "updated_at"], row)
        result = await db.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get_for(db, user_id=user_id, class_id=class_id)

    async def list_for_class(self, db: AsyncSession, *, class_id: int) -> List[ClassEnrollment]:
        """Enrollments of a class, oldest first, with users loaded."""
        stmt = (
            select(ClassEnrollment)
            .where(ClassEnrollment.class_id == class_id)
            .options(selectinload(ClassEnrollment.user))
            .order_by(ClassEnrollment.created_at, ClassEnrollment.id)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def list_for_user(self, db: AsyncSession, *, user_id: int) -> List[ClassEnrollment]:
        """Enrollments of a user with classes loaded, ordered by class start time."""
        stmt = (
            select(ClassEnrollment)
            .join(ClassEnrollment.fitness_class)
            .where(ClassEnrollment.user_id == user_id)
            .options(
                selectinload(ClassEnrollment.fitness_class).selectinload(FitnessClass.trainer),
                selectinload(ClassEnrollment.fitness_class).selectinload(FitnessClass.category),
            )
            .order_by(FitnessClass.start_time, ClassEnrollment.id)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())


enrollment = CRUDEnrollment(ClassEnrollment)
