from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fitmate.crud.base import CRUDBase
from fitmate.models.fitness_class import ClassEnrollment, FitnessClass
from fitmate.schemas.fitness_class import ClassCreate, ClassUpdate

CLASS_LOAD_OPTIONS = (
    selectinload(FitnessClass.trainer),
    selectinload(FitnessClass.category),
)


class CRUDClass(CRUDBase[FitnessClass, ClassCreate, ClassUpdate]):
    """CRUD operations for scheduled classes."""

    async def get_with_relations(self, db: AsyncSession, *, id: int) -> Optional[FitnessClass]:
        """Get a class with trainer and category loaded.

        Rows already in the session are refreshed so the relationships load
        even when the class was fetched earlier without them.
        """
        stmt = (
            select(FitnessClass)
            .where(FitnessClass.id == id)
            .options(*CLASS_LOAD_OPTIONS)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_for_update(self, db: AsyncSession, *, id: int) -> Optional[FitnessClass]:
        """Get a class and lock its row until the end of the transaction.

        Concurrent enrollments into the same class serialise on this lock.
        """
        stmt = select(FitnessClass).where(FitnessClass.id == id).with_for_update()
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_classes(
        self,
        db: AsyncSession,
        *,
        starts_after: Optional[datetime] = None,
        trainer_id: Optional[int] = None,
        category_id: Optional[int] = None,
    ) -> List[FitnessClass]:
        """List classes ordered by start time, optionally filtered."""
        stmt = select(FitnessClass).options(*CLASS_LOAD_OPTIONS).order_by(FitnessClass.start_time, FitnessClass.id)
        if starts_after is not None:
            stmt = stmt.where(FitnessClass.start_time > starts_after)
        if trainer_id is not None:
            stmt = stmt.where(FitnessClass.trainer_id == trainer_id)
        if category_id is not None:
            stmt = stmt.where(FitnessClass.category_id == category_id)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def enrollment_counts(self, db: AsyncSession, *, class_ids: Iterable[int]) -> Dict[int, int]:
        """Live enrollment count per class id; classes without enrollments map to 0."""
        ids = list(class_ids)
        if not ids:
            return {}
        stmt = (
            select(ClassEnrollment.class_id, func.count(ClassEnrollment.id))
            .where(ClassEnrollment.class_id.in_(ids))
            .group_by(ClassEnrollment.class_id)
        )
        result = await db.execute(stmt)
        counts = {class_id: 0 for class_id in ids}
        counts.update({class_id: count for class_id, count in result.all()})
        return counts

    async def remove_with_enrollments(self, db: AsyncSession, *, db_obj: FitnessClass) -> None:
        """Delete a class together with its enrollments in one transaction."""
        await db.execute(ClassEnrollment.__table__.delete().where(ClassEnrollment.class_id == db_obj.id))
        await db.delete(db_obj)
        await db.commit()


fitness_class = CRUDClass(FitnessClass)
