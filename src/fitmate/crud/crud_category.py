from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fitmate.crud.base import CRUDBase
from fitmate.models.fitness_class import ClassCategory, FitnessClass
from fitmate.schemas.category import CategoryCreate, CategoryUpdate


class CRUDCategory(CRUDBase[ClassCategory, CategoryCreate, CategoryUpdate]):
    """CRUD operations for class categories."""

    async def get_by_name(self, db: AsyncSession, *, name: str) -> Optional[ClassCategory]:
        stmt = select(ClassCategory).where(ClassCategory.name == name)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def count_classes(self, db: AsyncSession, *, category_id: int) -> int:
        """Number of classes referencing the category."""
        stmt = select(func.count()).select_from(FitnessClass).where(FitnessClass.category_id == category_id)
        result = await db.execute(stmt)
        return result.scalar_one()


category = CRUDCategory(ClassCategory)
