from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fitmate.crud.base import CRUDBase
from fitmate.models.review import Review
from fitmate.schemas.review import ReviewCreate

REVIEW_LOAD_OPTIONS = (
    selectinload(Review.reviewer),
    selectinload(Review.trainer),
)


class CRUDReview(CRUDBase[Review, ReviewCreate, ReviewCreate]):
    """CRUD operations for trainer reviews."""

    async def list_reviews(self, db: AsyncSession, *, trainer_id: Optional[int] = None) -> List[Review]:
        """Reviews newest first, with reviewer and trainer loaded."""
        stmt = select(Review).options(*REVIEW_LOAD_OPTIONS).order_by(Review.created_at.desc(), Review.id.desc())
        if trainer_id is not None:
            stmt = stmt.where(Review.trainer_id == trainer_id)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def rating_histogram(self, db: AsyncSession, *, trainer_id: Optional[int] = None) -> Dict[int, int]:
        """Number of reviews per rating value."""
        stmt = select(Review.rating, func.count(Review.id)).group_by(Review.rating)
        if trainer_id is not None:
            stmt = stmt.where(Review.trainer_id == trainer_id)
        result = await db.execute(stmt)
        return {rating: count for rating, count in result.all()}

    async def histograms_by_trainer(self, db: AsyncSession) -> Dict[int, Dict[int, int]]:
        """Rating histogram for every reviewed trainer."""
        stmt = select(Review.trainer_id, Review.rating, func.count(Review.id)).group_by(Review.trainer_id, Review.rating)
        result = await db.execute(stmt)
        histograms: Dict[int, Dict[int, int]] = {}
        for trainer_id, rating, count in result.all():
            histograms.setdefault(trainer_id, {})[rating] = count
        return histograms


review = CRUDReview(Review)
