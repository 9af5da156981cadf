import logging
from typing import Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from fitmate.core.errors import NotFoundError
from fitmate.crud.crud_review import review as crud_review
from fitmate.crud.crud_user import user as crud_user
from fitmate.schemas.review import MAX_RATING, MIN_RATING, ReviewCreate, ReviewResponse, ReviewSummary, TrainerReviewsResponse
from fitmate.schemas.user import UserPublic
from fitmate.services.catalog_service import TRAINER_NOT_FOUND


def summarize(histogram: Dict[int, int]) -> ReviewSummary:
    """Build count, mean and per-rating counts from a rating histogram.

    Every rating from 1 to 5 appears in ``rating_counts``, keyed by its string
    form. The mean is rounded to two decimals and is 0 without reviews.
    """
    counts = {str(rating): histogram.get(rating, 0) for rating in range(MIN_RATING, MAX_RATING + 1)}
    total = sum(histogram.values())
    average = round(sum(rating * n for rating, n in histogram.items()) / total, 2) if total else 0.0
    return ReviewSummary(total_reviews=total, average_rating=average, rating_counts=counts)


class ReviewService:
    def __init__(self):
        self.logger = logging.getLogger(__name__)

    async def list_reviews(self, db: AsyncSession) -> List[ReviewResponse]:
        reviews = await crud_review.list_reviews(db)
        return [ReviewResponse.model_validate(r) for r in reviews]

    async def get_summary(self, db: AsyncSession) -> ReviewSummary:
        """Aggregates over every review in the system."""
        return summarize(await crud_review.rating_histogram(db))

    async def get_trainer_reviews(self, db: AsyncSession, *, trainer_id: int) -> TrainerReviewsResponse:
        trainer = await crud_user.get_trainer(db, id=trainer_id)
        if not trainer:
            raise NotFoundError(TRAINER_NOT_FOUND)
        summary = summarize(await crud_review.rating_histogram(db, trainer_id=trainer_id))
        reviews = await crud_review.list_reviews(db, trainer_id=trainer_id)
        return TrainerReviewsResponse(
            **summary.model_dump(),
            trainer=UserPublic.model_validate(trainer),
            reviews=[ReviewResponse.model_validate(r) for r in reviews],
        )

    async def create_review(self, db: AsyncSession, *, reviewer_id: int, obj_in: ReviewCreate) -> ReviewResponse:
        """Record a rating of a trainer by the calling user.

        Raises:
            NotFoundError: If the reviewer no longer exists or the target is not a trainer
        """
        reviewer = await crud_user.get(db, id=reviewer_id)
        if not reviewer:
            raise NotFoundError("Reviewer not found")
        trainer = await crud_user.get_trainer(db, id=obj_in.trainer_id)
        if not trainer:
            raise NotFoundError(TRAINER_NOT_FOUND)

        data = obj_in.model_dump()
        data["reviewer_id"] = reviewer_id
        db_review = await crud_review.create(db, obj_in=data)
        self.logger.info(f"User {reviewer_id} rated trainer {trainer.id} with {db_review.rating}")
        return ReviewResponse.model_validate({
            "id": db_review.id,
            "created_at": db_review.created_at,
            "updated_at": db_review.updated_at,
            "reviewer_id": db_review.reviewer_id,
            "trainer_id": db_review.trainer_id,
            "rating": db_review.rating,
            "comment": db_review.comment,
            "reviewer": UserPublic.model_validate(reviewer),
            "trainer": UserPublic.model_validate(trainer),
        })

    async def delete_review(self, db: AsyncSession, *, review_id: int) -> None:
        removed = await crud_review.remove(db, id=review_id)
        if not removed:
            raise NotFoundError("Review not found")
        self.logger.info(f"Review {review_id} deleted")


review_service = ReviewService()
