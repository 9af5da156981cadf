from typing import Optional

from pydantic import field_validator

from .base import BaseSchema, BaseResponseSchema
from .user import UserPublic

MIN_RATING = 1
MAX_RATING = 5


class ReviewCreate(BaseSchema):
    """Schema for reviewing a trainer."""
    trainer_id: int
    rating: int
    comment: Optional[str] = None

    @field_validator("rating")
    @classmethod
    def rating_in_range(cls, v: int) -> int:
        if v < MIN_RATING or v > MAX_RATING:
            raise ValueError(f"rating must be between {MIN_RATING} and {MAX_RATING}")
        return v


class ReviewResponse(BaseResponseSchema):
    """Schema for review response."""
    reviewer_id: int
    trainer_id: int
    rating: int
    comment: Optional[str] = None
    reviewer: Optional[UserPublic] = None
    trainer: Optional[UserPublic] = None


class ReviewSummary(BaseSchema):
    """Aggregates over a set of reviews."""
    total_reviews: int
    average_rating: float
    rating_counts: dict[str, int]


class TrainerReviewsResponse(ReviewSummary):
    trainer: UserPublic
    reviews: list[ReviewResponse]
