from typing import Annotated

from fastapi import APIRouter, Depends, status

from fitmate.core.pbac import require_permission
from fitmate.db.session import SessionDep
from fitmate.schemas import MessageResponse
from fitmate.schemas.auth import TokenUser
from fitmate.schemas.review import ReviewCreate, ReviewResponse, ReviewSummary, TrainerReviewsResponse
from fitmate.services.review_service import review_service
from fitmate.utils.validation import parse_id

router = APIRouter()


@router.get("", response_model=list[ReviewResponse])
async def read_reviews(db: SessionDep) -> list[ReviewResponse]:
    """All reviews, newest first."""
    return await review_service.list_reviews(db)


@router.get("/summary", response_model=ReviewSummary)
async def read_review_summary(db: SessionDep) -> ReviewSummary:
    return await review_service.get_summary(db)


@router.get("/trainer/{trainer_id}", response_model=TrainerReviewsResponse)
async def read_trainer_reviews(trainer_id: str, db: SessionDep) -> TrainerReviewsResponse:
    """Reviews of one trainer with their rating aggregates."""
    return await review_service.get_trainer_reviews(db, trainer_id=parse_id(trainer_id, "trainerId"))


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    review_in: ReviewCreate,
    db: SessionDep,
    current_user: Annotated[
        TokenUser, Depends(require_permission("create", "reviews", "Your role cannot write reviews"))
    ],
) -> ReviewResponse:
    return await review_service.create_review(db, reviewer_id=current_user.id, obj_in=review_in)


@router.delete("/{review_id}", response_model=MessageResponse)
async def delete_review(
    review_id: str,
    db: SessionDep,
    current_user: Annotated[TokenUser, Depends(require_permission("delete", "reviews"))],
) -> MessageResponse:
    await review_service.delete_review(db, review_id=parse_id(review_id, "reviewId"))
    return MessageResponse(message="Review deleted successfully")
