from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from fitmate.core.admission import utc_now
from fitmate.core.errors import NotFoundError
from fitmate.crud.crud_class import fitness_class as crud_class
from fitmate.crud.crud_review import review as crud_review
from fitmate.crud.crud_user import user as crud_user
from fitmate.schemas.enums import Role
from fitmate.schemas.trainer import TrainerDetailResponse, TrainerResponse
from fitmate.schemas.user import UserPublic
from fitmate.services.catalog_service import TRAINER_NOT_FOUND, catalog_service
from fitmate.services.review_service import summarize


class TrainerService:
    """Trainer directory with review aggregates."""

    async def list_trainers(self, db: AsyncSession) -> List[TrainerResponse]:
        trainers = await crud_user.get_by_role(db, role=Role.TRAINER)
        histograms = await crud_review.histograms_by_trainer(db)
        result = []
        for trainer in trainers:
            summary = summarize(histograms.get(trainer.id, {}))
            result.append(TrainerResponse(
                **UserPublic.model_validate(trainer).model_dump(),
                total_reviews=summary.total_reviews,
                average_rating=summary.average_rating,
            ))
        return result

    async def get_trainer(self, db: AsyncSession, *, trainer_id: int) -> TrainerDetailResponse:
        """A trainer with rating breakdown and the classes they still have ahead."""
        trainer = await crud_user.get_trainer(db, id=trainer_id)
        if not trainer:
            raise NotFoundError(TRAINER_NOT_FOUND)
        summary = summarize(await crud_review.rating_histogram(db, trainer_id=trainer_id))
        upcoming = await crud_class.list_classes(db, trainer_id=trainer_id, starts_after=utc_now())
        return TrainerDetailResponse(
            **UserPublic.model_validate(trainer).model_dump(),
            **summary.model_dump(),
            upcoming_classes=await catalog_service.serialize_classes(db, upcoming),
        )


trainer_service = TrainerService()
