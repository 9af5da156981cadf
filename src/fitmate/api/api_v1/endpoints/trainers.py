from fastapi import APIRouter

from fitmate.db.session import SessionDep
from fitmate.schemas.trainer import TrainerDetailResponse, TrainerResponse
from fitmate.services.trainer_service import trainer_service
from fitmate.utils.validation import parse_id

router = APIRouter()


@router.get("", response_model=list[TrainerResponse])
async def read_trainers(db: SessionDep) -> list[TrainerResponse]:
    """All trainers with their review count and average rating."""
    return await trainer_service.list_trainers(db)


@router.get("/{trainer_id}", response_model=TrainerDetailResponse)
async def read_trainer(trainer_id: str, db: SessionDep) -> TrainerDetailResponse:
    return await trainer_service.get_trainer(db, trainer_id=parse_id(trainer_id, "trainerId"))
