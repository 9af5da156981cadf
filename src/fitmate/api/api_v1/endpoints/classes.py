from typing import Annotated

from fastapi import APIRouter, Depends, status

from fitmate.api.auth_deps import OptionalTokenUser
from fitmate.core.errors import ForbiddenError
from fitmate.core.pbac import require_permission
from fitmate.db.session import SessionDep
from fitmate.schemas import MessageResponse, Role
from fitmate.schemas.auth import TokenUser
from fitmate.schemas.fitness_class import (
    ClassCreate,
    ClassDetailResponse,
    ClassEnrollmentsResponse,
    ClassResponse,
    ClassUpdate,
    EnrollmentResponse,
    TrainerClassesResponse,
)
from fitmate.services.catalog_service import catalog_service
from fitmate.services.class_service import class_service
from fitmate.services.enrollment_service import enrollment_service
from fitmate.utils.validation import parse_id

router = APIRouter()


# Fixed paths are declared before "/{class_id}" so they are not captured by it

@router.get("", response_model=list[ClassResponse])
async def read_classes(db: SessionDep) -> list[ClassResponse]:
    """All classes with live enrollment counts and status."""
    return await catalog_service.list_classes(db)


@router.get("/listclassupcoming", response_model=list[ClassResponse])
async def read_upcoming_classes(db: SessionDep) -> list[ClassResponse]:
    """Classes that have not started yet."""
    return await catalog_service.list_classes(db, upcoming_only=True)


@router.get("/my-classes", response_model=TrainerClassesResponse)
async def read_my_classes(
    current_user: Annotated[
        TokenUser, Depends(require_permission("read", "own_classes", "Only trainers can view their own classes"))
    ],
    db: SessionDep,
) -> TrainerClassesResponse:
    return await catalog_service.get_trainer_classes(db, trainer_id=current_user.id)


@router.get("/trainer/{trainer_id}", response_model=TrainerClassesResponse)
async def read_trainer_classes(
    trainer_id: str,
    db: SessionDep,
    current_user: OptionalTokenUser,
) -> TrainerClassesResponse:
    """
    Classes run by a trainer. Open to everyone, except that a signed-in
    trainer may only look at their own schedule.
    """
    target_id = parse_id(trainer_id, "trainerId")
    if current_user and current_user.role == Role.TRAINER and current_user.id != target_id:
        raise ForbiddenError("You can only view your own classes")
    return await catalog_service.get_trainer_classes(db, trainer_id=target_id)


@router.post("", response_model=ClassResponse, status_code=status.HTTP_201_CREATED)
async def create_class(
    class_in: ClassCreate,
    db: SessionDep,
    current_user: Annotated[TokenUser, Depends(require_permission("create", "classes"))],
) -> ClassResponse:
    return await class_service.create_class(db, obj_in=class_in, created_by_id=current_user.id)


@router.get("/{class_id}", response_model=ClassDetailResponse)
async def read_class(class_id: str, db: SessionDep) -> ClassDetailResponse:
    """A class with its enrollments."""
    return await catalog_service.get_class_detail(db, class_id=parse_id(class_id, "classId"))


@router.get("/{class_id}/enrollments", response_model=ClassEnrollmentsResponse)
async def read_class_enrollments(class_id: str, db: SessionDep) -> ClassEnrollmentsResponse:
    return await catalog_service.get_class_enrollments(db, class_id=parse_id(class_id, "classId"))


@router.put("/{class_id}", response_model=ClassResponse)
async def update_class(
    class_id: str,
    class_in: ClassUpdate,
    db: SessionDep,
    current_user: Annotated[TokenUser, Depends(require_permission("update", "classes"))],
) -> ClassResponse:
    return await class_service.update_class(db, class_id=parse_id(class_id, "classId"), obj_in=class_in)


@router.delete("/{class_id}", response_model=MessageResponse)
async def delete_class(
    class_id: str,
    db: SessionDep,
    current_user: Annotated[TokenUser, Depends(require_permission("delete", "classes"))],
) -> MessageResponse:
    """Delete a class together with all of its enrollments."""
    await class_service.delete_class(db, class_id=parse_id(class_id, "classId"))
    return MessageResponse(message="Class deleted successfully")


@router.post("/{class_id}/enroll", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
async def enroll_in_class(
    class_id: str,
    db: SessionDep,
    current_user: Annotated[
        TokenUser, Depends(require_permission("create", "enrollments", "Your role cannot enroll in classes"))
    ],
) -> EnrollmentResponse:
    """Join a class as the signed-in user."""
    return await enrollment_service.enroll(db, class_id=parse_id(class_id, "classId"), user_id=current_user.id)


@router.delete("/{class_id}/enroll", response_model=MessageResponse)
async def unenroll_from_class(
    class_id: str,
    db: SessionDep,
    current_user: Annotated[
        TokenUser, Depends(require_permission("delete", "enrollments", "Your role cannot enroll in classes"))
    ],
) -> MessageResponse:
    """Leave a class as the signed-in user."""
    await enrollment_service.unenroll(db, class_id=parse_id(class_id, "classId"), user_id=current_user.id)
    return MessageResponse(message="Enrollment cancelled successfully")
