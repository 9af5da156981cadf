"""
Read-side projections of the class catalog.

Stored rows never carry the derived availability fields; they are computed
here for every response from the live enrollment counts and the current time.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from fitmate.core.admission import available_spots, derive_status, has_started, utc_now
from fitmate.core.errors import NotFoundError
from fitmate.crud.crud_class import fitness_class as crud_class
from fitmate.crud.crud_enrollment import enrollment as crud_enrollment
from fitmate.crud.crud_user import user as crud_user
from fitmate.models.core import User
from fitmate.models.fitness_class import ClassEnrollment, FitnessClass
from fitmate.schemas.category import CategoryResponse
from fitmate.schemas.fitness_class import (
    ClassDetailResponse,
    ClassEnrollmentsResponse,
    ClassResponse,
    EnrollmentResponse,
    TrainerClassesResponse,
)
from fitmate.schemas.user import UserPublic

logger = logging.getLogger(__name__)

CLASS_NOT_FOUND = "Class not found"
TRAINER_NOT_FOUND = "Trainer not found"


def _columns(obj: Any) -> Dict[str, Any]:
    return {attr.key: getattr(obj, attr.key) for attr in inspect(obj).mapper.column_attrs}


def _loaded(obj: Any, name: str) -> Any:
    # Touching an unloaded relationship would trigger lazy IO outside the event loop
    if name in inspect(obj).unloaded:
        return None
    return getattr(obj, name)


def serialize_class(
    fitness_class: FitnessClass, enrollment_count: int, now: Optional[datetime] = None
) -> ClassResponse:
    """Attach trainer, category and the derived availability fields to a class."""
    now = now or utc_now()
    trainer = _loaded(fitness_class, "trainer")
    category = _loaded(fitness_class, "category")
    return ClassResponse.model_validate({
        **_columns(fitness_class),
        "trainer": UserPublic.model_validate(trainer) if trainer else None,
        "category": CategoryResponse.model_validate(category) if category else None,
        "enrollment_count": enrollment_count,
        "available_spots": available_spots(fitness_class.capacity, enrollment_count),
        "has_started": has_started(fitness_class.start_time, now),
        "status": derive_status(fitness_class.start_time, fitness_class.end_time, now),
    })


def serialize_enrollment(
    enrollment: ClassEnrollment,
    class_response: Optional[ClassResponse] = None,
    member: Optional[User] = None,
) -> EnrollmentResponse:
    member = member or _loaded(enrollment, "user")
    return EnrollmentResponse.model_validate({
        **_columns(enrollment),
        "fitness_class": class_response,
        "user": UserPublic.model_validate(member) if member else None,
    })


class CatalogService:
    """Read-only queries over classes and enrollments."""

    async def serialize_classes(self, db: AsyncSession, classes: List[FitnessClass]) -> List[ClassResponse]:
        """Serialize many classes with one grouped count query."""
        counts = await crud_class.enrollment_counts(db, class_ids=[c.id for c in classes])
        now = utc_now()
        return [serialize_class(c, counts.get(c.id, 0), now) for c in classes]

    async def list_classes(self, db: AsyncSession, *, upcoming_only: bool = False) -> List[ClassResponse]:
        """All classes, or only those whose start time is still ahead."""
        starts_after = utc_now() if upcoming_only else None
        classes = await crud_class.list_classes(db, starts_after=starts_after)
        logger.debug(f"Listing {len(classes)} classes (upcoming_only={upcoming_only})")
        return await self.serialize_classes(db, classes)

    async def get_class(self, db: AsyncSession, *, class_id: int) -> ClassResponse:
        db_class = await crud_class.get_with_relations(db, id=class_id)
        if not db_class:
            raise NotFoundError(CLASS_NOT_FOUND)
        count = await crud_enrollment.count_for_class(db, class_id=class_id)
        return serialize_class(db_class, count)

    async def get_class_detail(self, db: AsyncSession, *, class_id: int) -> ClassDetailResponse:
        """A class with its enrollments and their users."""
        db_class = await crud_class.get_with_relations(db, id=class_id)
        if not db_class:
            raise NotFoundError(CLASS_NOT_FOUND)
        enrollments = await crud_enrollment.list_for_class(db, class_id=class_id)
        base = serialize_class(db_class, len(enrollments))
        return ClassDetailResponse.model_validate({
            **base.model_dump(),
            "enrollments": [serialize_enrollment(e) for e in enrollments],
        })

    async def get_class_enrollments(self, db: AsyncSession, *, class_id: int) -> ClassEnrollmentsResponse:
        db_class = await crud_class.get_with_relations(db, id=class_id)
        if not db_class:
            raise NotFoundError(CLASS_NOT_FOUND)
        enrollments = await crud_enrollment.list_for_class(db, class_id=class_id)
        return ClassEnrollmentsResponse(
            fitness_class=serialize_class(db_class, len(enrollments)),
            enrollments=[serialize_enrollment(e) for e in enrollments],
        )

    async def get_trainer_classes(self, db: AsyncSession, *, trainer_id: int) -> TrainerClassesResponse:
        """Classes run by a trainer, soonest first."""
        trainer = await crud_user.get_trainer(db, id=trainer_id)
        if not trainer:
            raise NotFoundError(TRAINER_NOT_FOUND)
        classes = await crud_class.list_classes(db, trainer_id=trainer_id)
        return TrainerClassesResponse(
            trainer=UserPublic.model_validate(trainer),
            classes=await self.serialize_classes(db, classes),
        )

    async def get_user_classes(self, db: AsyncSession, *, user_id: int) -> List[EnrollmentResponse]:
        """Enrollments held by a user, each with its class and derived fields."""
        if not await crud_user.exists(db, id=user_id):
            raise NotFoundError("User not found")
        enrollments = await crud_enrollment.list_for_user(db, user_id=user_id)
        counts = await crud_class.enrollment_counts(db, class_ids=[e.class_id for e in enrollments])
        now = utc_now()
        return [
            serialize_enrollment(e, serialize_class(e.fitness_class, counts.get(e.class_id, 0), now))
            for e in enrollments
        ]


catalog_service = CatalogService()
