import logging
from typing import Any, Dict, Optional

from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from fitmate.core.errors import BadRequestError, NotFoundError
from fitmate.crud.crud_category import category as crud_category
from fitmate.crud.crud_class import fitness_class as crud_class
from fitmate.crud.crud_enrollment import enrollment as crud_enrollment
from fitmate.crud.crud_user import user as crud_user
from fitmate.schemas.enums import Role
from fitmate.schemas.fitness_class import END_AFTER_START, ClassCreate, ClassResponse, ClassUpdate
from fitmate.services.catalog_service import CLASS_NOT_FOUND, serialize_class

logger = logging.getLogger(__name__)

TRAINER_REQUIRED = "trainerId must reference a user with the TRAINER role"
NON_NULLABLE_FIELDS = ("trainer_id", "title", "start_time", "end_time")


class ClassService:
    """Admin scheduling of classes."""

    async def _check_trainer(self, db: AsyncSession, trainer_id: int) -> None:
        trainer = await crud_user.get(db, id=trainer_id)
        if not trainer or trainer.role != Role.TRAINER:
            raise BadRequestError(TRAINER_REQUIRED)

    async def _check_category(self, db: AsyncSession, category_id: Optional[int]) -> None:
        if category_id is not None and not await crud_category.exists(db, id=category_id):
            raise NotFoundError("Category not found")

    async def _response(self, db: AsyncSession, class_id: int) -> ClassResponse:
        db_class = await crud_class.get_with_relations(db, id=class_id)
        count = await crud_enrollment.count_for_class(db, class_id=class_id)
        return serialize_class(db_class, count)

    async def create_class(self, db: AsyncSession, *, obj_in: ClassCreate, created_by_id: int) -> ClassResponse:
        """Schedule a new class run by a trainer."""
        await self._check_trainer(db, obj_in.trainer_id)
        await self._check_category(db, obj_in.category_id)

        data = obj_in.model_dump()
        data["created_by_id"] = created_by_id
        db_class = await crud_class.create(db, obj_in=data)
        logger.info(f"Class {db_class.id} '{db_class.title}' scheduled by admin {created_by_id}")
        return await self._response(db, db_class.id)

    async def update_class(self, db: AsyncSession, *, class_id: int, obj_in: ClassUpdate) -> ClassResponse:
        """Apply a partial update.

        The time window is validated on the merged old and new values, and the
        capacity may not drop below the seats already taken. The class row is
        locked for the update so enrollments cannot slip in after the count.
        """
        db_class = await crud_class.get_for_update(db, id=class_id)
        if not db_class:
            raise NotFoundError(CLASS_NOT_FOUND)

        update_data: Dict[str, Any] = obj_in.model_dump(exclude_unset=True)
        if not update_data:
            raise BadRequestError("No fields to update")

        for field in NON_NULLABLE_FIELDS:
            if field in update_data and update_data[field] is None:
                raise BadRequestError(f"{to_camel(field)} cannot be empty")

        if "trainer_id" in update_data:
            await self._check_trainer(db, update_data["trainer_id"])
        if "category_id" in update_data:
            await self._check_category(db, update_data["category_id"])

        start_time = update_data.get("start_time", db_class.start_time)
        end_time = update_data.get("end_time", db_class.end_time)
        if end_time <= start_time:
            raise BadRequestError(END_AFTER_START)

        if update_data.get("capacity") is not None:
            taken = await crud_enrollment.count_for_class(db, class_id=class_id)
            if update_data["capacity"] < taken:
                raise BadRequestError(
                    f"capacity cannot be less than the current enrollment count ({taken})"
                )

        await crud_class.update(db, db_obj=db_class, obj_in=update_data)
        logger.info(f"Class {class_id} updated: {', '.join(sorted(update_data))}")
        return await self._response(db, class_id)

    async def delete_class(self, db: AsyncSession, *, class_id: int) -> None:
        """Delete a class and every enrollment in it."""
        db_class = await crud_class.get(db, id=class_id)
        if not db_class:
            raise NotFoundError(CLASS_NOT_FOUND)
        await crud_class.remove_with_enrollments(db, db_obj=db_class)
        logger.info(f"Class {class_id} deleted with its enrollments")


class_service = ClassService()
