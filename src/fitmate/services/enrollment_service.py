"""
Transactional enroll/unenroll.

The admission decision itself is made by ``fitmate.core.admission``; this
service gathers its inputs under a row lock on the class and applies the
outcome in the same transaction.
"""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fitmate.core.admission import ALREADY_ENROLLED, CLASS_FULL, check_enrollment, utc_now
from fitmate.core.errors import AppError, BadRequestError, ConflictError, NotFoundError
from fitmate.crud.crud_class import fitness_class as crud_class
from fitmate.crud.crud_enrollment import enrollment as crud_enrollment
from fitmate.crud.crud_user import user as crud_user
from fitmate.schemas.fitness_class import EnrollmentResponse
from fitmate.services.catalog_service import CLASS_NOT_FOUND, serialize_class, serialize_enrollment

ENROLLMENT_NOT_FOUND = "Enrollment not found"


class EnrollmentService:
    def __init__(self):
        self.logger = logging.getLogger(__name__)

    async def enroll(self, db: AsyncSession, *, class_id: int, user_id: int) -> EnrollmentResponse:
        """Enroll a user into a class.

        The class row is locked while the start time, tier, capacity and
        duplicate checks run, and the insert itself re-checks the seat count,
        so concurrent requests cannot overfill a class.
        The role is read from the database so a fresh upgrade applies
        immediately.

        Returns:
            EnrollmentResponse: The new enrollment with class and user nested

        Raises:
            NotFoundError: If the class or the user does not exist
            BadRequestError: If the class has started or is full
            ForbiddenError: If the user's tier is below the class requirement
            ConflictError: If the user is already enrolled
        """
        try:
            db_class = await crud_class.get_for_update(db, id=class_id)
            if not db_class:
                raise NotFoundError(CLASS_NOT_FOUND)

            member = await crud_user.get(db, id=user_id)
            if not member:
                raise NotFoundError("User not found")

            count = await crud_enrollment.count_for_class(db, class_id=class_id)
            existing = await crud_enrollment.get_for(db, user_id=user_id, class_id=class_id)

            decision = check_enrollment(db_class, member.role, count, existing is not None, utc_now())
            if not decision.allowed:
                self.logger.warning(f"Enrollment denied for user {user_id} in class {class_id}: {decision.reason}")
                decision.raise_if_denied()

            new_enrollment = await crud_enrollment.create_if_room(
                db, class_id=class_id, user_id=user_id, capacity=db_class.capacity
            )
            if new_enrollment is None:
                # Seat taken by a request that committed after the count above
                self.logger.warning(f"Enrollment denied for user {user_id} in class {class_id}: {CLASS_FULL}")
                raise BadRequestError(CLASS_FULL)
            await db.commit()
        except IntegrityError:
            # A concurrent request inserted the same (class, user) pair first
            await db.rollback()
            self.logger.warning(f"Duplicate enrollment for user {user_id} in class {class_id}")
            raise ConflictError(ALREADY_ENROLLED)
        except AppError:
            await db.rollback()
            raise

        self.logger.info(f"User {user_id} enrolled in class {class_id}")

        fresh_class = await crud_class.get_with_relations(db, id=class_id)
        new_count = await crud_enrollment.count_for_class(db, class_id=class_id)
        return serialize_enrollment(new_enrollment, serialize_class(fresh_class, new_count), member)

    async def unenroll(self, db: AsyncSession, *, class_id: int, user_id: int) -> None:
        """Cancel a user's enrollment. Allowed at any time, even after the class started.

        Raises:
            NotFoundError: If the class or the enrollment does not exist
        """
        if not await crud_class.exists(db, id=class_id):
            raise NotFoundError(CLASS_NOT_FOUND)

        existing = await crud_enrollment.get_for(db, user_id=user_id, class_id=class_id)
        if not existing:
            raise NotFoundError(ENROLLMENT_NOT_FOUND)

        await db.delete(existing)
        await db.commit()
        self.logger.info(f"User {user_id} unenrolled from class {class_id}")


enrollment_service = EnrollmentService()
