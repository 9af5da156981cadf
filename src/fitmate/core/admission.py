"""
Class enrollment admission control.

Pure decision functions: they take the stored class fields, the enrollment
count and the current time, and never touch the database. The transactional
side lives in ``fitmate.services.enrollment_service``.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol, Type, Union

from fitmate.core.errors import AppError, BadRequestError, ConflictError, ForbiddenError
from fitmate.core.roles import satisfies_role
from fitmate.schemas.enums import ClassStatus, Role


CLASS_STARTED = "Class has started or finished"
CLASS_FULL = "Class is already full"
ALREADY_ENROLLED = "You are already enrolled in this class"


class ScheduledClass(Protocol):
    id: int
    start_time: datetime
    end_time: datetime
    capacity: Optional[int]
    required_role: Optional[Role]


@dataclass(frozen=True)
class Decision:
    """Outcome of an admission check."""
    allowed: bool
    reason: Optional[str] = None
    error: Optional[Type[AppError]] = None

    def raise_if_denied(self) -> None:
        if not self.allowed:
            raise self.error(self.reason)


ALLOW = Decision(allowed=True)


def utc_now() -> datetime:
    """Current time as a naive UTC datetime, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def has_started(start_time: datetime, now: datetime) -> bool:
    return now >= start_time


def derive_status(start_time: datetime, end_time: datetime, now: datetime) -> ClassStatus:
    """UPCOMING before start, ONGOING on [start, end], ENDED afterwards."""
    if now < start_time:
        return ClassStatus.UPCOMING
    if now <= end_time:
        return ClassStatus.ONGOING
    return ClassStatus.ENDED


def available_spots(capacity: Optional[int], enrollment_count: int) -> Optional[int]:
    """Remaining seats, or None for a class without a capacity limit."""
    if capacity is None:
        return None
    return capacity - enrollment_count


def required_role_message(required_role: Union[Role, str]) -> str:
    role = required_role.value if isinstance(required_role, Role) else required_role
    return f"This class is only available to {role} members and above"


def check_enrollment(
    fitness_class: ScheduledClass,
    user_role: Union[Role, str, None],
    enrollment_count: int,
    already_enrolled: bool,
    now: datetime,
) -> Decision:
    """Decide whether a user may join a class.

    Checks run in a fixed order and the first failure wins:
    start time, required tier, capacity, existing enrollment.

    Args:
        fitness_class: The class being joined
        user_role: Role of the user asking to join
        enrollment_count: Live enrollments for the class
        already_enrolled: Whether the user already holds an enrollment
        now: Current naive UTC time

    Returns:
        Decision: ALLOW, or a denial carrying the message and error type
    """
    if has_started(fitness_class.start_time, now):
        return Decision(False, CLASS_STARTED, BadRequestError)

    if not satisfies_role(user_role, fitness_class.required_role):
        return Decision(False, required_role_message(fitness_class.required_role), ForbiddenError)

    if fitness_class.capacity is not None and enrollment_count >= fitness_class.capacity:
        return Decision(False, CLASS_FULL, BadRequestError)

    if already_enrolled:
        return Decision(False, ALREADY_ENROLLED, ConflictError)

    return ALLOW
