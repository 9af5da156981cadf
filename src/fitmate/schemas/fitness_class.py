from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator, model_validator

from fitmate.core.roles import validate_required_role
from .base import BaseSchema, BaseResponseSchema, UTCDateTime, to_naive_utc
from .category import CategoryResponse
from .enums import ClassStatus, Role
from .user import UserPublic

END_AFTER_START = "endTime must be after startTime"
CAPACITY_POSITIVE = "capacity must be greater than zero"


def _check_capacity(v: Optional[int]) -> Optional[int]:
    if v is not None and v <= 0:
        raise ValueError(CAPACITY_POSITIVE)
    return v


class ClassCreate(BaseSchema):
    """Schema for scheduling a class."""
    trainer_id: int
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    capacity: Optional[int] = None
    required_role: Optional[Role] = None
    category_id: Optional[int] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title is required")
        return v

    @field_validator("start_time", "end_time")
    @classmethod
    def normalise_times(cls, v: datetime) -> datetime:
        return to_naive_utc(v)

    @field_validator("capacity")
    @classmethod
    def capacity_positive(cls, v: Optional[int]) -> Optional[int]:
        return _check_capacity(v)

    @field_validator("required_role", mode="before")
    @classmethod
    def required_role_is_tier(cls, v):
        return validate_required_role(v)

    @model_validator(mode="after")
    def end_after_start(self) -> "ClassCreate":
        if self.end_time <= self.start_time:
            raise ValueError(END_AFTER_START)
        return self


class ClassUpdate(BaseSchema):
    """Schema for updating a class. Time ordering is checked against stored values by the service."""
    trainer_id: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    capacity: Optional[int] = None
    required_role: Optional[Role] = None
    category_id: Optional[int] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("title cannot be empty")
        return v

    @field_validator("start_time", "end_time")
    @classmethod
    def normalise_times(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)

    @field_validator("capacity")
    @classmethod
    def capacity_positive(cls, v: Optional[int]) -> Optional[int]:
        return _check_capacity(v)

    @field_validator("required_role", mode="before")
    @classmethod
    def required_role_is_tier(cls, v):
        return validate_required_role(v)


class ClassResponse(BaseResponseSchema):
    """Class with the read-time derived fields attached."""
    title: str
    description: Optional[str] = None
    start_time: UTCDateTime
    end_time: UTCDateTime
    capacity: Optional[int] = None
    required_role: Optional[Role] = None
    trainer_id: int
    created_by_id: int
    category_id: Optional[int] = None
    trainer: Optional[UserPublic] = None
    category: Optional[CategoryResponse] = None
    enrollment_count: int
    available_spots: Optional[int] = None
    has_started: bool
    status: ClassStatus


class EnrollmentResponse(BaseResponseSchema):
    """An enrollment with the class and/or user nested when loaded."""
    class_id: int
    user_id: int
    fitness_class: Optional[ClassResponse] = Field(default=None, alias="class")
    user: Optional[UserPublic] = None


class ClassDetailResponse(ClassResponse):
    """Single class including its enrollments."""
    enrollments: list[EnrollmentResponse] = []


class ClassEnrollmentsResponse(BaseSchema):
    fitness_class: ClassResponse = Field(alias="class")
    enrollments: list[EnrollmentResponse]


class TrainerClassesResponse(BaseSchema):
    trainer: UserPublic
    classes: list[ClassResponse]
