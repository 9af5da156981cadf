from typing import Optional

from pydantic import field_validator

from .base import BaseSchema, UTCDateTime
from .enums import Role


class UserPublic(BaseSchema):
    """Public user schema without sensitive fields."""
    id: int
    email: str
    name: Optional[str] = None
    role: Role
    created_at: UTCDateTime


class UserRoleUpdate(BaseSchema):
    """Admin role change."""
    role: Role

    @field_validator("role", mode="before")
    @classmethod
    def validate_role(cls, v):
        if v is None:
            return v
        if isinstance(v, Role):
            return v
        try:
            return Role(v)
        except ValueError:
            raise ValueError(f"role must be one of {', '.join(r.value for r in Role)}")


class RoleListResponse(BaseSchema):
    """All roles, with the ordered membership tiers listed separately."""
    roles: list[Role]
    tiers: list[Role]
