from typing import Optional

from pydantic import field_validator

from .base import BaseSchema, BaseResponseSchema


class CategoryBase(BaseSchema):
    """Base category schema."""
    name: str
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name is required")
        return v


class CategoryCreate(CategoryBase):
    """Schema for creating a category."""
    pass


class CategoryUpdate(BaseSchema):
    """Schema for updating a category."""
    name: Optional[str] = None
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class CategoryResponse(CategoryBase, BaseResponseSchema):
    """Schema for category response."""
    pass
