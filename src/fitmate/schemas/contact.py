from typing import Optional

from pydantic import EmailStr, ValidationInfo, field_validator

from .base import BaseSchema, BaseResponseSchema


class ContactCreate(BaseSchema):
    """A message submitted through the public contact form."""
    name: str
    email: EmailStr
    phone_number: Optional[str] = None
    subject: str
    message: str

    @field_validator("name", "subject", "message", mode="before")
    @classmethod
    def not_blank(cls, v, info: ValidationInfo):
        if isinstance(v, str) and not v.strip():
            raise ValueError(f"{info.field_name} is required")
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def email_not_blank(cls, v):
        if isinstance(v, str) and not v.strip():
            raise ValueError("email is required")
        return v.strip() if isinstance(v, str) else v

    @field_validator("phone_number", mode="before")
    @classmethod
    def blank_phone_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ContactResponse(BaseResponseSchema):
    name: str
    email: str
    phone_number: Optional[str] = None
    subject: str
    message: str
