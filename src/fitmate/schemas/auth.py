from pydantic import EmailStr, field_validator

from .base import BaseSchema
from .enums import Role
from .user import UserPublic

MIN_PASSWORD_LENGTH = 6


def _check_password_length(value: str) -> str:
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return value


class TokenUser(BaseSchema):
    """Identity carried by a verified access token."""
    id: int
    email: str
    role: Role


class RegisterRequest(BaseSchema):
    """Request schema for user registration."""
    email: EmailStr
    password: str
    name: str | None = None

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        return _check_password_length(v)


class LoginRequest(BaseSchema):
    """Request schema for login."""
    email: str
    password: str


class AuthResponse(BaseSchema):
    """Access token plus the user it was issued for."""
    token: str
    token_type: str = "bearer"
    user: UserPublic


class LogoutResponse(BaseSchema):
    success: bool
    message: str


class ChangePasswordRequest(BaseSchema):
    """Request schema for changing the current user's password."""
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def new_password_length(cls, v: str) -> str:
        return _check_password_length(v)


class PasswordResetRequest(BaseSchema):
    """Ask for a reset link to be emailed."""
    email: str


class VerifyResetTokenRequest(BaseSchema):
    reset_token: str


class VerifyResetTokenResponse(BaseSchema):
    valid: bool
    email: str


class ResetPasswordRequest(BaseSchema):
    """Set a new password using a token from the reset email."""
    reset_token: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def new_password_length(cls, v: str) -> str:
        return _check_password_length(v)
