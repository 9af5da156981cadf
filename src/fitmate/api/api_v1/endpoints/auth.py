from typing import Annotated

from fastapi import APIRouter, Depends, status

from fitmate.api.auth_deps import TokenUserDep
from fitmate.db.session import SessionDep
from fitmate.schemas.auth import (
    AuthResponse,
    LoginRequest,
    LogoutResponse,
    PasswordResetRequest,
    RegisterRequest,
    ResetPasswordRequest,
    VerifyResetTokenRequest,
    VerifyResetTokenResponse,
)
from fitmate.schemas.base import MessageResponse
from fitmate.services.auth_service import auth_service
from fitmate.services.mail_service import Mailer, get_mailer

router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(user_in: RegisterRequest, db: SessionDep) -> AuthResponse:
    """Create a member account and return a signed token for it."""
    return await auth_service.register(db, obj_in=user_in)


@router.post("/login", response_model=AuthResponse)
async def login(credentials: LoginRequest, db: SessionDep) -> AuthResponse:
    """Exchange email and password for an access token."""
    return await auth_service.login(db, obj_in=credentials)


@router.post("/logout", response_model=LogoutResponse)
async def logout() -> LogoutResponse:
    """
    Tokens are stateless; the client discards its token.
    Kept so clients have a uniform sign-out call.
    """
    return LogoutResponse(success=True, message="Logged out successfully")


@router.post("/reissue-token", response_model=AuthResponse)
async def reissue_token(token_user: TokenUserDep, db: SessionDep) -> AuthResponse:
    """
    Issue a new token with the role currently stored for the caller,
    e.g. right after a membership upgrade.
    """
    return await auth_service.reissue_token(db, token_user=token_user)


@router.post("/request-password-reset", response_model=MessageResponse)
async def request_password_reset(
    reset_in: PasswordResetRequest,
    db: SessionDep,
    mailer: Annotated[Mailer, Depends(get_mailer)],
) -> MessageResponse:
    """Email a single-use reset link to the account owner."""
    return await auth_service.request_password_reset(db, obj_in=reset_in, mailer=mailer)


@router.post("/verify-reset-token", response_model=VerifyResetTokenResponse)
async def verify_reset_token(token_in: VerifyResetTokenRequest, db: SessionDep) -> VerifyResetTokenResponse:
    """Check a reset token before showing the new-password form."""
    return await auth_service.verify_reset_token(db, token=token_in.reset_token)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(reset_in: ResetPasswordRequest, db: SessionDep) -> MessageResponse:
    return await auth_service.reset_password(db, obj_in=reset_in)
