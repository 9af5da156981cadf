import logging
from uuid import uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fitmate.core.config import settings
from fitmate.core.errors import BadRequestError, ConflictError, NotFoundError, ServiceUnavailableError, UnauthorizedError
from fitmate.core.security import (
    ExpiredTokenError,
    InvalidTokenError,
    generate_reset_token,
    generate_token,
    verify_password,
    verify_reset_token,
)
from fitmate.crud.crud_user import user as crud_user
from fitmate.models.core import User
from fitmate.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    PasswordResetRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenUser,
    VerifyResetTokenResponse,
)
from fitmate.schemas.base import MessageResponse
from fitmate.schemas.user import UserPublic
from fitmate.services.mail_service import MAIL_NOT_CONFIGURED, Mailer

EMAIL_TAKEN = "Email already registered"
INVALID_CREDENTIALS = "Invalid email or password"
INVALID_RESET_TOKEN = "Invalid or expired reset token"
RESET_LINK_SENT = "Password reset link sent to your email"


class AuthService:
    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def issue_token(self, db_user: User) -> AuthResponse:
        """Sign a token for the user's current role and wrap it with the public profile."""
        token = generate_token({"id": db_user.id, "email": db_user.email, "role": db_user.role.value})
        return AuthResponse(token=token, user=UserPublic.model_validate(db_user))

    async def register(self, db: AsyncSession, *, obj_in: RegisterRequest) -> AuthResponse:
        """Create a USER account and sign the user in.

        Raises:
            ConflictError: If the email is already registered
        """
        if await crud_user.get_by_email(db, email=str(obj_in.email)):
            raise ConflictError(EMAIL_TAKEN)
        try:
            db_user = await crud_user.create_with_password(db, obj_in=obj_in)
        except IntegrityError:
            # Lost a race against another registration for the same email
            await db.rollback()
            raise ConflictError(EMAIL_TAKEN)
        self.logger.info(f"Registered user {db_user.id}")
        return self.issue_token(db_user)

    async def login(self, db: AsyncSession, *, obj_in: LoginRequest) -> AuthResponse:
        """Check credentials. Unknown email and wrong password fail the same way."""
        db_user = await crud_user.get_by_email(db, email=obj_in.email)
        if not db_user or not verify_password(obj_in.password, db_user.password_hash):
            self.logger.info("Failed login attempt")
            raise UnauthorizedError(INVALID_CREDENTIALS)
        return self.issue_token(db_user)

    async def reissue_token(self, db: AsyncSession, *, token_user: TokenUser) -> AuthResponse:
        """Issue a fresh token carrying the role currently stored for the user."""
        db_user = await crud_user.get(db, id=token_user.id)
        if not db_user:
            raise NotFoundError("User not found")
        if db_user.role != token_user.role:
            self.logger.info(f"Reissuing token for user {db_user.id}: {token_user.role.value} -> {db_user.role.value}")
        return self.issue_token(db_user)

    async def change_password(self, db: AsyncSession, *, db_user: User, obj_in: ChangePasswordRequest) -> None:
        """Replace the password after checking the current one.

        Raises:
            UnauthorizedError: If the current password does not match
        """
        if not verify_password(obj_in.current_password, db_user.password_hash):
            raise UnauthorizedError("Current password is incorrect")
        await crud_user.set_password(db, user=db_user, new_password=obj_in.new_password)
        self.logger.info(f"Password changed for user {db_user.id}")

    async def request_password_reset(
        self, db: AsyncSession, *, obj_in: PasswordResetRequest, mailer: Mailer
    ) -> MessageResponse:
        """Email the user a link carrying a fresh reset token.

        Issuing a token revokes any earlier one for the same user.

        Raises:
            NotFoundError: If no account uses the email
            ServiceUnavailableError: If outgoing mail is not configured or fails
        """
        db_user = await crud_user.get_by_email(db, email=obj_in.email)
        if not db_user:
            raise NotFoundError("User not found")
        if not mailer.configured:
            raise ServiceUnavailableError(MAIL_NOT_CONFIGURED)

        token_id = uuid4().hex
        await crud_user.set_reset_token_id(db, user=db_user, token_id=token_id)
        token = generate_reset_token(db_user.id, token_id)
        link = f"{settings.FRONTEND_URL.rstrip('/')}/reset-password?token={token}"
        await mailer.send(
            to=db_user.email,
            subject="Reset your FitMate password",
            body=(
                f"We received a request to reset your password.\n\n"
                f"Open this link within {settings.RESET_TOKEN_EXPIRE_MINUTES} minutes to choose a new one:\n"
                f"{link}\n\n"
                f"If you did not ask for this, you can ignore this email."
            ),
        )
        self.logger.info(f"Password reset requested for user {db_user.id}")
        return MessageResponse(message=RESET_LINK_SENT)

    async def _user_for_reset_token(self, db: AsyncSession, token: str) -> User:
        try:
            payload = verify_reset_token(token)
        except (ExpiredTokenError, InvalidTokenError) as e:
            self.logger.info(f"Rejected reset token: {str(e)}")
            raise BadRequestError(INVALID_RESET_TOKEN)
        db_user = await crud_user.get(db, id=payload["id"])
        # Used or superseded tokens no longer match the stored id
        if not db_user or not db_user.reset_token_id or db_user.reset_token_id != payload["jti"]:
            raise BadRequestError(INVALID_RESET_TOKEN)
        return db_user

    async def verify_reset_token(self, db: AsyncSession, *, token: str) -> VerifyResetTokenResponse:
        db_user = await self._user_for_reset_token(db, token)
        return VerifyResetTokenResponse(valid=True, email=db_user.email)

    async def reset_password(self, db: AsyncSession, *, obj_in: ResetPasswordRequest) -> MessageResponse:
        """Set a new password and consume the reset token.

        Raises:
            BadRequestError: If the token is invalid, expired or already used
        """
        db_user = await self._user_for_reset_token(db, obj_in.reset_token)
        await crud_user.set_password(db, user=db_user, new_password=obj_in.new_password)
        self.logger.info(f"Password reset completed for user {db_user.id}")
        return MessageResponse(message="Password has been reset successfully")


auth_service = AuthService()
