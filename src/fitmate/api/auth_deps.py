"""Authentication dependencies for FastAPI endpoints."""
import logging
from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from pydantic import ValidationError

from fitmate.core.config import settings
from fitmate.core.errors import NotFoundError, UnauthorizedError
from fitmate.core.security import ExpiredTokenError, InvalidTokenError, verify_token
from fitmate.crud.crud_user import user as crud_user
from fitmate.db.session import SessionDep
from fitmate.models.core import User
from fitmate.schemas.auth import TokenUser

logger = logging.getLogger(__name__)

# auto_error=False so a missing header reaches get_token_user and gets our own 401 message
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login", auto_error=False)

MISSING_TOKEN = "Missing authorization token."
INVALID_TOKEN = "Invalid token."
EXPIRED_TOKEN = "Token has expired."


def decode_token_user(token: str) -> TokenUser:
    """Verify a bearer token and return the identity it carries.

    Raises:
        UnauthorizedError: If the token is expired, forged or malformed
    """
    try:
        payload = verify_token(token)
        return TokenUser(id=payload["id"], email=payload["email"], role=payload["role"])
    except ExpiredTokenError:
        raise UnauthorizedError(EXPIRED_TOKEN)
    except (InvalidTokenError, ValidationError) as e:
        logger.info(f"Rejected token: {str(e)}")
        raise UnauthorizedError(INVALID_TOKEN)


async def get_token_user(token: Optional[str] = Depends(oauth2_scheme)) -> TokenUser:
    """Get the identity of the caller from the Authorization header."""
    if not token:
        raise UnauthorizedError(MISSING_TOKEN)
    return decode_token_user(token)


async def get_optional_token_user(token: Optional[str] = Depends(oauth2_scheme)) -> Optional[TokenUser]:
    """Like get_token_user, but anonymous callers and bad tokens yield None."""
    if not token:
        return None
    try:
        return decode_token_user(token)
    except UnauthorizedError:
        return None


async def get_current_user(
    db: SessionDep,
    token_user: Annotated[TokenUser, Depends(get_token_user)],
) -> User:
    """Get the current authenticated user from the database."""
    db_user = await crud_user.get(db, id=token_user.id)
    if not db_user:
        logger.warning(f"Token issued for unknown user id {token_user.id}")
        raise NotFoundError("User not found")
    return db_user


# Type aliases for dependencies
TokenUserDep = Annotated[TokenUser, Depends(get_token_user)]
OptionalTokenUser = Annotated[Optional[TokenUser], Depends(get_optional_token_user)]
CurrentUser = Annotated[User, Depends(get_current_user)]
