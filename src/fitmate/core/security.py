"""
Access token issuing/verification and password hashing.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from fitmate.core.config import settings

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class TokenError(Exception):
    """Base class for token verification failures."""


class InvalidTokenError(TokenError):
    pass


class ExpiredTokenError(TokenError):
    pass


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Malformed or foreign hash in the database
        logger.warning("Stored password hash could not be parsed")
        return False


def generate_token(payload: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed access token.

    Args:
        payload: Claims to embed, normally ``id``, ``email`` and ``role``
        expires_delta: Lifetime of the token, defaults to ACCESS_TOKEN_EXPIRE_MINUTES.
            A negative delta produces an already expired token.

    Returns:
        str: Encoded JWT
    """
    to_encode = payload.copy()
    lifetime = expires_delta if expires_delta is not None else timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    now = datetime.now(timezone.utc)
    to_encode.update({"iat": now, "exp": now + lifetime})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Raises:
        ExpiredTokenError: If the token signature is valid but it has expired
        InvalidTokenError: If the token is malformed, forged or lacks identity claims
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError as e:
        raise ExpiredTokenError("Token has expired") from e
    except JWTError as e:
        raise InvalidTokenError(str(e)) from e

    if not isinstance(payload.get("id"), int) or not payload.get("email") or not payload.get("role"):
        raise InvalidTokenError("Token is missing identity claims")
    return payload


RESET_PURPOSE = "password_reset"


def generate_reset_token(user_id: int, token_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create a single-use password reset token.

    ``token_id`` is stored on the user; the token only verifies while it still
    matches, so issuing a new one or completing a reset revokes the old one.
    """
    lifetime = expires_delta if expires_delta is not None else timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)
    return generate_token({"id": user_id, "jti": token_id, "purpose": RESET_PURPOSE}, expires_delta=lifetime)


def verify_reset_token(token: str) -> dict[str, Any]:
    """Decode a password reset token.

    Access tokens are rejected even though they share the signing key.

    Raises:
        ExpiredTokenError: If the token has expired
        InvalidTokenError: If the token is malformed, forged or not a reset token
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError as e:
        raise ExpiredTokenError("Token has expired") from e
    except JWTError as e:
        raise InvalidTokenError(str(e)) from e

    if payload.get("purpose") != RESET_PURPOSE or not isinstance(payload.get("id"), int) or not payload.get("jti"):
        raise InvalidTokenError("Not a password reset token")
    return payload
