"""
Security module for JWT authentication
Project: AutoService CRM

Password hashing, one-time code hashing and JWT handling.
"""

import secrets
import uuid
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError as PydanticValidationError

from autocrm.core.config import settings
from autocrm.core.exceptions import AuthenticationError
from autocrm.schemas.token import TokenPayload

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


def hash_password(password: str) -> str:
    """
    Hashes a plain-text password.

    Args:
        password: Plain-text password

    Returns:
        bcrypt hash
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Checks a plain-text password against its hash.

    Args:
        plain_password: Plain-text password
        hashed_password: Stored hash

    Returns:
        True if the password matches
    """
    return pwd_context.verify(plain_password, hashed_password)


def generate_numeric_code(length: int) -> str:
    """Random digit string for phone login."""
    return "".join(secrets.choice("0123456789") for _ in range(length))


def _create_token(user_id: str, role: str, session_id: str, token_type: str, expires_delta: timedelta) -> str:
    expire = datetime.now(timezone.utc) + expires_delta

    payload = {
        "sub": user_id,
        "role": role,
        "sid": session_id,
        "exp": expire,
        "type": token_type,
        "jti": uuid.uuid4().hex,
    }

    return jwt.encode(
        payload,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )


def create_access_token(user_id: str, role: str, session_id: str) -> str:
    """
    Creates a JWT access token bound to a session.

    Args:
        user_id: User id
        role: User role
        session_id: Session the token belongs to

    Returns:
        Encoded JWT
    """
    return _create_token(
        user_id,
        role,
        session_id,
        ACCESS_TOKEN,
        timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(user_id: str, role: str, session_id: str) -> str:
    """
    Creates a JWT refresh token bound to a session.

    Args:
        user_id: User id
        role: User role
        session_id: Session the token belongs to

    Returns:
        Encoded JWT
    """
    return _create_token(
        user_id,
        role,
        session_id,
        REFRESH_TOKEN,
        timedelta(days=settings.refresh_token_expire_days),
    )


def decode_token(token: str) -> TokenPayload:
    """
    Decodes and validates a JWT.

    Args:
        token: Encoded JWT

    Returns:
        TokenPayload with the token claims

    Raises:
        AuthenticationError: If the token is malformed, forged or expired
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise AuthenticationError("Недействительный или просроченный токен", error_code="INVALID_TOKEN")

    try:
        token_data = TokenPayload(
            sub=payload.get("sub"),
            role=payload.get("role"),
            sid=payload.get("sid"),
            exp=datetime.fromtimestamp(payload.get("exp"), tz=timezone.utc),
            type=payload.get("type"),
            jti=payload.get("jti"),
        )
    except (PydanticValidationError, TypeError):
        raise AuthenticationError("Недействительный токен", error_code="INVALID_TOKEN")

    return token_data


__all__ = [
    "hash_password",
    "verify_password",
    "generate_numeric_code",
    "create_access_token",
    "create_refresh_token",
    "decode_token",
    "ACCESS_TOKEN",
    "REFRESH_TOKEN",
]
