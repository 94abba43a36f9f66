"""
Dependency injection for authentication
Project: AutoService CRM

Dependencies resolving the caller from the bearer token and checking roles.
"""

from datetime import datetime, timezone
from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends, Query
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.config import settings
from autocrm.core.database import get_db
from autocrm.core.exceptions import AuthenticationError, AuthorizationError
from autocrm.core.security import ACCESS_TOKEN, decode_token
from autocrm.models.user import User, UserSession
from autocrm.schemas.common import PaginationParams

# Extracts the token from the Authorization header
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/api/auth/login",
    auto_error=False,
)


def _parse_uuid(value: str, detail: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise AuthenticationError(detail, error_code="INVALID_TOKEN")


async def get_current_session(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> UserSession:
    """
    Resolves the session the access token is bound to.

    Args:
        token: JWT from the Authorization header
        db: Database session

    Returns:
        The live session, with its user loaded

    Raises:
        AuthenticationError: Missing or invalid token, revoked or expired
            session, unknown or disabled user
    """
    if not token:
        raise AuthenticationError("Требуется авторизация")

    token_data = decode_token(token)

    if token_data.type != ACCESS_TOKEN:
        raise AuthenticationError("Неверный тип токена", error_code="INVALID_TOKEN")

    user_id = _parse_uuid(token_data.sub, "Неверный идентификатор пользователя в токене")
    session_id = _parse_uuid(token_data.sid, "Неверный идентификатор сессии в токене")

    result = await db.execute(
        select(UserSession).where(UserSession.id == session_id)
    )
    session = result.scalar_one_or_none()

    if session is None or session.user_id != user_id:
        raise AuthenticationError("Сессия не найдена", error_code="SESSION_INVALID")

    if not session.is_valid(datetime.now(timezone.utc)):
        raise AuthenticationError("Сессия завершена", error_code="SESSION_INVALID")

    if session.user is None or not session.user.is_active:
        raise AuthenticationError("Пользователь деактивирован")

    return session


async def get_optional_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """The caller if a bearer token was sent, None otherwise."""
    if not token:
        return None
    session = await get_current_session(token, db)
    return session.user


async def get_current_user(
    session: Annotated[UserSession, Depends(get_current_session)],
) -> User:
    """Returns the user owning the current session."""
    return session.user


def require_role(*allowed_roles: str):
    """
    Factory for a dependency that checks the caller's role.

    Args:
        allowed_roles: Roles accepted by the endpoint

    Returns:
        Dependency returning the current user if authorized

    Example:
        @router.post("/bonuses")
        async def create_bonus(user: User = Depends(require_role("director"))):
            ...
    """
    async def role_checker(
        current_user: Annotated[User, Depends(get_current_user)]
    ) -> User:
        if current_user.role not in allowed_roles:
            raise AuthorizationError(
                f"Требуется одна из ролей: {', '.join(allowed_roles)}",
                extra={"required_roles": list(allowed_roles)},
            )
        return current_user

    return role_checker


def get_pagination(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(
        settings.default_page_size,
        ge=1,
        le=settings.max_page_size,
        description="Items per page",
    ),
) -> PaginationParams:
    return PaginationParams(page=page, limit=limit)


# Type aliases for common use
CurrentSession = Annotated[UserSession, Depends(get_current_session)]
CurrentUser = Annotated[User, Depends(get_current_user)]
StaffUser = Annotated[User, Depends(require_role("admin", "director"))]
DirectorUser = Annotated[User, Depends(require_role("director"))]
Pagination = Annotated[PaginationParams, Depends(get_pagination)]


__all__ = [
    "get_current_session",
    "get_current_user",
    "get_optional_user",
    "require_role",
    "get_pagination",
    "oauth2_scheme",
    "CurrentSession",
    "CurrentUser",
    "StaffUser",
    "DirectorUser",
    "Pagination",
]
