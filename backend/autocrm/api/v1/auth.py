"""
Authentication router
Project: AutoService CRM

Endpoints for every login flow, token refresh, logout, profile and
user registration.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.database import get_db
from autocrm.core.deps import CurrentSession, CurrentUser, get_optional_user
from autocrm.models.user import User
from autocrm.schemas.common import ApiResponse, MessageResponse
from autocrm.schemas.token import TokenRefresh, TokenResponse
from autocrm.schemas.user import (
    GoogleLogin,
    LoginResponse,
    MeResponse,
    PhoneCodeResponse,
    PhoneLoginRequest,
    PhoneVerify,
    UserCreate,
    UserLogin,
    UserResponse,
)
from autocrm.services.auth_service import AuthService, auth_service

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
)


def get_auth_service() -> AuthService:
    """Dependency returning the authentication service."""
    return auth_service


@router.post(
    "/register",
    summary="Register a user",
    response_model=ApiResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
)
async def register(
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user),
    service: AuthService = Depends(get_auth_service),
):
    """
    Registers a user.

    On an empty system no token is needed and the user becomes the
    director. Afterwards only the director may register users.
    """
    user = await service.register(db, data, current_user)
    await db.commit()
    return ApiResponse(data=UserResponse.model_validate(user))


@router.post(
    "/login",
    summary="Log in with email and password",
    response_model=ApiResponse[LoginResponse],
)
async def login(
    data: UserLogin,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
    user_agent: Optional[str] = Header(None),
):
    result = await service.login(db, data, user_agent)
    await db.commit()
    return ApiResponse(data=result)


@router.post(
    "/google",
    summary="Log in with a Google id token",
    response_model=ApiResponse[LoginResponse],
)
async def login_google(
    data: GoogleLogin,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
    user_agent: Optional[str] = Header(None),
):
    result = await service.login_google(db, data.id_token, user_agent)
    await db.commit()
    return ApiResponse(data=result)


@router.post(
    "/phone-login",
    summary="Request a phone login code",
    response_model=ApiResponse[PhoneCodeResponse],
)
async def phone_login(
    data: PhoneLoginRequest,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
):
    result = await service.request_phone_code(db, data.phone)
    await db.commit()
    return ApiResponse(data=result)


@router.post(
    "/phone-verify",
    summary="Log in with a phone code",
    response_model=ApiResponse[LoginResponse],
)
async def phone_verify(
    data: PhoneVerify,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
    user_agent: Optional[str] = Header(None),
):
    result = await service.verify_phone_code(db, data.phone, data.code, user_agent)
    await db.commit()
    return ApiResponse(data=result)


@router.post(
    "/refresh",
    summary="Rotate the session tokens",
    response_model=ApiResponse[TokenResponse],
)
async def refresh(
    data: TokenRefresh,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
):
    tokens = await service.refresh(db, data.refresh_token)
    await db.commit()
    return ApiResponse(data=tokens)


@router.post(
    "/logout",
    summary="Log out",
    response_model=ApiResponse[MessageResponse],
)
async def logout(
    session: CurrentSession,
    db: AsyncSession = Depends(get_db),
    service: AuthService = Depends(get_auth_service),
):
    """Revokes the current session; its tokens stop working immediately."""
    await service.logout(db, session)
    await db.commit()
    return ApiResponse(data=MessageResponse(message="Выход выполнен успешно"))


@router.get(
    "/me",
    summary="Current user profile",
    response_model=ApiResponse[MeResponse],
)
async def get_me(
    current_user: CurrentUser,
    service: AuthService = Depends(get_auth_service),
):
    return ApiResponse(data=service.me(current_user))


__all__ = ["router"]
