"""
Users router
Project: AutoService CRM

Everyone can list users (masters are picked from this list when
assigning orders); only the director creates and edits them.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.database import get_db
from autocrm.core.deps import CurrentUser, DirectorUser, Pagination
from autocrm.models.user import UserRole
from autocrm.schemas.common import ApiResponse, Page
from autocrm.schemas.user import UserCreate, UserResponse, UserUpdate
from autocrm.services.user_service import UserService, user_service

router = APIRouter(
    prefix="/users",
    tags=["Users"],
)


def get_user_service() -> UserService:
    return user_service


@router.get(
    "",
    summary="List users",
    response_model=ApiResponse[Page[UserResponse]],
)
async def list_users(
    current_user: CurrentUser,
    pagination: Pagination,
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    search: Optional[str] = Query(None, description="Name, email or phone"),
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    service: UserService = Depends(get_user_service),
):
    users, total = await service.get_all(
        db,
        page=pagination.page,
        limit=pagination.limit,
        role=role,
        search=search,
        active_only=active_only,
    )
    items = [UserResponse.model_validate(u) for u in users]
    return ApiResponse(data=Page.build(items, total, pagination))


@router.get(
    "/{user_id}",
    summary="User detail",
    response_model=ApiResponse[UserResponse],
)
async def get_user(
    user_id: uuid.UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: UserService = Depends(get_user_service),
):
    user = await service.get_by_id(db, user_id)
    return ApiResponse(data=UserResponse.model_validate(user))


@router.post(
    "",
    summary="Create user",
    response_model=ApiResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_user(
    data: UserCreate,
    director: DirectorUser,
    db: AsyncSession = Depends(get_db),
    service: UserService = Depends(get_user_service),
):
    user = await service.create(db, data)
    await db.commit()
    return ApiResponse(data=UserResponse.model_validate(user))


@router.put(
    "/{user_id}",
    summary="Update user",
    response_model=ApiResponse[UserResponse],
)
async def update_user(
    user_id: uuid.UUID,
    data: UserUpdate,
    director: DirectorUser,
    db: AsyncSession = Depends(get_db),
    service: UserService = Depends(get_user_service),
):
    user = await service.update(db, user_id, data)
    await db.commit()
    return ApiResponse(data=UserResponse.model_validate(user))


__all__ = ["router"]
