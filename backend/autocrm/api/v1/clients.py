"""
Clients router
Project: AutoService CRM

Client registry with search. Every read carries the client's
outstanding debt.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.database import get_db
from autocrm.core.deps import CurrentUser, DirectorUser, Pagination, StaffUser
from autocrm.schemas.client import ClientCreate, ClientRead, ClientUpdate
from autocrm.schemas.common import ApiResponse, MessageResponse, Page
from autocrm.services.client_service import ClientService, client_service

router = APIRouter(
    prefix="/clients",
    tags=["Clients"],
)


def get_client_service() -> ClientService:
    """Dependency returning the client service."""
    return client_service


async def _with_debts(db: AsyncSession, service: ClientService, clients: list) -> list[ClientRead]:
    totals = await service.get_debt_totals(db, [c.id for c in clients])
    items = []
    for client in clients:
        item = ClientRead.model_validate(client)
        item.debt_total = totals.get(client.id, item.debt_total)
        items.append(item)
    return items


@router.get(
    "",
    summary="List clients",
    response_model=ApiResponse[Page[ClientRead]],
)
async def list_clients(
    current_user: CurrentUser,
    pagination: Pagination,
    search: Optional[str] = Query(None, description="Name, phone, car or VIN"),
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
):
    clients, total = await service.get_all(db, page=pagination.page, limit=pagination.limit, search=search)
    items = await _with_debts(db, service, clients)
    return ApiResponse(data=Page.build(items, total, pagination))


@router.get(
    "/{client_id}",
    summary="Client detail",
    response_model=ApiResponse[ClientRead],
)
async def get_client(
    client_id: uuid.UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
):
    client = await service.get_by_id(db, client_id)
    items = await _with_debts(db, service, [client])
    return ApiResponse(data=items[0])


@router.post(
    "",
    summary="Create client",
    response_model=ApiResponse[ClientRead],
    status_code=status.HTTP_201_CREATED,
)
async def create_client(
    client_data: ClientCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
):
    """
    Raises:
        ConflictError: If the phone is already used by another client
    """
    client = await service.create(db, client_data)
    await db.commit()
    return ApiResponse(data=ClientRead.model_validate(client))


@router.put(
    "/{client_id}",
    summary="Update client",
    response_model=ApiResponse[ClientRead],
)
async def update_client(
    client_id: uuid.UUID,
    client_data: ClientUpdate,
    staff: StaffUser,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
):
    client = await service.update(db, client_id, client_data)
    await db.commit()
    items = await _with_debts(db, service, [client])
    return ApiResponse(data=items[0])


@router.delete(
    "/{client_id}",
    summary="Delete client",
    response_model=ApiResponse[MessageResponse],
)
async def delete_client(
    client_id: uuid.UUID,
    director: DirectorUser,
    db: AsyncSession = Depends(get_db),
    service: ClientService = Depends(get_client_service),
):
    await service.delete(db, client_id)
    await db.commit()
    return ApiResponse(data=MessageResponse(message="Клиент удален"))


__all__ = ["router"]
