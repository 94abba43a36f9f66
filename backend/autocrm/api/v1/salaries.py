"""
Salaries router
Project: AutoService CRM

Per-order salaries of masters, their payout, and the weekly aggregate.
"""

import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.database import get_db
from autocrm.core.deps import CurrentUser, Pagination, StaffUser
from autocrm.schemas.common import ApiResponse, Page
from autocrm.schemas.salary import SalaryPay, SalaryRead, WeeklyRecalculationResult, WeeklySalaryRead
from autocrm.services.salary_service import SalaryService, salary_service

router = APIRouter(
    prefix="/salaries",
    tags=["Salaries"],
)


def get_salary_service() -> SalaryService:
    return salary_service


@router.get(
    "",
    summary="List per-order salaries",
    response_model=ApiResponse[Page[SalaryRead]],
)
async def list_salaries(
    current_user: CurrentUser,
    pagination: Pagination,
    master_id: Optional[uuid.UUID] = Query(None, description="Ignored for masters"),
    week_period: Optional[date] = Query(None, description="Monday of the week"),
    paid: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_db),
    service: SalaryService = Depends(get_salary_service),
):
    salaries, total = await service.get_all(
        db,
        current_user,
        page=pagination.page,
        limit=pagination.limit,
        master_id=master_id,
        week_period=week_period,
        paid=paid,
    )
    items = [SalaryRead.model_validate(s) for s in salaries]
    return ApiResponse(data=Page.build(items, total, pagination))


@router.get(
    "/weekly",
    summary="List weekly aggregates",
    response_model=ApiResponse[Page[WeeklySalaryRead]],
)
async def list_weekly_salaries(
    current_user: CurrentUser,
    pagination: Pagination,
    week_period: Optional[date] = Query(None, description="Monday of the week"),
    master_id: Optional[uuid.UUID] = Query(None, description="Ignored for masters"),
    db: AsyncSession = Depends(get_db),
    service: SalaryService = Depends(get_salary_service),
):
    rows, total = await service.get_weekly(
        db,
        current_user,
        page=pagination.page,
        limit=pagination.limit,
        week_period=week_period,
        master_id=master_id,
    )
    items = [WeeklySalaryRead.model_validate(r) for r in rows]
    return ApiResponse(data=Page.build(items, total, pagination))


@router.post(
    "/weekly/recalculate",
    summary="Recalculate the current week",
    response_model=ApiResponse[WeeklyRecalculationResult],
)
async def recalculate_weekly_salaries(
    staff: StaffUser,
    db: AsyncSession = Depends(get_db),
    service: SalaryService = Depends(get_salary_service),
):
    """Runs the same aggregation as the nightly job."""
    result = await service.recalculate_weekly(db)
    await db.commit()
    return ApiResponse(data=result)


@router.get(
    "/{salary_id}",
    summary="Salary detail",
    response_model=ApiResponse[SalaryRead],
)
async def get_salary(
    salary_id: uuid.UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
    service: SalaryService = Depends(get_salary_service),
):
    salary = await service.get_by_id(db, current_user, salary_id)
    return ApiResponse(data=SalaryRead.model_validate(salary))


@router.patch(
    "/{salary_id}/pay",
    summary="Mark salary as paid",
    response_model=ApiResponse[SalaryRead],
)
async def pay_salary(
    salary_id: uuid.UUID,
    staff: StaffUser,
    data: Optional[SalaryPay] = None,
    db: AsyncSession = Depends(get_db),
    service: SalaryService = Depends(get_salary_service),
):
    salary = await service.mark_paid(db, salary_id, notes=data.notes if data else None)
    await db.commit()
    return ApiResponse(data=SalaryRead.model_validate(salary))


__all__ = ["router"]
