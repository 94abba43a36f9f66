"""
Background scheduler
Project: AutoService CRM

Cron jobs run inside the application event loop:
- weekly salary recalculation, daily at 20:00
- stats snapshot, daily at 21:00
- cleanup of read notifications, Sundays at 02:00
- archive of old notifications, the 1st of every month at 03:00

Every job opens its own session and commits; a failing job is logged and
retried at its next fire time.
"""

from __future__ import annotations
import logging
from typing import Awaitable, Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.config import settings
from autocrm.core.database import AsyncSessionLocal
from autocrm.services.notification_service import notification_service
from autocrm.services.salary_service import salary_service
from autocrm.services.stats_service import stats_service

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler(timezone=settings.timezone)


async def _run_in_session(name: str, job: Callable[[AsyncSession], Awaitable[object]]) -> None:
    try:
        async with AsyncSessionLocal() as db:
            result = await job(db)
            await db.commit()
        logger.info("Scheduled job %s finished: %s", name, result)
    except Exception as e:
        logger.error("Error in scheduled job %s: %s", name, e, exc_info=True)


async def weekly_salary_recalculation() -> None:
    await _run_in_session("weekly_salary_recalculation", salary_service.recalculate_weekly)


async def stats_snapshot() -> None:
    await _run_in_session("stats_snapshot", stats_service.save_snapshot)


async def notification_cleanup() -> None:
    await _run_in_session(
        "notification_cleanup",
        lambda db: notification_service.delete_older_than(
            db, settings.notification_retention_days, read_only=True
        ),
    )


async def notification_archive() -> None:
    await _run_in_session(
        "notification_archive",
        lambda db: notification_service.delete_older_than(
            db, settings.notification_archive_days, read_only=False
        ),
    )


def _cron(**fields) -> CronTrigger:
    return CronTrigger(timezone=settings.timezone, **fields)


JOBS = (
    ("weekly_salary_recalculation", weekly_salary_recalculation, _cron(hour=20, minute=0)),
    ("stats_snapshot", stats_snapshot, _cron(hour=21, minute=0)),
    ("notification_cleanup", notification_cleanup, _cron(day_of_week="sun", hour=2, minute=0)),
    ("notification_archive", notification_archive, _cron(day=1, hour=3, minute=0)),
)


def register_jobs(target: AsyncIOScheduler) -> None:
    for job_id, func, trigger in JOBS:
        target.add_job(
            func=func,
            trigger=trigger,
            id=job_id,
            name=job_id.replace("_", " "),
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=300,
        )


def start_scheduler() -> None:
    """
    Registers the jobs and starts the scheduler.

    Must be called from a running event loop (the application lifespan).
    """
    if scheduler.running:
        return

    register_jobs(scheduler)
    scheduler.start()
    logger.info("Scheduler started (%s jobs, timezone %s)", len(JOBS), settings.timezone)


def shutdown_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
