"""
Tests for notifications, statistics helpers and scheduled jobs.
"""

import uuid
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from autocrm.core.exceptions import ValidationError
from autocrm.services import scheduler as scheduler_module
from autocrm.services.notification_service import ORDER_ASSIGNED, NotificationService
from autocrm.services.stats_service import StatsService, average_check


# ============================================================
# Notifications
# ============================================================


class TestAssignmentNotifications:

    def test_one_notification_per_master(self, mock_db):
        masters = [uuid.uuid4(), uuid.uuid4()]

        notifications = NotificationService().notify_order_assigned(mock_db, "ZA042", masters)

        mock_db.add_all.assert_called_once_with(notifications)
        assert [n.user_id for n in notifications] == masters
        first = notifications[0]
        assert first.title == "Новый заказ"
        assert first.message == "Заказ ZA042 назначен на вас"
        assert first.type == ORDER_ASSIGNED
        assert (first.entity_type, first.entity_id) == ("order", "ZA042")
        assert first.read is False

    async def test_cleanup_reports_deleted_rows(self, mock_db):
        mock_db.execute.return_value = MagicMock(rowcount=7)

        deleted = await NotificationService().delete_older_than(mock_db, 30, read_only=True)

        assert deleted == 7
        sql = str(mock_db.execute.call_args.args[0])
        assert "notifications.read IS" in sql


# ============================================================
# Statistics
# ============================================================


class TestStats:

    def test_average_check(self):
        assert average_check(Decimal("10000"), 3) == Decimal("3333.33")
        assert average_check(Decimal("0"), 0) == Decimal("0.00")

    async def test_period_must_be_ordered(self, mock_db):
        with pytest.raises(ValidationError):
            await StatsService().orders_stats(mock_db, date(2026, 2, 1), date(2026, 1, 1))


# ============================================================
# Scheduler
# ============================================================


class TestScheduler:

    def test_jobs_and_triggers(self):
        target = AsyncIOScheduler(timezone="Europe/Moscow")

        scheduler_module.register_jobs(target)

        triggers = {job.id: str(job.trigger) for job in target.get_jobs()}
        assert set(triggers) == {
            "weekly_salary_recalculation",
            "stats_snapshot",
            "notification_cleanup",
            "notification_archive",
        }
        assert "hour='20'" in triggers["weekly_salary_recalculation"]
        assert "hour='21'" in triggers["stats_snapshot"]
        assert "day_of_week='sun'" in triggers["notification_cleanup"]
        assert "day='1'" in triggers["notification_archive"]

    async def test_job_commits_its_session(self, mock_db):
        factory = MagicMock()
        factory.return_value.__aenter__.return_value = mock_db
        job = AsyncMock(return_value=3)

        with patch.object(scheduler_module, "AsyncSessionLocal", factory):
            await scheduler_module._run_in_session("test_job", job)

        job.assert_awaited_once_with(mock_db)
        mock_db.commit.assert_awaited_once()

    async def test_failing_job_is_logged(self, mock_db, caplog):
        factory = MagicMock()
        factory.return_value.__aenter__.return_value = mock_db
        job = AsyncMock(side_effect=RuntimeError("database is down"))

        with patch.object(scheduler_module, "AsyncSessionLocal", factory):
            await scheduler_module._run_in_session("test_job", job)

        mock_db.commit.assert_not_awaited()
        assert any("test_job" in r.getMessage() and r.levelname == "ERROR" for r in caplog.records)
