"""
Tests for master salaries.

Per-order shares, the idempotent insert, week periods and the weekly
aggregation with its consistency check.
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from autocrm.core.exceptions import AuthorizationError, ValidationError
from autocrm.services.salary_service import (
    SalaryService,
    aggregate_weekly_shares,
    compute_share,
    find_mismatches,
    week_start,
)
from factories import make_assignment, make_order


def rows_result(rows):
    result = MagicMock()
    result.all.return_value = rows
    return result


# ============================================================
# Shares and weeks
# ============================================================


class TestShares:

    def test_split_60_40_of_1000(self):
        assert compute_share(Decimal("1000"), Decimal("60")) == Decimal("600.00")
        assert compute_share(Decimal("1000"), Decimal("40")) == Decimal("400.00")

    def test_rounding_half_up(self):
        assert compute_share(Decimal("100.05"), Decimal("50")) == Decimal("50.03")
        assert compute_share(Decimal("999.99"), Decimal("33.33")) == Decimal("333.30")


class TestWeekPeriod:

    def test_week_starts_on_monday(self):
        thursday = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
        assert week_start(thursday, "Europe/Moscow") == date(2026, 1, 12)

    def test_week_uses_shop_timezone(self):
        """Sunday 22:30 UTC is already Monday in Moscow."""
        sunday_night = datetime(2026, 1, 18, 22, 30, tzinfo=timezone.utc)
        assert week_start(sunday_night, "Europe/Moscow") == date(2026, 1, 19)
        assert week_start(sunday_night, "UTC") == date(2026, 1, 12)


# ============================================================
# Per-order salaries
# ============================================================


class TestRecordOrderSalaries:

    @pytest.fixture
    def order(self):
        return make_order(
            "ZA007",
            total=Decimal("1000.00"),
            masters=[
                make_assignment(uuid.uuid4(), Decimal("60")),
                make_assignment(uuid.uuid4(), Decimal("40")),
            ],
        )

    async def test_one_row_per_master(self, mock_db, order):
        mock_db.execute.return_value = MagicMock(rowcount=2)

        inserted = await SalaryService().record_order_salaries(
            mock_db, order, now=datetime(2026, 1, 15, 10, 0, tzinfo=timezone.utc)
        )

        assert inserted == 2
        params = mock_db.execute.call_args.args[0].compile(dialect=postgresql.dialect()).params
        amounts = sorted(v for k, v in params.items() if k.startswith("amount"))
        assert amounts == [Decimal("400.00"), Decimal("600.00")]
        assert {v for k, v in params.items() if k.startswith("week_period")} == {date(2026, 1, 12)}
        assert {v for k, v in params.items() if k.startswith("order_id")} == {"ZA007"}

    async def test_insert_ignores_existing_rows(self, mock_db, order):
        """A second terminal transition must not duplicate or alter salaries."""
        mock_db.execute.return_value = MagicMock(rowcount=0)

        inserted = await SalaryService().record_order_salaries(mock_db, order)

        sql = str(mock_db.execute.call_args.args[0].compile(dialect=postgresql.dialect()))
        assert "ON CONFLICT (master_id, order_id) DO NOTHING" in sql
        assert inserted == 0

    async def test_order_without_masters(self, mock_db):
        inserted = await SalaryService().record_order_salaries(mock_db, make_order(total=Decimal("500")))

        assert inserted == 0
        mock_db.execute.assert_not_awaited()


class TestSalaryPayout:

    async def test_mark_paid(self, mock_db):
        salary = MagicMock(id=uuid.uuid4(), paid=False, paid_at=None, notes=None)
        mock_db.get.return_value = salary

        paid = await SalaryService().mark_paid(mock_db, salary.id, notes="Наличными")

        assert paid.paid is True
        assert paid.paid_at is not None

    async def test_cannot_pay_twice(self, mock_db):
        salary = MagicMock(id=uuid.uuid4(), paid=True)
        mock_db.get.return_value = salary

        with pytest.raises(ValidationError, match="уже выплачена"):
            await SalaryService().mark_paid(mock_db, salary.id)

    async def test_master_cannot_read_foreign_salary(self, mock_db, master_user):
        salary = MagicMock(id=uuid.uuid4(), master_id=uuid.uuid4())
        mock_db.get.return_value = salary

        with pytest.raises(AuthorizationError):
            await SalaryService().get_by_id(mock_db, master_user, salary.id)


# ============================================================
# Weekly aggregation
# ============================================================


class TestWeeklyAggregation:

    def test_aggregate_per_master(self):
        m1, m2 = uuid.uuid4(), uuid.uuid4()
        rows = [
            (m1, "ZA001", Decimal("1000"), Decimal("60")),
            (m2, "ZA001", Decimal("1000"), Decimal("40")),
            (m1, "ZA002", Decimal("2000"), Decimal("100")),
        ]

        result = aggregate_weekly_shares(rows)

        assert result[m1] == (Decimal("2600.00"), 2)
        assert result[m2] == (Decimal("400.00"), 1)

    def test_mismatches(self):
        m1, m2, m3 = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        weekly = {m1: Decimal("600.00"), m2: Decimal("400.00")}
        ledger = {m1: Decimal("600.00"), m2: Decimal("350.00"), m3: Decimal("100.00")}

        assert set(find_mismatches(weekly, ledger)) == {m2, m3}
        assert find_mismatches(weekly, dict(weekly)) == []

    async def test_recalculate_upserts_and_reports_mismatch(self, mock_db, caplog):
        m1, m2 = uuid.uuid4(), uuid.uuid4()
        mock_db.execute.side_effect = [
            rows_result([
                (m1, "ZA001", Decimal("1000.00"), Decimal("60")),
                (m2, "ZA001", Decimal("1000.00"), Decimal("40")),
            ]),
            MagicMock(),
            rows_result([(m1, Decimal("600.00")), (m2, Decimal("300.00"))]),
        ]

        result = await SalaryService().recalculate_weekly(
            mock_db, now=datetime(2026, 1, 15, 17, 0, tzinfo=timezone.utc)
        )

        assert result.week_period == date(2026, 1, 12)
        assert result.masters == 2
        assert result.total == Decimal("1000.00")
        assert result.mismatches == [m2]
        upsert = str(mock_db.execute.call_args_list[1].args[0].compile(dialect=postgresql.dialect()))
        assert "ON CONFLICT (master_id, week_period) DO UPDATE" in upsert
        assert any("per-order salaries sum to" in r.getMessage() for r in caplog.records)

    async def test_recalculate_empty_week(self, mock_db):
        mock_db.execute.side_effect = [rows_result([]), rows_result([])]

        result = await SalaryService().recalculate_weekly(mock_db)

        assert result.masters == 0
        assert result.total == Decimal("0")
        assert mock_db.execute.await_count == 2
