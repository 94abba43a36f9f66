"""
Unit tests for the order business rules.

Identifier formatting, services cost, master share validation and
terminal status detection. Pure functions, no database.
"""

import uuid
from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError

from autocrm.schemas.order import (
    MasterShare,
    OrderCreate,
    OrderServiceLine,
    OrderStatus,
    OrderUpdate,
    compute_services_cost,
    enters_terminal,
    is_terminal,
    validate_master_shares,
)
from autocrm.services.order_service import format_order_identifier, local_day_bounds, next_order_number


# ============================================================
# Identifiers
# ============================================================


class TestOrderIdentifier:

    def test_first_identifier_on_empty_store(self):
        assert format_order_identifier("ZA", next_order_number(None)) == "ZA001"

    def test_next_identifier_follows_maximum(self):
        assert format_order_identifier("ZA", next_order_number(1)) == "ZA002"
        assert format_order_identifier("ZA", next_order_number(41)) == "ZA042"

    def test_numbers_above_999_keep_all_digits(self):
        """ZA999 is followed by ZA1000, not by a truncated identifier."""
        assert format_order_identifier("ZA", next_order_number(999)) == "ZA1000"

    def test_identifier_fits_primary_key_column(self):
        assert len(format_order_identifier("ZA", 9_999_999)) <= 10


# ============================================================
# Services cost
# ============================================================


class TestServicesCost:

    def test_sum_of_price_times_quantity(self):
        lines = [
            OrderServiceLine(name="Замена масла", price=Decimal("1500.00"), qty=Decimal("1")),
            OrderServiceLine(name="Шиномонтаж", price=Decimal("400.00"), qty=Decimal("4")),
        ]
        assert compute_services_cost(lines) == Decimal("3100.00")

    def test_quantity_defaults_to_one(self):
        assert compute_services_cost([OrderServiceLine(price=Decimal("999.99"))]) == Decimal("999.99")

    def test_empty_lines_cost_nothing(self):
        assert compute_services_cost([]) == Decimal("0.00")


# ============================================================
# Master shares
# ============================================================


class TestMasterShares:

    def test_shares_summing_to_100_are_accepted(self):
        shares = [
            MasterShare(master_id=uuid.uuid4(), percent=Decimal("60")),
            MasterShare(master_id=uuid.uuid4(), percent=Decimal("40")),
        ]
        assert validate_master_shares(shares) == shares

    def test_tolerance_of_one_cent(self):
        shares = [
            MasterShare(master_id=uuid.uuid4(), percent=Decimal("33.33")),
            MasterShare(master_id=uuid.uuid4(), percent=Decimal("33.33")),
            MasterShare(master_id=uuid.uuid4(), percent=Decimal("33.32")),
        ]
        with pytest.raises(ValueError):
            validate_master_shares(shares)

        shares[2] = MasterShare(master_id=shares[2].master_id, percent=Decimal("33.34"))
        assert validate_master_shares(shares) == shares

    def test_sum_below_100_is_rejected(self):
        shares = [
            MasterShare(master_id=uuid.uuid4(), percent=Decimal("60")),
            MasterShare(master_id=uuid.uuid4(), percent=Decimal("30")),
        ]
        with pytest.raises(ValueError, match="Сумма процентов"):
            validate_master_shares(shares)

    def test_empty_assignment_is_rejected(self):
        with pytest.raises(ValueError, match="Мастера обязательны"):
            validate_master_shares([])

    def test_duplicate_master_is_rejected(self):
        master_id = uuid.uuid4()
        shares = [
            MasterShare(master_id=master_id, percent=Decimal("50")),
            MasterShare(master_id=master_id, percent=Decimal("50")),
        ]
        with pytest.raises(ValueError, match="несколько раз"):
            validate_master_shares(shares)

    @pytest.mark.parametrize("percent", ["0", "-5", "100.01"])
    def test_percent_out_of_range(self, percent):
        with pytest.raises(PydanticValidationError):
            MasterShare(master_id=uuid.uuid4(), percent=Decimal(percent))


class TestOrderPayloads:

    def test_create_requires_services(self):
        with pytest.raises(PydanticValidationError, match="Услуги обязательны"):
            OrderCreate(services=[], masters=[{"master_id": str(uuid.uuid4()), "percent": "100"}])

    def test_create_checks_percent_sum(self):
        with pytest.raises(PydanticValidationError):
            OrderCreate(
                services=[{"price": "1000"}],
                masters=[
                    {"master_id": str(uuid.uuid4()), "percent": "50"},
                    {"master_id": str(uuid.uuid4()), "percent": "40"},
                ],
            )

    def test_create_defaults(self):
        data = OrderCreate(services=[{"price": "1000"}], masters=[{"master_id": str(uuid.uuid4()), "percent": "100"}])
        assert data.status == OrderStatus.NEW
        assert data.parts_cost == Decimal("0")
        assert data.client_id is None

    def test_update_leaves_masters_untouched_when_absent(self):
        data = OrderUpdate(status=OrderStatus.READY)
        assert data.masters is None
        assert data.model_fields_set == {"status"}

    def test_unknown_status_is_rejected(self):
        with pytest.raises(PydanticValidationError):
            OrderUpdate(status="потерян")


# ============================================================
# Statuses
# ============================================================


class TestTerminalStatuses:

    def test_terminal_statuses(self):
        assert is_terminal("выдан")
        assert is_terminal("закрыт")
        assert not is_terminal("готово")
        assert not is_terminal(None)

    @pytest.mark.parametrize("old,new", [("в_работе", "выдан"), ("новый", "закрыт"), ("ожидание_оплаты", "выдан")])
    def test_entering_terminal(self, old, new):
        assert enters_terminal(old, new)

    @pytest.mark.parametrize("old,new", [("выдан", "закрыт"), ("закрыт", "выдан"), ("новый", "готово"), ("выдан", "в_работе")])
    def test_not_entering_terminal(self, old, new):
        assert not enters_terminal(old, new)

    def test_status_order(self):
        assert [s.value for s in OrderStatus] == [
            "новый", "принял", "диагностика", "в_работе", "ожидание_деталей",
            "готово", "ожидание_оплаты", "выдан", "закрыт",
        ]


class TestLocalDayBounds:

    def test_day_starts_at_local_midnight(self):
        start, end = local_day_bounds(date(2026, 3, 10), "Europe/Moscow")
        assert start.isoformat() == "2026-03-10T00:00:00+03:00"
        assert (end - start).days == 1
