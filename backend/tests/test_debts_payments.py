"""
Tests for debts, payments and parts sales.

Debt reduction on payment, payment references, and sale totals.
"""

import uuid
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import ValidationError as PydanticValidationError

from autocrm.core.exceptions import AuthorizationError, NotFoundError
from autocrm.schemas.debt import DebtCreate, DebtUpdate
from autocrm.schemas.parts_sale import PartsSaleCreate, compute_sale_total
from autocrm.schemas.payment import PaymentCreate, PaymentType
from autocrm.services.debt_service import DebtService, reduce_remaining
from autocrm.services.payment_service import PaymentService
from factories import scalar_result


# ============================================================
# Debts
# ============================================================


class TestDebtReduction:

    def test_partial_payment(self):
        assert reduce_remaining(Decimal("500"), Decimal("200")) == Decimal("300")

    def test_overpayment_is_absorbed(self):
        assert reduce_remaining(Decimal("500"), Decimal("700")) == Decimal("0")

    def test_exact_payment(self):
        assert reduce_remaining(Decimal("500.00"), Decimal("500.00")) == Decimal("0")

    async def test_apply_payment_locks_and_clamps(self, mock_db):
        debt = SimpleNamespace(id=uuid.uuid4(), remaining=Decimal("500.00"))
        mock_db.execute.return_value = scalar_result(debt)

        updated = await DebtService().apply_payment(mock_db, debt.id, Decimal("700.00"))

        assert updated.remaining == Decimal("0")
        stmt = mock_db.execute.call_args.args[0]
        assert stmt._for_update_arg is not None
        mock_db.flush.assert_awaited()

    async def test_apply_payment_unknown_debt(self, mock_db):
        mock_db.execute.return_value = scalar_result(None)

        with pytest.raises(NotFoundError):
            await DebtService().apply_payment(mock_db, uuid.uuid4(), Decimal("10"))

    async def test_new_debt_starts_at_full_amount(self, mock_db):
        mock_db.get.return_value = SimpleNamespace(id=uuid.uuid4())

        debt = await DebtService().create(
            mock_db, DebtCreate(client_id=uuid.uuid4(), amount=Decimal("1500.00"))
        )

        assert debt.remaining == Decimal("1500.00")

    async def test_master_not_on_order_cannot_read_debt(self, mock_db, master_user):
        mock_db.get.return_value = SimpleNamespace(id=uuid.uuid4(), order_id="ZA001")
        result = MagicMock()
        result.scalars.return_value.all.return_value = [uuid.uuid4()]
        mock_db.execute.return_value = result

        with pytest.raises(AuthorizationError, match="Доступ к долгу запрещен"):
            await DebtService().get_for_user(mock_db, master_user, uuid.uuid4())

    async def test_assigned_master_can_read_debt(self, mock_db, master_user):
        debt = SimpleNamespace(id=uuid.uuid4(), order_id="ZA001")
        mock_db.get.return_value = debt
        result = MagicMock()
        result.scalars.return_value.all.return_value = [master_user.id]
        mock_db.execute.return_value = result

        assert await DebtService().get_for_user(mock_db, master_user, debt.id) is debt

    async def test_update_changes_notes_only(self, mock_db):
        debt = SimpleNamespace(id=uuid.uuid4(), order_id="ZA001", remaining=Decimal("300"), notes=None)
        mock_db.get.return_value = debt

        updated = await DebtService().update(mock_db, debt.id, DebtUpdate(notes="Оплатит в пятницу"))

        assert updated.notes == "Оплатит в пятницу"
        assert updated.order_id == "ZA001"
        assert updated.remaining == Decimal("300")

    def test_update_rejects_relinking(self):
        with pytest.raises(PydanticValidationError):
            DebtUpdate(order_id="ZA002", notes="другой заказ")


# ============================================================
# Payments
# ============================================================


class TestPayments:

    def test_payment_needs_a_reference(self):
        with pytest.raises(PydanticValidationError, match="Платеж должен ссылаться"):
            PaymentCreate(amount=Decimal("100"), type=PaymentType.CASH)

    def test_payment_amount_must_be_positive(self):
        with pytest.raises(PydanticValidationError):
            PaymentCreate(order_id="ZA001", amount=Decimal("0"), type=PaymentType.CARD)

    def test_unknown_payment_type(self):
        with pytest.raises(PydanticValidationError):
            PaymentCreate(order_id="ZA001", amount=Decimal("100"), type="бартер")

    async def test_debt_payment_reduces_debt(self, mock_db, admin_user):
        debt_id = uuid.uuid4()
        data = PaymentCreate(debt_id=debt_id, amount=Decimal("700.00"), type=PaymentType.TRANSFER)

        with patch("autocrm.services.payment_service.debt_service") as debt_service:
            debt_service.apply_payment = AsyncMock()
            payment = await PaymentService().create(mock_db, data, admin_user)

        debt_service.apply_payment.assert_awaited_once_with(mock_db, debt_id, Decimal("700.00"))
        assert payment.created_by == admin_user.id
        assert payment.type == "перевод"

    async def test_order_payment_leaves_debts_alone(self, mock_db, master_user):
        mock_db.get.return_value = SimpleNamespace(id="ZA001")
        data = PaymentCreate(order_id="ZA001", amount=Decimal("1500.00"), type=PaymentType.CASH)

        with patch("autocrm.services.payment_service.debt_service") as debt_service:
            debt_service.apply_payment = AsyncMock()
            await PaymentService().create(mock_db, data, master_user)

        debt_service.apply_payment.assert_not_awaited()

    async def test_payment_for_missing_order(self, mock_db, master_user):
        mock_db.get.return_value = None
        data = PaymentCreate(order_id="ZA404", amount=Decimal("10"), type=PaymentType.CASH)

        with pytest.raises(NotFoundError):
            await PaymentService().create(mock_db, data, master_user)


# ============================================================
# Parts sales
# ============================================================


class TestPartsSales:

    def test_total(self):
        assert compute_sale_total(4, Decimal("250.00"), Decimal("100.00")) == Decimal("900.00")

    def test_discount_cannot_exceed_gross(self):
        with pytest.raises(PydanticValidationError, match="Скидка превышает стоимость"):
            PartsSaleCreate(part_name="Фильтр масляный", quantity=1, price=Decimal("500"), discount=Decimal("600"))

    def test_full_discount_is_allowed(self):
        sale = PartsSaleCreate(part_name="Свеча зажигания", quantity=2, price=Decimal("300"), discount=Decimal("600"))
        assert compute_sale_total(sale.quantity, sale.price, sale.discount) == Decimal("0.00")

    def test_quantity_must_be_positive(self):
        with pytest.raises(PydanticValidationError):
            PartsSaleCreate(part_name="Колодки", quantity=0, price=Decimal("1000"))

    def test_client_phone_is_normalized(self):
        sale = PartsSaleCreate(part_name="Антифриз", price=Decimal("800"), client_phone="+7 (912) 345-67-89")
        assert sale.client_phone == "+79123456789"
