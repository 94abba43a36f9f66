"""
Tests for OrderService.

Identifier allocation, salary recording on terminal transitions and
order visibility, against a mocked AsyncSession.
"""

import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from autocrm.core.exceptions import AuthorizationError, ConflictError, ValidationError
from autocrm.schemas.order import OrderCreate, OrderStatus, OrderUpdate
from autocrm.services.order_service import OrderService
from factories import make_assignment, make_order


class DriverError(Exception):
    def __init__(self, sqlstate: str):
        super().__init__(f"sqlstate {sqlstate}")
        self.sqlstate = sqlstate


def integrity_error(sqlstate: str) -> IntegrityError:
    return IntegrityError("INSERT INTO orders ...", {}, DriverError(sqlstate))


def order_payload(master_id) -> OrderCreate:
    return OrderCreate(
        services=[{"name": "Диагностика", "price": "1000.00", "qty": "1"}],
        parts_cost="500.00",
        masters=[{"master_id": str(master_id), "percent": "100"}],
    )


@pytest.fixture
def service():
    service = OrderService()
    service._ensure_client = AsyncMock()
    service._ensure_masters = AsyncMock()
    service.get_by_id = AsyncMock(side_effect=lambda db, order_id, reload=False: order_id)
    return service


# ============================================================
# Creation
# ============================================================


class TestOrderCreation:

    async def test_sequential_creation_on_empty_store(self, service, mock_db, master_user):
        service._max_order_number = AsyncMock(side_effect=[None, 1])

        first = await service.create(mock_db, order_payload(master_user.id), master_user)
        second = await service.create(mock_db, order_payload(master_user.id), master_user)

        assert (first, second) == ("ZA001", "ZA002")

    async def test_services_cost_is_derived(self, service, mock_db, master_user):
        service._max_order_number = AsyncMock(return_value=None)
        data = OrderCreate(
            services=[{"price": "1200", "qty": "2"}, {"price": "300"}],
            masters=[{"master_id": str(master_user.id), "percent": "100"}],
        )

        await service.create(mock_db, data, master_user)

        order = mock_db.add.call_args.args[0]
        assert order.services_cost == Decimal("2700.00")
        assert order.created_by == master_user.id
        assert order.status == "новый"

    async def test_created_closed_order_is_stamped_without_salaries(self, service, mock_db, master_user):
        service._max_order_number = AsyncMock(return_value=None)
        data = order_payload(master_user.id).model_copy(update={"status": OrderStatus.CLOSED})

        with patch("autocrm.services.order_service.salary_service") as salary_service:
            await service.create(mock_db, data, master_user)

        order = mock_db.add.call_args.args[0]
        assert order.status == "закрыт"
        assert order.completed_at is not None
        salary_service.record_order_salaries.assert_not_called()

    async def test_new_order_has_no_completion_time(self, service, mock_db, master_user):
        service._max_order_number = AsyncMock(return_value=None)

        await service.create(mock_db, order_payload(master_user.id), master_user)

        assert mock_db.add.call_args.args[0].completed_at is None

    async def test_masters_are_notified(self, service, mock_db, master_user):
        service._max_order_number = AsyncMock(return_value=None)

        await service.create(mock_db, order_payload(master_user.id), master_user)

        notifications = mock_db.add_all.call_args.args[0]
        assert [n.user_id for n in notifications] == [master_user.id]
        assert notifications[0].message == "Заказ ZA001 назначен на вас"

    async def test_retry_after_identifier_collision(self, service, mock_db, master_user):
        """A concurrent insert took ZA001: the next attempt re-reads the maximum."""
        service._max_order_number = AsyncMock(side_effect=[None, 1])
        mock_db.flush.side_effect = [integrity_error("23505"), None, None]

        order_id = await service.create(mock_db, order_payload(master_user.id), master_user)

        assert order_id == "ZA002"
        assert service._max_order_number.await_count == 2

    async def test_conflict_after_exhausting_attempts(self, service, mock_db, master_user):
        service._max_order_number = AsyncMock(return_value=None)
        mock_db.flush.side_effect = integrity_error("23505")

        with pytest.raises(ConflictError):
            await service.create(mock_db, order_payload(master_user.id), master_user)
        mock_db.add_all.assert_not_called()

    async def test_other_integrity_errors_are_not_retried(self, service, mock_db, master_user):
        service._max_order_number = AsyncMock(return_value=None)
        mock_db.flush.side_effect = integrity_error("23503")

        with pytest.raises(ValidationError):
            await service.create(mock_db, order_payload(master_user.id), master_user)
        assert service._max_order_number.await_count == 1


# ============================================================
# Status transitions
# ============================================================


class TestStatusTransitions:

    @pytest.fixture
    def completed_order(self, master_user, other_master):
        return make_order(
            status="в_работе",
            total=Decimal("1000.00"),
            created_by=master_user.id,
            masters=[
                make_assignment(master_user.id, Decimal("60")),
                make_assignment(other_master.id, Decimal("40")),
            ],
        )

    async def test_salaries_recorded_once(self, service, mock_db, admin_user, completed_order):
        service.get_for_user = AsyncMock(return_value=completed_order)

        with patch("autocrm.services.order_service.salary_service") as salary_service:
            salary_service.record_order_salaries = AsyncMock(return_value=2)
            await service.change_status(mock_db, admin_user, "ZA001", OrderStatus.HANDED_OVER)
            await service.change_status(mock_db, admin_user, "ZA001", OrderStatus.CLOSED)

        salary_service.record_order_salaries.assert_awaited_once()
        assert salary_service.record_order_salaries.await_args.args[1] is completed_order

    async def test_completed_at_stamped_on_first_terminal_transition(self, service, mock_db, admin_user, completed_order):
        service.get_for_user = AsyncMock(return_value=completed_order)

        with patch("autocrm.services.order_service.salary_service") as salary_service:
            salary_service.record_order_salaries = AsyncMock(return_value=2)
            await service.change_status(mock_db, admin_user, "ZA001", OrderStatus.HANDED_OVER)
            first_completion = completed_order.completed_at

            await service.change_status(mock_db, admin_user, "ZA001", OrderStatus.IN_PROGRESS)
            await service.change_status(mock_db, admin_user, "ZA001", OrderStatus.CLOSED)

        assert first_completion is not None
        assert completed_order.completed_at == first_completion

    async def test_non_terminal_transition_records_nothing(self, service, mock_db, admin_user, completed_order):
        service.get_for_user = AsyncMock(return_value=completed_order)

        with patch("autocrm.services.order_service.salary_service") as salary_service:
            salary_service.record_order_salaries = AsyncMock()
            await service.change_status(mock_db, admin_user, "ZA001", OrderStatus.READY)

        salary_service.record_order_salaries.assert_not_awaited()
        assert completed_order.completed_at is None

    async def test_update_replaces_masters_before_completing(self, service, mock_db, admin_user, other_master, completed_order):
        """Salaries of an order completed by PUT go to the masters in the same payload."""
        service.get_for_user = AsyncMock(return_value=completed_order)
        calls = []

        async def replace(db, order, masters):
            calls.append(("masters", order.status))

        async def record(db, order, now=None):
            calls.append(("salaries", order.status))
            return 1

        service._replace_masters = AsyncMock(side_effect=replace)
        data = OrderUpdate(
            status=OrderStatus.HANDED_OVER,
            masters=[{"master_id": str(other_master.id), "percent": "100"}],
        )

        with patch("autocrm.services.order_service.salary_service") as salary_service:
            salary_service.record_order_salaries = AsyncMock(side_effect=record)
            await service.update(mock_db, admin_user, "ZA001", data)

        assert calls == [("masters", "в_работе"), ("salaries", "выдан")]


# ============================================================
# Visibility
# ============================================================


class TestOrderVisibility:

    async def test_master_cannot_open_foreign_order(self, mock_db, master_user, other_master):
        service = OrderService()
        foreign = make_order(created_by=other_master.id, masters=[make_assignment(other_master.id, Decimal("100"))])
        service.get_by_id = AsyncMock(return_value=foreign)

        with pytest.raises(AuthorizationError, match="Доступ к заказу запрещен"):
            await service.get_for_user(mock_db, master_user, "ZA001")

    async def test_assigned_master_can_open_order(self, mock_db, master_user, other_master):
        service = OrderService()
        order = make_order(created_by=other_master.id, masters=[make_assignment(master_user.id, Decimal("100"))])
        service.get_by_id = AsyncMock(return_value=order)

        assert await service.get_for_user(mock_db, master_user, "ZA001") is order

    async def test_staff_can_open_any_order(self, mock_db, admin_user, other_master):
        service = OrderService()
        order = make_order(created_by=other_master.id, masters=[make_assignment(uuid.uuid4(), Decimal("100"))])
        service.get_by_id = AsyncMock(return_value=order)

        assert await service.get_for_user(mock_db, admin_user, "ZA001") is order
