"""
Tests for the model mixins.

The `before_flush` listener is called directly with a stand-in session
exposing the attributes it reads.
"""

import datetime
import uuid
from decimal import Decimal
from types import SimpleNamespace

from autocrm.models import Client, Payment
from autocrm.models.mixins import update_timestamp

LONG_AGO = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)


def flush_session(dirty=(), new=(), modified=()):
    return SimpleNamespace(
        dirty=list(dirty),
        new=list(new),
        is_modified=lambda obj, include_collections=True: obj in modified,
    )


class TestUpdatedAtListener:

    def test_modified_row_is_stamped(self):
        client = Client(name="Иван Петров", updated_at=LONG_AGO)

        update_timestamp(flush_session(dirty=[client], modified=[client]), None, None)

        assert client.updated_at > LONG_AGO

    def test_unmodified_row_keeps_timestamp(self):
        client = Client(name="Иван Петров", updated_at=LONG_AGO)

        update_timestamp(flush_session(dirty=[client]), None, None)

        assert client.updated_at == LONG_AGO

    def test_new_row_is_stamped(self):
        client = Client(name="Анна Смирнова")

        update_timestamp(flush_session(new=[client]), None, None)

        assert client.updated_at.tzinfo is not None

    def test_rows_without_updated_at_are_ignored(self):
        payment = Payment(debt_id=uuid.uuid4(), amount=Decimal("100"), type="наличные")

        update_timestamp(flush_session(dirty=[payment], new=[payment], modified=[payment]), None, None)

        assert not hasattr(payment, "updated_at")
