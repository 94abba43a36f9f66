"""
Service layer for clients
Project: AutoService CRM

CRUD on the client registry with outstanding debt totals.
"""

import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.exceptions import ConflictError, NotFoundError, translate_integrity_error
from autocrm.models import Client, Debt
from autocrm.schemas.client import ClientCreate, ClientUpdate

logger = logging.getLogger(__name__)


class ClientService:
    """
    CRUD operations on clients.

    The phone number is unique: duplicates are reported as ConflictError
    before touching the database, and again if a concurrent insert wins.
    """

    async def get_all(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
    ) -> tuple[list[Client], int]:
        """
        Paginated list of clients ordered by name.

        Args:
            db: Database session
            page: Page number
            limit: Items per page
            search: Substring of name, phone, car or VIN

        Returns:
            Tuple of (clients, total count)
        """
        conditions = []
        if search:
            term = f"%{search.strip()}%"
            conditions.append(
                or_(
                    Client.name.ilike(term),
                    Client.phone.ilike(term),
                    Client.car1.ilike(term),
                    Client.car2.ilike(term),
                    Client.vin.ilike(term),
                )
            )

        query = select(Client).order_by(Client.name.asc())
        count_query = select(func.count()).select_from(Client)
        if conditions:
            query = query.where(*conditions)
            count_query = count_query.where(*conditions)

        result = await db.execute(query.offset((page - 1) * limit).limit(limit))
        clients = list(result.scalars().all())

        count_result = await db.execute(count_query)
        total = count_result.scalar() or 0

        logger.info("Fetched %s clients of %s (page %s)", len(clients), total, page)
        return clients, total

    async def get_by_id(self, db: AsyncSession, client_id: uuid.UUID) -> Client:
        """
        Raises:
            NotFoundError: If the client does not exist
        """
        client = await db.get(Client, client_id)
        if client is None:
            logger.warning("Client not found: %s", client_id)
            raise NotFoundError("Клиент не найден")
        return client

    async def get_debt_totals(self, db: AsyncSession, client_ids: list[uuid.UUID]) -> dict[uuid.UUID, Decimal]:
        """Outstanding debt per client, for the given clients only."""
        if not client_ids:
            return {}
        result = await db.execute(
            select(Debt.client_id, func.coalesce(func.sum(Debt.remaining), 0))
            .where(Debt.client_id.in_(client_ids))
            .group_by(Debt.client_id)
        )
        return {client_id: Decimal(total) for client_id, total in result.all()}

    async def create(self, db: AsyncSession, client_data: ClientCreate) -> Client:
        """
        Creates a client.

        Raises:
            ConflictError: If the phone number is already registered
        """
        if client_data.phone:
            await self._ensure_phone_free(db, client_data.phone)

        client = Client(**client_data.model_dump())
        db.add(client)
        try:
            await db.flush()
        except IntegrityError as e:
            logger.error("Integrity error creating client: %s", e.orig)
            await db.rollback()
            raise translate_integrity_error(e)
        await db.refresh(client)

        logger.info("Client created: %s - %s", client.id, client.name)
        return client

    async def update(self, db: AsyncSession, client_id: uuid.UUID, client_data: ClientUpdate) -> Client:
        """
        Partially updates a client.

        Raises:
            NotFoundError: If the client does not exist
            ConflictError: If the new phone belongs to another client
        """
        client = await self.get_by_id(db, client_id)
        update_data = client_data.model_dump(exclude_unset=True)

        new_phone = update_data.get("phone")
        if new_phone and new_phone != client.phone:
            await self._ensure_phone_free(db, new_phone, exclude_id=client_id)

        for field, value in update_data.items():
            setattr(client, field, value)

        try:
            await db.flush()
        except IntegrityError as e:
            logger.error("Integrity error updating client %s: %s", client_id, e.orig)
            await db.rollback()
            raise translate_integrity_error(e)
        await db.refresh(client)

        logger.info("Client updated: %s", client.id)
        return client

    async def delete(self, db: AsyncSession, client_id: uuid.UUID) -> None:
        """
        Deletes a client.

        Orders keep existing with no client; debts are removed with it.
        """
        client = await self.get_by_id(db, client_id)
        await db.delete(client)
        await db.flush()
        logger.warning("Client deleted: %s - %s", client.id, client.name)

    async def _ensure_phone_free(
        self,
        db: AsyncSession,
        phone: str,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(Client.id).where(Client.phone == phone)
        if exclude_id is not None:
            query = query.where(Client.id != exclude_id)
        result = await db.execute(query)
        if result.scalar_one_or_none() is not None:
            logger.warning("Duplicate client phone: %s", phone)
            raise ConflictError(f"Клиент с телефоном {phone} уже существует")


client_service = ClientService()
