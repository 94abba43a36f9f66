"""
Service layer for notifications
Project: AutoService CRM

In-app notifications: creation on order assignment, the user's inbox,
and the retention cleanups run by the scheduler.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from autocrm.core.access import ensure_notification_owner
from autocrm.core.exceptions import NotFoundError
from autocrm.models import Notification, User

logger = logging.getLogger(__name__)

ORDER_ASSIGNED = "order_assigned"


class NotificationService:
    """CRUD and retention for user notifications."""

    def notify_order_assigned(
        self,
        db: AsyncSession,
        order_id: str,
        master_ids: Iterable[uuid.UUID],
    ) -> list[Notification]:
        """
        Queues one "new order" notification per assigned master.

        The rows are added to the session and written with the
        surrounding flush, in the same transaction as the assignments.

        Args:
            db: Database session
            order_id: Order the masters were assigned to
            master_ids: Masters of the inserted assignments

        Returns:
            The pending notifications
        """
        notifications = [
            Notification(
                user_id=master_id,
                title="Новый заказ",
                message=f"Заказ {order_id} назначен на вас",
                type=ORDER_ASSIGNED,
                entity_id=order_id,
                entity_type="order",
                read=False,
            )
            for master_id in master_ids
        ]
        db.add_all(notifications)
        logger.debug("Queued %s assignment notifications for order %s", len(notifications), order_id)
        return notifications

    async def get_for_user(
        self,
        db: AsyncSession,
        user: User,
        page: int = 1,
        limit: int = 20,
        unread_only: bool = False,
    ) -> tuple[list[Notification], int]:
        """
        The caller's notifications, newest first.

        Returns:
            Tuple of (notifications, total count)
        """
        conditions = [Notification.user_id == user.id]
        if unread_only:
            conditions.append(Notification.read.is_(False))

        query = (
            select(Notification)
            .where(*conditions)
            .order_by(Notification.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await db.execute(query)
        items = list(result.scalars().all())

        count_result = await db.execute(
            select(func.count()).select_from(Notification).where(*conditions)
        )
        total = count_result.scalar() or 0

        return items, total

    async def mark_read(self, db: AsyncSession, user: User, notification_id: uuid.UUID) -> Notification:
        """
        Marks one notification as read.

        Raises:
            NotFoundError: If the notification does not exist
            AuthorizationError: If it belongs to another user
        """
        notification = await db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundError("Уведомление не найдено")
        ensure_notification_owner(user, notification)

        notification.read = True
        await db.flush()
        return notification

    async def mark_all_read(self, db: AsyncSession, user: User) -> int:
        result = await db.execute(
            update(Notification)
            .where(Notification.user_id == user.id, Notification.read.is_(False))
            .values(read=True)
        )
        logger.info("User %s marked %s notifications as read", user.id, result.rowcount)
        return result.rowcount or 0

    async def delete_older_than(
        self,
        db: AsyncSession,
        days: int,
        read_only: bool,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Deletes notifications created more than `days` days ago.

        Args:
            db: Database session
            days: Age threshold
            read_only: Restrict the deletion to read notifications
            now: Reference time (defaults to the current UTC time)

        Returns:
            Number of deleted rows
        """
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)
        stmt = delete(Notification).where(Notification.created_at < cutoff)
        if read_only:
            stmt = stmt.where(Notification.read.is_(True))

        result = await db.execute(stmt)
        deleted = result.rowcount or 0
        logger.info(
            "Deleted %s notifications older than %s days (read_only=%s)",
            deleted, days, read_only,
        )
        return deleted


notification_service = NotificationService()
