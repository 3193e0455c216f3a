"""
In-app notifications stored in the database
"""
import logging
from typing import Optional

from sqlalchemy import select, func, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from oneonone.models.notification import Notification, NotificationType
from oneonone.services.effects import NotificationPort

logger = logging.getLogger(__name__)


class DatabaseNotificationService(NotificationPort):
    """Writes one Notification row per call, in its own commit"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def notify(
        self,
        user_id: int,
        type: NotificationType,
        title: str,
        message: str,
        link: Optional[str] = None,
    ) -> None:
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            link=link,
        )
        self.db.add(notification)
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise


async def list_notifications(
    db: AsyncSession,
    user_id: int,
    unread_only: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> list[Notification]:
    query = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        query = query.where(Notification.is_read == False)
    query = query.order_by(Notification.created_at.desc(), Notification.id.desc()).offset(offset).limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())


async def unread_count(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.is_read == False,
        )
    )
    return result.scalar() or 0


async def mark_all_read(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read == False)
        .values(is_read=True)
    )
    await db.commit()
    return result.rowcount or 0


async def delete_read(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        delete(Notification).where(Notification.user_id == user_id, Notification.is_read == True)
    )
    await db.commit()
    logger.info(f"Deleted {result.rowcount} read notifications for user {user_id}")
    return result.rowcount or 0
