"""
Notification API endpoints - the caller's in-app inbox
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel

from oneonone.database import get_db
from oneonone.models.user import User
from oneonone.models.notification import Notification, NotificationType
from oneonone.api.auth import get_current_user
from oneonone.services import notification_service

router = APIRouter()


class NotificationResponse(BaseModel):
    id: int
    type: NotificationType
    title: str
    message: str
    link: Optional[str]
    is_read: bool
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


async def _get_own_notification(db: AsyncSession, user: User, notification_id: int) -> Notification:
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user.id
        )
    )
    notification = result.scalar_one_or_none()
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.get("/", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = False,
    limit: int = 50,
    offset: int = 0,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Newest first"""
    limit = max(1, min(limit, 100))
    notifications = await notification_service.list_notifications(
        db, current_user.id, unread_only=unread_only, limit=limit, offset=max(offset, 0)
    )
    return [NotificationResponse.model_validate(n) for n in notifications]


@router.get("/unread-count")
async def get_unread_count(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return {"count": await notification_service.unread_count(db, current_user.id)}


@router.post("/read-all")
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    updated = await notification_service.mark_all_read(db, current_user.id)
    return {"updated": updated}


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    notification = await _get_own_notification(db, current_user, notification_id)
    notification.is_read = True
    await db.commit()
    await db.refresh(notification)
    return NotificationResponse.model_validate(notification)


@router.delete("/read")
async def delete_read(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Clear every read notification"""
    deleted = await notification_service.delete_read(db, current_user.id)
    return {"deleted": deleted}


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    notification = await _get_own_notification(db, current_user, notification_id)
    await db.delete(notification)
    await db.commit()
    return {"message": "Notification deleted"}
