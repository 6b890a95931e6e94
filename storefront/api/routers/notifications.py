"""Admin notification feed."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import delete, desc, select, update
from sqlalchemy.orm import Session

from storefront.api.deps import require_admin
from storefront.core.errors import NotFoundError
from storefront.db.base import utc_now
from storefront.db.models import AdminNotification
from storefront.db.queries import count_of, paginate
from storefront.db.session import get_db
from storefront.schemas.common import CountResult, Message, Pagination
from storefront.schemas.notifications import NotificationIn, NotificationOut, NotificationPage, UnreadCount
from storefront.services import notifications

admin_router = APIRouter(
    prefix="/api/admin/notifications", tags=["Notifications"], dependencies=[Depends(require_admin)]
)

_unread = select(AdminNotification).where(AdminNotification.is_read.is_(False))


@admin_router.get("", response_model=NotificationPage, summary="Notification feed, newest first")
def list_notifications(
    unread_only: bool = False,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=50),
    db: Session = Depends(get_db),
):
    stmt = _unread if unread_only else select(AdminNotification)
    rows, total = paginate(db, stmt.order_by(desc(AdminNotification.created_at)), page, limit)
    return NotificationPage(
        notifications=[NotificationOut.model_validate(n) for n in rows], pagination=Pagination.build(page, limit, total)
    )


@admin_router.get("/unread-count", response_model=UnreadCount, summary="Number of unread notifications")
def unread_count(db: Session = Depends(get_db)):
    return UnreadCount(count=count_of(db, _unread))


@admin_router.post("", response_model=NotificationOut, status_code=status.HTTP_201_CREATED, summary="Record a notification")
def create_notification(payload: NotificationIn, db: Session = Depends(get_db)):
    notification = notifications.notify(
        db, payload.type, payload.title, payload.message, link=payload.link, metadata=payload.metadata
    )
    db.commit()
    return NotificationOut.model_validate(notification)


@admin_router.post("/read-all", response_model=CountResult, summary="Mark every notification read")
def mark_all_read(db: Session = Depends(get_db)):
    result = db.execute(
        update(AdminNotification).where(AdminNotification.is_read.is_(False)).values(is_read=True, read_at=utc_now())
    )
    db.commit()
    return CountResult(count=result.rowcount or 0)


@admin_router.post("/{notification_id}/read", response_model=NotificationOut, summary="Mark one notification read")
def mark_read(notification_id: uuid.UUID, db: Session = Depends(get_db)):
    notification = db.get(AdminNotification, notification_id)
    if notification is None:
        raise NotFoundError("Notification not found")
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utc_now()
        db.commit()
    return NotificationOut.model_validate(notification)


@admin_router.delete("/{notification_id}", response_model=Message, summary="Delete a notification")
def delete_notification(notification_id: uuid.UUID, db: Session = Depends(get_db)):
    db.execute(delete(AdminNotification).where(AdminNotification.id == notification_id))
    db.commit()
    return Message(message="Notification deleted")


@admin_router.delete("", response_model=CountResult, summary="Clear all notifications")
def clear_all(db: Session = Depends(get_db)):
    result = db.execute(delete(AdminNotification))
    db.commit()
    return CountResult(count=result.rowcount or 0)
