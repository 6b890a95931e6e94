"""
Back-in-stock subscriptions.

Shoppers leave an email for a sold-out product or variant; the back office lists
the pending subscribers and marks them notified once the item is restocked.
"""

from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import delete, desc, select, update
from sqlalchemy.orm import Session, selectinload

from storefront.api.deps import require_admin
from storefront.core.errors import ConflictError, NotFoundError
from storefront.db.base import utc_now
from storefront.db.models import Product, ProductVariant, StockNotification
from storefront.db.queries import paginate
from storefront.db.session import get_db
from storefront.schemas.common import Message, Pagination
from storefront.schemas.inventory import (
    NotifiedCount,
    StockNotificationOut,
    StockNotificationPage,
    StockSubscription,
    StockTarget,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stock-notifications", tags=["Inventory"])
admin_router = APIRouter(
    prefix="/api/admin/stock-notifications", tags=["Inventory"], dependencies=[Depends(require_admin)]
)


def _for_item(product_id: uuid.UUID, variant_id: Optional[uuid.UUID]) -> list:
    """Conditions matching one product, or one of its variants (no variant means the product itself)."""
    return [
        StockNotification.product_id == product_id,
        StockNotification.variant_id == variant_id
        if variant_id is not None
        else StockNotification.variant_id.is_(None),
    ]


def _pending(product_id: uuid.UUID, variant_id: Optional[uuid.UUID]) -> list:
    return _for_item(product_id, variant_id) + [StockNotification.notified.is_(False)]


@router.post("", response_model=Message, status_code=status.HTTP_201_CREATED, summary="Ask to be told when back in stock")
def subscribe(payload: StockSubscription, db: Session = Depends(get_db)):
    email = payload.email.lower()
    if db.get(Product, payload.product_id) is None:
        raise NotFoundError("Product not found")
    if payload.variant_id is not None:
        variant = db.get(ProductVariant, payload.variant_id)
        if variant is None or variant.product_id != payload.product_id:
            raise NotFoundError("Variant not found")

    existing = db.scalar(
        select(StockNotification.id).where(
            StockNotification.email == email, *_pending(payload.product_id, payload.variant_id)
        )
    )
    if existing is not None:
        raise ConflictError("You are already subscribed to notifications for this item")

    db.add(StockNotification(email=email, product_id=payload.product_id, variant_id=payload.variant_id))
    db.commit()
    return Message(message="Subscribed")


@router.post("/unsubscribe", response_model=Message, summary="Stop waiting for an item")
def unsubscribe(payload: StockSubscription, db: Session = Depends(get_db)):
    db.execute(
        delete(StockNotification).where(
            StockNotification.email == payload.email.lower(), *_for_item(payload.product_id, payload.variant_id)
        )
    )
    db.commit()
    return Message(message="Unsubscribed")


# Admin


@admin_router.get("", response_model=StockNotificationPage, summary="List subscriptions")
def list_subscriptions(
    notified: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
):
    stmt = (
        select(StockNotification)
        .options(selectinload(StockNotification.product), selectinload(StockNotification.variant))
        .order_by(desc(StockNotification.created_at))
    )
    if notified is not None:
        stmt = stmt.where(StockNotification.notified.is_(notified))
    rows, total = paginate(db, stmt, page, limit)
    return StockNotificationPage(
        notifications=[StockNotificationOut.model_validate(n) for n in rows],
        pagination=Pagination.build(page, limit, total),
    )


@admin_router.get("/subscribers", response_model=List[StockNotificationOut], summary="Pending subscribers of an item")
def subscribers(product_id: uuid.UUID, variant_id: Optional[uuid.UUID] = None, db: Session = Depends(get_db)):
    return db.scalars(
        select(StockNotification)
        .where(*_pending(product_id, variant_id))
        .order_by(StockNotification.created_at)
    ).all()


@admin_router.post("/{notification_id}/notified", response_model=Message, summary="Mark one subscription notified")
def mark_notified(notification_id: uuid.UUID, db: Session = Depends(get_db)):
    subscription = db.get(StockNotification, notification_id)
    if subscription is None:
        raise NotFoundError("Subscription not found")
    if not subscription.notified:
        subscription.notified = True
        subscription.notified_at = utc_now()
    db.commit()
    return Message(message="Marked as notified")


@admin_router.post("/notify-all", response_model=NotifiedCount, summary="Mark every pending subscriber notified")
def notify_all(payload: StockTarget, db: Session = Depends(get_db)):
    """Returns how many subscribers were waiting. Delivery itself happens outside this service."""
    result = db.execute(
        update(StockNotification)
        .where(*_pending(payload.product_id, payload.variant_id))
        .values(notified=True, notified_at=utc_now())
    )
    db.commit()
    logger.info("Marked %s stock subscribers notified for product %s", result.rowcount, payload.product_id)
    return NotifiedCount(notified_count=result.rowcount)
