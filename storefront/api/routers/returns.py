"""Return (RMA) requests: customer submission and the admin returns desk."""

from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import desc, select
from sqlalchemy.orm import Session, selectinload

from storefront.api.deps import require_admin, require_user
from storefront.core.errors import BadRequestError, NotFoundError
from storefront.db.base import utc_now
from storefront.db.models import Order, OrderReturn, OrderTimeline, User
from storefront.db.queries import paginate
from storefront.db.session import get_db
from storefront.schemas.commerce import (
    AdminReturnOut,
    BulkReturnStatus,
    ReturnIn,
    ReturnOut,
    ReturnPage,
    ReturnStatus,
    ReturnStatusUpdate,
)
from storefront.schemas.common import CountResult, Pagination
from storefront.services import notifications
from storefront.services.checkout import generate_return_number

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/returns", tags=["Returns"])
admin_router = APIRouter(prefix="/api/admin/returns", tags=["Returns"], dependencies=[Depends(require_admin)])

STATUS_TITLES = {
    "requested": "Return Requested",
    "approved": "Return Approved",
    "rejected": "Return Rejected",
    "shipped": "Return Items Shipped",
    "received": "Return Items Received",
    "refunded": "Refund Processed",
    "completed": "Return Completed",
}

_ADMIN_OPTIONS = (selectinload(OrderReturn.user), selectinload(OrderReturn.order))


def _admin_get(db: Session, return_id: uuid.UUID) -> OrderReturn:
    item = db.scalar(select(OrderReturn).options(*_ADMIN_OPTIONS).where(OrderReturn.id == return_id))
    if item is None:
        raise NotFoundError("Return request not found")
    return item


@router.post("", response_model=ReturnOut, status_code=status.HTTP_201_CREATED, summary="Request a return")
def create_return(payload: ReturnIn, user: User = Depends(require_user), db: Session = Depends(get_db)):
    """
    Only a delivered order of the caller can be returned, once. Every returned line must
    belong to the order and not exceed the ordered quantity.
    """
    order = db.scalar(
        select(Order).options(selectinload(Order.items)).where(Order.id == payload.order_id, Order.user_id == user.id)
    )
    if order is None:
        raise NotFoundError("Order not found")
    if order.status != "delivered":
        raise BadRequestError("Returns can only be requested for delivered orders")
    existing = db.scalar(
        select(OrderReturn.id).where(OrderReturn.order_id == order.id, OrderReturn.user_id == user.id)
    )
    if existing is not None:
        raise BadRequestError("A return request already exists for this order")

    ordered = {item.id: item for item in order.items}
    for line in payload.items:
        item = ordered.get(line.order_item_id)
        if item is None:
            raise BadRequestError("Return items must belong to the order")
        if line.quantity > item.quantity:
            raise BadRequestError(f"Cannot return more than {item.quantity} of {item.name}")

    request = OrderReturn(
        return_number=generate_return_number(),
        order_id=order.id,
        user_id=user.id,
        reason=payload.reason,
        reason_details=payload.reason_details,
        items=[line.model_dump(mode="json", by_alias=True) for line in payload.items],
        customer_notes=payload.customer_notes,
    )
    db.add(request)
    db.flush()
    order.timeline.append(
        OrderTimeline(
            type="note",
            title="Return Requested",
            description=f"Return request {request.return_number} submitted",
            metadata_={"returnId": str(request.id), "reason": payload.reason},
            is_public=True,
            created_by=user.id,
        )
    )
    notifications.return_requested(db, order.order_number)
    db.commit()
    logger.info("Return %s requested for order %s", request.return_number, order.order_number)
    return request


@router.get("", response_model=List[ReturnOut], summary="My return requests")
def my_returns(user: User = Depends(require_user), db: Session = Depends(get_db)):
    return db.scalars(
        select(OrderReturn).where(OrderReturn.user_id == user.id).order_by(desc(OrderReturn.created_at))
    ).all()


@router.get("/{return_id}", response_model=ReturnOut, summary="One of my return requests")
def my_return(return_id: uuid.UUID, user: User = Depends(require_user), db: Session = Depends(get_db)):
    item = db.scalar(select(OrderReturn).where(OrderReturn.id == return_id, OrderReturn.user_id == user.id))
    if item is None:
        raise NotFoundError("Return request not found")
    return item


@admin_router.get("", response_model=ReturnPage, summary="Admin return list")
def admin_list(
    status_filter: Optional[ReturnStatus] = Query(default=None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    stmt = select(OrderReturn).options(*_ADMIN_OPTIONS).order_by(desc(OrderReturn.created_at))
    if status_filter:
        stmt = stmt.where(OrderReturn.status == status_filter)
    rows, total = paginate(db, stmt, page, limit)
    return ReturnPage(
        returns=[AdminReturnOut.model_validate(r) for r in rows], pagination=Pagination.build(page, limit, total)
    )


@admin_router.post("/bulk-status", response_model=CountResult, summary="Set the status of many returns")
def bulk_status(payload: BulkReturnStatus, db: Session = Depends(get_db)):
    rows = db.scalars(select(OrderReturn).where(OrderReturn.id.in_(payload.ids))).all()
    for row in rows:
        row.status = payload.status
    db.commit()
    return CountResult(count=len(rows))


@admin_router.get("/{return_id}", response_model=AdminReturnOut, summary="Get a return request")
def admin_get(return_id: uuid.UUID, db: Session = Depends(get_db)):
    return _admin_get(db, return_id)


@admin_router.patch("/{return_id}/status", response_model=AdminReturnOut, summary="Change a return's status")
def update_status(
    return_id: uuid.UUID,
    payload: ReturnStatusUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Approval and completion are stamped on the first transition; admin notes are appended with a timestamp."""
    item = _admin_get(db, return_id)
    old_status = item.status
    now = utc_now()

    item.status = payload.status
    if payload.refund_amount is not None:
        item.refund_amount = payload.refund_amount
    if payload.refund_method:
        item.refund_method = payload.refund_method
    if payload.admin_notes:
        entry = f"[{now.isoformat()}] {payload.admin_notes}"
        item.admin_notes = f"{item.admin_notes}\n{entry}" if item.admin_notes else entry
    if payload.status == "approved" and old_status != "approved":
        item.approved_at = now
        item.approved_by = admin.id
    if payload.status == "completed" and old_status != "completed":
        item.completed_at = now

    item.order.timeline.append(
        OrderTimeline(
            type="note",
            title=STATUS_TITLES.get(payload.status, "Return Updated"),
            description=f"Return {item.return_number} status: {payload.status}",
            metadata_={
                "returnId": str(item.id),
                "oldStatus": old_status,
                "newStatus": payload.status,
                "refundAmount": str(payload.refund_amount) if payload.refund_amount is not None else None,
            },
            is_public=True,
            created_by=admin.id,
        )
    )
    db.commit()
    return item
