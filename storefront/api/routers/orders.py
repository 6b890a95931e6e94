"""
Order endpoints: checkout (signed-in and guest), payment verification, customer
order history, guest lookup and the admin order desk.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import PlainTextResponse
from pydantic import EmailStr
from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session, selectinload

from storefront.api.deps import require_admin, require_user
from storefront.core.errors import BadRequestError, NotFoundError
from storefront.db.base import utc_now
from storefront.db.models import Order, OrderTimeline, User
from storefront.db.queries import paginate
from storefront.db.session import get_db
from storefront.schemas.commerce import (
    AdminOrderDetail,
    AdminOrderPage,
    AdminOrderRow,
    BulkStatus,
    OrderDetail,
    OrderIn,
    OrderNote,
    OrderOut,
    OrderPage,
    OrderStats,
    OrderStatus,
    PaymentStatusUpdate,
    PaymentVerification,
    PlacedOrder,
    StatusUpdate,
    TrackingUpdate,
)
from storefront.schemas.common import CountResult, Message, Pagination
from storefront.services import csv_io, notifications
from storefront.services.checkout import place_order, restock
from storefront.services.coupons import money
from storefront.services.payments import RazorpayClient, get_payment_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["Orders"])
admin_router = APIRouter(prefix="/api/admin/orders", tags=["Orders"], dependencies=[Depends(require_admin)])

STATUS_TITLES = {
    "pending": "Order Pending",
    "confirmed": "Order Confirmed",
    "processing": "Processing Order",
    "shipped": "Order Shipped",
    "delivered": "Order Delivered",
    "cancelled": "Order Cancelled",
}

_DETAIL_OPTIONS = (selectinload(Order.items), selectinload(Order.timeline))


def _get(db: Session, order_id: uuid.UUID) -> Order:
    order = db.scalar(select(Order).options(*_DETAIL_OPTIONS, selectinload(Order.user)).where(Order.id == order_id))
    if order is None:
        raise NotFoundError("Order not found")
    return order


def _placed(order: Order, gateway_order: Optional[dict], payments: RazorpayClient) -> PlacedOrder:
    placed = PlacedOrder(
        order_id=order.id,
        order_number=order.order_number,
        total=order.total,
        payment_method=order.payment_method,
    )
    if gateway_order is not None:
        placed = placed.model_copy(
            update={
                "razorpay_order_id": gateway_order.get("id"),
                "razorpay_key_id": payments.settings.razorpay_key_id,
                "amount": gateway_order.get("amount"),
                "currency": gateway_order.get("currency"),
            }
        )
    return placed


def _timeline(
    order: Order,
    type_: str,
    title: str,
    description: str,
    metadata: Optional[dict] = None,
    is_public: bool = True,
    created_by: Optional[uuid.UUID] = None,
) -> None:
    order.timeline.append(
        OrderTimeline(
            type=type_,
            title=title,
            description=description,
            metadata_=metadata,
            is_public=is_public,
            created_by=created_by,
        )
    )


def _set_status(order: Order, new_status: str, db: Session) -> str:
    """Apply a status change with its side effects; returns the previous status."""
    old_status = order.status
    order.status = new_status
    now = utc_now()
    if new_status == "shipped" and order.shipped_at is None:
        order.shipped_at = now
    if new_status == "delivered" and order.delivered_at is None:
        order.delivered_at = now
    if new_status == "cancelled" and old_status != "cancelled":
        restock(order, db)
        notifications.order_cancelled(db, order.order_number)
    return old_status


# Checkout


@router.post("", response_model=PlacedOrder, status_code=status.HTTP_201_CREATED, summary="Place an order")
def create_order(
    payload: OrderIn,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
    payments: RazorpayClient = Depends(get_payment_client),
):
    """
    Place an order for the signed-in user.

    Prices, discount, shipping and tax are computed server side; variant stock is
    decremented in the same transaction. For Razorpay the response carries the
    gateway order the checkout widget needs.
    """
    order, gateway_order = place_order(db, payload, user, payments)
    return _placed(order, gateway_order, payments)


@router.post("/guest", response_model=PlacedOrder, status_code=status.HTTP_201_CREATED, summary="Guest checkout")
def create_guest_order(
    payload: OrderIn,
    db: Session = Depends(get_db),
    payments: RazorpayClient = Depends(get_payment_client),
):
    """Same as placing an order, without an account; the shipping email identifies the guest."""
    order, gateway_order = place_order(db, payload, None, payments)
    return _placed(order, gateway_order, payments)


@router.post("/verify-payment", response_model=OrderOut, summary="Confirm a Razorpay payment")
def verify_payment(
    payload: PaymentVerification,
    db: Session = Depends(get_db),
    payments: RazorpayClient = Depends(get_payment_client),
):
    if not payments.verify_signature(
        payload.razorpay_order_id, payload.razorpay_payment_id, payload.razorpay_signature
    ):
        raise BadRequestError("Invalid payment signature")

    order = _get(db, payload.order_id)
    if order.razorpay_order_id and order.razorpay_order_id != payload.razorpay_order_id:
        raise BadRequestError("Payment does not belong to this order")

    order.status = "confirmed"
    order.payment_status = "paid"
    order.payment_method = "razorpay"
    order.razorpay_payment_id = payload.razorpay_payment_id
    _timeline(
        order,
        "payment",
        "Payment Confirmed",
        "Payment received via Razorpay",
        {"paymentId": payload.razorpay_payment_id, "amount": str(order.total)},
    )
    notifications.order_paid(db, order.order_number)
    db.commit()
    db.refresh(order)
    logger.info("Payment confirmed for order %s", order.order_number)
    return order


@router.get("/lookup", response_model=OrderDetail, summary="Guest order lookup")
def lookup_guest_order(
    order_number: str = Query(..., min_length=1),
    email: EmailStr = Query(...),
    db: Session = Depends(get_db),
):
    """Find a guest order by number and email; only customer-facing timeline entries are returned."""
    order = db.scalar(
        select(Order)
        .options(*_DETAIL_OPTIONS)
        .where(Order.order_number == order_number, func.lower(Order.guest_email) == email.lower())
    )
    if order is None:
        raise NotFoundError("Order not found. Please check your order number and email.")
    detail = OrderDetail.model_validate(order)
    return detail.model_copy(update={"timeline": [t for t in detail.timeline if t.is_public]})


# Customer


@router.get("", response_model=OrderPage, summary="My orders")
def my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    stmt = (
        select(Order)
        .options(selectinload(Order.items))
        .where(Order.user_id == user.id)
        .order_by(desc(Order.created_at))
    )
    rows, total = paginate(db, stmt, page, limit)
    return OrderPage(orders=[OrderOut.model_validate(o) for o in rows], pagination=Pagination.build(page, limit, total))


@router.get("/{order_id}", response_model=OrderDetail, summary="One of my orders")
def my_order(order_id: uuid.UUID, user: User = Depends(require_user), db: Session = Depends(get_db)):
    order = db.scalar(select(Order).options(*_DETAIL_OPTIONS).where(Order.id == order_id, Order.user_id == user.id))
    if order is None:
        raise NotFoundError("Order not found")
    detail = OrderDetail.model_validate(order)
    return detail.model_copy(update={"timeline": [t for t in detail.timeline if t.is_public]})


# Admin


@admin_router.get("", response_model=AdminOrderPage, summary="Admin order list")
def admin_list(
    status_filter: Optional[OrderStatus] = Query(default=None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    stmt = select(Order).options(selectinload(Order.items), selectinload(Order.user)).order_by(desc(Order.created_at))
    if status_filter:
        stmt = stmt.where(Order.status == status_filter)
    rows, total = paginate(db, stmt, page, limit)
    return AdminOrderPage(
        orders=[AdminOrderRow.model_validate(o) for o in rows], pagination=Pagination.build(page, limit, total)
    )


def _filtered(
    stmt,
    status_filter: Optional[str],
    start_date: Optional[datetime],
    end_date: Optional[datetime],
    ids: Optional[List[uuid.UUID]] = None,
):
    if ids:
        stmt = stmt.where(Order.id.in_(ids))
    if status_filter:
        stmt = stmt.where(Order.status == status_filter)
    if start_date is not None:
        stmt = stmt.where(Order.created_at >= start_date)
    if end_date is not None:
        stmt = stmt.where(Order.created_at <= end_date)
    return stmt


@admin_router.get("/stats", response_model=OrderStats, summary="Order counts and revenue")
def admin_stats(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
):
    def totals(extra=None):
        stmt = _filtered(select(func.count(Order.id), func.coalesce(func.sum(Order.total), 0)), None, start_date, end_date)
        if extra is not None:
            stmt = stmt.where(extra)
        count, revenue = db.execute(stmt).one()
        return int(count or 0), money(revenue or 0)

    total_orders, total_revenue = totals()
    paid_orders, paid_revenue = totals(Order.payment_status == "paid")
    by_status = db.execute(
        _filtered(select(Order.status, func.count(Order.id)), None, start_date, end_date).group_by(Order.status)
    ).all()
    return OrderStats(
        total_orders=total_orders,
        total_revenue=total_revenue,
        paid_orders=paid_orders,
        paid_revenue=paid_revenue,
        by_status={row[0]: int(row[1]) for row in by_status},
    )


def _export_rows(db: Session, status_filter, start_date, end_date, ids) -> List[dict]:
    stmt = _filtered(
        select(Order).options(selectinload(Order.items), selectinload(Order.user)).order_by(desc(Order.created_at)),
        status_filter,
        start_date,
        end_date,
        ids,
    )
    rows = []
    for o in db.scalars(stmt).all():
        address = o.shipping_address or {}
        rows.append(
            {
                "orderNumber": o.order_number,
                "customerName": o.user.name if o.user else address.get("fullName", ""),
                "customerEmail": o.user.email if o.user else (o.guest_email or ""),
                "status": o.status,
                "paymentStatus": o.payment_status,
                "paymentMethod": o.payment_method,
                "subtotal": str(o.subtotal),
                "discount": str(o.discount),
                "shippingCost": str(o.shipping_cost),
                "total": str(o.total),
                "itemCount": len(o.items),
                "trackingNumber": o.tracking_number,
                "shippingCity": address.get("city"),
                "shippingState": address.get("state"),
                "createdAt": o.created_at.isoformat(),
                "shippedAt": o.shipped_at.isoformat() if o.shipped_at else None,
                "deliveredAt": o.delivered_at.isoformat() if o.delivered_at else None,
            }
        )
    return rows


@admin_router.get("/export", summary="Export rows for CSV generation")
def export_rows(
    status_filter: Optional[OrderStatus] = Query(default=None, alias="status"),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    ids: Optional[List[uuid.UUID]] = Query(default=None),
    db: Session = Depends(get_db),
):
    return _export_rows(db, status_filter, start_date, end_date, ids)


@admin_router.get("/export.csv", response_class=PlainTextResponse, summary="Export orders as CSV")
def export_csv(
    status_filter: Optional[OrderStatus] = Query(default=None, alias="status"),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    ids: Optional[List[uuid.UUID]] = Query(default=None),
    db: Session = Depends(get_db),
):
    text = csv_io.to_csv(_export_rows(db, status_filter, start_date, end_date, ids), csv_io.ORDER_EXPORT_COLUMNS)
    filename = f"orders-export-{utc_now().date().isoformat()}.csv"
    return PlainTextResponse(
        text, media_type="text/csv", headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@admin_router.post("/bulk-status", response_model=CountResult, summary="Set the status of many orders")
def bulk_status(payload: BulkStatus, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    orders = db.scalars(select(Order).options(*_DETAIL_OPTIONS).where(Order.id.in_(payload.ids))).all()
    for order in orders:
        _set_status(order, payload.status, db)
        _timeline(
            order,
            "status_change",
            "Bulk Status Update",
            f"Status changed to {payload.status}",
            {"newStatus": payload.status, "bulkUpdate": True},
            created_by=admin.id,
        )
    db.commit()
    return CountResult(count=len(orders))


@admin_router.get("/{order_id}", response_model=AdminOrderDetail, summary="Order with full timeline")
def admin_get(order_id: uuid.UUID, db: Session = Depends(get_db)):
    return _get(db, order_id)


@admin_router.patch("/{order_id}/status", response_model=AdminOrderDetail, summary="Change the order status")
def update_status(
    order_id: uuid.UUID, payload: StatusUpdate, admin: User = Depends(require_admin), db: Session = Depends(get_db)
):
    """
    Set the status column. Shipping and delivery timestamps are stamped the first time
    only; cancelling gives the ordered quantities back to their variants.
    """
    order = _get(db, order_id)
    if payload.tracking_number:
        order.tracking_number = payload.tracking_number
    if payload.tracking_url:
        order.tracking_url = payload.tracking_url
    old_status = _set_status(order, payload.status, db)
    _timeline(
        order,
        "status_change",
        STATUS_TITLES.get(payload.status, "Status Updated"),
        f"Order status changed from {old_status} to {payload.status}",
        {"oldStatus": old_status, "newStatus": payload.status, "trackingNumber": payload.tracking_number},
        created_by=admin.id,
    )
    db.commit()
    db.refresh(order)
    logger.info("Order %s: %s -> %s", order.order_number, old_status, payload.status)
    return order


@admin_router.patch("/{order_id}/payment-status", response_model=AdminOrderDetail, summary="Change the payment status")
def update_payment_status(
    order_id: uuid.UUID,
    payload: PaymentStatusUpdate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    order = _get(db, order_id)
    old_status = order.payment_status
    order.payment_status = payload.payment_status
    _timeline(
        order,
        "payment",
        "Payment Status Updated",
        f"Payment status changed from {old_status} to {payload.payment_status}",
        {"oldPaymentStatus": old_status, "newPaymentStatus": payload.payment_status},
        is_public=False,
        created_by=admin.id,
    )
    db.commit()
    db.refresh(order)
    return order


@admin_router.post("/{order_id}/notes", response_model=Message, summary="Add a note")
def add_note(
    order_id: uuid.UUID, payload: OrderNote, admin: User = Depends(require_admin), db: Session = Depends(get_db)
):
    """Internal notes are also appended to the order's admin notes as `[timestamp] note`."""
    order = _get(db, order_id)
    _timeline(
        order,
        "note",
        "Note Added" if payload.is_public else "Internal Note",
        payload.note,
        is_public=payload.is_public,
        created_by=admin.id,
    )
    if not payload.is_public:
        entry = f"[{utc_now().isoformat()}] {payload.note}"
        order.admin_notes = f"{order.admin_notes}\n{entry}" if order.admin_notes else entry
    db.commit()
    return Message(message="Note added")


@admin_router.patch("/{order_id}/tracking", response_model=AdminOrderDetail, summary="Set tracking details")
def update_tracking(
    order_id: uuid.UUID, payload: TrackingUpdate, admin: User = Depends(require_admin), db: Session = Depends(get_db)
):
    order = _get(db, order_id)
    order.tracking_number = payload.tracking_number
    order.tracking_url = payload.tracking_url
    carrier = f" ({payload.carrier})" if payload.carrier else ""
    _timeline(
        order,
        "note",
        "Tracking Updated",
        f"Tracking number: {payload.tracking_number}{carrier}",
        {"trackingNumber": payload.tracking_number, "trackingUrl": payload.tracking_url, "carrier": payload.carrier},
        created_by=admin.id,
    )
    db.commit()
    db.refresh(order)
    return order
