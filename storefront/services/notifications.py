"""
Admin notification helpers (the back-office event log).

Helpers add a row to the caller's session; the caller's commit makes it durable
together with the change that triggered it.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from storefront.db.models import AdminNotification

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def notify(
    db: Session,
    type_: str,
    title: str,
    message: str,
    link: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AdminNotification:
    """Queue an admin notification on the session."""
    notification = AdminNotification(type=type_, title=title, message=message, link=link, metadata_=metadata)
    db.add(notification)
    logger.info("Notification [%s] %s", type_, title)
    return notification


def new_order(db: Session, order_number: str, total) -> AdminNotification:
    return notify(db, "order", f"New Order #{order_number}", f"A new order worth ₹{total} has been placed", "/admin/orders")


def order_paid(db: Session, order_number: str) -> AdminNotification:
    return notify(db, "order", "Payment Received", f"Payment confirmed for Order #{order_number}", "/admin/orders")


def order_cancelled(db: Session, order_number: str) -> AdminNotification:
    return notify(db, "order", "Order Cancelled", f"Order #{order_number} has been cancelled", "/admin/orders")


def low_stock(db: Session, product_name: str, variant_info: str, stock: int) -> AdminNotification:
    if stock <= 0:
        return notify(
            db, "inventory", "Out of Stock", f"{product_name} ({variant_info}) is now out of stock", "/admin/inventory"
        )
    return notify(
        db,
        "inventory",
        "Low Stock Alert",
        f"{product_name} ({variant_info}) is low on stock ({stock} remaining)",
        "/admin/inventory",
    )


def new_review(db: Session, product_name: str, rating: int) -> AdminNotification:
    return notify(db, "review", "New Review", f"A {rating}-star review was submitted for {product_name}", "/admin/reviews")


def return_requested(db: Session, order_number: str) -> AdminNotification:
    return notify(
        db, "return", "Return Requested", f"A return has been requested for Order #{order_number}", "/admin/orders"
    )


def new_customer(db: Session, email: str) -> AdminNotification:
    return notify(db, "customer", "New Customer", f"{email} just created an account", "/admin/customers")
