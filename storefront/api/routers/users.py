"""Admin customer management."""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from sqlalchemy import desc, func, or_, select
from sqlalchemy.orm import Session

from storefront.api.deps import require_admin
from storefront.core.errors import BadRequestError, NotFoundError
from storefront.db.base import utc_now
from storefront.db.models import Address, Order, Review, User
from storefront.db.queries import contains, count_of, paginate
from storefront.db.session import get_db
from storefront.schemas.account import (
    AddressOut,
    BulkTags,
    CustomerDetail,
    CustomerOrderRow,
    CustomerPage,
    CustomerReviewRow,
    CustomerRow,
    CustomerStats,
    NotesUpdate,
    Role,
    RoleUpdate,
    TagsUpdate,
    UserStats,
)
from storefront.schemas.common import CountResult, Pagination
from storefront.services import csv_io
from storefront.services.coupons import money

logger = logging.getLogger(__name__)

admin_router = APIRouter(prefix="/api/admin/users", tags=["Customers"], dependencies=[Depends(require_admin)])


def _get(db: Session, user_id: uuid.UUID) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def _order_counts(db: Session, user_ids: List[uuid.UUID]) -> dict:
    if not user_ids:
        return {}
    rows = db.execute(
        select(Order.user_id, func.count(Order.id)).where(Order.user_id.in_(user_ids)).group_by(Order.user_id)
    ).all()
    return {user_id: int(count) for user_id, count in rows}


def _paid_totals(db: Session, user_ids: List[uuid.UUID]) -> dict:
    """user id -> (paid order count, paid total)."""
    if not user_ids:
        return {}
    rows = db.execute(
        select(Order.user_id, func.count(Order.id), func.coalesce(func.sum(Order.total), 0))
        .where(Order.user_id.in_(user_ids), Order.payment_status == "paid")
        .group_by(Order.user_id)
    ).all()
    return {user_id: (int(count), money(total)) for user_id, count, total in rows}


@admin_router.get("", response_model=CustomerPage, summary="Customer list")
def list_users(
    search: Optional[str] = None,
    role: Optional[Role] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    stmt = select(User).order_by(desc(User.created_at))
    if search:
        pattern = contains(search)
        stmt = stmt.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
    if role:
        stmt = stmt.where(User.role == role)
    rows, total = paginate(db, stmt, page, limit)
    counts = _order_counts(db, [u.id for u in rows])
    return CustomerPage(
        customers=[CustomerRow.model_validate(u).model_copy(update={"order_count": counts.get(u.id, 0)}) for u in rows],
        pagination=Pagination.build(page, limit, total),
    )


@admin_router.get("/stats", response_model=UserStats, summary="Customer counters")
def user_stats(db: Session = Depends(get_db)):
    month_start = utc_now().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    customers = select(User).where(User.role == "customer")
    return UserStats(
        total_customers=count_of(db, customers),
        new_this_month=count_of(db, customers.where(User.created_at >= month_start)),
        total_admins=count_of(db, select(User).where(User.role == "admin")),
    )


def _export_rows(db: Session, ids: Optional[List[uuid.UUID]], role: Optional[str]) -> List[dict]:
    stmt = select(User).order_by(desc(User.created_at))
    if ids:
        stmt = stmt.where(User.id.in_(ids))
    if role:
        stmt = stmt.where(User.role == role)
    users = db.scalars(stmt).all()
    totals = _paid_totals(db, [u.id for u in users])
    rows = []
    for u in users:
        orders, spent = totals.get(u.id, (0, Decimal("0.00")))
        rows.append(
            {
                "id": str(u.id),
                "name": u.name,
                "email": u.email,
                "phone": u.phone,
                "role": u.role,
                "tags": ", ".join(u.tags or []),
                "totalOrders": orders,
                "totalSpent": str(spent),
                "createdAt": u.created_at.isoformat(),
            }
        )
    return rows


@admin_router.get("/export", summary="Export rows for CSV generation")
def export_rows(
    ids: Optional[List[uuid.UUID]] = Query(default=None),
    role: Optional[Role] = None,
    db: Session = Depends(get_db),
):
    return _export_rows(db, ids, role)


@admin_router.get("/export.csv", response_class=PlainTextResponse, summary="Export customers as CSV")
def export_csv(
    ids: Optional[List[uuid.UUID]] = Query(default=None),
    role: Optional[Role] = None,
    db: Session = Depends(get_db),
):
    text = csv_io.to_csv(_export_rows(db, ids, role), csv_io.CUSTOMER_EXPORT_COLUMNS)
    filename = f"customers-export-{utc_now().date().isoformat()}.csv"
    return PlainTextResponse(
        text, media_type="text/csv", headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@admin_router.post("/bulk-tags", response_model=CountResult, summary="Tag many customers")
def bulk_tags(payload: BulkTags, db: Session = Depends(get_db)):
    """`replace` overwrites, `add` merges without duplicates, `remove` drops the given tags."""
    users = db.scalars(select(User).where(User.id.in_(payload.ids))).all()
    for user in users:
        current = list(user.tags or [])
        if payload.mode == "replace":
            user.tags = list(payload.tags)
        elif payload.mode == "add":
            user.tags = current + [t for t in payload.tags if t not in current]
        else:
            user.tags = [t for t in current if t not in payload.tags]
    db.commit()
    return CountResult(count=len(users))


@admin_router.get("/{user_id}", response_model=CustomerDetail, summary="Customer profile")
def get_user(user_id: uuid.UUID, db: Session = Depends(get_db)):
    """Profile with addresses, the 10 latest orders, the 5 latest reviews and paid-order totals."""
    user = _get(db, user_id)
    addresses = db.scalars(select(Address).where(Address.user_id == user.id)).all()
    orders = db.scalars(
        select(Order).where(Order.user_id == user.id).order_by(desc(Order.created_at)).limit(10)
    ).all()
    reviews = db.scalars(
        select(Review).where(Review.user_id == user.id).order_by(desc(Review.created_at)).limit(5)
    ).all()
    paid_count, paid_total = _paid_totals(db, [user.id]).get(user.id, (0, Decimal("0.00")))
    return CustomerDetail.model_validate(
        {
            **CustomerRow.model_validate(user).model_dump(),
            "admin_notes": user.admin_notes,
            "addresses": [AddressOut.model_validate(a) for a in addresses],
            "orders": [CustomerOrderRow.model_validate(o) for o in orders],
            "reviews": [CustomerReviewRow.model_validate(r) for r in reviews],
            "stats": CustomerStats(
                total_orders=paid_count,
                total_spent=paid_total,
                average_order_value=money(paid_total / paid_count) if paid_count else Decimal("0.00"),
            ),
        }
    )


@admin_router.patch("/{user_id}/role", response_model=CustomerRow, summary="Change a user's role")
def update_role(
    user_id: uuid.UUID, payload: RoleUpdate, admin: User = Depends(require_admin), db: Session = Depends(get_db)
):
    if user_id == admin.id:
        raise BadRequestError("You cannot change your own role")
    user = _get(db, user_id)
    user.role = payload.role
    db.commit()
    logger.info("User %s role set to %s by %s", user.email, payload.role, admin.email)
    return user


@admin_router.put("/{user_id}/tags", response_model=CustomerRow, summary="Replace a customer's tags")
def update_tags(user_id: uuid.UUID, payload: TagsUpdate, db: Session = Depends(get_db)):
    user = _get(db, user_id)
    user.tags = list(payload.tags)
    db.commit()
    return user


@admin_router.put("/{user_id}/notes", response_model=CustomerDetail, summary="Set or append admin notes")
def update_notes(user_id: uuid.UUID, payload: NotesUpdate, db: Session = Depends(get_db)):
    user = _get(db, user_id)
    if payload.append:
        entry = f"[{utc_now().isoformat()}] {payload.notes}"
        user.admin_notes = f"{user.admin_notes}\n{entry}" if user.admin_notes else entry
    else:
        user.admin_notes = payload.notes
    db.commit()
    return get_user(user_id, db)
