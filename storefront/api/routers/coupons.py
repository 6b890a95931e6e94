"""Coupon endpoints: public validation and admin management."""

from __future__ import annotations

import logging
import uuid
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import and_, desc, or_, select
from sqlalchemy.orm import Session

from storefront.api.deps import require_admin
from storefront.core.errors import BadRequestError, ConflictError, NotFoundError
from storefront.db.base import utc_now
from storefront.db.models import Coupon
from storefront.db.queries import contains, paginate
from storefront.db.session import get_db
from storefront.schemas.commerce import (
    CouponIn,
    CouponOut,
    CouponPage,
    CouponRef,
    CouponStats,
    CouponUpdate,
    CouponValidate,
    CouponValidation,
)
from storefront.schemas.common import Message, Pagination
from storefront.services.coupons import STATUS_ACTIVE, check_coupon, check_coupon_fields, coupon_status, money, normalize_code

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/coupons", tags=["Coupons"])
admin_router = APIRouter(prefix="/api/admin/coupons", tags=["Coupons"], dependencies=[Depends(require_admin)])


def _out(coupon: Coupon) -> CouponOut:
    return CouponOut.model_validate(coupon).model_copy(update={"status": coupon_status(coupon, utc_now())})


def _get(db: Session, coupon_id: uuid.UUID) -> Coupon:
    coupon = db.get(Coupon, coupon_id)
    if coupon is None:
        raise NotFoundError("Coupon not found")
    return coupon


def _ensure_code_free(db: Session, code: str, exclude_id: Optional[uuid.UUID] = None) -> None:
    stmt = select(Coupon.id).where(Coupon.code == code)
    if exclude_id is not None:
        stmt = stmt.where(Coupon.id != exclude_id)
    if db.scalar(stmt) is not None:
        raise ConflictError("A coupon with this code already exists")


@router.post("/validate", response_model=CouponValidation, summary="Validate a coupon and compute the discount")
def validate_coupon(payload: CouponValidate, db: Session = Depends(get_db)):
    coupon = db.scalar(select(Coupon).where(Coupon.code == normalize_code(payload.code)))
    discount = check_coupon(coupon, payload.order_total, utc_now())
    return CouponValidation(
        coupon=CouponRef.model_validate(coupon),
        discount=discount,
        new_total=money(payload.order_total - discount),
    )


@admin_router.get("", response_model=CouponPage, summary="Admin coupon list")
def admin_list(
    search: Optional[str] = None,
    status_filter: Optional[Literal["active", "inactive", "expired", "all"]] = Query(default=None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    now = utc_now()
    stmt = select(Coupon).order_by(desc(Coupon.created_at))
    if search:
        stmt = stmt.where(Coupon.code.ilike(contains(search)))
    if status_filter == "active":
        stmt = stmt.where(
            Coupon.is_active.is_(True),
            or_(Coupon.valid_from.is_(None), Coupon.valid_from <= now),
            or_(Coupon.valid_until.is_(None), Coupon.valid_until >= now),
        )
    elif status_filter == "inactive":
        stmt = stmt.where(Coupon.is_active.is_(False))
    elif status_filter == "expired":
        stmt = stmt.where(and_(Coupon.valid_until.is_not(None), Coupon.valid_until < now))
    rows, total = paginate(db, stmt, page, limit)
    return CouponPage(coupons=[_out(c) for c in rows], pagination=Pagination.build(page, limit, total))


@admin_router.get("/stats", response_model=CouponStats, summary="Coupon counters")
def admin_stats(db: Session = Depends(get_db)):
    now = utc_now()
    coupons = db.scalars(select(Coupon)).all()
    return CouponStats(
        total=len(coupons),
        active=sum(1 for c in coupons if coupon_status(c, now) == STATUS_ACTIVE),
        expired=sum(1 for c in coupons if c.valid_until is not None and c.valid_until < now),
        total_usage=sum(c.used_count for c in coupons),
    )


@admin_router.get("/{coupon_id}", response_model=CouponOut, summary="Get a coupon")
def admin_get(coupon_id: uuid.UUID, db: Session = Depends(get_db)):
    return _out(_get(db, coupon_id))


@admin_router.post("", response_model=CouponOut, status_code=status.HTTP_201_CREATED, summary="Create a coupon")
def create_coupon(payload: CouponIn, db: Session = Depends(get_db)):
    _ensure_code_free(db, payload.code)
    check_coupon_fields(payload.type, payload.value, payload.valid_from, payload.valid_until)
    coupon = Coupon(**payload.model_dump())
    db.add(coupon)
    db.commit()
    logger.info("Created coupon %s", coupon.code)
    return _out(coupon)


@admin_router.patch("/{coupon_id}", response_model=CouponOut, summary="Update a coupon")
def update_coupon(coupon_id: uuid.UUID, payload: CouponUpdate, db: Session = Depends(get_db)):
    """Field checks run against the coupon as it would look after the update."""
    coupon = _get(db, coupon_id)
    values = payload.model_dump(exclude_unset=True)
    if values.get("code") and values["code"] != coupon.code:
        _ensure_code_free(db, values["code"], exclude_id=coupon.id)
    merged = {key: values.get(key, getattr(coupon, key)) for key in ("type", "value", "valid_from", "valid_until")}
    check_coupon_fields(merged["type"], merged["value"], merged["valid_from"], merged["valid_until"])
    for key, value in values.items():
        setattr(coupon, key, value)
    db.commit()
    return _out(coupon)


@admin_router.delete("/{coupon_id}", response_model=Message, summary="Delete an unused coupon")
def delete_coupon(coupon_id: uuid.UUID, db: Session = Depends(get_db)):
    coupon = _get(db, coupon_id)
    if coupon.used_count > 0:
        raise BadRequestError("Cannot delete a coupon that has been used. Deactivate it instead.")
    db.delete(coupon)
    db.commit()
    return Message(message="Coupon deleted")


@admin_router.post("/{coupon_id}/toggle", response_model=CouponOut, summary="Flip the active flag")
def toggle_coupon(coupon_id: uuid.UUID, db: Session = Depends(get_db)):
    coupon = _get(db, coupon_id)
    coupon.is_active = not coupon.is_active
    db.commit()
    return _out(coupon)


@admin_router.post("/{coupon_id}/increment-usage", response_model=CouponOut, summary="Count one use")
def increment_usage(coupon_id: uuid.UUID, db: Session = Depends(get_db)):
    coupon = _get(db, coupon_id)
    coupon.used_count += 1
    db.commit()
    return _out(coupon)
