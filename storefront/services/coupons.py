"""
Coupon rules: code normalisation, derived status label, validation and discount maths.

These helpers are pure (they take the coupon row and a clock value) so checkout,
the cart and the admin coupon screens share exactly one implementation.
"""

from __future__ import annotations

import re
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from storefront.core.errors import BadRequestError, NotFoundError
from storefront.db.models import Coupon

CENT = Decimal("0.01")

STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"
STATUS_EXPIRED = "expired"
STATUS_SCHEDULED = "scheduled"
STATUS_EXHAUSTED = "exhausted"


def normalize_code(code: str) -> str:
    """Upper-case the code and drop all whitespace."""
    return re.sub(r"\s+", "", code).upper()


def money(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


# PUBLIC_INTERFACE
def coupon_status(coupon: Coupon, now: datetime) -> str:
    """
    Derived read-only status label.

    The first matching rule wins: inactive, expired, scheduled, exhausted, active.
    """
    if not coupon.is_active:
        return STATUS_INACTIVE
    if coupon.valid_until is not None and coupon.valid_until < now:
        return STATUS_EXPIRED
    if coupon.valid_from is not None and coupon.valid_from > now:
        return STATUS_SCHEDULED
    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        return STATUS_EXHAUSTED
    return STATUS_ACTIVE


def compute_discount(coupon: Coupon, order_total: Decimal) -> Decimal:
    """Percentage of the total or the fixed value, capped by max_discount and by the total."""
    order_total = Decimal(order_total)
    if coupon.type == "percentage":
        discount = order_total * Decimal(coupon.value) / Decimal(100)
    else:
        discount = Decimal(coupon.value)

    if coupon.max_discount is not None and discount > coupon.max_discount:
        discount = Decimal(coupon.max_discount)
    if discount > order_total:
        discount = order_total
    return money(discount)


# PUBLIC_INTERFACE
def check_coupon(coupon: Optional[Coupon], order_total: Decimal, now: datetime) -> Decimal:
    """
    Validate a coupon against an order total and return the discount.

    Raises:
        NotFoundError: unknown code.
        BadRequestError: with a caller-facing message for every other rejected case.
    """
    if coupon is None:
        raise NotFoundError("Invalid coupon code")
    if not coupon.is_active:
        raise BadRequestError("This coupon is no longer active")
    if coupon.valid_from is not None and coupon.valid_from > now:
        raise BadRequestError("This coupon is not yet valid")
    if coupon.valid_until is not None and coupon.valid_until < now:
        raise BadRequestError("This coupon has expired")
    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        raise BadRequestError("This coupon has reached its usage limit")
    if coupon.min_order_amount is not None and Decimal(order_total) < coupon.min_order_amount:
        minimum = format(Decimal(coupon.min_order_amount).normalize(), "f")
        raise BadRequestError(f"Minimum order amount of ₹{minimum} required")
    return compute_discount(coupon, order_total)


def check_coupon_fields(
    type_: str,
    value: Decimal,
    valid_from: Optional[datetime],
    valid_until: Optional[datetime],
) -> None:
    """Admin-side consistency checks applied on create and on the merged update."""
    if valid_from is not None and valid_until is not None and valid_from > valid_until:
        raise BadRequestError("Valid from date must be before valid until date")
    if type_ == "percentage" and Decimal(value) > 100:
        raise BadRequestError("Percentage discount cannot exceed 100%")
