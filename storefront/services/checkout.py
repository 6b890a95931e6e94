"""
Order placement.

Prices, discount, shipping and tax are computed here from the catalog and settings;
nothing the client sends about money is trusted. Stock is taken from the ordered
variants in the same transaction as the order rows, so a failed check writes nothing.
"""

from __future__ import annotations

import logging
import random
import string
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.core.errors import BadRequestError, NotFoundError
from storefront.db.base import utc_now
from storefront.db.models import Coupon, Order, OrderItem, OrderTimeline, Product, ProductVariant, User
from storefront.services import notifications
from storefront.services.coupons import check_coupon, money, normalize_code
from storefront.services.payments import RazorpayClient
from storefront.services.store_settings import shipping_settings, store_settings

logger = logging.getLogger(__name__)

_ALPHABET = string.digits + string.ascii_uppercase


def _base36(number: int) -> str:
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits)) or "0"


def _random_suffix(length: int = 4) -> str:
    return "".join(random.choices(_ALPHABET, k=length))


def generate_order_number() -> str:
    """`ORD-<base36 millis>-<4 random>`."""
    return f"ORD-{_base36(int(time.time() * 1000))}-{_random_suffix()}"


def generate_return_number() -> str:
    """`RMA-<base36 millis>-<4 random>`."""
    return f"RMA-{_base36(int(time.time() * 1000))}-{_random_suffix()}"


# PUBLIC_INTERFACE
def unit_price(product: Product, variant: Optional[ProductVariant]) -> Decimal:
    """Variant price, else sale price, else base price."""
    if variant is not None and variant.price is not None:
        return Decimal(variant.price)
    if product.sale_price is not None:
        return Decimal(product.sale_price)
    return Decimal(product.base_price)


def shipping_cost(subtotal: Decimal, settings: Dict) -> Decimal:
    """Free above the configured minimum when free shipping is enabled, flat rate otherwise."""
    if settings.get("enableFreeShipping") and subtotal >= Decimal(str(settings.get("freeShippingMinimum", 0))):
        return Decimal("0.00")
    return money(Decimal(str(settings.get("flatRate", 0))))


def tax_amount(taxable: Decimal, tax_rate) -> Decimal:
    return money(taxable * Decimal(str(tax_rate or 0)) / Decimal(100))


@dataclass
class Line:
    product: Product
    variant: Optional[ProductVariant]
    quantity: int
    price: Decimal

    @property
    def total(self) -> Decimal:
        return money(self.price * self.quantity)


def _resolve_lines(db: Session, items) -> List[Line]:
    lines: List[Line] = []
    for item in items:
        product = db.get(Product, item.product_id)
        if product is None or not product.is_active:
            raise NotFoundError("Product not found")

        variant = None
        if item.variant_id is not None:
            variant = db.get(ProductVariant, item.variant_id)
            if variant is None or variant.product_id != product.id or not variant.is_active:
                raise NotFoundError("Product variant not found")
        elif not product.in_stock:
            raise BadRequestError(f"{product.name} is out of stock")

        if item.quantity < product.min_order_quantity:
            raise BadRequestError(f"Minimum order quantity for {product.name} is {product.min_order_quantity}")
        if product.max_order_quantity is not None and item.quantity > product.max_order_quantity:
            raise BadRequestError(f"Maximum order quantity for {product.name} is {product.max_order_quantity}")

        lines.append(Line(product=product, variant=variant, quantity=item.quantity, price=unit_price(product, variant)))
    return lines


def _reserve_stock(lines: List[Line]) -> None:
    """Decrement variant stock; the check runs over all lines before anything changes."""
    wanted: Dict[ProductVariant, int] = {}
    for line in lines:
        if line.variant is not None:
            wanted[line.variant] = wanted.get(line.variant, 0) + line.quantity
    for variant, quantity in wanted.items():
        if variant.stock < quantity:
            raise BadRequestError(f"Insufficient stock for {variant.product.name}")
    for variant, quantity in wanted.items():
        variant.stock -= quantity


def restock(order: Order, db: Session) -> None:
    """Give ordered quantities back to their variants (cancellation)."""
    for item in order.items:
        if item.variant_id is None:
            continue
        variant = db.get(ProductVariant, item.variant_id)
        if variant is not None:
            variant.stock += item.quantity


@dataclass
class Totals:
    subtotal: Decimal
    discount: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal
    coupon: Optional[Coupon]


def compute_totals(db: Session, lines: List[Line], coupon_code: Optional[str], payment_method: str) -> Totals:
    subtotal = money(sum((line.total for line in lines), Decimal("0")))

    coupon = None
    discount = Decimal("0.00")
    if coupon_code:
        coupon = db.scalar(select(Coupon).where(Coupon.code == normalize_code(coupon_code)))
        discount = check_coupon(coupon, subtotal, utc_now())

    ship_settings = shipping_settings(db)
    shipping = shipping_cost(subtotal, ship_settings)
    if payment_method == "cod":
        if not ship_settings.get("enableCOD", True):
            raise BadRequestError("Cash on delivery is not available")
        shipping = money(shipping + Decimal(str(ship_settings.get("codExtraCharge", 0))))

    tax = tax_amount(subtotal - discount, store_settings(db).get("taxRate", 0))
    total = money(subtotal - discount + shipping + tax)
    return Totals(subtotal=subtotal, discount=discount, shipping=shipping, tax=tax, total=total, coupon=coupon)


# PUBLIC_INTERFACE
def place_order(
    db: Session,
    payload,
    user: Optional[User],
    payments: RazorpayClient,
) -> Tuple[Order, Optional[dict]]:
    """
    Create an order (signed-in or guest) and, for Razorpay, the gateway order.

    Returns:
        (order, gateway_order) where gateway_order is None for cash on delivery.

    Raises:
        NotFoundError / BadRequestError: unknown product, stock or coupon problems.
        IntegrationError: the gateway order could not be created.
    """
    lines = _resolve_lines(db, payload.items)
    totals = compute_totals(db, lines, payload.coupon_code, payload.payment_method)
    _reserve_stock(lines)

    order_number = generate_order_number()
    shipping_address = payload.shipping_address.model_dump(by_alias=True)
    billing_address = (payload.billing_address or payload.shipping_address).model_dump(by_alias=True)

    order = Order(
        order_number=order_number,
        user_id=user.id if user is not None else None,
        guest_email=None if user is not None else payload.shipping_address.email,
        status="pending",
        payment_status="pending",
        payment_method=payload.payment_method,
        coupon_code=totals.coupon.code if totals.coupon is not None else None,
        subtotal=totals.subtotal,
        discount=totals.discount,
        shipping_cost=totals.shipping,
        tax=totals.tax,
        total=totals.total,
        shipping_address=shipping_address,
        billing_address=billing_address,
        notes=payload.notes,
    )
    order.items = [
        OrderItem(
            product_id=line.product.id,
            variant_id=line.variant.id if line.variant is not None else None,
            name=line.product.name,
            sku=(line.variant.sku if line.variant is not None and line.variant.sku else line.product.sku),
            price=line.price,
            quantity=line.quantity,
            size=line.variant.size if line.variant is not None else None,
            color=line.variant.color if line.variant is not None else None,
            total=line.total,
        )
        for line in lines
    ]
    order.timeline = [
        OrderTimeline(
            type="status_change",
            title="Order Created",
            description=f"{'Guest order' if user is None else 'Order'} {order_number} was placed",
            metadata_={"status": "pending", "paymentStatus": "pending", "isGuest": user is None},
            is_public=True,
            created_by=user.id if user is not None else None,
        )
    ]
    if totals.coupon is not None:
        totals.coupon.used_count += 1

    gateway_order = None
    if payload.payment_method == "razorpay":
        notes = {"orderNumber": order_number}
        if user is not None:
            notes["userId"] = str(user.id)
        else:
            notes["guestEmail"] = payload.shipping_address.email
        gateway_order = payments.create_order(totals.total, receipt=order_number, notes=notes)
        order.razorpay_order_id = gateway_order.get("id")

    db.add(order)
    notifications.new_order(db, order_number, totals.total)
    for line in lines:
        if line.variant is not None and line.variant.stock <= 5:
            notifications.low_stock(db, line.product.name, _variant_label(line.variant), line.variant.stock)
    db.commit()
    logger.info("Placed order %s (%s, total %s)", order_number, payload.payment_method, totals.total)
    return order, gateway_order


def _variant_label(variant: ProductVariant) -> str:
    parts = [p for p in (variant.size, variant.color) if p]
    return " / ".join(parts) or (variant.sku or "default")
