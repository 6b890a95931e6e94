"""Server-side cart of the signed-in user."""

from __future__ import annotations

import uuid
from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from storefront.api.deps import require_user
from storefront.core.errors import BadRequestError, NotFoundError
from storefront.db.base import utc_now
from storefront.db.models import Cart, CartItem, Coupon, Product, ProductVariant, User
from storefront.db.session import get_db
from storefront.schemas.commerce import (
    CartAdd,
    CartLine,
    CartOut,
    CartProduct,
    CartQuantity,
    CartVariant,
    CouponCode,
    CouponOut,
)
from storefront.services.checkout import unit_price
from storefront.services.coupons import coupon_status, money, normalize_code

router = APIRouter(prefix="/api/cart", tags=["Cart"])


def _cart(db: Session, user: User) -> Cart:
    cart = db.scalar(
        select(Cart)
        .options(
            selectinload(Cart.items).selectinload(CartItem.product).selectinload(Product.images),
            selectinload(Cart.items).selectinload(CartItem.variant),
        )
        .where(Cart.user_id == user.id)
    )
    if cart is None:
        cart = Cart(user_id=user.id)
        db.add(cart)
        db.commit()
    return cart


def _render(cart: Cart) -> CartOut:
    lines = []
    subtotal = Decimal("0")
    for item in sorted(cart.items, key=lambda i: i.created_at):
        price = unit_price(item.product, item.variant)
        line_total = money(price * item.quantity)
        subtotal += line_total
        primary = item.product.images[0].url if item.product.images else None
        lines.append(
            CartLine(
                id=item.id,
                product_id=item.product_id,
                variant_id=item.variant_id,
                quantity=item.quantity,
                unit_price=price,
                line_total=line_total,
                product=CartProduct(
                    id=item.product.id,
                    name=item.product.name,
                    slug=item.product.slug,
                    base_price=item.product.base_price,
                    sale_price=item.product.sale_price,
                    image=primary,
                ),
                variant=CartVariant.model_validate(item.variant) if item.variant is not None else None,
            )
        )
    return CartOut(
        id=cart.id,
        items=lines,
        subtotal=money(subtotal),
        item_count=sum(item.quantity for item in cart.items),
    )


def _owned_item(cart: Cart, item_id: uuid.UUID) -> CartItem:
    item = next((i for i in cart.items if i.id == item_id), None)
    if item is None:
        raise NotFoundError("Cart item not found")
    return item


@router.get("", response_model=CartOut, summary="Current cart with totals")
def get_cart(user: User = Depends(require_user), db: Session = Depends(get_db)):
    """Get (creating if absent) the cart, with subtotal and item count."""
    return _render(_cart(db, user))


@router.post("/items", response_model=CartOut, summary="Add an item")
def add_item(payload: CartAdd, user: User = Depends(require_user), db: Session = Depends(get_db)):
    """Add a product (and optional variant); an existing line for the same product/variant is merged."""
    product = db.get(Product, payload.product_id)
    if product is None or not product.is_active:
        raise NotFoundError("Product not found")

    variant = None
    if payload.variant_id is not None:
        variant = db.get(ProductVariant, payload.variant_id)
        if variant is None or variant.product_id != product.id or not variant.is_active:
            raise NotFoundError("Product variant not found")

    cart = _cart(db, user)
    existing = next(
        (i for i in cart.items if i.product_id == product.id and i.variant_id == payload.variant_id), None
    )
    quantity = payload.quantity + (existing.quantity if existing is not None else 0)
    if variant is not None and variant.stock < quantity:
        raise BadRequestError("Insufficient stock")

    if existing is not None:
        existing.quantity = quantity
    else:
        cart.items.append(CartItem(product=product, variant=variant, quantity=payload.quantity))
    cart.updated_at = utc_now()
    db.commit()
    return _render(cart)


@router.patch("/items/{item_id}", response_model=CartOut, summary="Change an item's quantity")
def update_quantity(
    item_id: uuid.UUID, payload: CartQuantity, user: User = Depends(require_user), db: Session = Depends(get_db)
):
    cart = _cart(db, user)
    item = _owned_item(cart, item_id)
    if item.variant is not None and item.variant.stock < payload.quantity:
        raise BadRequestError("Insufficient stock")
    item.quantity = payload.quantity
    db.commit()
    return _render(cart)


@router.delete("/items/{item_id}", response_model=CartOut, summary="Remove an item")
def remove_item(item_id: uuid.UUID, user: User = Depends(require_user), db: Session = Depends(get_db)):
    cart = _cart(db, user)
    cart.items.remove(_owned_item(cart, item_id))
    db.commit()
    return _render(cart)


@router.delete("", response_model=CartOut, summary="Empty the cart")
def clear_cart(user: User = Depends(require_user), db: Session = Depends(get_db)):
    cart = _cart(db, user)
    cart.items.clear()
    db.commit()
    return _render(cart)


@router.post("/coupon", response_model=CouponOut, summary="Check a coupon against the cart")
def apply_coupon(payload: CouponCode, user: User = Depends(require_user), db: Session = Depends(get_db)):
    """Validation only; the discount is applied when the order is placed."""
    coupon = db.scalar(select(Coupon).where(Coupon.code == normalize_code(payload.code), Coupon.is_active.is_(True)))
    if coupon is None:
        raise NotFoundError("Invalid coupon code")
    status = coupon_status(coupon, utc_now())
    if status == "scheduled":
        raise BadRequestError("Coupon is not yet valid")
    if status == "expired":
        raise BadRequestError("Coupon has expired")
    if status == "exhausted":
        raise BadRequestError("Coupon usage limit reached")
    return CouponOut.model_validate(coupon).model_copy(update={"status": status})
