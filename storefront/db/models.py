"""
SQLAlchemy ORM models for the storefront schema.

Important:
- Column types are dialect-portable (Uuid, JSON/JSONB, Numeric) so the same mappings
  back PostgreSQL in production and SQLite in tests.
- Enumerations are plain text columns guarded by CHECK constraints; allowed values
  are listed in the module-level tuples below and reused by the API schemas.
- Timestamps are naive UTC (see `utc_now`).
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront.db.base import Base, JSONType, utc_now

USER_ROLES = ("customer", "admin")
ADDRESS_TYPES = ("shipping", "billing")
PRODUCT_VISIBILITIES = ("visible", "hidden", "catalog_only", "search_only")
COUPON_TYPES = ("percentage", "fixed")
ORDER_STATUSES = ("pending", "confirmed", "processing", "shipped", "delivered", "cancelled")
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")
RETURN_STATUSES = ("requested", "approved", "rejected", "shipped", "received", "refunded", "completed")
RETURN_REASONS = ("defective", "wrong_item", "not_as_described", "changed_mind", "size_issue", "other")
NOTIFICATION_TYPES = ("order", "inventory", "review", "return", "customer", "system")


def _in(column: str, values: tuple) -> str:
    quoted = ",".join(f"'{v}'" for v in values)
    return f"{column} in ({quoted})"


def _uuid_pk() -> Mapped[uuid.UUID]:
    return mapped_column(Uuid, primary_key=True, default=uuid.uuid4)


Money = Numeric(10, 2)


class TimestampMixin:
    """Common timestamp columns in the schema."""

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)


class User(Base, TimestampMixin):
    """users table."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = _uuid_pk()
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="customer")
    image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    addresses: Mapped[List["Address"]] = relationship(
        "Address", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    sessions: Mapped[List["Session"]] = relationship(
        "Session", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    orders: Mapped[List["Order"]] = relationship("Order", back_populates="user", passive_deletes=True)

    __table_args__ = (CheckConstraint(_in("role", USER_ROLES), name="users_role_check"),)


class Session(Base):
    """sessions table: opaque bearer tokens issued at login."""

    __tablename__ = "sessions"

    id: Mapped[uuid.UUID] = _uuid_pk()
    session_token: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expires: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    user: Mapped[User] = relationship("User", back_populates="sessions")


class Address(Base):
    """addresses table."""

    __tablename__ = "addresses"

    id: Mapped[uuid.UUID] = _uuid_pk()
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="shipping")
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)
    address_line_1: Mapped[str] = mapped_column(Text, nullable=False)
    address_line_2: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    pincode: Mapped[str] = mapped_column(String(10), nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    user: Mapped[User] = relationship("User", back_populates="addresses")

    __table_args__ = (CheckConstraint(_in("type", ADDRESS_TYPES), name="addresses_type_check"),)


class Category(Base):
    """categories table."""

    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = _uuid_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    parent: Mapped[Optional["Category"]] = relationship("Category", remote_side="Category.id", back_populates="children")
    children: Mapped[List["Category"]] = relationship("Category", back_populates="parent", passive_deletes=True)


class Brand(Base):
    """brands table."""

    __tablename__ = "brands"

    id: Mapped[uuid.UUID] = _uuid_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    logo: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)


class Product(Base, TimestampMixin):
    """products table."""

    __tablename__ = "products"

    id: Mapped[uuid.UUID] = _uuid_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    short_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sku: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    base_price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    sale_price: Mapped[Optional[Decimal]] = mapped_column(Money, nullable=True)

    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    brand_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("brands.id", ondelete="SET NULL"), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_new: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    in_stock: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    tags: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)
    visibility: Mapped[str] = mapped_column(String(20), nullable=False, default="visible")
    min_order_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    max_order_quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    category: Mapped[Optional[Category]] = relationship("Category")
    brand: Mapped[Optional[Brand]] = relationship("Brand")
    images: Mapped[List["ProductImage"]] = relationship(
        "ProductImage",
        back_populates="product",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="(ProductImage.is_primary.desc(), ProductImage.sort_order)",
    )
    variants: Mapped[List["ProductVariant"]] = relationship(
        "ProductVariant", back_populates="product", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        CheckConstraint("base_price >= 0", name="products_base_price_check"),
        CheckConstraint(_in("visibility", PRODUCT_VISIBILITIES), name="products_visibility_check"),
    )


class ProductImage(Base):
    """product_images table."""

    __tablename__ = "product_images"

    id: Mapped[uuid.UUID] = _uuid_pk()
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    alt_text: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    product: Mapped[Product] = relationship("Product", back_populates="images")


class ProductVariant(Base):
    """product_variants table."""

    __tablename__ = "product_variants"

    id: Mapped[uuid.UUID] = _uuid_pk()
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    sku: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    size: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    color: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    color_hex: Mapped[Optional[str]] = mapped_column(String(7), nullable=True)
    price: Mapped[Optional[Decimal]] = mapped_column(Money, nullable=True)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    product: Mapped[Product] = relationship("Product", back_populates="variants")

    __table_args__ = (CheckConstraint("stock >= 0", name="product_variants_stock_check"),)


class Cart(Base, TimestampMixin):
    """carts table: one server-side cart per user."""

    __tablename__ = "carts"

    id: Mapped[uuid.UUID] = _uuid_pk()
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    items: Mapped[List["CartItem"]] = relationship(
        "CartItem", back_populates="cart", cascade="all, delete-orphan", passive_deletes=True
    )


class CartItem(Base):
    """cart_items table."""

    __tablename__ = "cart_items"

    id: Mapped[uuid.UUID] = _uuid_pk()
    cart_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    variant_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=True
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    cart: Mapped[Cart] = relationship("Cart", back_populates="items")
    product: Mapped[Product] = relationship("Product")
    variant: Mapped[Optional[ProductVariant]] = relationship("ProductVariant")

    __table_args__ = (CheckConstraint("quantity > 0", name="cart_items_quantity_check"),)


class Coupon(Base):
    """coupons table."""

    __tablename__ = "coupons"

    id: Mapped[uuid.UUID] = _uuid_pk()
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    value: Mapped[Decimal] = mapped_column(Money, nullable=False)
    min_order_amount: Mapped[Optional[Decimal]] = mapped_column(Money, nullable=True)
    max_discount: Mapped[Optional[Decimal]] = mapped_column(Money, nullable=True)
    usage_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    used_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    valid_from: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    valid_until: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        CheckConstraint(_in("type", COUPON_TYPES), name="coupons_type_check"),
        CheckConstraint("value > 0", name="coupons_value_check"),
        CheckConstraint("used_count >= 0", name="coupons_used_count_check"),
    )


class Order(Base, TimestampMixin):
    """orders table. Guest orders have no user and carry guest_email instead."""

    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = _uuid_pk()
    order_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    guest_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    payment_method: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    razorpay_order_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    razorpay_payment_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    coupon_code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(Money, nullable=False)
    discount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    shipping_cost: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    tax: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(Money, nullable=False)

    shipping_address: Mapped[dict] = mapped_column(JSONType, nullable=False)
    billing_address: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tracking_number: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    tracking_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    shipped_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    user: Mapped[Optional[User]] = relationship("User", back_populates="orders")
    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", passive_deletes=True
    )
    timeline: Mapped[List["OrderTimeline"]] = relationship(
        "OrderTimeline",
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderTimeline.created_at.desc()",
    )

    __table_args__ = (
        CheckConstraint(_in("status", ORDER_STATUSES), name="orders_status_check"),
        CheckConstraint(_in("payment_status", PAYMENT_STATUSES), name="orders_payment_status_check"),
        CheckConstraint("subtotal >= 0", name="orders_subtotal_check"),
        CheckConstraint("total >= 0", name="orders_total_check"),
    )


class OrderItem(Base):
    """order_items table. Name/SKU/price are snapshots taken when the order was placed."""

    __tablename__ = "order_items"

    id: Mapped[uuid.UUID] = _uuid_pk()
    order_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("products.id", ondelete="SET NULL"), nullable=True
    )
    variant_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("product_variants.id", ondelete="SET NULL"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sku: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    size: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    color: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    total: Mapped[Decimal] = mapped_column(Money, nullable=False)

    order: Mapped[Order] = relationship("Order", back_populates="items")
    product: Mapped[Optional[Product]] = relationship("Product")

    __table_args__ = (CheckConstraint("quantity > 0", name="order_items_quantity_check"),)


class OrderTimeline(Base):
    """order_timeline table."""

    __tablename__ = "order_timeline"

    id: Mapped[uuid.UUID] = _uuid_pk()
    order_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    metadata_: Mapped[Optional[dict]] = mapped_column("metadata", JSONType, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    order: Mapped[Order] = relationship("Order", back_populates="timeline")


class OrderReturn(Base, TimestampMixin):
    """order_returns table."""

    __tablename__ = "order_returns"

    id: Mapped[uuid.UUID] = _uuid_pk()
    return_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    order_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="requested")
    reason: Mapped[str] = mapped_column(String(30), nullable=False)
    reason_details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    items: Mapped[list] = mapped_column(JSONType, nullable=False)
    refund_amount: Mapped[Optional[Decimal]] = mapped_column(Money, nullable=True)
    refund_method: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    customer_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    order: Mapped[Order] = relationship("Order")
    user: Mapped[User] = relationship("User", foreign_keys=[user_id])

    __table_args__ = (
        CheckConstraint(_in("status", RETURN_STATUSES), name="order_returns_status_check"),
        CheckConstraint(_in("reason", RETURN_REASONS), name="order_returns_reason_check"),
    )


class Review(Base, TimestampMixin):
    """reviews table."""

    __tablename__ = "reviews"

    id: Mapped[uuid.UUID] = _uuid_pk()
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    user: Mapped[User] = relationship("User")
    product: Mapped[Product] = relationship("Product")

    __table_args__ = (
        UniqueConstraint("product_id", "user_id", name="reviews_product_id_user_id_key"),
        CheckConstraint("rating between 1 and 5", name="reviews_rating_check"),
    )


class MediaFolder(Base, TimestampMixin):
    """media_folders table. `path` is the slash-joined slug chain from the root."""

    __tablename__ = "media_folders"

    id: Mapped[uuid.UUID] = _uuid_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("media_folders.id", ondelete="CASCADE"), nullable=True
    )
    path: Mapped[str] = mapped_column(Text, nullable=False)

    parent: Mapped[Optional["MediaFolder"]] = relationship(
        "MediaFolder", remote_side="MediaFolder.id", back_populates="children"
    )
    children: Mapped[List["MediaFolder"]] = relationship("MediaFolder", back_populates="parent", passive_deletes=True)
    assets: Mapped[List["MediaAsset"]] = relationship("MediaAsset", back_populates="folder", passive_deletes=True)


class MediaAsset(Base, TimestampMixin):
    """media_assets table."""

    __tablename__ = "media_assets"

    id: Mapped[uuid.UUID] = _uuid_pk()
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    alt_text: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    caption: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    folder_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("media_folders.id", ondelete="SET NULL"), nullable=True
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    public_id: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    format: Mapped[str] = mapped_column(String(20), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    width: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    height: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    metadata_: Mapped[Optional[dict]] = mapped_column("metadata", JSONType, nullable=True)

    folder: Mapped[Optional[MediaFolder]] = relationship("MediaFolder", back_populates="assets")


class InventoryAlert(Base):
    """inventory_alerts table: per product (or variant) low-stock threshold."""

    __tablename__ = "inventory_alerts"

    id: Mapped[uuid.UUID] = _uuid_pk()
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    variant_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=True
    )
    threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    alert_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    alert_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    __table_args__ = (CheckConstraint("threshold >= 0", name="inventory_alerts_threshold_check"),)


class StockNotification(Base):
    """stock_notifications table: a shopper waiting for a product (or variant) to come back."""

    __tablename__ = "stock_notifications"

    id: Mapped[uuid.UUID] = _uuid_pk()
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    variant_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=True
    )
    notified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notified_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    product: Mapped[Product] = relationship("Product")
    variant: Mapped[Optional[ProductVariant]] = relationship("ProductVariant")


class Setting(Base):
    """settings table: key -> JSON blob."""

    __tablename__ = "settings"

    id: Mapped[uuid.UUID] = _uuid_pk()
    key: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    value: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)


class AdminNotification(Base):
    """admin_notifications table: the back-office event log."""

    __tablename__ = "admin_notifications"

    id: Mapped[uuid.UUID] = _uuid_pk()
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    metadata_: Mapped[Optional[dict]] = mapped_column("metadata", JSONType, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    __table_args__ = (CheckConstraint(_in("type", NOTIFICATION_TYPES), name="admin_notifications_type_check"),)
