"""Request/response models for the cart, coupons, orders and returns."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import EmailStr, Field, field_validator

from storefront.schemas.common import APIModel, Pagination
from storefront.services.coupons import normalize_code

OrderStatus = Literal["pending", "confirmed", "processing", "shipped", "delivered", "cancelled"]
PaymentStatus = Literal["pending", "paid", "failed", "refunded"]
ReturnStatus = Literal["requested", "approved", "rejected", "shipped", "received", "refunded", "completed"]
ReturnReason = Literal["defective", "wrong_item", "not_as_described", "changed_mind", "size_issue", "other"]


# Cart


class CartAdd(APIModel):
    product_id: uuid.UUID
    variant_id: Optional[uuid.UUID] = None
    quantity: int = Field(default=1, ge=1)


class CartQuantity(APIModel):
    quantity: int = Field(ge=1)


class CartProduct(APIModel):
    id: uuid.UUID
    name: str
    slug: str
    base_price: Decimal
    sale_price: Optional[Decimal] = None
    image: Optional[str] = None


class CartVariant(APIModel):
    id: uuid.UUID
    sku: Optional[str] = None
    size: Optional[str] = None
    color: Optional[str] = None
    price: Optional[Decimal] = None
    stock: int


class CartLine(APIModel):
    id: uuid.UUID
    product_id: uuid.UUID
    variant_id: Optional[uuid.UUID] = None
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    product: CartProduct
    variant: Optional[CartVariant] = None


class CartOut(APIModel):
    id: uuid.UUID
    items: List[CartLine]
    subtotal: Decimal
    item_count: int


class CouponCode(APIModel):
    code: str = Field(min_length=1, max_length=50)


# Coupons


class CouponIn(APIModel):
    code: str = Field(min_length=3, max_length=50)
    type: Literal["percentage", "fixed"]
    value: Decimal = Field(gt=0)
    min_order_amount: Optional[Decimal] = Field(default=None, ge=0)
    max_discount: Optional[Decimal] = Field(default=None, ge=0)
    usage_limit: Optional[int] = Field(default=None, gt=0)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return normalize_code(value)


class CouponUpdate(APIModel):
    code: Optional[str] = Field(default=None, min_length=3, max_length=50)
    type: Optional[Literal["percentage", "fixed"]] = None
    value: Optional[Decimal] = Field(default=None, gt=0)
    min_order_amount: Optional[Decimal] = Field(default=None, ge=0)
    max_discount: Optional[Decimal] = Field(default=None, ge=0)
    usage_limit: Optional[int] = Field(default=None, gt=0)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: Optional[bool] = None

    @field_validator("code")
    @classmethod
    def _normalize(cls, value: Optional[str]) -> Optional[str]:
        return normalize_code(value) if value is not None else value


class CouponOut(APIModel):
    id: uuid.UUID
    code: str
    type: str
    value: Decimal
    min_order_amount: Optional[Decimal] = None
    max_discount: Optional[Decimal] = None
    usage_limit: Optional[int] = None
    used_count: int
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: bool
    created_at: datetime
    status: str = "active"


class CouponPage(APIModel):
    coupons: List[CouponOut]
    pagination: Pagination


class CouponValidate(APIModel):
    code: str = Field(min_length=1)
    order_total: Decimal = Field(gt=0)


class CouponRef(APIModel):
    id: uuid.UUID
    code: str
    type: str
    value: Decimal


class CouponValidation(APIModel):
    valid: bool = True
    coupon: CouponRef
    discount: Decimal
    new_total: Decimal


class CouponStats(APIModel):
    total: int
    active: int
    expired: int
    total_usage: int


# Orders


class OrderAddress(APIModel):
    full_name: str = Field(min_length=1)
    email: EmailStr
    phone: str = Field(min_length=1)
    address_line_1: str = Field(min_length=1)
    address_line_2: Optional[str] = None
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    pincode: str = Field(min_length=1)


class OrderLineIn(APIModel):
    product_id: uuid.UUID
    variant_id: Optional[uuid.UUID] = None
    quantity: int = Field(ge=1)


class OrderIn(APIModel):
    items: List[OrderLineIn] = Field(min_length=1)
    shipping_address: OrderAddress
    billing_address: Optional[OrderAddress] = None
    coupon_code: Optional[str] = None
    payment_method: Literal["razorpay", "cod"] = "razorpay"
    notes: Optional[str] = None


class PlacedOrder(APIModel):
    order_id: uuid.UUID
    order_number: str
    total: Decimal
    payment_method: str
    razorpay_order_id: Optional[str] = None
    razorpay_key_id: Optional[str] = None
    amount: Optional[int] = None
    currency: Optional[str] = None


class PaymentVerification(APIModel):
    order_id: uuid.UUID
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


class OrderItemOut(APIModel):
    id: uuid.UUID
    product_id: Optional[uuid.UUID] = None
    variant_id: Optional[uuid.UUID] = None
    name: str
    sku: Optional[str] = None
    price: Decimal
    quantity: int
    size: Optional[str] = None
    color: Optional[str] = None
    total: Decimal


class TimelineOut(APIModel):
    id: uuid.UUID
    type: str
    title: str
    description: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="metadata_")
    is_public: bool
    created_by: Optional[uuid.UUID] = None
    created_at: datetime


class OrderCustomer(APIModel):
    id: uuid.UUID
    name: Optional[str] = None
    email: str
    phone: Optional[str] = None


class OrderOut(APIModel):
    id: uuid.UUID
    order_number: str
    user_id: Optional[uuid.UUID] = None
    guest_email: Optional[str] = None
    status: str
    payment_status: str
    payment_method: Optional[str] = None
    coupon_code: Optional[str] = None
    subtotal: Decimal
    discount: Decimal
    shipping_cost: Decimal
    tax: Decimal
    total: Decimal
    shipping_address: Dict[str, Any]
    billing_address: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    tracking_number: Optional[str] = None
    tracking_url: Optional[str] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemOut] = []


class OrderDetail(OrderOut):
    timeline: List[TimelineOut] = []


class AdminOrderDetail(OrderDetail):
    admin_notes: Optional[str] = None
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    user: Optional[OrderCustomer] = None


class AdminOrderRow(OrderOut):
    user: Optional[OrderCustomer] = None


class OrderPage(APIModel):
    orders: List[OrderOut]
    pagination: Pagination


class AdminOrderPage(APIModel):
    orders: List[AdminOrderRow]
    pagination: Pagination


class StatusUpdate(APIModel):
    status: OrderStatus
    tracking_number: Optional[str] = None
    tracking_url: Optional[str] = None


class PaymentStatusUpdate(APIModel):
    payment_status: PaymentStatus


class OrderNote(APIModel):
    note: str = Field(min_length=1)
    is_public: bool = False


class TrackingUpdate(APIModel):
    tracking_number: str = Field(min_length=1)
    tracking_url: Optional[str] = None
    carrier: Optional[str] = None


class BulkStatus(APIModel):
    ids: List[uuid.UUID] = Field(min_length=1)
    status: OrderStatus


class OrderStats(APIModel):
    total_orders: int
    total_revenue: Decimal
    paid_orders: int
    paid_revenue: Decimal
    by_status: Dict[str, int]


# Returns


class ReturnItem(APIModel):
    order_item_id: uuid.UUID
    quantity: int = Field(ge=1)
    reason: Optional[str] = None


class ReturnIn(APIModel):
    order_id: uuid.UUID
    reason: ReturnReason
    reason_details: Optional[str] = None
    items: List[ReturnItem] = Field(min_length=1)
    customer_notes: Optional[str] = None


class ReturnOut(APIModel):
    id: uuid.UUID
    return_number: str
    order_id: uuid.UUID
    user_id: uuid.UUID
    status: str
    reason: str
    reason_details: Optional[str] = None
    items: List[Dict[str, Any]]
    refund_amount: Optional[Decimal] = None
    refund_method: Optional[str] = None
    customer_notes: Optional[str] = None
    approved_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ReturnOrderRef(APIModel):
    id: uuid.UUID
    order_number: str
    total: Decimal


class AdminReturnOut(ReturnOut):
    admin_notes: Optional[str] = None
    approved_by: Optional[uuid.UUID] = None
    user: Optional[OrderCustomer] = None
    order: Optional[ReturnOrderRef] = None


class ReturnPage(APIModel):
    returns: List[AdminReturnOut]
    pagination: Pagination


class ReturnStatusUpdate(APIModel):
    status: ReturnStatus
    admin_notes: Optional[str] = None
    refund_amount: Optional[Decimal] = Field(default=None, ge=0)
    refund_method: Optional[Literal["original_payment", "store_credit"]] = None


class BulkReturnStatus(APIModel):
    ids: List[uuid.UUID] = Field(min_length=1)
    status: ReturnStatus
