"""Inventory screen bodies."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import EmailStr, Field

from storefront.schemas.catalog import VariantOut
from storefront.schemas.common import APIModel, Pagination

StockStatus = Literal["in_stock", "low_stock", "out_of_stock"]
StockFilter = Literal["all", "low_stock", "out_of_stock", "in_stock"]
Adjustment = Literal["set", "add", "subtract"]


class InventoryItem(APIModel):
    id: uuid.UUID
    name: str
    sku: Optional[str] = None
    is_active: bool
    base_price: Decimal
    in_stock: bool
    variants: List[VariantOut] = []
    total_stock: int = 0
    has_variants: bool = False
    stock_status: StockStatus = "in_stock"


class InventoryStats(APIModel):
    total: int = 0
    in_stock: int = 0
    low_stock: int = 0
    out_of_stock: int = 0
    total_units: int = 0


class InventoryOverview(APIModel):
    items: List[InventoryItem]
    stats: InventoryStats
    pagination: Pagination


class InStockUpdate(APIModel):
    in_stock: bool


class StockUpdate(APIModel):
    stock: int = Field(ge=0)
    adjustment: Adjustment = "set"


class StockLine(APIModel):
    variant_id: uuid.UUID
    stock: int = Field(ge=0)


class BulkStock(APIModel):
    updates: List[StockLine] = Field(min_length=1)


class LowStockAlert(APIModel):
    variant_id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    variant_sku: Optional[str] = None
    size: Optional[str] = None
    color: Optional[str] = None
    stock: int
    threshold: int


class ThresholdIn(APIModel):
    product_id: uuid.UUID
    variant_id: Optional[uuid.UUID] = None
    threshold: int = Field(default=5, ge=0)


class ThresholdOut(ThresholdIn):
    id: uuid.UUID
    alert_sent: bool = False


class StockSubscription(APIModel):
    email: EmailStr
    product_id: uuid.UUID
    variant_id: Optional[uuid.UUID] = None


class StockTarget(APIModel):
    product_id: uuid.UUID
    variant_id: Optional[uuid.UUID] = None


class SubscribedProduct(APIModel):
    id: uuid.UUID
    name: str
    slug: str


class SubscribedVariant(APIModel):
    id: uuid.UUID
    size: Optional[str] = None
    color: Optional[str] = None
    stock: int


class StockNotificationOut(APIModel):
    id: uuid.UUID
    email: str
    product_id: uuid.UUID
    variant_id: Optional[uuid.UUID] = None
    notified: bool
    notified_at: Optional[datetime] = None
    created_at: datetime
    product: Optional[SubscribedProduct] = None
    variant: Optional[SubscribedVariant] = None


class StockNotificationPage(APIModel):
    notifications: List[StockNotificationOut]
    pagination: Pagination


class NotifiedCount(APIModel):
    notified_count: int
