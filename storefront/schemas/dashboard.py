"""Dashboard counters and report rows."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Literal, Optional

from storefront.schemas.common import APIModel

GroupBy = Literal["day", "month"]


class DashboardStats(APIModel):
    total_products: int
    total_orders: int
    total_customers: int
    total_revenue: Decimal
    today_orders: int
    pending_orders: int
    low_stock_count: int
    avg_order_value: Decimal
    revenue_change: float
    orders_change: float


class PeriodChange(APIModel):
    orders_change: float
    revenue_change: float


class SalesSummary(APIModel):
    total_orders: int
    total_revenue: Decimal
    avg_order_value: Decimal
    comparison: PeriodChange


class SalesPoint(APIModel):
    date: str
    orders: int
    revenue: Decimal


class TopProduct(APIModel):
    product_id: Optional[uuid.UUID] = None
    product_name: str
    total_quantity: int
    total_revenue: Decimal
    order_count: int


class CategorySales(APIModel):
    category_id: Optional[uuid.UUID] = None
    category_name: str
    total_quantity: int
    total_revenue: Decimal
