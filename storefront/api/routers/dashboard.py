"""Admin dashboard counters and sales reports."""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from storefront.api.deps import require_admin
from storefront.core.errors import BadRequestError
from storefront.db.base import utc_now
from storefront.db.models import Category, Order, OrderItem, Product, ProductVariant, User
from storefront.db.queries import count_of
from storefront.db.session import get_db
from storefront.schemas.dashboard import (
    CategorySales,
    DashboardStats,
    GroupBy,
    PeriodChange,
    SalesPoint,
    SalesSummary,
    TopProduct,
)
from storefront.services.coupons import money
from storefront.services.inventory import DEFAULT_LOW_STOCK_THRESHOLD
from storefront.services.reports import bucket_sales, day_start, month_start, percent_change, previous_month_start

admin_router = APIRouter(prefix="/api/admin/dashboard", tags=["Dashboard"], dependencies=[Depends(require_admin)])

_paid = Order.payment_status == "paid"


def _revenue(db: Session, *conditions) -> Decimal:
    return money(db.scalar(select(func.coalesce(func.sum(Order.total), 0)).where(*conditions)) or 0)


def _orders(db: Session, *conditions) -> int:
    return count_of(db, select(Order.id).where(*conditions))


def _range(start_date: Optional[datetime], end_date: Optional[datetime]) -> list:
    conditions = [_paid]
    if start_date:
        conditions.append(Order.created_at >= start_date)
    if end_date:
        conditions.append(Order.created_at <= end_date)
    return conditions


@admin_router.get("/stats", response_model=DashboardStats, summary="Headline counters")
def dashboard_stats(db: Session = Depends(get_db)):
    """
    Revenue counts delivered orders only. Month-over-month changes compare the
    current calendar month with the previous one and are 0 when the previous
    month had nothing.
    """
    now = utc_now()
    this_month, last_month = month_start(now), previous_month_start(now)
    delivered = Order.status == "delivered"

    total_revenue = _revenue(db, delivered)
    delivered_orders = _orders(db, delivered)
    this_month_revenue = _revenue(db, delivered, Order.created_at >= this_month)
    last_month_revenue = _revenue(db, delivered, Order.created_at >= last_month, Order.created_at < this_month)
    this_month_orders = _orders(db, Order.created_at >= this_month)
    last_month_orders = _orders(db, Order.created_at >= last_month, Order.created_at < this_month)

    return DashboardStats(
        total_products=count_of(db, select(Product.id)),
        total_orders=_orders(db),
        total_customers=count_of(db, select(User.id).where(User.role == "customer")),
        total_revenue=total_revenue,
        today_orders=_orders(db, Order.created_at >= day_start(now)),
        pending_orders=_orders(db, Order.status == "pending"),
        low_stock_count=count_of(db, select(ProductVariant.id).where(ProductVariant.stock <= DEFAULT_LOW_STOCK_THRESHOLD)),
        avg_order_value=money(total_revenue / delivered_orders) if delivered_orders else Decimal("0.00"),
        revenue_change=percent_change(this_month_revenue, last_month_revenue),
        orders_change=percent_change(this_month_orders, last_month_orders),
    )


@admin_router.get("/reports/summary", response_model=SalesSummary, summary="Paid sales in a period vs the previous one")
def sales_summary(start_date: datetime, end_date: datetime, db: Session = Depends(get_db)):
    if end_date <= start_date:
        raise BadRequestError("end_date must be after start_date")
    period = end_date - start_date
    current = [_paid, Order.created_at >= start_date, Order.created_at <= end_date]
    previous = [_paid, Order.created_at >= start_date - period, Order.created_at < start_date]

    orders, revenue = _orders(db, *current), _revenue(db, *current)
    prev_orders, prev_revenue = _orders(db, *previous), _revenue(db, *previous)
    return SalesSummary(
        total_orders=orders,
        total_revenue=revenue,
        avg_order_value=money(revenue / orders) if orders else Decimal("0.00"),
        comparison=PeriodChange(
            orders_change=percent_change(orders, prev_orders), revenue_change=percent_change(revenue, prev_revenue)
        ),
    )


@admin_router.get("/reports/sales-by-date", response_model=List[SalesPoint], summary="Paid sales per day or month")
def sales_by_date(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    group_by: GroupBy = "day",
    db: Session = Depends(get_db),
):
    """Defaults to the last 30 days."""
    end_date = end_date or utc_now()
    start_date = start_date or day_start(end_date - timedelta(days=30))
    rows = db.execute(select(Order.created_at, Order.total).where(*_range(start_date, end_date))).all()
    return [
        SalesPoint(date=key, orders=count, revenue=money(revenue))
        for key, count, revenue in bucket_sales(rows, group_by)
    ]


@admin_router.get("/reports/top-products", response_model=List[TopProduct], summary="Best sellers by units")
def top_products(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
):
    quantity = func.sum(OrderItem.quantity)
    rows = db.execute(
        select(
            OrderItem.product_id,
            OrderItem.name,
            quantity,
            func.sum(OrderItem.total),
            func.count(func.distinct(OrderItem.order_id)),
        )
        .join(Order, OrderItem.order_id == Order.id)
        .where(*_range(start_date, end_date))
        .group_by(OrderItem.product_id, OrderItem.name)
        .order_by(desc(quantity))
        .limit(limit)
    ).all()
    return [
        TopProduct(
            product_id=product_id,
            product_name=name,
            total_quantity=int(units),
            total_revenue=money(revenue),
            order_count=int(orders),
        )
        for product_id, name, units, revenue, orders in rows
    ]


@admin_router.get("/reports/sales-by-category", response_model=List[CategorySales], summary="Paid sales per category")
def sales_by_category(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: Session = Depends(get_db),
):
    """Items whose product was deleted or has no category are reported as "Uncategorized"."""
    rows = db.execute(
        select(Product.category_id, Category.name, func.sum(OrderItem.quantity), func.sum(OrderItem.total))
        .select_from(OrderItem)
        .join(Order, OrderItem.order_id == Order.id)
        .outerjoin(Product, OrderItem.product_id == Product.id)
        .outerjoin(Category, Product.category_id == Category.id)
        .where(*_range(start_date, end_date))
        .group_by(Product.category_id, Category.name)
        .order_by(desc(func.sum(OrderItem.total)))
    ).all()
    return [
        CategorySales(
            category_id=category_id,
            category_name=name or "Uncategorized",
            total_quantity=int(units),
            total_revenue=money(revenue),
        )
        for category_id, name, units, revenue in rows
    ]
