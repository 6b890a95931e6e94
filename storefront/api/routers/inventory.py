"""Admin inventory: stock overview, stock edits and low-stock alerts."""

from __future__ import annotations

import logging
import uuid
from typing import Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, Query
from sqlalchemy import desc, or_, select
from sqlalchemy.orm import Session, selectinload

from storefront.api.deps import require_admin
from storefront.core.errors import NotFoundError
from storefront.db.models import InventoryAlert, Product, ProductVariant
from storefront.db.queries import contains
from storefront.db.session import get_db
from storefront.schemas.catalog import VariantOut
from storefront.schemas.common import Pagination
from storefront.schemas.inventory import (
    BulkStock,
    InStockUpdate,
    InventoryItem,
    InventoryOverview,
    InventoryStats,
    LowStockAlert,
    StockFilter,
    StockUpdate,
    ThresholdIn,
    ThresholdOut,
)
from storefront.services import notifications
from storefront.services.inventory import (
    DEFAULT_LOW_STOCK_THRESHOLD,
    IN_STOCK,
    LOW_STOCK,
    OUT_OF_STOCK,
    adjust_stock,
    stock_status,
    total_stock,
)

logger = logging.getLogger(__name__)

admin_router = APIRouter(prefix="/api/admin/inventory", tags=["Inventory"], dependencies=[Depends(require_admin)])


def _thresholds(db: Session) -> Dict[Tuple[uuid.UUID, Optional[uuid.UUID]], int]:
    """(product id, variant id or None) -> configured alert threshold."""
    return {(a.product_id, a.variant_id): a.threshold for a in db.scalars(select(InventoryAlert)).all()}


def _variant_threshold(thresholds: dict, variant: ProductVariant) -> int:
    for key in ((variant.product_id, variant.id), (variant.product_id, None)):
        if key in thresholds:
            return thresholds[key]
    return DEFAULT_LOW_STOCK_THRESHOLD


def _item(product: Product, thresholds: dict) -> InventoryItem:
    total = total_stock(v.stock for v in product.variants)
    has_variants = bool(product.variants)
    threshold = thresholds.get((product.id, None), DEFAULT_LOW_STOCK_THRESHOLD)
    return InventoryItem(
        id=product.id,
        name=product.name,
        sku=product.sku,
        is_active=product.is_active,
        base_price=product.base_price,
        in_stock=product.in_stock,
        variants=[VariantOut.model_validate(v) for v in product.variants],
        total_stock=total,
        has_variants=has_variants,
        stock_status=stock_status(product.in_stock, has_variants, total, threshold),
    )


def _variant_label(variant: ProductVariant) -> str:
    parts = [p for p in (variant.size, variant.color) if p]
    return " / ".join(parts) or variant.sku or "default"


@admin_router.get("", response_model=InventoryOverview, summary="Stock overview")
def overview(
    filter: StockFilter = "all",
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """
    Every product with its variants and stock status.

    Stats always describe the whole (searched) catalog; the status filter only
    narrows the listed items.
    """
    stmt = select(Product).options(selectinload(Product.variants)).order_by(desc(Product.created_at))
    if search:
        pattern = contains(search)
        stmt = stmt.where(or_(Product.name.ilike(pattern), Product.sku.ilike(pattern)))
    thresholds = _thresholds(db)
    items = [_item(product, thresholds) for product in db.scalars(stmt).all()]

    stats = InventoryStats(
        total=len(items),
        in_stock=sum(1 for i in items if i.stock_status == IN_STOCK),
        low_stock=sum(1 for i in items if i.stock_status == LOW_STOCK),
        out_of_stock=sum(1 for i in items if i.stock_status == OUT_OF_STOCK),
        total_units=sum(i.total_stock for i in items),
    )
    if filter != "all":
        items = [i for i in items if i.stock_status == filter]
    offset = (page - 1) * limit
    return InventoryOverview(
        items=items[offset : offset + limit], stats=stats, pagination=Pagination.build(page, limit, len(items))
    )


@admin_router.get("/alerts", response_model=List[LowStockAlert], summary="Variants below their alert threshold")
def low_stock_alerts(db: Session = Depends(get_db)):
    thresholds = _thresholds(db)
    rows = db.execute(
        select(ProductVariant, Product.name)
        .join(Product, ProductVariant.product_id == Product.id)
        .where(ProductVariant.is_active.is_(True))
        .order_by(ProductVariant.stock)
    ).all()
    alerts = []
    for variant, product_name in rows:
        threshold = _variant_threshold(thresholds, variant)
        if variant.stock < threshold:
            alerts.append(
                LowStockAlert(
                    variant_id=variant.id,
                    product_id=variant.product_id,
                    product_name=product_name,
                    variant_sku=variant.sku,
                    size=variant.size,
                    color=variant.color,
                    stock=variant.stock,
                    threshold=threshold,
                )
            )
    return alerts


@admin_router.put("/alerts", response_model=ThresholdOut, summary="Set a low-stock threshold")
def set_alert_threshold(payload: ThresholdIn, db: Session = Depends(get_db)):
    """Upsert: one threshold per product, or per variant when a variant is given."""
    if db.get(Product, payload.product_id) is None:
        raise NotFoundError("Product not found")
    stmt = select(InventoryAlert).where(InventoryAlert.product_id == payload.product_id)
    if payload.variant_id:
        stmt = stmt.where(InventoryAlert.variant_id == payload.variant_id)
    else:
        stmt = stmt.where(InventoryAlert.variant_id.is_(None))
    alert = db.scalar(stmt)
    if alert is None:
        alert = InventoryAlert(product_id=payload.product_id, variant_id=payload.variant_id)
        db.add(alert)
    alert.threshold = payload.threshold
    db.commit()
    return alert


@admin_router.patch("/products/{product_id}", response_model=InventoryItem, summary="Set a product's in-stock flag")
def update_in_stock(product_id: uuid.UUID, payload: InStockUpdate, db: Session = Depends(get_db)):
    product = db.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    product.in_stock = payload.in_stock
    db.commit()
    return _item(product, _thresholds(db))


@admin_router.patch("/variants/{variant_id}", response_model=VariantOut, summary="Adjust a variant's stock")
def update_stock(variant_id: uuid.UUID, payload: StockUpdate, db: Session = Depends(get_db)):
    """Falling under the alert threshold records a low-stock notification."""
    variant = db.get(ProductVariant, variant_id)
    if variant is None:
        raise NotFoundError("Variant not found")
    before = variant.stock
    variant.stock = adjust_stock(before, payload.stock, payload.adjustment)
    threshold = _variant_threshold(_thresholds(db), variant)
    if variant.stock < threshold <= before:
        notifications.low_stock(db, variant.product.name, _variant_label(variant), variant.stock)
    db.commit()
    logger.info("Variant %s stock %s -> %s (%s)", variant.id, before, variant.stock, payload.adjustment)
    return variant


@admin_router.post("/variants/bulk", response_model=List[VariantOut], summary="Set stock for many variants")
def bulk_update_stock(payload: BulkStock, db: Session = Depends(get_db)):
    """Unknown variant ids are skipped."""
    updated = []
    for line in payload.updates:
        variant = db.get(ProductVariant, line.variant_id)
        if variant is None:
            continue
        variant.stock = line.stock
        updated.append(variant)
    db.commit()
    return updated
