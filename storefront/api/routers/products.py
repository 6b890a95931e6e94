"""
Product catalog endpoints.

Public routes only expose active, published products whose visibility allows it;
admin routes (under /api/admin/products) see everything.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.responses import PlainTextResponse
from sqlalchemy import Select, asc, delete, desc, or_, select, update
from sqlalchemy.orm import Session, selectinload

from storefront.api.deps import require_admin
from storefront.core.errors import BadRequestError, ConflictError, NotFoundError
from storefront.db.base import utc_now
from storefront.db.models import Brand, Category, Product, ProductImage, ProductVariant, Review
from storefront.db.queries import contains, paginate
from storefront.db.session import get_db
from storefront.schemas.catalog import (
    BulkProductUpdate,
    CategoryProductPage,
    FilterOption,
    FilterOptions,
    ImportResult,
    ProductDetail,
    ProductImport,
    ProductIn,
    ProductPage,
    ProductReview,
    ProductSummary,
    ProductUpdate,
    SortBy,
)
from storefront.schemas.common import CountResult, IdList, Message, Pagination
from storefront.services import csv_io

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/products", tags=["Products"])
admin_router = APIRouter(prefix="/api/admin/products", tags=["Products"], dependencies=[Depends(require_admin)])

_LIST_OPTIONS = (selectinload(Product.images), selectinload(Product.category), selectinload(Product.brand))


def _published(now):
    return or_(Product.published_at.is_(None), Product.published_at <= now)


def _storefront_conditions(now) -> list:
    """Active, catalog-visible, published."""
    return [
        Product.is_active.is_(True),
        Product.visibility.in_(("visible", "catalog_only")),
        _published(now),
    ]


def _variant_filter(column, values: List[str]):
    return Product.id.in_(
        select(ProductVariant.product_id).where(column.in_(values), ProductVariant.is_active.is_(True))
    )


def _sorted(stmt: Select, sort_by: Optional[str]) -> Select:
    if sort_by == "price_asc":
        return stmt.order_by(asc(Product.base_price))
    if sort_by == "price_desc":
        return stmt.order_by(desc(Product.base_price))
    if sort_by == "name":
        return stmt.order_by(asc(Product.name))
    return stmt.order_by(desc(Product.created_at))


def _get_product(db: Session, product_id: uuid.UUID) -> Product:
    product = db.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def _ensure_slug_free(db: Session, slug: str, exclude_id: Optional[uuid.UUID] = None) -> None:
    stmt = select(Product.id).where(Product.slug == slug)
    if exclude_id is not None:
        stmt = stmt.where(Product.id != exclude_id)
    if db.scalar(stmt) is not None:
        raise ConflictError("A product with this slug already exists")


def _detail(db: Session, product: Product, active_variants_only: bool) -> ProductDetail:
    detail = ProductDetail.model_validate(product)
    if active_variants_only:
        detail.variants = [v for v in detail.variants if v.is_active]
    reviews = db.scalars(
        select(Review)
        .options(selectinload(Review.user))
        .where(Review.product_id == product.id, Review.is_approved.is_(True))
        .order_by(desc(Review.created_at))
        .limit(10)
    ).all()
    detail.reviews = [ProductReview.model_validate(r) for r in reviews]
    return detail


# Public


@router.get("", response_model=ProductPage, summary="List storefront products")
def list_products(
    category_id: Optional[uuid.UUID] = None,
    brand_id: Optional[uuid.UUID] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    search: Optional[str] = None,
    is_new: Optional[bool] = None,
    is_featured: Optional[bool] = None,
    sizes: Optional[List[str]] = Query(default=None),
    colors: Optional[List[str]] = Query(default=None),
    sort_by: Optional[SortBy] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=50),
    db: Session = Depends(get_db),
):
    """Filtered, sorted and paginated product listing; `pagination.total` counts the filtered set."""
    conditions = _storefront_conditions(utc_now())
    if category_id:
        conditions.append(Product.category_id == category_id)
    if brand_id:
        conditions.append(Product.brand_id == brand_id)
    if min_price is not None:
        conditions.append(Product.base_price >= min_price)
    if max_price is not None:
        conditions.append(Product.base_price <= max_price)
    if search:
        conditions.append(Product.name.ilike(contains(search)))
    if is_new is not None:
        conditions.append(Product.is_new.is_(is_new))
    if is_featured is not None:
        conditions.append(Product.is_featured.is_(is_featured))
    if sizes:
        conditions.append(_variant_filter(ProductVariant.size, sizes))
    if colors:
        conditions.append(_variant_filter(ProductVariant.color, colors))

    stmt = _sorted(select(Product).options(*_LIST_OPTIONS).where(*conditions), sort_by)
    rows, total = paginate(db, stmt, page, limit)
    return ProductPage(products=rows, pagination=Pagination.build(page, limit, total))


@router.get("/filter-options", response_model=FilterOptions, summary="Distinct sizes and colors")
def filter_options(
    category_id: Optional[uuid.UUID] = None,
    brand_id: Optional[uuid.UUID] = None,
    db: Session = Depends(get_db),
):
    conditions = [
        ProductVariant.is_active.is_(True),
        Product.is_active.is_(True),
        Product.visibility.in_(("visible", "catalog_only")),
    ]
    if category_id:
        conditions.append(Product.category_id == category_id)
    if brand_id:
        conditions.append(Product.brand_id == brand_id)

    sizes = db.scalars(
        select(ProductVariant.size)
        .join(Product, ProductVariant.product_id == Product.id)
        .where(*conditions, ProductVariant.size.is_not(None))
        .distinct()
        .order_by(ProductVariant.size)
    ).all()
    colors = db.execute(
        select(ProductVariant.color, ProductVariant.color_hex)
        .join(Product, ProductVariant.product_id == Product.id)
        .where(*conditions)
        .where(ProductVariant.color.is_not(None))
        .distinct()
        .order_by(ProductVariant.color)
    ).all()

    return FilterOptions(
        sizes=[FilterOption(value=s, label=s) for s in sizes if s],
        colors=[FilterOption(value=c, label=c, hex=h or None) for c, h in colors if c],
    )


@router.get("/featured", response_model=List[ProductSummary], summary="Featured products")
def featured(limit: int = Query(8, ge=1, le=20), db: Session = Depends(get_db)):
    stmt = (
        select(Product)
        .options(*_LIST_OPTIONS)
        .where(*_storefront_conditions(utc_now()), Product.is_featured.is_(True))
        .order_by(desc(Product.created_at))
        .limit(limit)
    )
    return db.scalars(stmt).all()


@router.get("/new-arrivals", response_model=List[ProductSummary], summary="New arrivals")
def new_arrivals(limit: int = Query(8, ge=1, le=20), db: Session = Depends(get_db)):
    stmt = (
        select(Product)
        .options(*_LIST_OPTIONS)
        .where(*_storefront_conditions(utc_now()), Product.is_new.is_(True))
        .order_by(desc(Product.created_at))
        .limit(limit)
    )
    return db.scalars(stmt).all()


@router.get("/search", response_model=List[ProductSummary], summary="Search products by name")
def search_products(
    query: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=20),
    db: Session = Depends(get_db),
):
    """Name search; search_only products are included here but not in the catalog listing."""
    stmt = (
        select(Product)
        .options(*_LIST_OPTIONS)
        .where(
            Product.is_active.is_(True),
            Product.visibility.in_(("visible", "catalog_only", "search_only")),
            _published(utc_now()),
            Product.name.ilike(contains(query)),
        )
        .order_by(asc(Product.name))
        .limit(limit)
    )
    return db.scalars(stmt).all()


@router.get("/by-category/{category_slug}", response_model=CategoryProductPage, summary="Products in a category")
def by_category(
    category_slug: str,
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=50),
    db: Session = Depends(get_db),
):
    category = db.scalar(select(Category).where(Category.slug == category_slug))
    if category is None:
        return CategoryProductPage(products=[], pagination=Pagination.build(1, limit, 0))

    stmt = (
        select(Product)
        .options(*_LIST_OPTIONS)
        .where(*_storefront_conditions(utc_now()), Product.category_id == category.id)
        .order_by(desc(Product.created_at))
    )
    rows, total = paginate(db, stmt, page, limit)
    return CategoryProductPage(category=category, products=rows, pagination=Pagination.build(page, limit, total))


@router.get("/{product_id}/similar", response_model=List[ProductSummary], summary="Products from the same category")
def similar(product_id: uuid.UUID, limit: int = Query(4, ge=1, le=10), db: Session = Depends(get_db)):
    product = db.get(Product, product_id)
    if product is None or product.category_id is None:
        return []
    stmt = (
        select(Product)
        .options(*_LIST_OPTIONS)
        .where(*_storefront_conditions(utc_now()), Product.category_id == product.category_id, Product.id != product_id)
        .order_by(desc(Product.created_at))
        .limit(limit)
    )
    return db.scalars(stmt).all()


@router.get("/{slug}", response_model=ProductDetail, summary="Product detail by slug")
def get_by_slug(slug: str, db: Session = Depends(get_db)):
    """Active product with images, active variants, category, brand and the latest approved reviews."""
    product = db.scalar(
        select(Product)
        .options(
            selectinload(Product.images),
            selectinload(Product.variants),
            selectinload(Product.category),
            selectinload(Product.brand),
        )
        .where(Product.slug == slug, Product.is_active.is_(True), Product.visibility != "hidden")
    )
    if product is None:
        raise NotFoundError("Product not found")
    return _detail(db, product, active_variants_only=True)


# Admin


@admin_router.get("", response_model=ProductPage, summary="Admin product list")
def admin_list(
    search: Optional[str] = None,
    category_id: Optional[uuid.UUID] = None,
    is_active: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    stmt = select(Product).options(*_LIST_OPTIONS).order_by(desc(Product.created_at))
    if search:
        stmt = stmt.where(or_(Product.name.ilike(contains(search)), Product.sku.ilike(contains(search))))
    if category_id:
        stmt = stmt.where(Product.category_id == category_id)
    if is_active is not None:
        stmt = stmt.where(Product.is_active.is_(is_active))
    rows, total = paginate(db, stmt, page, limit)
    return ProductPage(products=rows, pagination=Pagination.build(page, limit, total))


@admin_router.post("", response_model=ProductDetail, status_code=status.HTTP_201_CREATED, summary="Create a product")
def create_product(payload: ProductIn, db: Session = Depends(get_db)):
    """Create a product with its images and variants. A duplicate slug is rejected with 409."""
    _ensure_slug_free(db, payload.slug)
    data = payload.model_dump(exclude={"images", "variants"})
    product = Product(**data)
    product.images = [ProductImage(**img.model_dump()) for img in payload.images]
    product.variants = [ProductVariant(**v.model_dump()) for v in payload.variants]
    db.add(product)
    db.commit()
    logger.info("Created product %s (%s)", product.id, product.slug)
    return _detail(db, product, active_variants_only=False)


@admin_router.get("/export", summary="Export rows for CSV generation")
def export_rows(ids: Optional[List[uuid.UUID]] = Query(default=None), db: Session = Depends(get_db)):
    return _export_rows(db, ids)


@admin_router.get("/export.csv", response_class=PlainTextResponse, summary="Export products as CSV")
def export_csv(ids: Optional[List[uuid.UUID]] = Query(default=None), db: Session = Depends(get_db)):
    text = csv_io.to_csv(_export_rows(db, ids), csv_io.EXPORT_COLUMNS)
    filename = f"products-export-{utc_now().date().isoformat()}.csv"
    return PlainTextResponse(
        text, media_type="text/csv", headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@admin_router.get("/import-template", response_class=PlainTextResponse, summary="CSV import template")
def import_template():
    return PlainTextResponse(
        csv_io.template_csv(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="product-import-template.csv"'},
    )


@admin_router.post("/import", response_model=ImportResult, summary="Import parsed product rows")
def import_rows(payload: ProductImport, db: Session = Depends(get_db)):
    rows = [csv_io.ImportRow(**row.model_dump()) for row in payload.products]
    return _import(db, rows, ImportResult())


@admin_router.post("/import/csv", response_model=ImportResult, summary="Import products from an uploaded CSV file")
async def import_csv(file: UploadFile = File(...), db: Session = Depends(get_db)):
    raw = await file.read()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        raise BadRequestError("CSV file must be UTF-8 encoded")
    parsed = csv_io.parse_import(text)
    return _import(db, parsed.rows, ImportResult(errors=list(parsed.errors)))


@admin_router.post("/bulk-update", response_model=CountResult, summary="Bulk update product flags")
def bulk_update(payload: BulkProductUpdate, db: Session = Depends(get_db)):
    values = payload.data.model_dump(exclude_unset=True)
    if not values:
        raise BadRequestError("Nothing to update")
    values["updated_at"] = utc_now()
    db.execute(
        update(Product).where(Product.id.in_(payload.ids)).values(**values).execution_options(synchronize_session=False)
    )
    db.commit()
    return CountResult(count=len(payload.ids))


@admin_router.post("/bulk-delete", response_model=CountResult, summary="Bulk delete products")
def bulk_delete(payload: IdList, db: Session = Depends(get_db)):
    db.execute(delete(Product).where(Product.id.in_(payload.ids)).execution_options(synchronize_session=False))
    db.commit()
    logger.info("Bulk deleted %d products", len(payload.ids))
    return CountResult(count=len(payload.ids))


@admin_router.get("/{product_id}", response_model=ProductDetail, summary="Admin product detail")
def admin_get(product_id: uuid.UUID, db: Session = Depends(get_db)):
    return _detail(db, _get_product(db, product_id), active_variants_only=False)


@admin_router.patch("/{product_id}", response_model=ProductDetail, summary="Update a product")
def update_product(product_id: uuid.UUID, payload: ProductUpdate, db: Session = Depends(get_db)):
    product = _get_product(db, product_id)
    values = payload.model_dump(exclude_unset=True)
    if values.get("slug") and values["slug"] != product.slug:
        _ensure_slug_free(db, values["slug"], exclude_id=product.id)
    for key, value in values.items():
        setattr(product, key, value)
    db.commit()
    return _detail(db, product, active_variants_only=False)


@admin_router.delete("/{product_id}", response_model=Message, summary="Delete a product")
def delete_product(product_id: uuid.UUID, db: Session = Depends(get_db)):
    product = _get_product(db, product_id)
    db.delete(product)
    db.commit()
    logger.info("Deleted product %s", product_id)
    return Message(message="Product deleted")


@admin_router.post(
    "/{product_id}/duplicate",
    response_model=ProductDetail,
    status_code=status.HTTP_201_CREATED,
    summary="Duplicate a product",
)
def duplicate_product(product_id: uuid.UUID, db: Session = Depends(get_db)):
    """
    Copy a product as an inactive draft.

    The copy gets slug `<base>-copy-<n>`, SKUs suffixed with `-COPY` and variant stock reset to 0.
    """
    original = _get_product(db, product_id)
    base_slug = re.sub(r"-copy(-\d+)?$", "", original.slug)
    suffix = int(time.time() * 1000)
    while db.scalar(select(Product.id).where(Product.slug == f"{base_slug}-copy-{suffix}")) is not None:
        suffix += 1

    copy = Product(
        name=f"{original.name} (Copy)",
        slug=f"{base_slug}-copy-{suffix}",
        description=original.description,
        short_description=original.short_description,
        sku=f"{original.sku}-COPY" if original.sku else None,
        base_price=original.base_price,
        sale_price=original.sale_price,
        category_id=original.category_id,
        brand_id=original.brand_id,
        is_active=False,
        is_featured=original.is_featured,
        is_new=original.is_new,
        in_stock=original.in_stock,
        tags=list(original.tags or []),
        visibility=original.visibility,
        min_order_quantity=original.min_order_quantity,
        max_order_quantity=original.max_order_quantity,
    )
    copy.images = [
        ProductImage(url=i.url, alt_text=i.alt_text, sort_order=i.sort_order, is_primary=i.is_primary)
        for i in original.images
    ]
    copy.variants = [
        ProductVariant(
            sku=f"{v.sku}-COPY" if v.sku else None,
            size=v.size,
            color=v.color,
            color_hex=v.color_hex,
            price=v.price,
            stock=0,
            is_active=v.is_active,
        )
        for v in original.variants
    ]
    db.add(copy)
    db.commit()
    return _detail(db, copy, active_variants_only=False)


def _export_rows(db: Session, ids: Optional[List[uuid.UUID]]) -> List[dict]:
    stmt = select(Product).options(
        selectinload(Product.category), selectinload(Product.brand), selectinload(Product.variants)
    )
    if ids:
        stmt = stmt.where(Product.id.in_(ids))
    rows = []
    for p in db.scalars(stmt.order_by(desc(Product.created_at))).all():
        rows.append(
            {
                "id": str(p.id),
                "name": p.name,
                "slug": p.slug,
                "sku": p.sku,
                "description": p.description,
                "shortDescription": p.short_description,
                "basePrice": str(p.base_price),
                "salePrice": str(p.sale_price) if p.sale_price is not None else None,
                "category": p.category.name if p.category else "",
                "brand": p.brand.name if p.brand else "",
                "isActive": p.is_active,
                "isFeatured": p.is_featured,
                "isNew": p.is_new,
                "visibility": p.visibility,
                "minOrderQuantity": p.min_order_quantity,
                "maxOrderQuantity": p.max_order_quantity,
                "tags": ", ".join(p.tags or []),
                "totalStock": sum(v.stock for v in p.variants),
                "variantCount": len(p.variants),
                "createdAt": p.created_at.isoformat(),
                "updatedAt": p.updated_at.isoformat(),
            }
        )
    return rows


def _apply_stock(product: Product, stock: int) -> None:
    """Imported stock lands on the product's default (size/color-less) variant."""
    default = next((v for v in product.variants if v.size is None and v.color is None), None)
    if default is None:
        default = ProductVariant(sku=product.sku, stock=stock)
        product.variants.append(default)
    else:
        default.stock = stock
    product.in_stock = stock > 0


def _import(db: Session, rows: List[csv_io.ImportRow], result: ImportResult) -> ImportResult:
    """Upsert rows by slug; per-row problems are collected instead of aborting the import."""
    category_ids = set(db.scalars(select(Category.id)).all())
    brand_ids = set(db.scalars(select(Brand.id)).all())

    for row in rows:
        if row.category_id is not None and row.category_id not in category_ids:
            result.errors.append(f'Error with product "{row.name}": category {row.category_id} not found')
            continue
        if row.brand_id is not None and row.brand_id not in brand_ids:
            result.errors.append(f'Error with product "{row.name}": brand {row.brand_id} not found')
            continue

        values = {
            "name": row.name,
            "base_price": row.base_price,
            "sale_price": row.sale_price,
            "description": row.description,
            "category_id": row.category_id,
            "brand_id": row.brand_id,
            "sku": row.sku,
            "tags": row.tags,
            "is_active": row.is_active,
            "is_featured": row.is_featured,
            "is_new": row.is_new,
        }
        product = db.scalar(select(Product).where(Product.slug == row.slug))
        if product is None:
            product = Product(slug=row.slug, **values)
            db.add(product)
            result.created += 1
        else:
            for key, value in values.items():
                setattr(product, key, value)
            result.updated += 1
        if row.stock is not None:
            _apply_stock(product, row.stock)
        db.flush()

    db.commit()
    logger.info("Product import: %d created, %d updated, %d errors", result.created, result.updated, len(result.errors))
    return result
