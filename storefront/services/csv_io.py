"""
CSV interchange: product export, import parsing and the import template, plus the
order and customer export layouts.

Parsing is lenient per row: a bad row is reported with its line number and the rest
of the file is still imported.
"""

from __future__ import annotations

import csv
import io
import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

EXPORT_COLUMNS = [
    "id",
    "name",
    "slug",
    "sku",
    "description",
    "shortDescription",
    "basePrice",
    "salePrice",
    "category",
    "brand",
    "isActive",
    "isFeatured",
    "isNew",
    "visibility",
    "minOrderQuantity",
    "maxOrderQuantity",
    "tags",
    "totalStock",
    "variantCount",
    "createdAt",
    "updatedAt",
]

IMPORT_COLUMNS = [
    "name",
    "slug",
    "description",
    "basePrice",
    "salePrice",
    "categoryId",
    "brandId",
    "sku",
    "stock",
    "tags",
    "isActive",
    "isFeatured",
    "isNew",
]

ORDER_EXPORT_COLUMNS = [
    "orderNumber",
    "customerName",
    "customerEmail",
    "status",
    "paymentStatus",
    "paymentMethod",
    "subtotal",
    "discount",
    "shippingCost",
    "total",
    "itemCount",
    "trackingNumber",
    "shippingCity",
    "shippingState",
    "createdAt",
    "shippedAt",
    "deliveredAt",
]

CUSTOMER_EXPORT_COLUMNS = ["id", "name", "email", "phone", "role", "tags", "totalOrders", "totalSpent", "createdAt"]

TEMPLATE_ROW = {
    "name": "Sample Product",
    "slug": "sample-product",
    "description": "This is a sample product description",
    "basePrice": "999",
    "salePrice": "799",
    "categoryId": "",
    "brandId": "",
    "sku": "SKU001",
    "stock": "100",
    "tags": "tag1,tag2,tag3",
    "isActive": "true",
    "isFeatured": "false",
    "isNew": "true",
}


@dataclass
class ImportRow:
    """One product parsed from an import file."""

    name: str
    slug: str
    base_price: Decimal
    sale_price: Optional[Decimal] = None
    description: Optional[str] = None
    category_id: Optional[uuid.UUID] = None
    brand_id: Optional[uuid.UUID] = None
    sku: Optional[str] = None
    stock: Optional[int] = None
    tags: List[str] = field(default_factory=list)
    is_active: bool = False
    is_featured: bool = False
    is_new: bool = False


@dataclass
class ParseResult:
    rows: List[ImportRow] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def _flag(value: Optional[str]) -> bool:
    return (value or "").strip() in ("true", "1")


def _optional(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


def _decimal(value: str, column: str) -> Decimal:
    try:
        return Decimal(value.strip())
    except (InvalidOperation, AttributeError):
        raise ValueError(f"invalid {column} {value!r}")


def _uuid(value: Optional[str], column: str) -> Optional[uuid.UUID]:
    value = _optional(value)
    if value is None:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        raise ValueError(f"invalid {column} {value!r}")


def split_tags(value: Optional[str]) -> List[str]:
    """Comma-separated tags, trimmed, empties dropped."""
    if not value:
        return []
    return [tag.strip() for tag in value.split(",") if tag.strip()]


def parse_row(row: Dict[str, Optional[str]]) -> ImportRow:
    """Convert one CSV record; raises ValueError describing the first bad column."""
    name = _optional(row.get("name"))
    slug = _optional(row.get("slug"))
    price = _optional(row.get("basePrice"))
    if name is None:
        raise ValueError("name is required")
    if slug is None:
        raise ValueError("slug is required")
    if price is None:
        raise ValueError("basePrice is required")

    base_price = _decimal(price, "basePrice")
    if base_price < 0:
        raise ValueError("basePrice must not be negative")
    sale = _optional(row.get("salePrice"))
    stock_raw = _optional(row.get("stock"))
    try:
        stock = int(stock_raw) if stock_raw is not None else 0
    except ValueError:
        raise ValueError(f"invalid stock {stock_raw!r}")
    if stock < 0:
        raise ValueError("stock must not be negative")

    return ImportRow(
        name=name,
        slug=slug,
        base_price=base_price,
        sale_price=_decimal(sale, "salePrice") if sale is not None else None,
        description=_optional(row.get("description")),
        category_id=_uuid(row.get("categoryId"), "categoryId"),
        brand_id=_uuid(row.get("brandId"), "brandId"),
        sku=_optional(row.get("sku")),
        stock=stock,
        tags=split_tags(row.get("tags")),
        is_active=_flag(row.get("isActive")),
        is_featured=_flag(row.get("isFeatured")),
        is_new=_flag(row.get("isNew")),
    )


# PUBLIC_INTERFACE
def parse_import(text: str) -> ParseResult:
    """Parse an import file (header row required). Line numbers count the header as line 1."""
    result = ParseResult()
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    if not reader.fieldnames:
        result.errors.append("CSV file is empty")
        return result

    for record in reader:
        if not any((value or "").strip() for value in record.values() if isinstance(value, str)):
            continue
        try:
            result.rows.append(parse_row(record))
        except ValueError as exc:
            result.errors.append(f"Line {reader.line_num}: {exc}")
    return result


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return value


def to_csv(rows: Iterable[Dict[str, Any]], columns: List[str]) -> str:
    """Render dict rows to CSV text with a header row."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=columns, extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({key: _cell(row.get(key)) for key in columns})
    return buffer.getvalue()


def template_csv() -> str:
    return to_csv([TEMPLATE_ROW], IMPORT_COLUMNS)
