"""Request/response models for products, categories and brands."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import Field

from storefront.schemas.common import APIModel, Pagination

Visibility = Literal["visible", "hidden", "catalog_only", "search_only"]
SortBy = Literal["price_asc", "price_desc", "newest", "name"]


# Categories / brands


class CategoryIn(APIModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    image: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None
    sort_order: int = 0
    is_active: bool = True


class CategoryUpdate(APIModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    image: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class CategoryRef(APIModel):
    id: uuid.UUID
    name: str
    slug: str


class CategoryOut(CategoryRef):
    description: Optional[str] = None
    image: Optional[str] = None
    parent_id: Optional[uuid.UUID] = None
    sort_order: int
    is_active: bool
    created_at: datetime


class CategoryTree(CategoryOut):
    children: List[CategoryOut] = []


class BrandIn(APIModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=255)
    logo: Optional[str] = None
    is_active: bool = True


class BrandUpdate(APIModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=255)
    logo: Optional[str] = None
    is_active: Optional[bool] = None


class BrandRef(APIModel):
    id: uuid.UUID
    name: str
    slug: str


class BrandOut(BrandRef):
    logo: Optional[str] = None
    is_active: bool
    created_at: datetime


# Products


class ImageIn(APIModel):
    url: str = Field(min_length=1)
    alt_text: Optional[str] = None
    is_primary: bool = False
    sort_order: int = 0


class ImageOut(ImageIn):
    id: uuid.UUID


class VariantIn(APIModel):
    sku: Optional[str] = None
    size: Optional[str] = None
    color: Optional[str] = None
    color_hex: Optional[str] = Field(default=None, max_length=7)
    price: Optional[Decimal] = Field(default=None, gt=0)
    stock: int = Field(default=0, ge=0)
    is_active: bool = True


class VariantOut(VariantIn):
    id: uuid.UUID
    product_id: uuid.UUID


class ProductIn(APIModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    short_description: Optional[str] = None
    sku: Optional[str] = None
    base_price: Decimal = Field(gt=0)
    sale_price: Optional[Decimal] = Field(default=None, gt=0)
    category_id: Optional[uuid.UUID] = None
    brand_id: Optional[uuid.UUID] = None
    is_active: bool = True
    is_featured: bool = False
    is_new: bool = True
    in_stock: bool = True
    tags: List[str] = []
    visibility: Visibility = "visible"
    min_order_quantity: int = Field(default=1, ge=1)
    max_order_quantity: Optional[int] = Field(default=None, ge=1)
    published_at: Optional[datetime] = None
    images: List[ImageIn] = []
    variants: List[VariantIn] = []


class ProductUpdate(APIModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    short_description: Optional[str] = None
    sku: Optional[str] = None
    base_price: Optional[Decimal] = Field(default=None, gt=0)
    sale_price: Optional[Decimal] = Field(default=None, gt=0)
    category_id: Optional[uuid.UUID] = None
    brand_id: Optional[uuid.UUID] = None
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None
    is_new: Optional[bool] = None
    in_stock: Optional[bool] = None
    tags: Optional[List[str]] = None
    visibility: Optional[Visibility] = None
    min_order_quantity: Optional[int] = Field(default=None, ge=1)
    max_order_quantity: Optional[int] = Field(default=None, ge=1)
    published_at: Optional[datetime] = None


class ProductSummary(APIModel):
    id: uuid.UUID
    name: str
    slug: str
    sku: Optional[str] = None
    short_description: Optional[str] = None
    base_price: Decimal
    sale_price: Optional[Decimal] = None
    is_active: bool
    is_featured: bool
    is_new: bool
    in_stock: bool
    visibility: str
    tags: List[str] = []
    created_at: datetime
    images: List[ImageOut] = []
    category: Optional[CategoryRef] = None
    brand: Optional[BrandRef] = None


class ReviewerRef(APIModel):
    id: uuid.UUID
    name: Optional[str] = None
    image: Optional[str] = None


class ProductReview(APIModel):
    id: uuid.UUID
    rating: int
    title: Optional[str] = None
    comment: Optional[str] = None
    created_at: datetime
    user: Optional[ReviewerRef] = None


class ProductDetail(ProductSummary):
    description: Optional[str] = None
    min_order_quantity: int
    max_order_quantity: Optional[int] = None
    published_at: Optional[datetime] = None
    updated_at: datetime
    variants: List[VariantOut] = []
    category: Optional[CategoryOut] = None
    brand: Optional[BrandOut] = None
    reviews: List[ProductReview] = []


class ProductPage(APIModel):
    products: List[ProductSummary]
    pagination: Pagination


class CategoryProductPage(ProductPage):
    category: Optional[CategoryOut] = None


class FilterOption(APIModel):
    value: str
    label: str
    hex: Optional[str] = None


class FilterOptions(APIModel):
    sizes: List[FilterOption]
    colors: List[FilterOption]


class BulkProductData(APIModel):
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None
    is_new: Optional[bool] = None
    visibility: Optional[Visibility] = None
    category_id: Optional[uuid.UUID] = None
    brand_id: Optional[uuid.UUID] = None


class BulkProductUpdate(APIModel):
    ids: List[uuid.UUID] = Field(min_length=1)
    data: BulkProductData


class ImportResult(APIModel):
    created: int = 0
    updated: int = 0
    errors: List[str] = []


class ProductImportRow(APIModel):
    name: str = Field(min_length=1)
    slug: str = Field(min_length=1)
    base_price: Decimal = Field(ge=0)
    sale_price: Optional[Decimal] = Field(default=None, ge=0)
    description: Optional[str] = None
    category_id: Optional[uuid.UUID] = None
    brand_id: Optional[uuid.UUID] = None
    sku: Optional[str] = None
    stock: Optional[int] = Field(default=None, ge=0)
    tags: List[str] = []
    is_active: bool = True
    is_featured: bool = False
    is_new: bool = True


class ProductImport(APIModel):
    products: List[ProductImportRow]
