"""Category and brand endpoints."""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import asc, select
from sqlalchemy.orm import Session

from storefront.api.deps import require_admin
from storefront.core.errors import BadRequestError, ConflictError, NotFoundError
from storefront.db.models import Brand, Category
from storefront.db.session import get_db
from storefront.schemas.catalog import (
    BrandIn,
    BrandOut,
    BrandUpdate,
    CategoryIn,
    CategoryOut,
    CategoryTree,
    CategoryUpdate,
)
from storefront.schemas.common import Message

categories = APIRouter(prefix="/api/categories", tags=["Categories"])
admin_categories = APIRouter(prefix="/api/admin/categories", tags=["Categories"], dependencies=[Depends(require_admin)])
brands = APIRouter(prefix="/api/brands", tags=["Brands"])
admin_brands = APIRouter(prefix="/api/admin/brands", tags=["Brands"], dependencies=[Depends(require_admin)])

_CATEGORY_ORDER = (asc(Category.sort_order), asc(Category.name))


def _tree(rows: List[Category]) -> List[CategoryTree]:
    children = {}
    for row in rows:
        if row.parent_id is not None:
            children.setdefault(row.parent_id, []).append(CategoryOut.model_validate(row))
    return [
        CategoryTree.model_validate(row).model_copy(update={"children": children.get(row.id, [])})
        for row in rows
        if row.parent_id is None
    ]


def _unique_slug(db: Session, model, label: str, slug: str, exclude_id=None) -> None:
    stmt = select(model.id).where(model.slug == slug)
    if exclude_id is not None:
        stmt = stmt.where(model.id != exclude_id)
    if db.scalar(stmt) is not None:
        raise ConflictError(f"A {label} with this slug already exists")


def _get(db: Session, model, item_id: uuid.UUID):
    item = db.get(model, item_id)
    if item is None:
        raise NotFoundError(f"{model.__name__} not found")
    return item


# Categories


@categories.get("", response_model=List[CategoryTree], summary="Active category tree")
def category_tree(db: Session = Depends(get_db)):
    rows = db.scalars(select(Category).where(Category.is_active.is_(True)).order_by(*_CATEGORY_ORDER)).all()
    return _tree(list(rows))


@categories.get("/roots", response_model=List[CategoryTree], summary="Root categories with children")
def root_categories(db: Session = Depends(get_db)):
    return category_tree(db)


@categories.get("/{slug}", response_model=CategoryTree, summary="Category by slug")
def category_by_slug(slug: str, db: Session = Depends(get_db)):
    category = db.scalar(select(Category).where(Category.slug == slug, Category.is_active.is_(True)))
    if category is None:
        raise NotFoundError("Category not found")
    children = db.scalars(
        select(Category).where(Category.parent_id == category.id, Category.is_active.is_(True)).order_by(*_CATEGORY_ORDER)
    ).all()
    return CategoryTree.model_validate(category).model_copy(
        update={"children": [CategoryOut.model_validate(c) for c in children]}
    )


@admin_categories.get("", response_model=List[CategoryOut], summary="All categories (flat)")
def admin_category_list(db: Session = Depends(get_db)):
    return db.scalars(select(Category).order_by(*_CATEGORY_ORDER)).all()


@admin_categories.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED, summary="Create a category")
def create_category(payload: CategoryIn, db: Session = Depends(get_db)):
    _unique_slug(db, Category, "category", payload.slug)
    if payload.parent_id is not None:
        _get(db, Category, payload.parent_id)
    category = Category(**payload.model_dump())
    db.add(category)
    db.commit()
    return category


@admin_categories.patch("/{category_id}", response_model=CategoryOut, summary="Update a category")
def update_category(category_id: uuid.UUID, payload: CategoryUpdate, db: Session = Depends(get_db)):
    category = _get(db, Category, category_id)
    values = payload.model_dump(exclude_unset=True)
    if values.get("slug"):
        _unique_slug(db, Category, "category", values["slug"], exclude_id=category.id)
    if values.get("parent_id") == category.id:
        raise BadRequestError("A category cannot be its own parent")
    for key, value in values.items():
        setattr(category, key, value)
    db.commit()
    return category


@admin_categories.delete("/{category_id}", response_model=Message, summary="Delete a category")
def delete_category(category_id: uuid.UUID, db: Session = Depends(get_db)):
    """Products and child categories keep existing with their category cleared."""
    db.delete(_get(db, Category, category_id))
    db.commit()
    return Message(message="Category deleted")


# Brands


@brands.get("", response_model=List[BrandOut], summary="Active brands")
def brand_list(db: Session = Depends(get_db)):
    return db.scalars(select(Brand).where(Brand.is_active.is_(True)).order_by(asc(Brand.name))).all()


@brands.get("/{slug}", response_model=BrandOut, summary="Brand by slug")
def brand_by_slug(slug: str, db: Session = Depends(get_db)):
    brand = db.scalar(select(Brand).where(Brand.slug == slug, Brand.is_active.is_(True)))
    if brand is None:
        raise NotFoundError("Brand not found")
    return brand


@admin_brands.get("", response_model=List[BrandOut], summary="All brands")
def admin_brand_list(db: Session = Depends(get_db)):
    return db.scalars(select(Brand).order_by(asc(Brand.name))).all()


@admin_brands.post("", response_model=BrandOut, status_code=status.HTTP_201_CREATED, summary="Create a brand")
def create_brand(payload: BrandIn, db: Session = Depends(get_db)):
    _unique_slug(db, Brand, "brand", payload.slug)
    brand = Brand(**payload.model_dump())
    db.add(brand)
    db.commit()
    return brand


@admin_brands.patch("/{brand_id}", response_model=BrandOut, summary="Update a brand")
def update_brand(brand_id: uuid.UUID, payload: BrandUpdate, db: Session = Depends(get_db)):
    brand = _get(db, Brand, brand_id)
    values = payload.model_dump(exclude_unset=True)
    if values.get("slug"):
        _unique_slug(db, Brand, "brand", values["slug"], exclude_id=brand.id)
    for key, value in values.items():
        setattr(brand, key, value)
    db.commit()
    return brand


@admin_brands.delete("/{brand_id}", response_model=Message, summary="Delete a brand")
def delete_brand(brand_id: uuid.UUID, db: Session = Depends(get_db)):
    db.delete(_get(db, Brand, brand_id))
    db.commit()
    return Message(message="Brand deleted")
