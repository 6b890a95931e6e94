"""Product reviews: public listing with rating stats, customer reviews and moderation."""

from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session, selectinload

from storefront.api.deps import require_admin, require_user
from storefront.core.errors import BadRequestError, ForbiddenError, NotFoundError
from storefront.db.models import Order, OrderItem, Product, Review, User
from storefront.db.queries import paginate
from storefront.db.session import get_db
from storefront.schemas.catalog import ProductReview
from storefront.schemas.common import Message, Pagination
from storefront.schemas.reviews import (
    AdminReview,
    AdminReviewPage,
    Approval,
    CanReview,
    MyReview,
    ProductReviews,
    ReviewedProduct,
    ReviewIn,
    ReviewOut,
    ReviewStats,
    ReviewUpdate,
)
from storefront.services import notifications

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reviews", tags=["Reviews"])
admin_router = APIRouter(prefix="/api/admin/reviews", tags=["Reviews"], dependencies=[Depends(require_admin)])


def _has_purchased(db: Session, user_id: uuid.UUID, product_id: uuid.UUID) -> bool:
    """A paid order of the user contains the product."""
    stmt = (
        select(OrderItem.id)
        .join(Order, OrderItem.order_id == Order.id)
        .where(OrderItem.product_id == product_id, Order.user_id == user_id, Order.payment_status == "paid")
        .limit(1)
    )
    return db.scalar(stmt) is not None


def _own_review(db: Session, user_id: uuid.UUID, product_id: uuid.UUID) -> Optional[Review]:
    return db.scalar(select(Review).where(Review.product_id == product_id, Review.user_id == user_id))


def _product_ref(product: Optional[Product]) -> Optional[ReviewedProduct]:
    if product is None:
        return None
    return ReviewedProduct(
        id=product.id,
        name=product.name,
        slug=product.slug,
        image=product.images[0].url if product.images else None,
    )


@router.get("/product/{product_id}", response_model=ProductReviews, summary="Approved reviews of a product")
def product_reviews(
    product_id: uuid.UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
):
    """One page of approved reviews plus the average, total and 1-5 star distribution."""
    approved = (Review.product_id == product_id, Review.is_approved.is_(True))
    stmt = select(Review).options(selectinload(Review.user)).where(*approved).order_by(desc(Review.created_at))
    rows, total = paginate(db, stmt, page, limit)

    average = db.scalar(select(func.avg(Review.rating)).where(*approved))
    distribution = {rating: 0 for rating in range(1, 6)}
    for rating, count in db.execute(select(Review.rating, func.count(Review.id)).where(*approved).group_by(Review.rating)):
        distribution[rating] = int(count)

    return ProductReviews(
        reviews=[ProductReview.model_validate(r) for r in rows],
        stats=ReviewStats(
            average_rating=round(float(average), 2) if average is not None else 0.0,
            total_reviews=total,
            rating_distribution=distribution,
        ),
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/can-review/{product_id}", response_model=CanReview, summary="Whether the caller may review a product")
def can_review(product_id: uuid.UUID, user: User = Depends(require_user), db: Session = Depends(get_db)):
    existing = _own_review(db, user.id, product_id)
    if existing is not None:
        return CanReview(can_review=False, reason="already_reviewed", review=ReviewOut.model_validate(existing))
    if not _has_purchased(db, user.id, product_id):
        return CanReview(can_review=False, reason="not_purchased")
    return CanReview(can_review=True)


@router.post("", response_model=ReviewOut, status_code=status.HTTP_201_CREATED, summary="Review a purchased product")
def create_review(payload: ReviewIn, user: User = Depends(require_user), db: Session = Depends(get_db)):
    product = db.get(Product, payload.product_id)
    if product is None:
        raise NotFoundError("Product not found")
    if _own_review(db, user.id, product.id) is not None:
        raise BadRequestError("You have already reviewed this product")
    if not _has_purchased(db, user.id, product.id):
        raise ForbiddenError("You can only review products you have purchased")

    review = Review(
        product_id=product.id,
        user_id=user.id,
        rating=payload.rating,
        title=payload.title,
        comment=payload.comment,
        is_approved=True,
    )
    db.add(review)
    notifications.new_review(db, product.name, payload.rating)
    db.commit()
    return review


@router.get("/mine", response_model=List[MyReview], summary="My reviews")
def my_reviews(user: User = Depends(require_user), db: Session = Depends(get_db)):
    rows = db.scalars(
        select(Review)
        .options(selectinload(Review.product).selectinload(Product.images))
        .where(Review.user_id == user.id)
        .order_by(desc(Review.created_at))
    ).all()
    return [MyReview.model_validate(r).model_copy(update={"product": _product_ref(r.product)}) for r in rows]


@router.put("/{review_id}", response_model=ReviewOut, summary="Edit my review")
def update_review(
    review_id: uuid.UUID, payload: ReviewUpdate, user: User = Depends(require_user), db: Session = Depends(get_db)
):
    review = db.scalar(select(Review).where(Review.id == review_id, Review.user_id == user.id))
    if review is None:
        raise NotFoundError("Review not found")
    review.rating = payload.rating
    review.title = payload.title
    review.comment = payload.comment
    db.commit()
    return review


@router.delete("/{review_id}", response_model=Message, summary="Delete my review")
def delete_review(review_id: uuid.UUID, user: User = Depends(require_user), db: Session = Depends(get_db)):
    review = db.scalar(select(Review).where(Review.id == review_id, Review.user_id == user.id))
    if review is None:
        raise NotFoundError("Review not found")
    db.delete(review)
    db.commit()
    return Message(message="Review deleted")


@admin_router.get("", response_model=AdminReviewPage, summary="All reviews")
def admin_list(
    is_approved: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    stmt = (
        select(Review)
        .options(selectinload(Review.user), selectinload(Review.product).selectinload(Product.images))
        .order_by(desc(Review.created_at))
    )
    if is_approved is not None:
        stmt = stmt.where(Review.is_approved.is_(is_approved))
    rows, total = paginate(db, stmt, page, limit)
    return AdminReviewPage(
        reviews=[AdminReview.model_validate(r).model_copy(update={"product": _product_ref(r.product)}) for r in rows],
        pagination=Pagination.build(page, limit, total),
    )


@admin_router.patch("/{review_id}", response_model=ReviewOut, summary="Approve or hide a review")
def set_approval(review_id: uuid.UUID, payload: Approval, db: Session = Depends(get_db)):
    review = db.get(Review, review_id)
    if review is None:
        raise NotFoundError("Review not found")
    review.is_approved = payload.is_approved
    db.commit()
    return review


@admin_router.delete("/{review_id}", response_model=Message, summary="Delete any review")
def admin_delete(review_id: uuid.UUID, db: Session = Depends(get_db)):
    review = db.get(Review, review_id)
    if review is None:
        raise NotFoundError("Review not found")
    db.delete(review)
    db.commit()
    return Message(message="Review deleted")
