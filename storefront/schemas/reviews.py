"""Request/response models for product reviews."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from storefront.schemas.catalog import ProductReview
from storefront.schemas.common import APIModel, Pagination


class ReviewIn(APIModel):
    product_id: uuid.UUID
    rating: int = Field(ge=1, le=5)
    title: Optional[str] = Field(default=None, max_length=255)
    comment: Optional[str] = Field(default=None, max_length=2000)


class ReviewUpdate(APIModel):
    rating: int = Field(ge=1, le=5)
    title: Optional[str] = Field(default=None, max_length=255)
    comment: Optional[str] = Field(default=None, max_length=2000)


class ReviewOut(APIModel):
    id: uuid.UUID
    product_id: uuid.UUID
    user_id: uuid.UUID
    rating: int
    title: Optional[str] = None
    comment: Optional[str] = None
    is_approved: bool
    created_at: datetime
    updated_at: datetime


class ReviewStats(APIModel):
    average_rating: float
    total_reviews: int
    rating_distribution: Dict[int, int]


class ProductReviews(APIModel):
    reviews: List[ProductReview]
    stats: ReviewStats
    pagination: Pagination


class CanReview(APIModel):
    can_review: bool
    reason: Optional[str] = None
    review: Optional[ReviewOut] = None


class ReviewedProduct(APIModel):
    id: uuid.UUID
    name: str
    slug: str
    image: Optional[str] = None


class MyReview(ReviewOut):
    product: Optional[ReviewedProduct] = None


class ReviewAuthor(APIModel):
    id: uuid.UUID
    name: Optional[str] = None
    email: str


class AdminReview(ReviewOut):
    user: Optional[ReviewAuthor] = None
    product: Optional[ReviewedProduct] = None


class AdminReviewPage(APIModel):
    reviews: List[AdminReview]
    pagination: Pagination


class Approval(APIModel):
    is_approved: bool
