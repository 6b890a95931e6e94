"""Request/response models for auth, addresses and the admin customer screens."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import EmailStr, Field

from storefront.schemas.common import APIModel, Pagination

AddressType = Literal["shipping", "billing"]
Role = Literal["customer", "admin"]


class RegisterIn(APIModel):
    name: str = Field(min_length=2, max_length=255)
    email: EmailStr
    password: str = Field(min_length=6)


class LoginIn(APIModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UserOut(APIModel):
    id: uuid.UUID
    name: Optional[str] = None
    email: str
    phone: Optional[str] = None
    role: str
    image: Optional[str] = None
    created_at: datetime


class TokenOut(APIModel):
    token: str
    expires: datetime
    user: UserOut


class AddressIn(APIModel):
    type: AddressType = "shipping"
    full_name: str = Field(min_length=1, max_length=255)
    phone: str = Field(min_length=1, max_length=20)
    address_line_1: str = Field(min_length=1)
    address_line_2: Optional[str] = None
    city: str = Field(min_length=1, max_length=100)
    state: str = Field(min_length=1, max_length=100)
    pincode: str = Field(min_length=1, max_length=10)
    is_default: bool = False


class AddressUpdate(APIModel):
    type: Optional[AddressType] = None
    full_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    phone: Optional[str] = Field(default=None, min_length=1, max_length=20)
    address_line_1: Optional[str] = Field(default=None, min_length=1)
    address_line_2: Optional[str] = None
    city: Optional[str] = Field(default=None, min_length=1, max_length=100)
    state: Optional[str] = Field(default=None, min_length=1, max_length=100)
    pincode: Optional[str] = Field(default=None, min_length=1, max_length=10)
    is_default: Optional[bool] = None


class AddressOut(AddressIn):
    id: uuid.UUID
    created_at: datetime


# Admin customers


class CustomerRow(UserOut):
    tags: List[str] = []
    order_count: int = 0


class CustomerPage(APIModel):
    customers: List[CustomerRow]
    pagination: Pagination


class CustomerStats(APIModel):
    total_orders: int
    total_spent: Decimal
    average_order_value: Decimal


class CustomerOrderRow(APIModel):
    id: uuid.UUID
    order_number: str
    status: str
    payment_status: str
    total: Decimal
    created_at: datetime


class CustomerReviewRow(APIModel):
    id: uuid.UUID
    product_id: uuid.UUID
    rating: int
    title: Optional[str] = None
    is_approved: bool
    created_at: datetime


class CustomerDetail(UserOut):
    tags: List[str] = []
    admin_notes: Optional[str] = None
    addresses: List[AddressOut] = []
    orders: List[CustomerOrderRow] = []
    reviews: List[CustomerReviewRow] = []
    stats: CustomerStats


class RoleUpdate(APIModel):
    role: Role


class TagsUpdate(APIModel):
    tags: List[str]


class NotesUpdate(APIModel):
    notes: str
    append: bool = False


class BulkTags(APIModel):
    ids: List[uuid.UUID] = Field(min_length=1)
    tags: List[str]
    mode: Literal["replace", "add", "remove"] = "replace"


class UserStats(APIModel):
    total_customers: int
    new_this_month: int
    total_admins: int
