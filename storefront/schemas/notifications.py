"""Admin notification bodies."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from storefront.schemas.common import APIModel, Pagination

NotificationType = Literal["order", "inventory", "review", "return", "customer", "system"]


class NotificationIn(APIModel):
    type: NotificationType
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1)
    link: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class NotificationOut(APIModel):
    id: uuid.UUID
    type: NotificationType
    title: str
    message: str
    link: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="metadata_")
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class NotificationPage(APIModel):
    notifications: List[NotificationOut]
    pagination: Pagination


class UnreadCount(APIModel):
    count: int
