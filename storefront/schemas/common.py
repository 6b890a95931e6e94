"""
Shared Pydantic building blocks.

API bodies use camelCase keys (the bundled front end's convention) while Python
attributes stay snake_case; `populate_by_name` lets tests and internal callers use
either form.
"""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class APIModel(BaseModel):
    """Base model for request/response bodies."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    @field_validator("*", mode="after")
    @classmethod
    def _naive_utc(cls, value):
        # Columns store naive UTC; convert aware datetimes on the way in.
        if isinstance(value, datetime) and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


class Pagination(APIModel):
    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit) if limit else 0)


class IdList(APIModel):
    ids: List[uuid.UUID] = Field(min_length=1)


class Message(APIModel):
    success: bool = True
    message: Optional[str] = None


class CountResult(APIModel):
    success: bool = True
    count: int
