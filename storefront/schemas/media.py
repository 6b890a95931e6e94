"""Request/response models for the media library."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from storefront.schemas.common import APIModel, Pagination


class FolderIn(APIModel):
    name: str = Field(min_length=1, max_length=255)
    parent_id: Optional[uuid.UUID] = None


class FolderRename(APIModel):
    name: str = Field(min_length=1, max_length=255)


class FolderMove(APIModel):
    new_parent_id: Optional[uuid.UUID] = None


class FolderOut(APIModel):
    id: uuid.UUID
    name: str
    slug: str
    parent_id: Optional[uuid.UUID] = None
    path: str
    created_at: datetime
    updated_at: datetime


class FolderRow(FolderOut):
    asset_count: int = 0
    child_count: int = 0


class Breadcrumb(APIModel):
    id: uuid.UUID
    name: str


class FolderDetail(FolderOut):
    parent: Optional[FolderOut] = None
    children: List[FolderOut] = []
    breadcrumbs: List[Breadcrumb] = []


class AssetIn(APIModel):
    name: str = Field(min_length=1, max_length=255)
    file_name: str = Field(min_length=1, max_length=255)
    alt_text: Optional[str] = Field(default=None, max_length=500)
    caption: Optional[str] = None
    folder_id: Optional[uuid.UUID] = None
    url: str = Field(min_length=1)
    public_id: str = Field(min_length=1)
    mime_type: str = Field(min_length=1)
    format: str = Field(min_length=1)
    size: int = Field(ge=0)
    width: Optional[int] = None
    height: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None


class AssetUpdate(APIModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    alt_text: Optional[str] = Field(default=None, max_length=500)
    caption: Optional[str] = None
    folder_id: Optional[uuid.UUID] = None


class AssetMove(APIModel):
    ids: List[uuid.UUID] = Field(min_length=1)
    folder_id: Optional[uuid.UUID] = None


class AssetOut(APIModel):
    id: uuid.UUID
    name: str
    file_name: str
    alt_text: Optional[str] = None
    caption: Optional[str] = None
    folder_id: Optional[uuid.UUID] = None
    url: str
    public_id: str
    mime_type: str
    format: str
    size: int
    width: Optional[int] = None
    height: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="metadata_")
    folder: Optional[FolderOut] = None
    created_at: datetime
    updated_at: datetime


class AssetPage(APIModel):
    assets: List[AssetOut]
    pagination: Pagination


class MediaStats(APIModel):
    total_assets: int
    total_folders: int
    total_size: int


class UploadOut(APIModel):
    url: str
    public_id: str
    width: Optional[int] = None
    height: Optional[int] = None
    asset: Optional[AssetOut] = None


AssetSort = Literal["createdAt", "name", "size"]
SortOrder = Literal["asc", "desc"]
