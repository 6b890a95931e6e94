"""
Media library: folders, assets and the image upload endpoint.

Folder `path` is the slash-joined slug chain from the root (`/banners/summer`). Sibling
folders may share a name, and with it a path, so the tree is always walked by `parent_id`.
"""

from __future__ import annotations

import logging
import re
import uuid
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy import asc, delete, desc, func, or_, select, update
from sqlalchemy.orm import Session, selectinload

from storefront.api.deps import require_admin
from storefront.core.errors import BadRequestError, NotFoundError
from storefront.db.models import MediaAsset, MediaFolder
from storefront.db.queries import contains, paginate
from storefront.db.session import get_db
from storefront.schemas.common import CountResult, IdList, Message, Pagination
from storefront.schemas.media import (
    AssetIn,
    AssetMove,
    AssetOut,
    AssetPage,
    AssetSort,
    AssetUpdate,
    Breadcrumb,
    FolderDetail,
    FolderIn,
    FolderMove,
    FolderOut,
    FolderRename,
    FolderRow,
    MediaStats,
    SortOrder,
    UploadOut,
)
from storefront.services.image_host import CloudinaryClient, get_image_host

logger = logging.getLogger(__name__)

admin_router = APIRouter(prefix="/api/admin/media", tags=["Media"], dependencies=[Depends(require_admin)])


def folder_slug(name: str) -> str:
    """Lower-case, non-alphanumerics collapsed to single dashes, no leading/trailing dash."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def _get_folder(db: Session, folder_id: uuid.UUID) -> MediaFolder:
    folder = db.get(MediaFolder, folder_id)
    if folder is None:
        raise NotFoundError("Folder not found")
    return folder


def _get_asset(db: Session, asset_id: uuid.UUID) -> MediaAsset:
    asset = db.scalar(select(MediaAsset).options(selectinload(MediaAsset.folder)).where(MediaAsset.id == asset_id))
    if asset is None:
        raise NotFoundError("Asset not found")
    return asset


def _descendants(db: Session, folder: MediaFolder) -> List[MediaFolder]:
    """Every folder below `folder`, walked level by level over `parent_id`."""
    found: List[MediaFolder] = []
    level = [folder.id]
    while level:
        children = db.scalars(select(MediaFolder).where(MediaFolder.parent_id.in_(level))).all()
        found.extend(children)
        level = [child.id for child in children]
    return found


def _repath(db: Session, folder: MediaFolder, new_path: str) -> None:
    """Give `folder` a new path and rebuild the paths of its descendants from their slugs."""
    folder.path = new_path
    for child in db.scalars(select(MediaFolder).where(MediaFolder.parent_id == folder.id)).all():
        _repath(db, child, f"{new_path}/{child.slug}")


def _child_path(db: Session, parent_id: Optional[uuid.UUID], slug: str) -> str:
    if parent_id is None:
        return f"/{slug}"
    return f"{_get_folder(db, parent_id).path}/{slug}"


def _check_target(db: Session, folder: MediaFolder, target_id: Optional[uuid.UUID]) -> None:
    if target_id is None:
        return
    if target_id == folder.id:
        raise BadRequestError("Cannot move folder into itself")
    _get_folder(db, target_id)
    if target_id in {child.id for child in _descendants(db, folder)}:
        raise BadRequestError("Cannot move folder into its own descendant")


# Folders


@admin_router.get("/folders", response_model=List[FolderRow], summary="List folders")
def list_folders(
    parent_id: Optional[uuid.UUID] = None,
    roots: bool = Query(False, description="Only top-level folders"),
    db: Session = Depends(get_db),
):
    """All folders, the children of `parent_id`, or (with `roots`) the top level, with asset and child counts."""
    stmt = select(MediaFolder).order_by(asc(MediaFolder.name))
    if parent_id is not None:
        stmt = stmt.where(MediaFolder.parent_id == parent_id)
    elif roots:
        stmt = stmt.where(MediaFolder.parent_id.is_(None))
    folders = db.scalars(stmt).all()

    ids = [f.id for f in folders]
    asset_counts: Dict[uuid.UUID, int] = {}
    child_counts: Dict[uuid.UUID, int] = {}
    if ids:
        asset_counts = dict(
            db.execute(
                select(MediaAsset.folder_id, func.count(MediaAsset.id))
                .where(MediaAsset.folder_id.in_(ids))
                .group_by(MediaAsset.folder_id)
            ).all()
        )
        child_counts = dict(
            db.execute(
                select(MediaFolder.parent_id, func.count(MediaFolder.id))
                .where(MediaFolder.parent_id.in_(ids))
                .group_by(MediaFolder.parent_id)
            ).all()
        )
    return [
        FolderRow.model_validate(f).model_copy(
            update={"asset_count": asset_counts.get(f.id, 0), "child_count": child_counts.get(f.id, 0)}
        )
        for f in folders
    ]


@admin_router.get("/folders/{folder_id}", response_model=FolderDetail, summary="Folder with breadcrumbs")
def get_folder(folder_id: uuid.UUID, db: Session = Depends(get_db)):
    folder = _get_folder(db, folder_id)
    breadcrumbs = []
    current: Optional[MediaFolder] = folder
    while current is not None:
        breadcrumbs.insert(0, Breadcrumb(id=current.id, name=current.name))
        current = current.parent
    return FolderDetail.model_validate(folder).model_copy(update={"breadcrumbs": breadcrumbs})


@admin_router.post("/folders", response_model=FolderOut, status_code=status.HTTP_201_CREATED, summary="Create a folder")
def create_folder(payload: FolderIn, db: Session = Depends(get_db)):
    slug = folder_slug(payload.name)
    if not slug:
        raise BadRequestError("Folder name must contain letters or digits")
    folder = MediaFolder(
        name=payload.name,
        slug=slug,
        parent_id=payload.parent_id,
        path=_child_path(db, payload.parent_id, slug),
    )
    db.add(folder)
    db.commit()
    return folder


@admin_router.patch("/folders/{folder_id}", response_model=FolderOut, summary="Rename a folder")
def rename_folder(folder_id: uuid.UUID, payload: FolderRename, db: Session = Depends(get_db)):
    folder = _get_folder(db, folder_id)
    slug = folder_slug(payload.name)
    if not slug:
        raise BadRequestError("Folder name must contain letters or digits")
    parent_path = folder.path.rsplit("/", 1)[0]
    _repath(db, folder, f"{parent_path}/{slug}")
    folder.name = payload.name
    folder.slug = slug
    db.commit()
    return folder


@admin_router.post("/folders/{folder_id}/move", response_model=FolderOut, summary="Move a folder")
def move_folder(folder_id: uuid.UUID, payload: FolderMove, db: Session = Depends(get_db)):
    folder = _get_folder(db, folder_id)
    _check_target(db, folder, payload.new_parent_id)
    _repath(db, folder, _child_path(db, payload.new_parent_id, folder.slug))
    folder.parent_id = payload.new_parent_id
    db.commit()
    return folder


@admin_router.delete("/folders/{folder_id}", response_model=Message, summary="Delete a folder")
def delete_folder(
    folder_id: uuid.UUID,
    move_contents: bool = Query(False, description="Keep the contents by moving them instead of deleting"),
    move_contents_to: Optional[uuid.UUID] = Query(None, description="Destination folder; empty means the root"),
    db: Session = Depends(get_db),
    image_host: CloudinaryClient = Depends(get_image_host),
):
    """
    Delete a folder. With `move_contents` its assets and child folders are re-homed under
    `move_contents_to`; otherwise the whole subtree is deleted, including the images on
    the image host. Images are destroyed only after the rows are committed.
    """
    folder = _get_folder(db, folder_id)
    public_ids: List[str] = []

    if move_contents:
        _check_target(db, folder, move_contents_to)
        target = _get_folder(db, move_contents_to) if move_contents_to is not None else None
        db.execute(update(MediaAsset).where(MediaAsset.folder_id == folder.id).values(folder_id=move_contents_to))
        for child in list(folder.children):
            _repath(db, child, _child_path(db, move_contents_to, child.slug))
            child.parent = target
        db.flush()
        db.expire(folder, ["children", "assets"])
    else:
        subtree = [folder.id] + [f.id for f in _descendants(db, folder)]
        public_ids = list(db.scalars(select(MediaAsset.public_id).where(MediaAsset.folder_id.in_(subtree))).all())
        db.execute(delete(MediaAsset).where(MediaAsset.folder_id.in_(subtree)))
        db.execute(delete(MediaFolder).where(MediaFolder.id.in_(subtree[1:])))

    db.delete(folder)
    db.commit()
    for public_id in public_ids:
        image_host.destroy(public_id)
    return Message(message="Folder deleted")


# Assets


@admin_router.get("/assets", response_model=AssetPage, summary="List assets")
def list_assets(
    folder_id: Optional[uuid.UUID] = None,
    root_only: bool = Query(False, description="Only assets outside any folder"),
    search: Optional[str] = None,
    mime_type: Optional[str] = Query(None, description="MIME prefix, e.g. `image`"),
    sort_by: AssetSort = "createdAt",
    sort_order: SortOrder = "desc",
    page: int = Query(1, ge=1),
    limit: int = Query(30, ge=1, le=100),
    db: Session = Depends(get_db),
):
    stmt = select(MediaAsset).options(selectinload(MediaAsset.folder))
    if folder_id is not None:
        stmt = stmt.where(MediaAsset.folder_id == folder_id)
    elif root_only:
        stmt = stmt.where(MediaAsset.folder_id.is_(None))
    if search:
        pattern = contains(search)
        stmt = stmt.where(
            or_(MediaAsset.name.ilike(pattern), MediaAsset.file_name.ilike(pattern), MediaAsset.alt_text.ilike(pattern))
        )
    if mime_type:
        stmt = stmt.where(MediaAsset.mime_type.ilike(f"{mime_type}%"))

    column = {"createdAt": MediaAsset.created_at, "name": MediaAsset.name, "size": MediaAsset.size}[sort_by]
    stmt = stmt.order_by(asc(column) if sort_order == "asc" else desc(column))
    rows, total = paginate(db, stmt, page, limit)
    return AssetPage(assets=[AssetOut.model_validate(a) for a in rows], pagination=Pagination.build(page, limit, total))


@admin_router.get("/assets/{asset_id}", response_model=AssetOut, summary="Get an asset")
def get_asset(asset_id: uuid.UUID, db: Session = Depends(get_db)):
    return _get_asset(db, asset_id)


@admin_router.post("/assets", response_model=AssetOut, status_code=status.HTTP_201_CREATED, summary="Record an asset")
def create_asset(payload: AssetIn, db: Session = Depends(get_db)):
    """Register an already uploaded image in the library."""
    if payload.folder_id is not None:
        _get_folder(db, payload.folder_id)
    values = payload.model_dump(exclude={"metadata"})
    asset = MediaAsset(**values, metadata_=payload.metadata)
    db.add(asset)
    db.commit()
    return _get_asset(db, asset.id)


@admin_router.patch("/assets/{asset_id}", response_model=AssetOut, summary="Update asset details")
def update_asset(asset_id: uuid.UUID, payload: AssetUpdate, db: Session = Depends(get_db)):
    asset = _get_asset(db, asset_id)
    values = payload.model_dump(exclude_unset=True)
    if values.get("folder_id") is not None:
        _get_folder(db, values["folder_id"])
    for key, value in values.items():
        setattr(asset, key, value)
    db.commit()
    db.refresh(asset)
    return asset


@admin_router.post("/assets/move", response_model=CountResult, summary="Move assets to a folder")
def move_assets(payload: AssetMove, db: Session = Depends(get_db)):
    if payload.folder_id is not None:
        _get_folder(db, payload.folder_id)
    result = db.execute(update(MediaAsset).where(MediaAsset.id.in_(payload.ids)).values(folder_id=payload.folder_id))
    db.commit()
    return CountResult(count=result.rowcount)


@admin_router.post("/assets/bulk-delete", response_model=CountResult, summary="Delete many assets")
def bulk_delete_assets(
    payload: IdList,
    db: Session = Depends(get_db),
    image_host: CloudinaryClient = Depends(get_image_host),
):
    assets = db.scalars(select(MediaAsset).where(MediaAsset.id.in_(payload.ids))).all()
    public_ids = [asset.public_id for asset in assets]
    for asset in assets:
        db.delete(asset)
    db.commit()
    for public_id in public_ids:
        image_host.destroy(public_id)
    return CountResult(count=len(public_ids))


@admin_router.delete("/assets/{asset_id}", response_model=Message, summary="Delete an asset")
def delete_asset(
    asset_id: uuid.UUID,
    db: Session = Depends(get_db),
    image_host: CloudinaryClient = Depends(get_image_host),
):
    """The library row is removed even when the image host refuses the delete."""
    asset = _get_asset(db, asset_id)
    public_id = asset.public_id
    db.delete(asset)
    db.commit()
    image_host.destroy(public_id)
    return Message(message="Asset deleted")


@admin_router.get("/stats", response_model=MediaStats, summary="Library counters")
def media_stats(db: Session = Depends(get_db)):
    return MediaStats(
        total_assets=db.scalar(select(func.count(MediaAsset.id))) or 0,
        total_folders=db.scalar(select(func.count(MediaFolder.id))) or 0,
        total_size=int(db.scalar(select(func.coalesce(func.sum(MediaAsset.size), 0))) or 0),
    )


# Upload


@admin_router.post("/upload", response_model=UploadOut, summary="Upload an image to the image host")
async def upload(
    file: UploadFile = File(...),
    folder: Optional[str] = Form(None),
    media_folder_id: Optional[uuid.UUID] = Form(None),
    save_asset: bool = Form(False),
    db: Session = Depends(get_db),
    image_host: CloudinaryClient = Depends(get_image_host),
):
    """
    Forward a multipart upload to the image host.

    `folder` is the image-host folder (CLOUDINARY_UPLOAD_FOLDER when empty). With
    `save_asset` the upload is also recorded as a media asset in `media_folder_id`.
    """
    content = await file.read()
    if not content:
        raise BadRequestError("No file provided")
    content_type = file.content_type or "application/octet-stream"
    result = image_host.upload(content, file.filename or "upload", content_type, folder=folder)

    asset = None
    if save_asset:
        if media_folder_id is not None:
            _get_folder(db, media_folder_id)
        name = (file.filename or result.public_id).rsplit(".", 1)[0]
        record = MediaAsset(
            name=name,
            file_name=file.filename or result.public_id,
            folder_id=media_folder_id,
            url=result.url,
            public_id=result.public_id,
            mime_type=content_type,
            format=result.format,
            size=result.bytes,
            width=result.width,
            height=result.height,
        )
        db.add(record)
        db.commit()
        asset = AssetOut.model_validate(_get_asset(db, record.id))
        logger.info("Recorded uploaded asset %s", result.public_id)

    return UploadOut(url=result.url, public_id=result.public_id, width=result.width, height=result.height, asset=asset)
