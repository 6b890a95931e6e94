"""Address book of the signed-in user."""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy import desc, select, update
from sqlalchemy.orm import Session

from storefront.api.deps import require_user
from storefront.core.errors import NotFoundError
from storefront.db.models import Address, User
from storefront.db.session import get_db
from storefront.schemas.account import AddressIn, AddressOut, AddressType, AddressUpdate
from storefront.schemas.common import Message

router = APIRouter(prefix="/api/addresses", tags=["Addresses"])


def _owned(db: Session, user: User, address_id: uuid.UUID) -> Address:
    address = db.scalar(select(Address).where(Address.id == address_id, Address.user_id == user.id))
    if address is None:
        raise NotFoundError("Address not found")
    return address


def _clear_defaults(db: Session, user: User, type_: str) -> None:
    db.execute(
        update(Address).where(Address.user_id == user.id, Address.type == type_).values(is_default=False)
    )


@router.get("", response_model=List[AddressOut], summary="My addresses")
def list_addresses(user: User = Depends(require_user), db: Session = Depends(get_db)):
    """Defaults first, then newest."""
    return db.scalars(
        select(Address).where(Address.user_id == user.id).order_by(desc(Address.is_default), desc(Address.created_at))
    ).all()


@router.get("/default", response_model=Optional[AddressOut], summary="My default address")
def default_address(
    type: Optional[AddressType] = None, user: User = Depends(require_user), db: Session = Depends(get_db)
):
    stmt = select(Address).where(Address.user_id == user.id, Address.is_default.is_(True))
    if type:
        stmt = stmt.where(Address.type == type)
    return db.scalars(stmt.limit(1)).first()


@router.get("/{address_id}", response_model=AddressOut, summary="Get an address")
def get_address(address_id: uuid.UUID, user: User = Depends(require_user), db: Session = Depends(get_db)):
    return _owned(db, user, address_id)


@router.post("", response_model=AddressOut, status_code=status.HTTP_201_CREATED, summary="Add an address")
def create_address(payload: AddressIn, user: User = Depends(require_user), db: Session = Depends(get_db)):
    """The first address of a type becomes its default; a new default clears the previous one."""
    first_of_type = (
        db.scalar(select(Address.id).where(Address.user_id == user.id, Address.type == payload.type).limit(1)) is None
    )
    if payload.is_default:
        _clear_defaults(db, user, payload.type)
    address = Address(user_id=user.id, **payload.model_dump(exclude={"is_default"}))
    address.is_default = payload.is_default or first_of_type
    db.add(address)
    db.commit()
    return address


@router.patch("/{address_id}", response_model=AddressOut, summary="Update an address")
def update_address(
    address_id: uuid.UUID, payload: AddressUpdate, user: User = Depends(require_user), db: Session = Depends(get_db)
):
    address = _owned(db, user, address_id)
    values = payload.model_dump(exclude_unset=True)
    if values.get("is_default"):
        _clear_defaults(db, user, values.get("type") or address.type)
    for key, value in values.items():
        setattr(address, key, value)
    db.commit()
    db.refresh(address)
    return address


@router.post("/{address_id}/default", response_model=AddressOut, summary="Make an address the default")
def set_default(address_id: uuid.UUID, user: User = Depends(require_user), db: Session = Depends(get_db)):
    address = _owned(db, user, address_id)
    _clear_defaults(db, user, address.type)
    address.is_default = True
    db.commit()
    db.refresh(address)
    return address


@router.delete("/{address_id}", response_model=Message, summary="Delete an address")
def delete_address(address_id: uuid.UUID, user: User = Depends(require_user), db: Session = Depends(get_db)):
    """Deleting the default promotes another address of the same type."""
    address = _owned(db, user, address_id)
    was_default, type_ = address.is_default, address.type
    db.delete(address)
    db.flush()
    if was_default:
        successor = db.scalar(
            select(Address)
            .where(Address.user_id == user.id, Address.type == type_)
            .order_by(desc(Address.created_at))
            .limit(1)
        )
        if successor is not None:
            successor.is_default = True
    db.commit()
    return Message(message="Address deleted")
