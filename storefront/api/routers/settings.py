"""Store settings: public reads and the admin settings screens."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.api.deps import require_admin
from storefront.db.models import Setting
from storefront.db.session import get_db
from storefront.schemas.settings import (
    PaymentSection,
    SeoSection,
    SettingsMap,
    SettingValue,
    ShippingSection,
    SocialSection,
    StoreSection,
)
from storefront.services.store_settings import get_value, put_value, shipping_settings, store_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/settings", tags=["Settings"])
admin_router = APIRouter(prefix="/api/admin/settings", tags=["Settings"], dependencies=[Depends(require_admin)])


def _save_section(db: Session, key: str, section: BaseModel) -> Dict[str, Any]:
    value = section.model_dump(mode="json", by_alias=True)
    put_value(db, key, value)
    db.commit()
    logger.info("Updated %s settings", key)
    return value


@router.get("/store", response_model=SettingsMap, summary="Store settings merged over defaults")
def get_store_settings(db: Session = Depends(get_db)):
    return store_settings(db)


@router.get("/shipping", response_model=SettingsMap, summary="Shipping settings merged over defaults")
def get_shipping_settings(db: Session = Depends(get_db)):
    return shipping_settings(db)


@router.get("", response_model=SettingsMap, summary="Several settings at once")
def get_multiple(keys: List[str] = Query(...), db: Session = Depends(get_db)):
    """Missing keys map to null."""
    return {key: get_value(db, key) for key in keys}


@router.get("/{key}", summary="One setting value (null when unset)")
def get_setting(key: str, db: Session = Depends(get_db)) -> Any:
    return get_value(db, key)


@admin_router.get("", response_model=SettingsMap, summary="All stored settings")
def all_settings(db: Session = Depends(get_db)):
    return {s.key: s.value for s in db.scalars(select(Setting).order_by(Setting.key)).all()}


@admin_router.put("/store", response_model=SettingsMap, summary="Update store settings")
def update_store(payload: StoreSection, db: Session = Depends(get_db)):
    return _save_section(db, "store", payload)


@admin_router.put("/social", response_model=SettingsMap, summary="Update social links")
def update_social(payload: SocialSection, db: Session = Depends(get_db)):
    return _save_section(db, "social", payload)


@admin_router.put("/seo", response_model=SettingsMap, summary="Update SEO defaults")
def update_seo(payload: SeoSection, db: Session = Depends(get_db)):
    return _save_section(db, "seo", payload)


@admin_router.put("/shipping", response_model=SettingsMap, summary="Update shipping settings")
def update_shipping(payload: ShippingSection, db: Session = Depends(get_db)):
    return _save_section(db, "shipping", payload)


@admin_router.put("/payment", response_model=SettingsMap, summary="Update payment settings")
def update_payment(payload: PaymentSection, db: Session = Depends(get_db)):
    return _save_section(db, "payment", payload)


@admin_router.post("", response_model=SettingValue, summary="Set any key")
def set_setting(payload: SettingValue, db: Session = Depends(get_db)):
    put_value(db, payload.key, payload.value)
    db.commit()
    return payload
