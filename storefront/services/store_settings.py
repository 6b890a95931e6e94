"""Key/value settings access with the storefront defaults merged in."""

from __future__ import annotations

from typing import Any, Dict

from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.db.models import Setting

STORE_DEFAULTS: Dict[str, Any] = {
    "storeName": "STORE",
    "storeEmail": "support@store.com",
    "storePhone": "",
    "storeAddress": "",
    "currency": "INR",
    "currencySymbol": "₹",
    "taxRate": 0,
    "freeShippingThreshold": 999,
    "defaultShippingCost": 49,
}

SHIPPING_DEFAULTS: Dict[str, Any] = {
    "enableFreeShipping": True,
    "freeShippingMinimum": 999,
    "flatRate": 49,
    "estimatedDeliveryDays": {"min": 3, "max": 7},
    "enableCOD": True,
    "codExtraCharge": 0,
}


def get_value(db: Session, key: str) -> Any:
    setting = db.scalar(select(Setting).where(Setting.key == key))
    return setting.value if setting is not None else None


# PUBLIC_INTERFACE
def put_value(db: Session, key: str, value: Any) -> Setting:
    """Insert or replace the JSON value stored under `key` (caller commits)."""
    setting = db.scalar(select(Setting).where(Setting.key == key))
    if setting is None:
        setting = Setting(key=key, value=value)
        db.add(setting)
    else:
        setting.value = value
    return setting


def _merged(db: Session, key: str, defaults: Dict[str, Any]) -> Dict[str, Any]:
    stored = get_value(db, key)
    return {**defaults, **(stored if isinstance(stored, dict) else {})}


def store_settings(db: Session) -> Dict[str, Any]:
    return _merged(db, "store", STORE_DEFAULTS)


def shipping_settings(db: Session) -> Dict[str, Any]:
    return _merged(db, "shipping", SHIPPING_DEFAULTS)
