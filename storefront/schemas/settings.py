"""Validated settings sections. Stored as JSON under their section key with camelCase keys."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import EmailStr, Field, field_validator, model_validator

from storefront.schemas.common import APIModel


def _url_or_blank(value: Optional[str]) -> Optional[str]:
    if value and not value.startswith(("http://", "https://")):
        raise ValueError("must be an http(s) URL")
    return value


class StoreSection(APIModel):
    store_name: str = Field(min_length=1, max_length=100)
    store_email: EmailStr
    store_phone: Optional[str] = None
    store_address: Optional[str] = None
    currency: str = "INR"
    currency_symbol: str = "₹"
    tax_rate: float = Field(default=0, ge=0, le=100)
    free_shipping_threshold: Optional[float] = Field(default=None, ge=0)
    default_shipping_cost: float = Field(default=0, ge=0)


class SocialSection(APIModel):
    facebook: Optional[str] = None
    instagram: Optional[str] = None
    twitter: Optional[str] = None
    youtube: Optional[str] = None
    pinterest: Optional[str] = None

    _urls = field_validator("facebook", "instagram", "twitter", "youtube", "pinterest")(_url_or_blank)


class SeoSection(APIModel):
    meta_title: Optional[str] = Field(default=None, max_length=70)
    meta_description: Optional[str] = Field(default=None, max_length=160)
    meta_keywords: Optional[str] = None
    og_image: Optional[str] = None
    google_analytics_id: Optional[str] = None

    _og_image = field_validator("og_image")(_url_or_blank)


class DeliveryDays(APIModel):
    min: int = Field(default=3, ge=1)
    max: int = Field(default=7, ge=1)

    @model_validator(mode="after")
    def _ordered(self):
        if self.min > self.max:
            raise ValueError("min delivery days cannot exceed max")
        return self


class ShippingSection(APIModel):
    enable_free_shipping: bool = True
    free_shipping_minimum: float = Field(default=999, ge=0)
    flat_rate: float = Field(default=49, ge=0)
    estimated_delivery_days: DeliveryDays = Field(default_factory=DeliveryDays)
    enable_cod: bool = Field(default=True, alias="enableCOD")
    cod_extra_charge: float = Field(default=0, ge=0)


class PaymentSection(APIModel):
    razorpay_enabled: bool = True
    cod_enabled: bool = True
    test_mode: bool = False


class SettingValue(APIModel):
    key: str = Field(min_length=1, max_length=100)
    value: Any = None


SettingsMap = Dict[str, Any]
