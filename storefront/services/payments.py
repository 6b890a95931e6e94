"""
Razorpay payment gateway client.

Only the two calls checkout needs are implemented: creating a gateway order and
verifying the signature the checkout widget returns after payment.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Optional

import httpx

from storefront.core.config import Settings, get_settings
from storefront.core.errors import ConfigurationError, IntegrationError

logger = logging.getLogger(__name__)

RAZORPAY_API = "https://api.razorpay.com/v1"


def to_paise(amount: Decimal) -> int:
    """Gateway amounts are integer paise."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def signature_for(order_id: str, payment_id: str, secret: str) -> str:
    """Hex HMAC-SHA256 of `order_id|payment_id` keyed with the gateway secret."""
    body = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


class RazorpayClient:
    """Thin REST client; `transport` lets tests inject an httpx.MockTransport."""

    def __init__(self, settings: Optional[Settings] = None, transport: Optional[httpx.BaseTransport] = None):
        self.settings = settings or get_settings()
        self._transport = transport

    def _credentials(self) -> tuple:
        key_id = self.settings.razorpay_key_id
        secret = self.settings.razorpay_key_secret
        if not key_id or not secret:
            raise ConfigurationError(
                "Razorpay keys not configured. Please set RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET environment variables."
            )
        return key_id, secret

    # PUBLIC_INTERFACE
    def create_order(
        self,
        amount: Decimal,
        currency: str = "INR",
        receipt: Optional[str] = None,
        notes: Optional[Dict[str, str]] = None,
    ) -> dict:
        """Create a gateway order for `amount` (rupees). Returns the gateway JSON."""
        key_id, secret = self._credentials()
        payload = {"amount": to_paise(amount), "currency": currency, "receipt": receipt, "notes": notes or {}}
        try:
            with httpx.Client(base_url=RAZORPAY_API, auth=(key_id, secret), timeout=15, transport=self._transport) as client:
                response = client.post("/orders", json=payload)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPError as exc:
            logger.error("Razorpay order creation failed: %s", exc)
            raise IntegrationError("Failed to create payment order") from exc

    # PUBLIC_INTERFACE
    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Constant-time comparison against the expected signature."""
        if not self.settings.razorpay_key_secret:
            raise ConfigurationError("Razorpay key secret not configured")
        expected = signature_for(order_id, payment_id, self.settings.razorpay_key_secret)
        return hmac.compare_digest(expected, signature)


def get_payment_client() -> RazorpayClient:
    """FastAPI dependency; overridden in tests."""
    return RazorpayClient()
