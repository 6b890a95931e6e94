import hashlib
import hmac
from decimal import Decimal

import httpx
import pytest

from storefront.core.config import Settings
from storefront.core.errors import ConfigurationError, IntegrationError
from storefront.services.image_host import CloudinaryClient, sign_params
from storefront.services.payments import RazorpayClient, signature_for, to_paise


def _settings(**values) -> Settings:
    return Settings(database_url="sqlite://", **values)


def test_to_paise_rounds_half_up():
    assert to_paise(Decimal("549.00")) == 54900
    assert to_paise(Decimal("10.005")) == 1001


def test_signature_for_is_hmac_sha256():
    expected = hmac.new(b"secret", b"order_1|pay_1", hashlib.sha256).hexdigest()
    assert signature_for("order_1", "pay_1", "secret") == expected


def test_verify_signature():
    client = RazorpayClient(_settings(razorpay_key_id="k", razorpay_key_secret="s"))
    assert client.verify_signature("o", "p", signature_for("o", "p", "s")) is True
    assert client.verify_signature("o", "p", signature_for("o", "p", "other")) is False


def test_create_order_sends_paise_with_basic_auth():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"id": "order_x", "amount": 54900, "currency": "INR"})

    settings = _settings(razorpay_key_id="k", razorpay_key_secret="s")
    client = RazorpayClient(settings, transport=httpx.MockTransport(handler))
    assert client.create_order(Decimal("549"), receipt="ORD-1")["id"] == "order_x"
    assert seen[0].headers["authorization"].startswith("Basic ")
    assert b'"amount":54900' in seen[0].content.replace(b" ", b"")


def test_gateway_failures():
    client = RazorpayClient(_settings(razorpay_key_id="", razorpay_key_secret=""))
    with pytest.raises(ConfigurationError):
        client.create_order(Decimal("1"))

    failing = RazorpayClient(
        _settings(razorpay_key_id="k", razorpay_key_secret="s"),
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )
    with pytest.raises(IntegrationError):
        failing.create_order(Decimal("1"))


def test_sign_params_skips_empty_values():
    digest = sign_params({"timestamp": 1700000000, "folder": "products", "public_id": None}, "abc")
    assert digest == hashlib.sha1(b"folder=products&timestamp=1700000000abc").hexdigest()


def test_destroy_reports_failure_without_raising():
    settings = _settings(cloudinary_cloud_name="demo", cloudinary_api_key="1", cloudinary_api_secret="s")
    host = CloudinaryClient(settings, transport=httpx.MockTransport(lambda request: httpx.Response(502)))
    assert host.destroy("products/shoe") is False
    assert CloudinaryClient(_settings()).destroy("products/shoe") is False
