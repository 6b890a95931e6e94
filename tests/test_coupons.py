from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from storefront.core.errors import BadRequestError, NotFoundError
from storefront.db.models import Coupon
from storefront.services.coupons import check_coupon, compute_discount, coupon_status, normalize_code

NOW = datetime(2024, 6, 15, 12, 0, 0)


def _coupon(**fields) -> Coupon:
    values = {"code": "SAVE10", "type": "percentage", "value": Decimal("10"), "used_count": 0, "is_active": True}
    values.update(fields)
    return Coupon(**values)


@pytest.mark.parametrize(
    "fields, expected",
    [
        ({}, "active"),
        ({"is_active": False, "valid_until": NOW - timedelta(days=1)}, "inactive"),
        ({"valid_until": NOW - timedelta(days=1)}, "expired"),
        ({"valid_from": NOW + timedelta(days=1)}, "scheduled"),
        ({"usage_limit": 5, "used_count": 5}, "exhausted"),
    ],
)
def test_coupon_status(fields, expected):
    assert coupon_status(_coupon(**fields), NOW) == expected


def test_discount_is_capped():
    assert compute_discount(_coupon(max_discount=Decimal("50")), Decimal("1000")) == Decimal("50.00")
    assert compute_discount(_coupon(type="fixed", value=Decimal("300")), Decimal("200")) == Decimal("200.00")
    assert compute_discount(_coupon(), Decimal("999")) == Decimal("99.90")


def test_check_coupon_messages():
    with pytest.raises(NotFoundError):
        check_coupon(None, Decimal("100"), NOW)
    with pytest.raises(BadRequestError, match="Minimum order amount of ₹500 required"):
        check_coupon(_coupon(min_order_amount=Decimal("500.00")), Decimal("100"), NOW)
    with pytest.raises(BadRequestError, match="expired"):
        check_coupon(_coupon(valid_until=NOW - timedelta(seconds=1)), Decimal("100"), NOW)


def test_normalize_code():
    assert normalize_code(" sum mer20 ") == "SUMMER20"


def test_validate_endpoint(client, admin):
    created = client.post(
        "/api/admin/coupons", json={"code": "welcome", "type": "fixed", "value": "100"}, headers=admin["headers"]
    )
    assert created.status_code == 201
    assert created.json()["code"] == "WELCOME"

    result = client.post("/api/coupons/validate", json={"code": "Welcome", "orderTotal": "750"}).json()
    assert result["valid"] is True
    assert Decimal(result["discount"]) == Decimal("100")
    assert Decimal(result["newTotal"]) == Decimal("650")

    missing = client.post("/api/coupons/validate", json={"code": "NOPE", "orderTotal": "750"})
    assert missing.status_code == 404


def test_admin_rules(client, db, admin):
    duplicate = {"code": "FLAT50", "type": "fixed", "value": "50"}
    client.post("/api/admin/coupons", json=duplicate, headers=admin["headers"])
    assert client.post("/api/admin/coupons", json=duplicate, headers=admin["headers"]).status_code == 409

    too_big = client.post(
        "/api/admin/coupons", json={"code": "HALFOFF", "type": "percentage", "value": "150"}, headers=admin["headers"]
    )
    assert too_big.status_code == 400

    used = Coupon(code="USED", type="fixed", value=Decimal("10"), used_count=1)
    db.add(used)
    db.commit()
    response = client.delete(f"/api/admin/coupons/{used.id}", headers=admin["headers"])
    assert response.status_code == 400
    assert "Deactivate it instead" in response.json()["error"]["message"]

    toggled = client.post(f"/api/admin/coupons/{used.id}/toggle", headers=admin["headers"]).json()
    assert toggled["isActive"] is False
    assert toggled["status"] == "inactive"

    stats = client.get("/api/admin/coupons/stats", headers=admin["headers"]).json()
    assert stats == {"total": 2, "active": 1, "expired": 0, "totalUsage": 1}
