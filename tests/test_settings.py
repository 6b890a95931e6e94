from decimal import Decimal

from conftest import make_product, order_payload

STORE = {"storeName": "Kurta Co", "storeEmail": "hello@kurta.example", "taxRate": 18}


def test_public_reads_merge_defaults(client):
    store = client.get("/api/settings/store").json()
    assert store["currency"] == "INR"
    shipping = client.get("/api/settings/shipping").json()
    assert shipping["enableCOD"] is True
    assert shipping["estimatedDeliveryDays"] == {"min": 3, "max": 7}
    assert client.get("/api/settings/unknown").json() is None


def test_sections_are_validated_and_stored_camel_case(client, admin):
    saved = client.put("/api/admin/settings/store", json=STORE, headers=admin["headers"])
    assert saved.status_code == 200
    assert saved.json()["taxRate"] == 18
    assert client.get("/api/settings/store").json()["storeName"] == "Kurta Co"

    bad_email = client.put("/api/admin/settings/store", json={**STORE, "storeEmail": "nope"}, headers=admin["headers"])
    assert bad_email.status_code == 422

    bad_url = client.put("/api/admin/settings/social", json={"facebook": "facebook.com/kurta"}, headers=admin["headers"])
    assert bad_url.status_code == 422

    bad_days = client.put(
        "/api/admin/settings/shipping",
        json={"estimatedDeliveryDays": {"min": 9, "max": 2}},
        headers=admin["headers"],
    )
    assert bad_days.status_code == 422

    long_title = client.put("/api/admin/settings/seo", json={"metaTitle": "x" * 71}, headers=admin["headers"])
    assert long_title.status_code == 422


def test_generic_keys(client, admin):
    client.post("/api/admin/settings", json={"key": "banner", "value": {"text": "Sale"}}, headers=admin["headers"])
    many = client.get("/api/settings", params={"keys": ["banner", "missing"]}).json()
    assert many == {"banner": {"text": "Sale"}, "missing": None}
    assert client.get("/api/admin/settings", headers=admin["headers"]).json() == {"banner": {"text": "Sale"}}
    assert client.post("/api/admin/settings", json={"key": "x"}).status_code == 401


def test_checkout_uses_saved_settings(client, db, admin, customer):
    client.put("/api/admin/settings/store", json=STORE, headers=admin["headers"])
    product = make_product(db, price="1000")
    placed = client.post("/api/orders", json=order_payload(product), headers=customer["headers"]).json()
    # free shipping above 999, 18% tax on 1000
    assert Decimal(placed["total"]) == Decimal("1180")

    client.put(
        "/api/admin/settings/shipping",
        json={"enableFreeShipping": False, "flatRate": 60, "enableCOD": False},
        headers=admin["headers"],
    )
    refused = client.post("/api/orders", json=order_payload(product), headers=customer["headers"])
    assert refused.status_code == 400
    assert refused.json()["error"]["message"] == "Cash on delivery is not available"

    placed = client.post(
        "/api/orders", json=order_payload(product, payment_method="razorpay"), headers=customer["headers"]
    ).json()
    assert Decimal(placed["total"]) == Decimal("1240")
