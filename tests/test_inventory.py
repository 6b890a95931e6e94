import pytest

from conftest import make_product
from storefront.db.models import ProductVariant
from storefront.services.inventory import adjust_stock, stock_status


@pytest.mark.parametrize(
    "in_stock, has_variants, total, expected",
    [
        (False, True, 50, "out_of_stock"),
        (True, True, 0, "out_of_stock"),
        (True, True, 5, "low_stock"),
        (True, True, 6, "in_stock"),
        (True, False, 0, "in_stock"),
    ],
)
def test_stock_status(in_stock, has_variants, total, expected):
    assert stock_status(in_stock, has_variants, total) == expected


def test_adjust_stock():
    assert adjust_stock(10, 3, "add") == 13
    assert adjust_stock(2, 5, "subtract") == 0
    assert adjust_stock(10, 4) == 4


def test_overview_filter_does_not_change_stats(client, db, admin):
    make_product(db, slug="plenty", stock=40)
    make_product(db, slug="few", stock=2)
    make_product(db, slug="none", stock=0)

    body = client.get("/api/admin/inventory", params={"filter": "low_stock"}, headers=admin["headers"]).json()
    assert [i["name"] for i in body["items"]] == ["Few"]
    assert body["pagination"]["total"] == 1
    assert body["stats"] == {"total": 3, "inStock": 1, "lowStock": 1, "outOfStock": 1, "totalUnits": 42}


def test_variant_adjustment_raises_low_stock_notification(client, db, admin):
    product = make_product(db, stock=8)
    variant_id = product.variants[0].id

    updated = client.patch(
        f"/api/admin/inventory/variants/{variant_id}",
        json={"stock": 5, "adjustment": "subtract"},
        headers=admin["headers"],
    ).json()
    assert updated["stock"] == 3

    feed = client.get("/api/admin/notifications", headers=admin["headers"]).json()["notifications"]
    assert [n["title"] for n in feed] == ["Low Stock Alert"]

    missing = client.patch(
        "/api/admin/inventory/variants/00000000-0000-0000-0000-000000000000", json={"stock": 1}, headers=admin["headers"]
    )
    assert missing.status_code == 404


def test_alert_thresholds(client, db, admin):
    product = make_product(db, stock=8)
    assert client.get("/api/admin/inventory/alerts", headers=admin["headers"]).json() == []

    first = client.put(
        "/api/admin/inventory/alerts", json={"productId": str(product.id), "threshold": 10}, headers=admin["headers"]
    ).json()
    second = client.put(
        "/api/admin/inventory/alerts", json={"productId": str(product.id), "threshold": 12}, headers=admin["headers"]
    ).json()
    assert first["id"] == second["id"]

    alerts = client.get("/api/admin/inventory/alerts", headers=admin["headers"]).json()
    assert [(a["stock"], a["threshold"]) for a in alerts] == [(8, 12)]


def test_bulk_stock_and_in_stock_flag(client, db, admin):
    product = make_product(db, stock=1)
    variant_id = str(product.variants[0].id)
    updated = client.post(
        "/api/admin/inventory/variants/bulk",
        json={"updates": [{"variantId": variant_id, "stock": 30}, {"variantId": str(product.id), "stock": 2}]},
        headers=admin["headers"],
    ).json()
    assert [v["stock"] for v in updated] == [30]
    db.expire_all()
    assert db.get(ProductVariant, product.variants[0].id).stock == 30

    item = client.patch(
        f"/api/admin/inventory/products/{product.id}", json={"inStock": False}, headers=admin["headers"]
    ).json()
    assert item["stockStatus"] == "out_of_stock"
