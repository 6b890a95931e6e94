from decimal import Decimal

from conftest import make_product


def product_body(slug="linen-shirt", **extra):
    body = {
        "name": "Linen Shirt",
        "slug": slug,
        "basePrice": "1299.00",
        "variants": [{"sku": "LS-M", "size": "M", "color": "White", "stock": 5}],
        "images": [{"url": "https://img.example.com/ls.jpg", "isPrimary": True}],
    }
    body.update(extra)
    return body


def test_create_and_fetch_by_slug(client, admin):
    response = client.post("/api/admin/products", json=product_body(), headers=admin["headers"])
    assert response.status_code == 201
    created = response.json()
    assert created["slug"] == "linen-shirt"
    assert created["variants"][0]["stock"] == 5

    detail = client.get("/api/products/linen-shirt").json()
    assert detail["id"] == created["id"]
    assert detail["images"][0]["isPrimary"] is True


def test_duplicate_slug_is_rejected(client, admin):
    assert client.post("/api/admin/products", json=product_body(), headers=admin["headers"]).status_code == 201
    response = client.post("/api/admin/products", json=product_body(name="Other"), headers=admin["headers"])
    assert response.status_code == 409
    assert response.json()["error"]["message"] == "A product with this slug already exists"


def test_pagination_total_counts_filtered_products(client, db):
    for i in range(5):
        make_product(db, slug=f"tee-{i}", price=str(100 * (i + 1)))
    make_product(db, slug="hidden-tee", visibility="hidden")
    make_product(db, slug="inactive-tee", is_active=False)

    page = client.get("/api/products", params={"limit": 2, "page": 3, "sort_by": "price_asc"}).json()
    assert page["pagination"] == {"page": 3, "limit": 2, "total": 5, "totalPages": 3}
    assert [p["slug"] for p in page["products"]] == ["tee-4"]

    cheap = client.get("/api/products", params={"max_price": 250}).json()
    assert cheap["pagination"]["total"] == 2


def test_hidden_products_are_not_public(client, db, admin):
    make_product(db, slug="secret", visibility="hidden")
    assert client.get("/api/products/secret").status_code == 404
    assert client.get("/api/admin/products", headers=admin["headers"]).json()["pagination"]["total"] == 1


def test_duplicate_product_creates_inactive_copy(client, db, admin):
    product = make_product(db, slug="denim", stock=7)
    response = client.post(f"/api/admin/products/{product.id}/duplicate", headers=admin["headers"])
    assert response.status_code == 201
    copy = response.json()
    assert copy["slug"].startswith("denim-copy-")
    assert copy["isActive"] is False
    assert copy["variants"][0]["stock"] == 0
    assert copy["variants"][0]["sku"] == "DENIM-M-COPY"

    # The suffix is a millisecond timestamp, and copying a copy keeps the original base.
    assert int(copy["slug"].rsplit("-", 1)[1]) > 1_000_000_000_000
    again = client.post(f"/api/admin/products/{copy['id']}/duplicate", headers=admin["headers"]).json()
    assert again["slug"].startswith("denim-copy-")
    assert again["slug"] != copy["slug"]


def test_update_and_bulk_flags(client, db, admin):
    first = make_product(db, slug="a-tee")
    second = make_product(db, slug="b-tee")
    patched = client.patch(
        f"/api/admin/products/{first.id}", json={"salePrice": "399"}, headers=admin["headers"]
    ).json()
    assert Decimal(patched["salePrice"]) == Decimal("399")

    response = client.post(
        "/api/admin/products/bulk-update",
        json={"ids": [str(first.id), str(second.id)], "data": {"isFeatured": True}},
        headers=admin["headers"],
    )
    assert response.json()["count"] == 2
    featured = client.get("/api/products/featured").json()
    assert {p["slug"] for p in featured} == {"a-tee", "b-tee"}


def test_csv_export_and_import(client, db, admin):
    make_product(db, slug="export-me", stock=4)
    exported = client.get("/api/admin/products/export.csv", headers=admin["headers"])
    assert exported.headers["content-type"].startswith("text/csv")
    header, row = exported.text.strip().splitlines()[:2]
    assert header.startswith("id,name,slug,sku")
    assert ",export-me," in row

    csv_text = (
        "name,slug,basePrice,stock,tags,isActive\n"
        "Canvas Bag,canvas-bag,450,12,\"eco,bags\",true\n"
        "Broken,broken,abc,1,,true\n"
        "Export Me Renamed,export-me,600,,,true\n"
    )
    result = client.post(
        "/api/admin/products/import/csv",
        files={"file": ("products.csv", csv_text.encode("utf-8"), "text/csv")},
        headers=admin["headers"],
    ).json()
    assert result["created"] == 1
    assert result["updated"] == 1
    assert len(result["errors"]) == 1 and result["errors"][0].startswith("Line 3:")

    bag = client.get("/api/products/canvas-bag").json()
    assert bag["tags"] == ["eco", "bags"]
    assert bag["variants"][0]["stock"] == 12
