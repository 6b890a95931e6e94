from conftest import make_product


def _subscribe(client, product, email="asha@example.com", variant=True):
    payload = {"email": email, "productId": str(product.id)}
    if variant:
        payload["variantId"] = str(product.variants[0].id)
    return client.post("/api/stock-notifications", json=payload)


def test_subscribe_once_per_pending_item(client, db):
    product = make_product(db, stock=0)

    assert _subscribe(client, product).status_code == 201
    duplicate = _subscribe(client, product, email="ASHA@example.com")
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["message"] == "You are already subscribed to notifications for this item"
    # Waiting for the product as a whole is a separate subscription.
    assert _subscribe(client, product, variant=False).status_code == 201


def test_subscribe_unknown_product_or_bad_email(client, db):
    product = make_product(db, stock=0)
    other = make_product(db, slug="other", stock=0)

    response = client.post(
        "/api/stock-notifications",
        json={"email": "asha@example.com", "productId": str(product.id), "variantId": str(other.variants[0].id)},
    )
    assert response.status_code == 404
    assert _subscribe(client, product, email="not-an-email").status_code == 422


def test_unsubscribe(client, db, admin):
    product = make_product(db, stock=0)
    _subscribe(client, product)

    payload = {"email": "asha@example.com", "productId": str(product.id), "variantId": str(product.variants[0].id)}
    assert client.post("/api/stock-notifications/unsubscribe", json=payload).status_code == 200
    body = client.get("/api/admin/stock-notifications", headers=admin["headers"]).json()
    assert body["pagination"]["total"] == 0


def test_admin_notify_flow(client, db, admin):
    product = make_product(db, stock=0)
    variant_id = str(product.variants[0].id)
    for email in ("a@example.com", "b@example.com"):
        _subscribe(client, product, email=email)
    _subscribe(client, product, email="c@example.com", variant=False)

    listed = client.get("/api/admin/stock-notifications", headers=admin["headers"]).json()
    assert listed["pagination"]["total"] == 3
    assert {n["product"]["slug"] for n in listed["notifications"]} == {"classic-tee"}

    params = {"product_id": str(product.id), "variant_id": variant_id}
    waiting = client.get("/api/admin/stock-notifications/subscribers", params=params, headers=admin["headers"]).json()
    assert sorted(n["email"] for n in waiting) == ["a@example.com", "b@example.com"]

    first = waiting[0]["id"]
    marked = client.post(f"/api/admin/stock-notifications/{first}/notified", headers=admin["headers"])
    assert marked.status_code == 200

    response = client.post(
        "/api/admin/stock-notifications/notify-all",
        json={"productId": str(product.id), "variantId": variant_id},
        headers=admin["headers"],
    )
    assert response.json() == {"notifiedCount": 1}

    done = client.get("/api/admin/stock-notifications", params={"notified": True}, headers=admin["headers"]).json()
    assert sorted(n["email"] for n in done["notifications"]) == ["a@example.com", "b@example.com"]
    assert all(n["notifiedAt"] for n in done["notifications"])
    pending = client.get("/api/admin/stock-notifications", params={"notified": False}, headers=admin["headers"]).json()
    assert [n["email"] for n in pending["notifications"]] == ["c@example.com"]


def test_mark_unknown_subscription(client, admin):
    response = client.post(
        "/api/admin/stock-notifications/00000000-0000-0000-0000-000000000000/notified", headers=admin["headers"]
    )
    assert response.status_code == 404


def test_admin_routes_need_admin(client, customer):
    assert client.get("/api/admin/stock-notifications", headers=customer["headers"]).status_code == 403
