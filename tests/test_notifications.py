from conftest import make_product, order_payload


def _notify(client, admin, title, **extra):
    payload = {"type": "system", "title": title, "message": f"{title} happened", **extra}
    response = client.post("/api/admin/notifications", json=payload, headers=admin["headers"])
    assert response.status_code == 201, response.text
    return response.json()


def test_feed_read_state(client, admin):
    first = _notify(client, admin, "Backup done", metadata={"size": 12})
    _notify(client, admin, "Cache cleared")
    assert first["metadata"] == {"size": 12}
    assert first["isRead"] is False

    assert client.get("/api/admin/notifications/unread-count", headers=admin["headers"]).json()["count"] == 2

    read = client.post(f"/api/admin/notifications/{first['id']}/read", headers=admin["headers"]).json()
    assert read["isRead"] is True
    assert read["readAt"] is not None

    unread = client.get("/api/admin/notifications", params={"unread_only": True}, headers=admin["headers"]).json()
    assert [n["title"] for n in unread["notifications"]] == ["Cache cleared"]

    assert client.post("/api/admin/notifications/read-all", headers=admin["headers"]).json()["count"] == 1
    assert client.get("/api/admin/notifications/unread-count", headers=admin["headers"]).json()["count"] == 0


def test_delete_and_clear(client, admin):
    one = _notify(client, admin, "One")
    _notify(client, admin, "Two")
    _notify(client, admin, "Three")

    client.delete(f"/api/admin/notifications/{one['id']}", headers=admin["headers"])
    assert client.delete("/api/admin/notifications", headers=admin["headers"]).json()["count"] == 2
    assert client.get("/api/admin/notifications", headers=admin["headers"]).json()["pagination"]["total"] == 0


def test_checkout_records_new_order(client, db, customer, admin):
    product = make_product(db, stock=6)
    placed = client.post("/api/orders", json=order_payload(product, quantity=2), headers=customer["headers"]).json()

    titles = [n["title"] for n in client.get("/api/admin/notifications", headers=admin["headers"]).json()["notifications"]]
    assert f"New Order #{placed['orderNumber']}" in titles
    # 4 units left is at the low-stock line
    assert "Low Stock Alert" in titles


def test_unknown_type_rejected(client, admin):
    response = client.post(
        "/api/admin/notifications", json={"type": "marketing", "title": "x", "message": "y"}, headers=admin["headers"]
    )
    assert response.status_code == 422
