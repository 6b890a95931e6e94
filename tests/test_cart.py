from decimal import Decimal

from conftest import make_product


def test_add_merges_lines_and_caps_at_stock(client, db, customer):
    product = make_product(db, slug="socks", price="150", stock=3)
    line = {"productId": str(product.id), "variantId": str(product.variants[0].id), "quantity": 2}

    cart = client.post("/api/cart/items", json=line, headers=customer["headers"]).json()
    assert cart["itemCount"] == 2
    assert Decimal(cart["subtotal"]) == Decimal("300")

    cart = client.post("/api/cart/items", json={**line, "quantity": 1}, headers=customer["headers"]).json()
    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 3

    response = client.post("/api/cart/items", json={**line, "quantity": 1}, headers=customer["headers"])
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Insufficient stock"


def test_update_remove_and_clear(client, db, customer):
    product = make_product(db, slug="cap", price="250", stock=10)
    line = {"productId": str(product.id), "variantId": str(product.variants[0].id), "quantity": 1}
    item_id = client.post("/api/cart/items", json=line, headers=customer["headers"]).json()["items"][0]["id"]

    cart = client.patch(f"/api/cart/items/{item_id}", json={"quantity": 4}, headers=customer["headers"]).json()
    assert Decimal(cart["subtotal"]) == Decimal("1000")

    cart = client.delete(f"/api/cart/items/{item_id}", headers=customer["headers"]).json()
    assert cart["items"] == []

    client.post("/api/cart/items", json=line, headers=customer["headers"])
    assert client.delete("/api/cart", headers=customer["headers"]).json()["itemCount"] == 0


def test_cart_requires_sign_in(client):
    assert client.get("/api/cart").status_code == 401
