from decimal import Decimal

from conftest import delivered_paid_order, make_product, make_user

HOME = {
    "fullName": "Asha Verma",
    "phone": "9876543210",
    "addressLine1": "12 MG Road",
    "city": "Pune",
    "state": "MH",
    "pincode": "411001",
}


def _add(client, user, **extra):
    response = client.post("/api/addresses", json={**HOME, **extra}, headers=user["headers"])
    assert response.status_code == 201, response.text
    return response.json()


def test_first_address_becomes_default(client, customer):
    first = _add(client, customer)
    second = _add(client, customer, city="Mumbai")
    assert first["isDefault"] is True
    assert second["isDefault"] is False

    client.post(f"/api/addresses/{second['id']}/default", headers=customer["headers"])
    listed = client.get("/api/addresses", headers=customer["headers"]).json()
    assert [(a["city"], a["isDefault"]) for a in listed] == [("Mumbai", True), ("Pune", False)]

    billing = _add(client, customer, type="billing")
    assert billing["isDefault"] is True
    default = client.get("/api/addresses/default", params={"type": "shipping"}, headers=customer["headers"]).json()
    assert default["city"] == "Mumbai"


def test_deleting_default_promotes_another(client, customer):
    first = _add(client, customer)
    _add(client, customer, city="Nashik")
    client.delete(f"/api/addresses/{first['id']}", headers=customer["headers"])
    listed = client.get("/api/addresses", headers=customer["headers"]).json()
    assert [(a["city"], a["isDefault"]) for a in listed] == [("Nashik", True)]


def test_addresses_are_private(client, db, customer):
    address = _add(client, customer)
    other = make_user(db, "ravi@example.com")
    assert client.get(f"/api/addresses/{address['id']}", headers=other["headers"]).status_code == 404


def test_customer_profile_and_tags(client, db, customer, admin):
    delivered_paid_order(client, db, customer, admin, make_product(db, price="1000"))
    customer_id = str(customer["user"].id)

    profile = client.get(f"/api/admin/users/{customer_id}", headers=admin["headers"]).json()
    assert profile["stats"]["totalOrders"] == 1
    assert Decimal(profile["stats"]["totalSpent"]) == Decimal("1000")
    assert len(profile["orders"]) == 1

    client.put(f"/api/admin/users/{customer_id}/tags", json={"tags": ["vip"]}, headers=admin["headers"])
    client.post(
        "/api/admin/users/bulk-tags",
        json={"ids": [customer_id], "tags": ["vip", "wholesale"], "mode": "add"},
        headers=admin["headers"],
    )
    rows = client.get("/api/admin/users", params={"role": "customer"}, headers=admin["headers"]).json()["customers"]
    assert rows[0]["tags"] == ["vip", "wholesale"]
    assert rows[0]["orderCount"] == 1

    client.put(f"/api/admin/users/{customer_id}/notes", json={"notes": "Prefers calls"}, headers=admin["headers"])
    notes = client.put(
        f"/api/admin/users/{customer_id}/notes", json={"notes": "Asked for GST bill", "append": True}, headers=admin["headers"]
    ).json()
    assert notes["adminNotes"].startswith("Prefers calls\n[")

    csv_text = client.get("/api/admin/users/export.csv", params={"role": "customer"}, headers=admin["headers"]).text
    assert "vip, wholesale" in csv_text


def test_role_changes(client, db, customer, admin):
    own = client.patch(f"/api/admin/users/{admin['user'].id}/role", json={"role": "customer"}, headers=admin["headers"])
    assert own.status_code == 400

    promoted = client.patch(
        f"/api/admin/users/{customer['user'].id}/role", json={"role": "admin"}, headers=admin["headers"]
    ).json()
    assert promoted["role"] == "admin"
    assert client.get("/api/admin/users/stats", headers=customer["headers"]).json()["totalAdmins"] == 2
