from decimal import Decimal

from conftest import delivered_paid_order, make_product, order_payload


def _return_payload(order, quantity=1, **extra) -> dict:
    return {
        "orderId": str(order.id),
        "reason": "size_issue",
        "items": [{"orderItemId": str(order.items[0].id), "quantity": quantity}],
        **extra,
    }


def test_return_only_for_delivered_orders(client, db, customer):
    product = make_product(db)
    order_id = client.post("/api/orders", json=order_payload(product), headers=customer["headers"]).json()["orderId"]
    response = client.post(
        "/api/returns",
        json={"orderId": order_id, "reason": "defective", "items": [{"orderItemId": order_id, "quantity": 1}]},
        headers=customer["headers"],
    )
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Returns can only be requested for delivered orders"


def test_request_once_within_ordered_quantity(client, db, customer, admin):
    order = delivered_paid_order(client, db, customer, admin, make_product(db), quantity=2)

    too_many = client.post("/api/returns", json=_return_payload(order, quantity=3), headers=customer["headers"])
    assert too_many.status_code == 400
    assert too_many.json()["error"]["message"].startswith("Cannot return more than 2")

    created = client.post("/api/returns", json=_return_payload(order), headers=customer["headers"])
    assert created.status_code == 201
    assert created.json()["returnNumber"].startswith("RMA-")
    assert created.json()["status"] == "requested"

    again = client.post("/api/returns", json=_return_payload(order), headers=customer["headers"])
    assert again.status_code == 400

    mine = client.get("/api/returns", headers=customer["headers"]).json()
    assert len(mine) == 1

    notifications = client.get("/api/admin/notifications", headers=admin["headers"]).json()["notifications"]
    assert "Return Requested" in [n["title"] for n in notifications]


def test_admin_workflow_stamps_and_appends_notes(client, db, customer, admin):
    order = delivered_paid_order(client, db, customer, admin, make_product(db, price="800"))
    return_id = client.post("/api/returns", json=_return_payload(order), headers=customer["headers"]).json()["id"]

    approved = client.patch(
        f"/api/admin/returns/{return_id}/status",
        json={"status": "approved", "adminNotes": "Pickup booked"},
        headers=admin["headers"],
    ).json()
    assert approved["approvedAt"] is not None
    assert approved["approvedBy"] == str(admin["user"].id)

    completed = client.patch(
        f"/api/admin/returns/{return_id}/status",
        json={
            "status": "completed",
            "adminNotes": "Refunded",
            "refundAmount": "800",
            "refundMethod": "original_payment",
        },
        headers=admin["headers"],
    ).json()
    assert completed["completedAt"] is not None
    assert Decimal(completed["refundAmount"]) == Decimal("800")
    assert completed["adminNotes"].count("\n") == 1
    assert completed["order"]["orderNumber"] == order.order_number

    listed = client.get("/api/admin/returns", params={"status": "completed"}, headers=admin["headers"]).json()
    assert listed["pagination"]["total"] == 1

    timeline = client.get(f"/api/orders/{order.id}", headers=customer["headers"]).json()["timeline"]
    assert {"Return Requested", "Return Approved", "Return Completed"} <= {t["title"] for t in timeline}
