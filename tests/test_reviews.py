from conftest import delivered_paid_order, make_product, make_user


def _review(client, user, product, rating=5, **extra):
    return client.post(
        "/api/reviews", json={"productId": str(product.id), "rating": rating, **extra}, headers=user["headers"]
    )


def test_only_buyers_review_once(client, db, customer, admin):
    product = make_product(db)

    check = client.get(f"/api/reviews/can-review/{product.id}", headers=customer["headers"]).json()
    assert check == {"canReview": False, "reason": "not_purchased", "review": None}
    assert _review(client, customer, product).status_code == 403

    delivered_paid_order(client, db, customer, admin, product)
    created = _review(client, customer, product, rating=4, title="Nice fit")
    assert created.status_code == 201
    assert created.json()["isApproved"] is True

    again = _review(client, customer, product)
    assert again.status_code == 400
    assert again.json()["error"]["message"] == "You have already reviewed this product"

    check = client.get(f"/api/reviews/can-review/{product.id}", headers=customer["headers"]).json()
    assert check["reason"] == "already_reviewed"
    assert check["review"]["title"] == "Nice fit"

    mine = client.get("/api/reviews/mine", headers=customer["headers"]).json()
    assert mine[0]["product"]["slug"] == product.slug


def test_rating_stats_count_approved_only(client, db, customer, admin):
    product = make_product(db, stock=20)
    other = make_user(db, "ravi@example.com", name="Ravi")
    for user, rating in ((customer, 5), (other, 2)):
        delivered_paid_order(client, db, user, admin, product)
        _review(client, user, product, rating=rating)

    stats = client.get(f"/api/reviews/product/{product.id}").json()["stats"]
    assert stats["averageRating"] == 3.5
    assert stats["totalReviews"] == 2
    assert stats["ratingDistribution"] == {"1": 0, "2": 1, "3": 0, "4": 0, "5": 1}

    low = client.get("/api/admin/reviews", headers=admin["headers"]).json()["reviews"]
    ravi_review = next(r for r in low if r["user"]["name"] == "Ravi")
    hidden = client.patch(
        f"/api/admin/reviews/{ravi_review['id']}", json={"isApproved": False}, headers=admin["headers"]
    ).json()
    assert hidden["isApproved"] is False

    page = client.get(f"/api/reviews/product/{product.id}").json()
    assert page["stats"]["averageRating"] == 5.0
    assert [r["rating"] for r in page["reviews"]] == [5]

    pending = client.get("/api/admin/reviews", params={"is_approved": False}, headers=admin["headers"]).json()
    assert pending["pagination"]["total"] == 1


def test_edit_and_delete_own_review(client, db, customer, admin):
    product = make_product(db)
    delivered_paid_order(client, db, customer, admin, product)
    review_id = _review(client, customer, product, rating=3).json()["id"]

    updated = client.put(
        f"/api/reviews/{review_id}", json={"rating": 5, "comment": "Better after a wash"}, headers=customer["headers"]
    ).json()
    assert updated["rating"] == 5

    other = make_user(db, "ravi@example.com")
    assert client.delete(f"/api/reviews/{review_id}", headers=other["headers"]).status_code == 404
    assert client.delete(f"/api/reviews/{review_id}", headers=customer["headers"]).json()["message"] == "Review deleted"
