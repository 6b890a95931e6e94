def _category(client, admin, name, slug, **extra):
    response = client.post("/api/admin/categories", json={"name": name, "slug": slug, **extra}, headers=admin["headers"])
    assert response.status_code == 201, response.text
    return response.json()


def test_category_tree(client, admin):
    men = _category(client, admin, "Men", "men", sortOrder=1)
    women = _category(client, admin, "Women", "women", sortOrder=0)
    _category(client, admin, "Shirts", "men-shirts", parentId=men["id"])
    _category(client, admin, "Archive", "archive", isActive=False)

    tree = client.get("/api/categories").json()
    assert [c["name"] for c in tree] == ["Women", "Men"]
    assert [c["name"] for c in tree[1]["children"]] == ["Shirts"]

    by_slug = client.get("/api/categories/men").json()
    assert by_slug["children"][0]["slug"] == "men-shirts"
    assert client.get("/api/categories/archive").status_code == 404

    own_parent = client.patch(
        f"/api/admin/categories/{women['id']}", json={"parentId": women["id"]}, headers=admin["headers"]
    )
    assert own_parent.status_code == 400


def test_deleting_a_category_keeps_children(client, admin):
    men = _category(client, admin, "Men", "men")
    _category(client, admin, "Shirts", "men-shirts", parentId=men["id"])
    duplicate = client.post("/api/admin/categories", json={"name": "Men", "slug": "men"}, headers=admin["headers"])
    assert duplicate.status_code == 409

    client.delete(f"/api/admin/categories/{men['id']}", headers=admin["headers"])
    remaining = client.get("/api/admin/categories", headers=admin["headers"]).json()
    assert [(c["name"], c["parentId"]) for c in remaining] == [("Shirts", None)]


def test_brands(client, admin):
    created = client.post("/api/admin/brands", json={"name": "Levi's", "slug": "levis"}, headers=admin["headers"]).json()
    client.post("/api/admin/brands", json={"name": "Old", "slug": "old", "isActive": False}, headers=admin["headers"])

    assert [b["slug"] for b in client.get("/api/brands").json()] == ["levis"]
    assert len(client.get("/api/admin/brands", headers=admin["headers"]).json()) == 2

    renamed = client.patch(f"/api/admin/brands/{created['id']}", json={"slug": "old"}, headers=admin["headers"])
    assert renamed.status_code == 409
    assert client.get("/api/brands/levis").json()["name"] == "Levi's"
