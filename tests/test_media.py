import pytest
from sqlalchemy.exc import OperationalError

from storefront.api.routers.media import folder_slug
from storefront.db.session import SessionLocal, get_db


def _folder(client, admin, name, parent_id=None) -> dict:
    response = client.post("/api/admin/media/folders", json={"name": name, "parentId": parent_id}, headers=admin["headers"])
    assert response.status_code == 201, response.text
    return response.json()


def _asset(client, admin, name, folder_id=None) -> dict:
    payload = {
        "name": name,
        "fileName": f"{name}.jpg",
        "folderId": folder_id,
        "url": f"https://res.cloudinary.com/demo/{name}.jpg",
        "publicId": f"products/{name}",
        "mimeType": "image/jpeg",
        "format": "jpg",
        "size": 1000,
    }
    response = client.post("/api/admin/media/assets", json=payload, headers=admin["headers"])
    assert response.status_code == 201, response.text
    return response.json()


def test_folder_slug():
    assert folder_slug("  Summer Sale 2024! ") == "summer-sale-2024"


def test_rename_and_move_rewrite_descendant_paths(client, admin):
    banners = _folder(client, admin, "Banners")
    summer = _folder(client, admin, "Summer", banners["id"])
    hero = _folder(client, admin, "Hero", summer["id"])
    assert hero["path"] == "/banners/summer/hero"

    client.patch(f"/api/admin/media/folders/{banners['id']}", json={"name": "Home Banners"}, headers=admin["headers"])
    paths = {f["name"]: f["path"] for f in client.get("/api/admin/media/folders", headers=admin["headers"]).json()}
    assert paths == {"Home Banners": "/home-banners", "Summer": "/home-banners/summer", "Hero": "/home-banners/summer/hero"}

    moved = client.post(f"/api/admin/media/folders/{summer['id']}/move", json={"newParentId": None}, headers=admin["headers"])
    assert moved.json()["path"] == "/summer"
    detail = client.get(f"/api/admin/media/folders/{hero['id']}", headers=admin["headers"]).json()
    assert detail["path"] == "/summer/hero"
    assert [b["name"] for b in detail["breadcrumbs"]] == ["Summer", "Hero"]


def test_cannot_move_into_descendant(client, admin):
    parent = _folder(client, admin, "Parent")
    child = _folder(client, admin, "Child", parent["id"])
    response = client.post(
        f"/api/admin/media/folders/{parent['id']}/move", json={"newParentId": child["id"]}, headers=admin["headers"]
    )
    assert response.status_code == 400
    assert response.json()["error"]["message"] == "Cannot move folder into its own descendant"


def test_delete_folder_moving_contents(client, admin, cloudinary):
    old = _folder(client, admin, "Old")
    nested = _folder(client, admin, "Nested", old["id"])
    archive = _folder(client, admin, "Archive")
    _asset(client, admin, "banner", old["id"])

    response = client.delete(
        f"/api/admin/media/folders/{old['id']}",
        params={"move_contents": True, "move_contents_to": archive["id"]},
        headers=admin["headers"],
    )
    assert response.status_code == 200
    assert cloudinary.requests == []

    assets = client.get("/api/admin/media/assets", params={"folder_id": archive["id"]}, headers=admin["headers"]).json()
    assert [a["name"] for a in assets["assets"]] == ["banner"]
    moved = client.get(f"/api/admin/media/folders/{nested['id']}", headers=admin["headers"]).json()
    assert moved["path"] == "/archive/nested"


def test_delete_folder_removes_subtree_and_images(client, admin, cloudinary):
    top = _folder(client, admin, "Top")
    inner = _folder(client, admin, "Inner", top["id"])
    _asset(client, admin, "one", top["id"])
    _asset(client, admin, "two", inner["id"])

    client.delete(f"/api/admin/media/folders/{top['id']}", headers=admin["headers"])
    stats = client.get("/api/admin/media/stats", headers=admin["headers"]).json()
    assert stats == {"totalAssets": 0, "totalFolders": 0, "totalSize": 0}
    assert len([r for r in cloudinary.requests if r.url.path.endswith("/destroy")]) == 2


def test_upload_records_asset(client, admin, cloudinary):
    folder = _folder(client, admin, "Products")
    response = client.post(
        "/api/admin/media/upload",
        files={"file": ("shoe.jpg", b"\xff\xd8fake-jpeg", "image/jpeg")},
        data={"save_asset": "true", "media_folder_id": folder["id"]},
        headers=admin["headers"],
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["publicId"] == "products/shoe"
    assert body["asset"]["name"] == "shoe"
    assert body["asset"]["folderId"] == folder["id"]
    assert body["asset"]["width"] == 800

    sent = cloudinary.requests[0]
    assert sent.url.path == "/v1_1/demo/image/upload"
    assert b'name="signature"' in sent.content


def test_upload_requires_admin(client, customer):
    response = client.post(
        "/api/admin/media/upload", files={"file": ("a.jpg", b"x", "image/jpeg")}, headers=customer["headers"]
    )
    assert response.status_code == 403


def test_same_named_folders_keep_separate_subtrees(client, admin, cloudinary):
    first = _folder(client, admin, "Photos")
    second = _folder(client, admin, "Photos")
    kids = _folder(client, admin, "Kids", second["id"])
    _asset(client, admin, "portrait", kids["id"])
    assert first["path"] == second["path"] == "/photos"

    client.patch(f"/api/admin/media/folders/{first['id']}", json={"name": "Archive"}, headers=admin["headers"])
    assert client.get(f"/api/admin/media/folders/{kids['id']}", headers=admin["headers"]).json()["path"] == "/photos/kids"

    response = client.delete(f"/api/admin/media/folders/{first['id']}", headers=admin["headers"])
    assert response.status_code == 200
    folders = client.get("/api/admin/media/folders", headers=admin["headers"]).json()
    assert sorted(f["path"] for f in folders) == ["/photos", "/photos/kids"]
    assets = client.get("/api/admin/media/assets", params={"folder_id": kids["id"]}, headers=admin["headers"]).json()
    assert [a["name"] for a in assets["assets"]] == ["portrait"]
    assert cloudinary.requests == []


def test_move_into_same_named_sibling_is_allowed(client, admin):
    first = _folder(client, admin, "Photos")
    second = _folder(client, admin, "Photos")
    response = client.post(
        f"/api/admin/media/folders/{first['id']}/move", json={"newParentId": second["id"]}, headers=admin["headers"]
    )
    assert response.status_code == 200
    assert response.json()["path"] == "/photos/photos"


def _failing_commit_db():
    session = SessionLocal()

    def fail():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    session.commit = fail
    try:
        yield session
    finally:
        session.rollback()
        session.close()


def test_images_survive_a_failed_folder_delete(client, admin, cloudinary):
    top = _folder(client, admin, "Top")
    _asset(client, admin, "one", top["id"])

    client.app.dependency_overrides[get_db] = _failing_commit_db
    with pytest.raises(OperationalError):
        client.delete(f"/api/admin/media/folders/{top['id']}", headers=admin["headers"])
    del client.app.dependency_overrides[get_db]

    assert [r for r in cloudinary.requests if r.url.path.endswith("/destroy")] == []
    stats = client.get("/api/admin/media/stats", headers=admin["headers"]).json()
    assert stats["totalAssets"] == 1
    assert stats["totalFolders"] == 1
