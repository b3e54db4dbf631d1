from unittest.mock import patch

import httpx
import pytest

from moments_admin.core.database import get_db
from moments_admin.core.http_client import get_http_client
from moments_admin.core.ids import new_id
from moments_admin.core.security import SESSION_COOKIE, create_session_token, pwd_context
from moments_admin.main import app
from moments_admin.models import User
from moments_admin.services import albums as album_service
from moments_admin.services import items as item_service
from moments_admin.services import tags as tag_service


@pytest.fixture
async def api(session_factory, make_client):
    async def override_db():
        async with session_factory() as session:
            yield session

    upstream, _ = make_client(lambda request: httpx.Response(404))

    async def override_http_client():
        yield upstream

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_http_client] = override_http_client
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def signed_in(api, owner):
    api.cookies.set(SESSION_COOKIE, create_session_token(owner.id))
    return api


class TestAuth:
    async def test_anonymous_request_rejected(self, api):
        response = await api.get("/api/albums")

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    async def test_forged_cookie_rejected(self, api):
        api.cookies.set(SESSION_COOKIE, "bm9ib2R5OjE=.bad")

        assert (await api.get("/api/auth/me")).status_code == 401

    async def test_login_with_bare_username(self, api, db):
        db.add(User(id=new_id(), email="ada@example.com", password_hash=pwd_context.hash("pw-123"), role="owner"))
        await db.commit()

        response = await api.post("/api/auth/login", json={"email": "ada", "password": "pw-123"})

        assert response.status_code == 200
        assert response.json()["email"] == "ada@example.com"
        assert SESSION_COOKIE in response.cookies
        me = await api.get("/api/auth/me")
        assert me.json()["email"] == "ada@example.com"

    async def test_login_with_wrong_password(self, api, db):
        db.add(User(id=new_id(), email="bob@example.com", password_hash=pwd_context.hash("pw-123"), role="owner"))
        await db.commit()

        response = await api.post("/api/auth/login", json={"email": "bob@example.com", "password": "nope"})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid email or password"}


class TestAlbumRoutes:
    async def test_create_and_list(self, signed_in):
        created = await signed_in.post("/api/albums", json={"name": "Night Walks", "isPublic": True})

        assert created.status_code == 201
        body = created.json()
        assert body["slug"] == "night-walks"
        assert body["isPublic"] is True
        assert body["publicVersion"] == 0

        listed = await signed_in.get("/api/albums")
        assert [album["id"] for album in listed.json()["albums"]] == [body["id"]]

    async def test_missing_name_is_bad_request(self, signed_in):
        response = await signed_in.post("/api/albums", json={"kind": "portfolio"})

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid request body")

    async def test_service_validation_is_bad_request(self, signed_in):
        response = await signed_in.post("/api/albums", json={"name": "X", "kind": "scrapbook"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid album kind: scrapbook"}

    async def test_unknown_album_is_not_found(self, signed_in):
        response = await signed_in.get("/api/albums/01UNKNOWN")

        assert response.status_code == 404
        assert response.json() == {"error": "Album not found"}

    async def test_patch_cover_owned_by_someone_else(self, signed_in, db, owner, other_owner):
        album = await album_service.create_album(db, owner.id, "Mine")
        theirs = await album_service.create_album(db, other_owner.id, "Theirs")
        foreign = await item_service.add_item_to_album(db, theirs.id, other_owner.id, "t/1.jpg")

        response = await signed_in.patch(f"/api/albums/{album.id}", json={"coverItemId": foreign.id})

        assert response.status_code == 400
        assert response.json() == {"error": "Item not in this album"}

    async def test_patch_cover_from_another_album(self, signed_in, db, owner):
        album = await album_service.create_album(db, owner.id, "Mine")
        other = await album_service.create_album(db, owner.id, "Elsewhere")
        stray = await item_service.add_item_to_album(db, other.id, owner.id, "e/1.jpg")

        response = await signed_in.patch(f"/api/albums/{album.id}", json={"coverItemId": stray.id})

        assert response.status_code == 400
        assert response.json() == {"error": "Item not in this album"}
        detail = (await signed_in.get(f"/api/albums/{album.id}")).json()
        assert detail["coverItemId"] is None

    async def test_add_item_needs_an_image(self, signed_in, db, owner):
        album = await album_service.create_album(db, owner.id, "Empty")

        response = await signed_in.post(f"/api/albums/{album.id}/items", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "imageId or photoprismHash is required"}

    async def test_add_item_from_photoprism_hash(self, signed_in, db, owner):
        album = await album_service.create_album(db, owner.id, "Imports")

        response = await signed_in.post(f"/api/albums/{album.id}/items", json={"photoprismHash": "abc123"})

        assert response.status_code == 201
        detail = (await signed_in.get(f"/api/albums/{album.id}")).json()
        assert [item["imageId"] for item in detail["items"]] == ["photoprism:abc123"]
        assert detail["items"][0]["imageUrl"] == f"/api/items/{response.json()['id']}/image"

    async def test_upload_rejects_non_jpeg(self, signed_in, db, owner, monkeypatch):
        album = await album_service.create_album(db, owner.id, "Uploads")
        monkeypatch.setattr(
            "moments_admin.api.albums.get_webdav_config",
            lambda: ("https://dav.example.com/", "u", "p"),
        )

        response = await signed_in.post(
            f"/api/albums/{album.id}/upload",
            files={"file": ("photo.png", b"\x89PNG", "image/png")},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Only JPEG images (.jpg, .jpeg) are allowed"}


class TestItemRoutes:
    async def test_crop_update(self, signed_in, db, owner):
        album = await album_service.create_album(db, owner.id, "Crops")
        item = await item_service.add_item_to_album(db, album.id, owner.id, "crops/1.jpg")

        response = await signed_in.patch(
            f"/api/items/{item.id}", json={"cropMeta": {"thumb": {"x": 0.2, "y": 0.3}}}
        )

        assert response.status_code == 200
        assert response.json() == {"ok": True, "version": 1}
        detail = (await signed_in.get(f"/api/items/{item.id}")).json()
        assert detail["meta"]["crop"] == {"thumb": {"x": 0.2, "y": 0.3}}

    async def test_out_of_range_focal_point(self, signed_in, db, owner):
        album = await album_service.create_album(db, owner.id, "Crops")
        item = await item_service.add_item_to_album(db, album.id, owner.id, "crops/1.jpg")

        response = await signed_in.patch(f"/api/items/{item.id}", json={"cropMeta": {"thumb": {"x": 2, "y": 0.3}}})

        assert response.status_code == 400

    async def test_removing_unattached_tag(self, signed_in, db, owner):
        album = await album_service.create_album(db, owner.id, "Tags")
        item = await item_service.add_item_to_album(db, album.id, owner.id, "tags/1.jpg")

        response = await signed_in.delete(f"/api/items/{item.id}/tags/01NOTATAG")

        assert response.status_code == 404
        assert response.json() == {"error": "Tag not attached"}

    async def test_item_tags_round_trip(self, signed_in, db, owner):
        album = await album_service.create_album(db, owner.id, "Tags")
        item = await item_service.add_item_to_album(db, album.id, owner.id, "tags/1.jpg")

        await signed_in.put(f"/api/items/{item.id}/tags", json={"tagNames": ["Fog", "fog"]})
        response = await signed_in.get(f"/api/items/{item.id}/tags")

        assert [tag["slug"] for tag in response.json()["tags"]] == ["fog"]


class TestPublicRoutes:
    async def test_private_item_image_is_hidden(self, api, db, owner):
        album = await album_service.create_album(db, owner.id, "Private")
        item = await item_service.add_item_to_album(db, album.id, owner.id, "private/1.jpg")

        response = await api.get(f"/api/public/items/{item.id}/image")

        assert response.status_code == 404
        assert response.json() == {"error": "Not found"}

    async def test_gallery_is_cacheable(self, api, db, owner):
        album = await album_service.create_album(db, owner.id, "Shown", is_public=True)
        await item_service.add_item_to_album(db, album.id, owner.id, "shown/1.jpg")

        response = await api.get("/api/public/gallery")

        assert response.status_code == 200
        assert response.headers["cache-control"] == "public, max-age=60, s-maxage=60"
        body = response.json()
        assert [entry["slug"] for entry in body["albums"]] == ["shown"]
        assert len(body["galleryItems"]) == 1


async def test_health(api):
    with patch("moments_admin.jobs.queue._get_redis_client", return_value=None):
        response = await api.get("/health")

    assert response.json() == {"status": "ok", "cf_images_queue_length": 0}


class TestTagRoutes:
    async def test_unknown_tag_is_not_found(self, signed_in):
        response = await signed_in.get("/api/tags/01NOTATAG")

        assert response.status_code == 404
        assert response.json() == {"error": "Tag not found"}

    async def test_rename(self, signed_in, db):
        tag = await tag_service.get_or_create_tag(db, "Fog")

        response = await signed_in.patch(f"/api/tags/{tag.id}", json={"name": "Sea Mist", "kind": "weather"})

        assert response.status_code == 200
        assert response.json() == {"id": tag.id, "name": "Sea Mist", "slug": "sea-mist", "kind": "weather"}
        fetched = await signed_in.get(f"/api/tags/{tag.id}")
        assert fetched.json()["slug"] == "sea-mist"

    async def test_patch_unknown_tag(self, signed_in):
        response = await signed_in.patch("/api/tags/01NOTATAG", json={"name": "Fog"})

        assert response.status_code == 404
