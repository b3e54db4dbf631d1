import httpx
import pytest

from moments_admin.core.errors import NotConfiguredError
from moments_admin.services.cf_images import (
    CfImagesError,
    create_direct_upload,
    delivery_url,
    get_cf_images_config,
    is_cf_images_configured,
    upload_from_url,
)


class TestConfiguration:
    def test_requires_all_three_values(self, config):
        assert is_cf_images_configured(config)
        config.CF_IMAGES_DELIVERY_HASH = None
        assert not is_cf_images_configured(config)

    def test_config_raises_when_missing(self, bare_config):
        with pytest.raises(NotConfiguredError):
            get_cf_images_config(bare_config)


class TestDeliveryUrl:
    def test_shape(self):
        assert delivery_url("dh", "img1") == "https://imagedelivery.net/dh/img1/public"
        assert delivery_url("dh", "img1", "thumbnail") == "https://imagedelivery.net/dh/img1/thumbnail"


class TestUploadFromUrl:
    async def test_posts_url_field_with_bearer(self, make_client):
        client, requests = make_client(
            lambda request: httpx.Response(200, json={"success": True, "result": {"id": "cf123"}})
        )

        cf_id = await upload_from_url(client, "acct", "token", "https://u:p@dav.example.com/a.jpg")

        assert cf_id == "cf123"
        request = requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://api.cloudflare.com/client/v4/accounts/acct/images/v1"
        assert request.headers["Authorization"] == "Bearer token"
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        assert b'name="url"' in request.content
        assert b"https://u:p@dav.example.com/a.jpg" in request.content

    async def test_http_error(self, make_client):
        client, _ = make_client(lambda request: httpx.Response(403, text="forbidden"))

        with pytest.raises(CfImagesError) as exc_info:
            await upload_from_url(client, "acct", "token", "https://x")
        assert exc_info.value.upstream_status == 403
        assert "403" in exc_info.value.message

    @pytest.mark.parametrize(
        "body",
        [
            {"success": False, "result": {"id": "x"}},
            {"success": True, "result": {}},
            {"success": True, "result": None},
            ["not", "an", "object"],
        ],
    )
    async def test_malformed_success_body(self, make_client, body):
        client, _ = make_client(lambda request: httpx.Response(200, json=body))

        with pytest.raises(CfImagesError):
            await upload_from_url(client, "acct", "token", "https://x")

    async def test_non_json_body(self, make_client):
        client, _ = make_client(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(CfImagesError, match="not JSON"):
            await upload_from_url(client, "acct", "token", "https://x")


class TestDirectUpload:
    async def test_returns_id_and_upload_url(self, make_client):
        client, requests = make_client(
            lambda request: httpx.Response(
                200,
                json={"success": True, "result": {"id": "d1", "uploadURL": "https://upload.imagedelivery.net/d1"}},
            )
        )

        result = await create_direct_upload(client, "acct", "token")

        assert result == {"id": "d1", "upload_url": "https://upload.imagedelivery.net/d1"}
        assert requests[0].url.path.endswith("/images/v2/direct_upload")
