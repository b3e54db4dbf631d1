from __future__ import annotations

import logging

import httpx

from moments_admin.core.config import Settings, settings
from moments_admin.core.errors import NotConfiguredError, UpstreamError

CF_API_BASE = "https://api.cloudflare.com/client/v4"
CF_DELIVERY_BASE = "https://imagedelivery.net"
logger = logging.getLogger(__name__)


class CfImagesError(UpstreamError):
    pass


def is_cf_images_configured(config: Settings = settings) -> bool:
    return bool(config.CF_IMAGES_ACCOUNT_ID and config.CF_IMAGES_API_TOKEN and config.CF_IMAGES_DELIVERY_HASH)


def get_cf_images_config(config: Settings = settings) -> tuple[str, str]:
    if not config.CF_IMAGES_ACCOUNT_ID or not config.CF_IMAGES_API_TOKEN:
        raise NotConfiguredError("Cloudflare Images not configured")
    return config.CF_IMAGES_ACCOUNT_ID, config.CF_IMAGES_API_TOKEN


def delivery_url(delivery_hash: str, cf_image_id: str, variant: str = "public") -> str:
    return f"{CF_DELIVERY_BASE}/{delivery_hash}/{cf_image_id}/{variant}"


def _result_from(response: httpx.Response, action: str) -> dict:
    if not response.is_success:
        raise CfImagesError(
            f"CF Images {action} failed: {response.status_code} {response.text}",
            upstream_status=response.status_code,
            body=response.text,
        )
    try:
        payload = response.json()
    except ValueError as exc:
        raise CfImagesError(f"CF Images {action}: response is not JSON") from exc
    if not isinstance(payload, dict):
        raise CfImagesError(f"CF Images {action}: unexpected response body")
    result = payload.get("result")
    if not payload.get("success") or not isinstance(result, dict) or not result.get("id"):
        raise CfImagesError(f"CF Images {action}: no id in response")
    return result


async def upload_from_url(client: httpx.AsyncClient, account_id: str, api_token: str, image_url: str) -> str:
    """Ask Cloudflare Images to pull ``image_url`` and return the new image id."""
    response = await client.post(
        f"{CF_API_BASE}/accounts/{account_id}/images/v1",
        headers={"Authorization": f"Bearer {api_token}"},
        files={"url": (None, image_url)},
    )
    result = _result_from(response, "upload")
    logger.info("cf_images event=uploaded cf_id=%s", result["id"])
    return str(result["id"])


async def create_direct_upload(client: httpx.AsyncClient, account_id: str, api_token: str) -> dict:
    """Create a one-time URL the browser can upload an image to directly."""
    response = await client.post(
        f"{CF_API_BASE}/accounts/{account_id}/images/v2/direct_upload",
        headers={"Authorization": f"Bearer {api_token}"},
        files={"requireSignedURLs": (None, "false")},
    )
    result = _result_from(response, "direct upload")
    return {"id": str(result["id"]), "upload_url": result.get("uploadURL")}
