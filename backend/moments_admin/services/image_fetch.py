"""Resolve an item's ``imageId`` to image bytes from whichever backend owns it."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

import httpx

from moments_admin.core.config import Settings, settings
from moments_admin.core.errors import NotConfiguredError, NotFoundError, UpstreamError
from moments_admin.services import cf_images, photoprism, webdav
from moments_admin.services.image_refs import from_cf_image_ref, from_photoprism_ref, is_cf_image_ref, is_photoprism_ref

PUBLIC_CACHE_CONTROL = "public, max-age=86400"
PRIVATE_CACHE_CONTROL = "private, max-age=3600"
DEFAULT_CONTENT_TYPE = "image/jpeg"
# fit_1920 so a 1920x1080 hero is downscaled rather than upscaled
DISPLAY_SIZE = "fit_1920"
THUMB_SIZE = "tile_500"
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchedImage:
    content: bytes
    content_type: str = DEFAULT_CONTENT_TYPE
    cache_control: str = PUBLIC_CACHE_CONTROL

    def as_private(self) -> "FetchedImage":
        return replace(self, cache_control=PRIVATE_CACHE_CONTROL)


def _from_response(response: httpx.Response) -> FetchedImage:
    return FetchedImage(
        content=response.content,
        content_type=response.headers.get("Content-Type") or DEFAULT_CONTENT_TYPE,
    )


async def _fetch_cf_image(client: httpx.AsyncClient, cf_id: str, config: Settings) -> FetchedImage:
    if not config.CF_IMAGES_DELIVERY_HASH:
        raise NotConfiguredError("Cloudflare Images not configured")
    url = cf_images.delivery_url(config.CF_IMAGES_DELIVERY_HASH, cf_id, "public")
    response = await client.get(url, headers={"Accept": "image/*"}, follow_redirects=True)
    if not response.is_success:
        raise UpstreamError(
            f"Failed to fetch image: {response.status_code}",
            upstream_status=response.status_code,
            body=response.text,
        )
    return _from_response(response)


async def fetch_photoprism_image(
    client: httpx.AsyncClient,
    content_hash: str,
    config: Settings = settings,
    size: str = DISPLAY_SIZE,
) -> FetchedImage:
    base_url, username, password = photoprism.get_photoprism_config(config)
    response = await photoprism.fetch_thumbnail(client, base_url, username, password, content_hash, size)
    return _from_response(response)


async def fetch_item_image(
    client: httpx.AsyncClient,
    image_id: str | None,
    config: Settings = settings,
    photoprism_size: str = DISPLAY_SIZE,
) -> FetchedImage:
    """Dispatch on the id prefix and return the bytes with public caching.

    Raises ``NotFoundError`` when there is nothing to fetch,
    ``NotConfiguredError`` when the owning backend lacks settings and
    ``UpstreamError`` for any failed or unreachable upstream.
    """
    if not image_id:
        raise NotFoundError("No image attached")

    try:
        if is_cf_image_ref(image_id):
            cf_id = from_cf_image_ref(image_id)
            if not cf_id:
                raise NotFoundError("Not found")
            return await _fetch_cf_image(client, cf_id, config)

        if is_photoprism_ref(image_id):
            content_hash = from_photoprism_ref(image_id)
            if not content_hash:
                raise NotFoundError("Not found")
            return await fetch_photoprism_image(client, content_hash, config, photoprism_size)

        base_url, username, password = webdav.get_webdav_config(config)
        response = await webdav.fetch_from_webdav(client, base_url, username, password, image_id)
        return _from_response(response)
    except UpstreamError as exc:
        logger.warning("image_fetch event=upstream_failed image_id=%s error=%s", image_id, exc)
        raise UpstreamError("Failed to fetch image", upstream_status=exc.upstream_status, body=exc.body) from exc
    except httpx.HTTPError as exc:
        logger.warning("image_fetch event=transport_failed image_id=%s error=%s", image_id, exc)
        raise UpstreamError("Failed to fetch image") from exc
