from __future__ import annotations

from urllib.parse import quote, urlsplit, urlunsplit

import httpx

from moments_admin.core.config import Settings, settings
from moments_admin.core.errors import NotConfiguredError
from moments_admin.services import photoprism
from moments_admin.services.image_fetch import DISPLAY_SIZE
from moments_admin.services.image_refs import from_photoprism_ref, is_photoprism_ref
from moments_admin.services.webdav import webdav_url


def with_basic_auth(url: str, username: str, password: str) -> str:
    """Embed credentials in the URL; Cloudflare's fetch-by-URL sends no custom headers."""
    parts = urlsplit(url)
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    if parts.port:
        host = f"{host}:{parts.port}"
    netloc = f"{quote(username, safe='')}:{quote(password, safe='')}@{host}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))


async def source_url_for_cf_upload(
    client: httpx.AsyncClient,
    image_id: str,
    config: Settings = settings,
) -> str | None:
    """Return a URL Cloudflare Images can pull the original from, or None."""
    if is_photoprism_ref(image_id):
        content_hash = from_photoprism_ref(image_id)
        if not content_hash:
            return None
        try:
            base_url, username, password = photoprism.get_photoprism_config(config)
        except NotConfiguredError:
            return None
        preview_token = await photoprism.get_preview_token(client, base_url, username, password)
        url = photoprism.thumbnail_url(base_url, content_hash, preview_token, DISPLAY_SIZE)
        return with_basic_auth(url, username, password)

    if not config.WEBDAV_BASE_URL or not config.WEBDAV_USERNAME or not config.WEBDAV_PASSWORD:
        return None
    return with_basic_auth(
        webdav_url(config.WEBDAV_BASE_URL, image_id),
        config.WEBDAV_USERNAME,
        config.WEBDAV_PASSWORD,
    )
