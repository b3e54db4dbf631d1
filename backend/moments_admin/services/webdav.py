from __future__ import annotations

import base64
import logging

import httpx

from moments_admin.core.config import Settings, settings
from moments_admin.core.errors import NotConfiguredError, UpstreamError

logger = logging.getLogger(__name__)


class WebDAVError(UpstreamError):
    pass


def webdav_url(base_url: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def _auth_header(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def get_webdav_config(config: Settings = settings) -> tuple[str, str, str]:
    if not config.WEBDAV_BASE_URL or not config.WEBDAV_USERNAME or not config.WEBDAV_PASSWORD:
        raise NotConfiguredError("WebDAV not configured")
    return config.WEBDAV_BASE_URL, config.WEBDAV_USERNAME, config.WEBDAV_PASSWORD


async def upload_to_webdav(
    client: httpx.AsyncClient,
    base_url: str,
    username: str,
    password: str,
    path: str,
    content: bytes,
    content_type: str,
) -> None:
    response = await client.put(
        webdav_url(base_url, path),
        headers={"Authorization": _auth_header(username, password), "Content-Type": content_type},
        content=content,
    )
    if not response.is_success:
        logger.warning("webdav event=upload_failed path=%s status=%s", path, response.status_code)
        raise WebDAVError(
            f"WebDAV upload failed: {response.status_code} {response.text}",
            upstream_status=response.status_code,
            body=response.text,
        )


async def fetch_from_webdav(
    client: httpx.AsyncClient,
    base_url: str,
    username: str,
    password: str,
    path: str,
) -> httpx.Response:
    response = await client.get(
        webdav_url(base_url, path),
        headers={"Authorization": _auth_header(username, password)},
    )
    if not response.is_success:
        logger.warning("webdav event=fetch_failed path=%s status=%s", path, response.status_code)
        raise WebDAVError(
            f"WebDAV fetch failed: {response.status_code}",
            upstream_status=response.status_code,
            body=response.text,
        )
    return response
