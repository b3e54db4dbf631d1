"""Prefix codecs telling which storage backend owns an ``imageId``.

An id without a known prefix is a literal path on the WebDAV share. Every
backend must claim its own prefix; the prefixes below must never overlap.
"""

from __future__ import annotations

PHOTOPRISM_PREFIX = "photoprism:"
CF_IMAGES_PREFIX = "cf:"

BACKEND_WEBDAV = "webdav"
BACKEND_PHOTOPRISM = "photoprism"
BACKEND_CF_IMAGES = "cf_images"


def is_photoprism_ref(image_id: str) -> bool:
    return image_id.startswith(PHOTOPRISM_PREFIX)


def to_photoprism_ref(content_hash: str) -> str:
    return f"{PHOTOPRISM_PREFIX}{content_hash}"


def from_photoprism_ref(image_id: str) -> str | None:
    if not is_photoprism_ref(image_id):
        return None
    return image_id[len(PHOTOPRISM_PREFIX):]


def is_cf_image_ref(image_id: str) -> bool:
    return image_id.startswith(CF_IMAGES_PREFIX)


def to_cf_image_ref(cf_image_id: str) -> str:
    return f"{CF_IMAGES_PREFIX}{cf_image_id}"


def from_cf_image_ref(image_id: str) -> str | None:
    if not is_cf_image_ref(image_id):
        return None
    return image_id[len(CF_IMAGES_PREFIX):]


def backend_for(image_id: str) -> str:
    if is_cf_image_ref(image_id):
        return BACKEND_CF_IMAGES
    if is_photoprism_ref(image_id):
        return BACKEND_PHOTOPRISM
    return BACKEND_WEBDAV
