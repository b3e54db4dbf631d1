"""Build CDN transform URLs and direct delivery URLs for item images.

Everything here is pure string work: identical inputs always give identical
URLs, which keeps CDN cache keys stable.

Focal points are written as ``gravity=<x>x<y>`` (e.g. ``gravity=0.5x0.33``),
the coordinate form Cloudflare's ``/cdn-cgi/image`` options accept. A
comma-separated ``x,y`` pair would be split as two separate options.
"""

from __future__ import annotations

from typing import Literal

from moments_admin.services.cf_images import delivery_url
from moments_admin.services.image_refs import from_cf_image_ref
from moments_admin.services.item_meta import FocalPoint, ItemMeta, gravity_for_variant

ImageVariant = Literal["thumb", "grid", "hero"]
IMAGE_VARIANTS = ("thumb", "grid", "hero")

VARIANT_OPTIONS = {
    "thumb": "width=500,height=500,fit=cover,quality=85",
    "grid": "width=720,height=720,fit=inside,quality=85",
    "hero": "width=1920,height=1080,fit=cover,quality=85",
}

# Variant names configured on the Cloudflare Images account.
CF_IMAGES_VARIANTS = {
    "thumb": "thumbnail",
    "grid": "public",
    "hero": "public",
}


def _coordinate(value: float) -> str:
    clamped = min(1.0, max(0.0, float(value)))
    return format(round(clamped, 2), "g")


def get_cf_image_url(
    origin: str,
    source_url: str,
    variant: ImageVariant = "thumb",
    gravity: FocalPoint | None = None,
) -> str:
    options = VARIANT_OPTIONS[variant]
    if gravity is not None and variant in ("thumb", "hero"):
        options = f"{options},gravity={_coordinate(gravity.x)}x{_coordinate(gravity.y)}"
    return f"{origin.rstrip('/')}/cdn-cgi/image/{options}/{source_url}"


def get_cf_images_delivery_url(image_id: str, delivery_hash: str, variant: ImageVariant = "thumb") -> str | None:
    cf_id = from_cf_image_ref(image_id)
    if not cf_id:
        return None
    return delivery_url(delivery_hash, cf_id, CF_IMAGES_VARIANTS[variant])


def public_item_image_url(admin_base_url: str, item_id: str) -> str:
    return f"{admin_base_url.rstrip('/')}/api/public/items/{item_id}/image"


def build_item_image_url(
    item_id: str,
    image_id: str,
    meta: ItemMeta,
    variant: ImageVariant,
    admin_base_url: str,
    cdn_origin: str | None = None,
    delivery_hash: str | None = None,
) -> str:
    if delivery_hash:
        direct = get_cf_images_delivery_url(image_id, delivery_hash, variant)
        if direct:
            return direct
    source_url = public_item_image_url(admin_base_url, item_id)
    if not cdn_origin:
        return source_url
    return get_cf_image_url(cdn_origin, source_url, variant, gravity_for_variant(meta, variant))
