from __future__ import annotations

import math
from datetime import datetime
from io import BytesIO

import exifread

from moments_admin.services.item_meta import ExifMeta

EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"


def _to_float(value) -> float:
    if hasattr(value, "num") and hasattr(value, "den"):
        if not value.den:
            return 0.0
        return float(value.num) / float(value.den)
    return float(value)


def _dms_to_decimal(dms_values, ref: str | None) -> float | None:
    if not dms_values or len(dms_values) < 3:
        return None

    degrees = _to_float(dms_values[0])
    minutes = _to_float(dms_values[1])
    seconds = _to_float(dms_values[2])
    decimal = degrees + (minutes / 60.0) + (seconds / 3600.0)

    if ref in {"S", "W"}:
        decimal *= -1
    return decimal


def _get_tag_value(tags: dict, key: str):
    tag = tags.get(key)
    if tag is None:
        return None
    value = getattr(tag, "values", tag)
    if isinstance(value, (list, tuple)) and value:
        return value[0]
    if isinstance(value, (list, tuple)):
        return None
    return value


def _get_text(tags: dict, key: str) -> str | None:
    tag = tags.get(key)
    if tag is None:
        return None
    text = str(tag).strip()
    return text or None


def _get_number(tags: dict, key: str) -> float | None:
    value = _get_tag_value(tags, key)
    if value is None:
        return None
    try:
        return _to_float(value)
    except (TypeError, ValueError):
        return None


def format_exposure(seconds: float) -> str:
    """Render an exposure time the way cameras print it: ``1/250`` or ``2s``."""
    if seconds >= 1:
        return f"{seconds:g}s"
    fraction = 1 / seconds
    if math.isclose(fraction, round(fraction), rel_tol=1e-6):
        return f"1/{int(round(fraction))}"
    return f"{seconds:g}s"


def _taken_at(tags: dict) -> str | None:
    raw = _get_text(tags, "EXIF DateTimeOriginal")
    if raw is None:
        return None
    try:
        return datetime.strptime(raw, EXIF_DATETIME_FORMAT).isoformat()
    except ValueError:
        return None


def extract_exif(image_bytes: bytes) -> ExifMeta | None:
    """Pick the camera fields shown in the admin from a JPEG's EXIF block."""
    tags = exifread.process_file(BytesIO(image_bytes), details=False)
    if not tags:
        return None

    lat_ref_tag = tags.get("GPS GPSLatitudeRef")
    lng_ref_tag = tags.get("GPS GPSLongitudeRef")
    lat = _dms_to_decimal(
        getattr(tags.get("GPS GPSLatitude"), "values", None),
        str(lat_ref_tag) if lat_ref_tag else None,
    )
    lng = _dms_to_decimal(
        getattr(tags.get("GPS GPSLongitude"), "values", None),
        str(lng_ref_tag) if lng_ref_tag else None,
    )

    width = _get_number(tags, "EXIF ExifImageWidth")
    if width is None:
        width = _get_number(tags, "Image ImageWidth")
    height = _get_number(tags, "EXIF ExifImageLength")
    if height is None:
        height = _get_number(tags, "Image ImageLength")

    iso = _get_number(tags, "EXIF ISOSpeedRatings")
    exposure = _get_number(tags, "EXIF ExposureTime")

    meta = ExifMeta(
        camera_make=_get_text(tags, "Image Make"),
        camera_model=_get_text(tags, "Image Model"),
        lens_model=_get_text(tags, "EXIF LensModel"),
        iso=int(iso) if iso is not None else None,
        focal_length=_get_number(tags, "EXIF FocalLength"),
        f_number=_get_number(tags, "EXIF FNumber"),
        exposure=format_exposure(exposure) if exposure else None,
        taken_at=_taken_at(tags),
        width=int(width) if width is not None else None,
        height=int(height) if height is not None else None,
        lat=lat,
        lng=lng,
    )
    return None if meta.is_empty() else meta
