"""Typed view over the JSON ``meta`` blob stored on items.

Known sections are ``exif`` (camera metadata) and ``crop`` (focal point per
image variant). Any other key is carried through untouched so that a crop
save never drops data written by another tool.
"""

from __future__ import annotations

import json
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

GRAVITY_VARIANTS = ("thumb", "hero")


class ExifMeta(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    camera_make: str | None = None
    camera_model: str | None = None
    lens_model: str | None = None
    iso: int | None = None
    focal_length: float | None = None
    f_number: float | None = None
    exposure: str | None = None
    taken_at: str | None = None
    width: int | None = None
    height: int | None = None
    lat: float | None = None
    lng: float | None = None

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


class FocalPoint(BaseModel):
    x: float = Field(ge=0, le=1)
    y: float = Field(ge=0, le=1)


class ItemMeta(BaseModel):
    model_config = ConfigDict(extra="allow")

    exif: ExifMeta | None = None
    crop: dict[str, FocalPoint] | None = None


def parse_item_meta(raw: str | None) -> ItemMeta:
    if not raw:
        return ItemMeta()
    try:
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("meta is not a JSON object")
        return ItemMeta.model_validate(data)
    except (ValueError, ValidationError) as exc:
        # Keep the unreadable blob instead of overwriting it on the next save.
        logger.warning("item_meta event=parse_failed error=%s", exc)
        return ItemMeta(legacy=raw)


def dump_item_meta(meta: ItemMeta) -> str | None:
    data = meta.model_dump(by_alias=True, exclude_none=True)
    if not data:
        return None
    return json.dumps(data, separators=(",", ":"))


def gravity_for_variant(meta: ItemMeta, variant: str) -> FocalPoint | None:
    if variant not in GRAVITY_VARIANTS or not meta.crop:
        return None
    return meta.crop.get(variant)
