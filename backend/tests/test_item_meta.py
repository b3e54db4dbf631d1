import json

import pytest
from pydantic import ValidationError

from moments_admin.services.item_meta import (
    ExifMeta,
    FocalPoint,
    ItemMeta,
    dump_item_meta,
    gravity_for_variant,
    parse_item_meta,
)


class TestParse:
    def test_empty(self):
        assert parse_item_meta(None) == ItemMeta()
        assert parse_item_meta("") == ItemMeta()

    def test_known_sections(self):
        meta = parse_item_meta(json.dumps({"exif": {"cameraMake": "Leica", "iso": 200}, "crop": {"hero": {"x": 0.1, "y": 0.9}}}))

        assert meta.exif.camera_make == "Leica"
        assert meta.exif.iso == 200
        assert meta.crop["hero"] == FocalPoint(x=0.1, y=0.9)

    def test_unknown_keys_survive_a_round_trip(self):
        raw = json.dumps({"rating": 5, "crop": {"thumb": {"x": 0.5, "y": 0.5}}})

        meta = parse_item_meta(raw)
        meta.crop = None

        assert json.loads(dump_item_meta(meta)) == {"rating": 5}

    def test_unparseable_blob_is_kept(self):
        meta = parse_item_meta("{not json")

        assert json.loads(dump_item_meta(meta)) == {"legacy": "{not json"}

    def test_non_object_is_kept(self):
        meta = parse_item_meta("[1, 2]")

        assert meta.model_extra["legacy"] == "[1, 2]"


class TestDump:
    def test_empty_meta_dumps_to_none(self):
        assert dump_item_meta(ItemMeta()) is None

    def test_uses_camel_case_exif_keys(self):
        dumped = json.loads(dump_item_meta(ItemMeta(exif=ExifMeta(f_number=2.8, lens_model="35mm"))))
        assert dumped == {"exif": {"fNumber": 2.8, "lensModel": "35mm"}}


class TestFocalPoint:
    @pytest.mark.parametrize("x,y", [(-0.1, 0.5), (0.5, 1.2)])
    def test_out_of_range(self, x, y):
        with pytest.raises(ValidationError):
            FocalPoint(x=x, y=y)


class TestGravity:
    def test_only_thumb_and_hero(self):
        meta = ItemMeta(crop={"grid": FocalPoint(x=0.2, y=0.2), "hero": FocalPoint(x=0.4, y=0.4)})

        assert gravity_for_variant(meta, "grid") is None
        assert gravity_for_variant(meta, "hero") == FocalPoint(x=0.4, y=0.4)
        assert gravity_for_variant(meta, "thumb") is None
