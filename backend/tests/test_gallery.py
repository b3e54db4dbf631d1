from moments_admin.services import albums as album_service
from moments_admin.services import items as item_service
from moments_admin.services import tags as tag_service
from moments_admin.services.gallery import get_gallery


async def _seed(db, owner):
    first = await album_service.create_album(db, owner.id, "Coast", is_public=True, order_id="a")
    second = await album_service.create_album(db, owner.id, "Hills", is_public=True, order_id="b")
    hidden = await album_service.create_album(db, owner.id, "Drafts")

    wave = await item_service.add_item_to_album(db, first.id, owner.id, "cf:wave")
    rock = await item_service.add_item_to_album(db, first.id, owner.id, "coast/rock.jpg")
    ridge = await item_service.add_item_to_album(db, second.id, owner.id, "photoprism:ridge")
    draft = await item_service.add_item_to_album(db, hidden.id, owner.id, "drafts/1.jpg")

    await tag_service.set_tags_for_entity(db, "item", wave.id, owner.id, ["Water"])
    await tag_service.set_tags_for_entity(db, "item", rock.id, owner.id, ["Water", "Stone"])
    await tag_service.set_tags_for_entity(db, "item", draft.id, owner.id, ["Secret"])
    return first, second, wave, rock, ridge


async def test_only_public_albums_in_order(db, owner, config):
    first, second, wave, rock, ridge = await _seed(db, owner)

    gallery = await get_gallery(db, config=config)

    assert [album["slug"] for album in gallery["albums"]] == ["coast", "hills"]
    assert [album["itemCount"] for album in gallery["albums"]] == [2, 1]
    assert [entry["id"] for entry in gallery["galleryItems"]] == [wave.id, rock.id, ridge.id]


async def test_thumb_urls_follow_image_source(db, owner, config):
    _, _, wave, rock, _ = await _seed(db, owner)

    gallery = await get_gallery(db, config=config)
    urls = {entry["id"]: entry["thumbUrl"] for entry in gallery["galleryItems"]}

    assert urls[wave.id] == "https://imagedelivery.net/dh/wave/thumbnail"
    assert urls[rock.id].startswith("https://cdn.example.com/cdn-cgi/image/")
    assert urls[rock.id].endswith(f"https://admin.example.com/api/public/items/{rock.id}/image")


async def test_tag_filter_and_top_tags(db, owner, config):
    _, _, wave, rock, _ = await _seed(db, owner)

    gallery = await get_gallery(db, tag="stone", config=config)

    assert [entry["id"] for entry in gallery["galleryItems"]] == [rock.id]
    assert gallery["galleryItems"][0]["tagSlugs"] == ["stone", "water"]
    assert gallery["topTags"] == [
        {"slug": "water", "name": "Water", "count": 2},
        {"slug": "stone", "name": "Stone", "count": 1},
    ]


async def test_items_per_album_cap(db, owner, config):
    album = await album_service.create_album(db, owner.id, "Many", is_public=True)
    for index in range(4):
        await item_service.add_item_to_album(db, album.id, owner.id, f"many/{index}.jpg")

    gallery = await get_gallery(db, config=config, items_per_album=3)

    assert len(gallery["galleryItems"]) == 3
    assert gallery["albums"][0]["itemCount"] == 4
