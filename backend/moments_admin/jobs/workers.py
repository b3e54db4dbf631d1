from __future__ import annotations

import asyncio
import logging

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from moments_admin.core.config import Settings, settings
from moments_admin.core.database import AsyncSessionLocal
from moments_admin.jobs.queue import QueueMessage, pop_cf_images_job, requeue_unacked_jobs
from moments_admin.models.item import Item
from moments_admin.services.cf_images import get_cf_images_config, is_cf_images_configured, upload_from_url
from moments_admin.services.image_refs import is_cf_image_ref, to_cf_image_ref
from moments_admin.services.items import replace_item_image
from moments_admin.services.source_url import source_url_for_cf_upload

logger = logging.getLogger(__name__)


async def process_cf_images_upload(
    db: AsyncSession,
    client: httpx.AsyncClient,
    item_id: str,
    image_id: str,
    config: Settings = settings,
) -> str | None:
    """Copy one item's image into Cloudflare Images and repoint the item.

    Returns the new ``cf:`` reference, or None when there was nothing to do.
    Safe to run more than once for the same job.
    """
    if not item_id or not image_id:
        return None
    if is_cf_image_ref(image_id):
        return None
    if not is_cf_images_configured(config):
        return None

    result = await db.execute(select(Item.image_id).where(Item.id == item_id, Item.deleted_at.is_(None)))
    current_image_id = result.scalar_one_or_none()
    if current_image_id != image_id:
        logger.info("cf_images_worker event=skip_stale item=%s", item_id)
        return None

    source_url = await source_url_for_cf_upload(client, image_id, config)
    if not source_url:
        return None

    account_id, api_token = get_cf_images_config(config)
    cf_id = await upload_from_url(client, account_id, api_token, source_url)
    new_image_id = to_cf_image_ref(cf_id)

    if not await replace_item_image(db, item_id, image_id, new_image_id):
        logger.info("cf_images_worker event=item_changed item=%s cf_id=%s", item_id, cf_id)
        return None
    logger.info("cf_images_worker event=item_repointed item=%s cf_id=%s", item_id, cf_id)
    return new_image_id


async def handle_message(message: QueueMessage, config: Settings = settings) -> None:
    try:
        async with AsyncSessionLocal() as db, httpx.AsyncClient(timeout=config.HTTP_TIMEOUT_SECONDS) as client:
            await process_cf_images_upload(db, client, message.item_id, message.image_id, config)
    except Exception:
        logger.exception("cf_images_worker event=job_failed item=%s attempts=%s", message.item_id, message.attempts)
        await asyncio.to_thread(message.retry)
        return
    await asyncio.to_thread(message.ack)


async def run_cf_images_worker() -> None:
    requeued = await asyncio.to_thread(requeue_unacked_jobs)
    if requeued:
        logger.info("cf_images_worker event=requeued count=%s", requeued)
    while True:
        message = await asyncio.to_thread(pop_cf_images_job)
        if message is None:
            continue
        await handle_message(message)
