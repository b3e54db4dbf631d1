from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field

from redis import Redis
from redis.exceptions import RedisError

from moments_admin.core.config import Settings, settings
from moments_admin.services.cf_images import is_cf_images_configured
from moments_admin.services.image_refs import is_cf_image_ref

_QUEUE_NAME = "cf_images_jobs"
_PROCESSING_NAME = "cf_images_jobs:processing"
_DEAD_NAME = "cf_images_jobs:dead"
MAX_ATTEMPTS = 5
_POP_ERROR_BACKOFF_SECONDS = 5
_redis_client: Redis | None = None
logger = logging.getLogger(__name__)


def _get_redis_client() -> Redis | None:
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    if not settings.REDIS_URL:
        return None

    _redis_client = Redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis_client


def _encode(item_id: str, image_id: str, attempts: int) -> str:
    return json.dumps({"itemId": item_id, "imageId": image_id, "attempts": attempts}, separators=(",", ":"))


@dataclass
class QueueMessage:
    """A claimed job; it stays in the processing list until acked or retried."""

    raw: str
    body: dict = field(default_factory=dict)
    attempts: int = 0

    @classmethod
    def from_raw(cls, raw: str) -> "QueueMessage":
        try:
            body = json.loads(raw)
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        attempts = body.get("attempts")
        return cls(raw=raw, body=body, attempts=attempts if isinstance(attempts, int) else 0)

    @property
    def item_id(self) -> str:
        value = self.body.get("itemId")
        return value if isinstance(value, str) else ""

    @property
    def image_id(self) -> str:
        value = self.body.get("imageId")
        return value if isinstance(value, str) else ""

    def ack(self) -> None:
        client = _get_redis_client()
        if client is None:
            return
        try:
            client.lrem(_PROCESSING_NAME, 1, self.raw)
        except RedisError as exc:
            logger.warning("cf_images_queue event=ack_failed item=%s error=%s", self.item_id, exc)

    def retry(self) -> None:
        """Put the job back with one more attempt, or dead-letter it."""
        client = _get_redis_client()
        if client is None:
            return
        attempts = self.attempts + 1
        pipe = client.pipeline()
        pipe.lrem(_PROCESSING_NAME, 1, self.raw)
        if attempts >= MAX_ATTEMPTS:
            pipe.rpush(_DEAD_NAME, _encode(self.item_id, self.image_id, attempts))
            logger.warning("cf_images_queue event=dead_letter item=%s attempts=%s", self.item_id, attempts)
        else:
            pipe.rpush(_QUEUE_NAME, _encode(self.item_id, self.image_id, attempts))
        try:
            pipe.execute()
        except RedisError as exc:
            logger.warning("cf_images_queue event=retry_failed item=%s error=%s", self.item_id, exc)


def push_cf_images_job(item_id: str, image_id: str) -> bool:
    client = _get_redis_client()
    if client is None:
        return False

    try:
        client.rpush(_QUEUE_NAME, _encode(item_id, image_id, 0))
    except RedisError as exc:
        logger.warning("cf_images_queue event=push_failed item=%s error=%s", item_id, exc)
        return False
    return True


def pop_cf_images_job() -> QueueMessage | None:
    client = _get_redis_client()
    if client is None:
        return None

    try:
        raw = client.blmove(_QUEUE_NAME, _PROCESSING_NAME, timeout=1, src="LEFT", dest="RIGHT")
    except RedisError as exc:
        logger.warning("cf_images_queue event=pop_failed error=%s", exc)
        time.sleep(_POP_ERROR_BACKOFF_SECONDS)
        return None

    if not raw:
        return None
    return QueueMessage.from_raw(raw)


def requeue_unacked_jobs() -> int:
    """Move jobs left in the processing list by a crashed worker back to the queue."""
    client = _get_redis_client()
    if client is None:
        return 0

    moved = 0
    try:
        while client.lmove(_PROCESSING_NAME, _QUEUE_NAME, src="LEFT", dest="RIGHT"):
            moved += 1
    except RedisError as exc:
        logger.warning("cf_images_queue event=requeue_failed error=%s", exc)
    return moved


def get_cf_images_queue_length() -> int:
    client = _get_redis_client()
    if client is None:
        return 0

    try:
        length = client.llen(_QUEUE_NAME)
        return int(length) if length is not None else 0
    except RedisError:
        return 0


def enqueue_cf_images_upload(item_id: str, image_id: str, config: Settings = settings) -> bool:
    """Queue a copy of the item's image into Cloudflare Images.

    No-op when the image already lives there, when the feature is not
    configured or when no queue is available.
    """
    if not image_id or is_cf_image_ref(image_id):
        return False
    if not is_cf_images_configured(config):
        return False
    return push_cf_images_job(item_id, image_id)
