import httpx

from moments_admin.core.config import settings


async def get_http_client():
    async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS) as client:
        yield client
