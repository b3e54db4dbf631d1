import httpx
from fastapi import APIRouter, Depends

from moments_admin.api.auth import require_current_user
from moments_admin.core.http_client import get_http_client
from moments_admin.models.user import User
from moments_admin.services.cf_images import create_direct_upload, get_cf_images_config
from moments_admin.services.image_refs import to_cf_image_ref

router = APIRouter(prefix="/cf-images", tags=["cf-images"])


@router.post("/direct-upload")
async def direct_upload(
    current_user: User = Depends(require_current_user),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    account_id, api_token = get_cf_images_config()
    upload = await create_direct_upload(client, account_id, api_token)
    return {
        "id": upload["id"],
        "imageId": to_cf_image_ref(upload["id"]),
        "uploadURL": upload["upload_url"],
    }
