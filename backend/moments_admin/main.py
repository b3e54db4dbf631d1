import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from moments_admin.api.albums import router as albums_router
from moments_admin.api.auth import router as auth_router
from moments_admin.api.cf_images import router as cf_images_router
from moments_admin.api.items import router as items_router
from moments_admin.api.photoprism import router as photoprism_router
from moments_admin.api.public import router as public_router
from moments_admin.api.tags import router as tags_router
from moments_admin.core.config import settings
from moments_admin.core.errors import MomentsError
from moments_admin.core.rate_limit import limiter
from moments_admin.jobs.queue import get_cf_images_queue_length
from moments_admin.jobs.workers import run_cf_images_worker

logger = logging.getLogger(__name__)

app = FastAPI(title="Moments Admin", version="1.0.0")
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)
_background_tasks: set[asyncio.Task] = set()


def _allowed_origins() -> list[str]:
    origins = [settings.FRONTEND_URL.rstrip("/")]
    if settings.FRONTEND_URLS:
        extra = [item.strip().rstrip("/") for item in settings.FRONTEND_URLS.split(",") if item.strip()]
        origins.extend(extra)
    return list(dict.fromkeys(origins))

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins(),
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1|192\.168\.\d+\.\d+|10\.\d+\.\d+\.\d+|172\.(1[6-9]|2\d|3[0-1])\.\d+\.\d+)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MomentsError)
async def moments_error_handler(request: Request, exc: MomentsError):
    if exc.status_code >= 500:
        logger.warning("api event=request_failed path=%s status=%s error=%s", request.url.path, exc.status_code, exc.message)
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request body"
    if errors:
        location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        message = f"{message}: {location} {errors[0].get('msg', '')}".strip()
    return JSONResponse({"error": message}, status_code=400)


app.include_router(auth_router, prefix="/api")
app.include_router(albums_router, prefix="/api")
app.include_router(items_router, prefix="/api")
app.include_router(tags_router, prefix="/api")
app.include_router(photoprism_router, prefix="/api")
app.include_router(cf_images_router, prefix="/api")
app.include_router(public_router, prefix="/api")


@app.on_event("startup")
async def start_worker() -> None:
    if not settings.REDIS_URL:
        logger.info("worker event=disabled reason=no_redis")
        return
    task = asyncio.create_task(run_cf_images_worker())
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    logger.info("worker event=started queue=cf_images_jobs")


@app.on_event("shutdown")
async def stop_worker() -> None:
    for task in list(_background_tasks):
        task.cancel()


@app.get("/health")
async def health():
    queue_length = await asyncio.to_thread(get_cf_images_queue_length)
    return {"status": "ok", "cf_images_queue_length": queue_length}
