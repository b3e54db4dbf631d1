from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str
    SESSION_SECRET: str = "dev-secret-change-in-production"
    SESSION_MAX_AGE_SECONDS: int = 60 * 60 * 24 * 7
    FRONTEND_URL: str = "http://localhost:4321"
    FRONTEND_URLS: str | None = None
    ADMIN_BASE_URL: str = "http://localhost:8000"
    CDN_ORIGIN: str | None = None
    HTTP_TIMEOUT_SECONDS: float = 30.0

    WEBDAV_BASE_URL: str | None = None
    WEBDAV_USERNAME: str | None = None
    WEBDAV_PASSWORD: str | None = None

    PHOTOPRISM_BASE_URL: str | None = None
    PHOTOPRISM_USERNAME: str | None = None
    PHOTOPRISM_PASSWORD: str | None = None

    CF_IMAGES_ACCOUNT_ID: str | None = None
    CF_IMAGES_API_TOKEN: str | None = None
    CF_IMAGES_DELIVERY_HASH: str | None = None

    REDIS_URL: str | None = None

    class Config:
        env_file = ".env"

settings = Settings()
