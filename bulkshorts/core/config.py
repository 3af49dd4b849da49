from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from typing import Literal

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    APP_NAME: str = "bulkshorts"
    ENV: Literal["local", "dev", "prod"] = "local"
    API_PREFIX: str = "/api/v1"

    # Media record store
    DATABASE_DSN: str = "sqlite+aiosqlite:///./bulkshorts.db"

    # Auth (tokens are minted by the external sign-in provider; HS256 for local)
    JWT_ALG: str = "HS256"
    JWT_SECRET: str = "dev-secret-change-me"
    REQUIRED_AUDIENCE: str | None = None

    # Partition used when no user is signed in
    DEFAULT_USER_ID: str = "guest"

    # Object storage provider (local media binaries)
    OBJECT_STORAGE_PROVIDER: Literal["local", "s3"] = "local"

    # Local storage
    LOCAL_STORAGE_ROOT: str = "./media"

    # S3/MinIO
    S3_ENDPOINT_URL: str | None = None  # e.g. http://127.0.0.1:9000 for MinIO
    S3_REGION: str = "us-east-1"
    S3_BUCKET: str = "bulkshorts-media"
    S3_ACCESS_KEY: str | None = None
    S3_SECRET_KEY: str | None = None

    # Post store (single JSON document, partitioned by user)
    POSTS_STORAGE_PATH: str = "./bulkshorts_posts.json"
    POSTS_STORAGE_KEY: str = "bulkshorts_posts_v1"
    POSTS_WATCH_INTERVAL_SECONDS: float = 1.0

    EVENT_BUS_PROVIDER: str = "noop"  # noop | redis
    REDIS_URL: str | None = None
    REDIS_STREAM: str | None = None  # default "bulkshorts.events" if None
    REDIS_STREAM_MAXLEN: int = 10000

    @field_validator("DATABASE_DSN")
    @classmethod
    def _must_be_async(cls, v: str):
        if "+asyncpg" not in v and "+aiosqlite" not in v:
            raise ValueError("DATABASE_DSN must use an async driver (sqlite+aiosqlite:// or postgresql+asyncpg://)")
        return v

settings = Settings()
