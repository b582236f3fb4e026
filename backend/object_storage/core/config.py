"""Application settings."""
from pathlib import Path
from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """App config from env."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    app_name: str = "Object storage interface example app"
    debug: bool = False
    # Structured logging: set LOG_JSON=1 for one-JSON-object-per-line
    log_json: bool = False
    # If set, /metrics requires the X-Metrics-Secret header
    metrics_secret: str | None = None
    port: int = 5000

    # Public URL of this app as seen by clients. Locally this is usually
    # http://localhost:5000, a LAN address, or an ngrok URL. Required.
    public_base_url: str

    # Storage: local (dev disk) or s3 (AWS). Unknown values fall back to local.
    object_storage_implementation: str = "local"
    # Relative paths are resolved against the working directory the server starts in
    local_object_storage_dir: str = ".local-object-storage"

    # S3 (only used when object_storage_implementation=s3), one bucket per dataset
    s3_profile_images_bucket: str = ""
    s3_floorplans_bucket: str = ""
    aws_region: str = "us-east-1"
    # MinIO / LocalStack
    s3_endpoint_url: str | None = None

    @field_validator("public_base_url")
    @classmethod
    def _require_public_base_url(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("PUBLIC_BASE_URL must be defined")
        return v.rstrip("/")

    @field_validator("object_storage_implementation")
    @classmethod
    def _normalize_implementation(cls, v: str) -> str:
        return v.strip().lower()

    @model_validator(mode="after")
    def _require_buckets_for_s3(self) -> "Settings":
        if self.object_storage_implementation != "s3":
            return self
        if not self.s3_profile_images_bucket.strip():
            raise ValueError("S3_PROFILE_IMAGES_BUCKET must be set when OBJECT_STORAGE_IMPLEMENTATION is s3")
        if not self.s3_floorplans_bucket.strip():
            raise ValueError("S3_FLOORPLANS_BUCKET must be set when OBJECT_STORAGE_IMPLEMENTATION is s3")
        return self

    @property
    def local_object_storage_root(self) -> Path:
        root = Path(self.local_object_storage_dir)
        if not root.is_absolute():
            root = Path.cwd() / root
        return root.resolve()


@lru_cache
def get_settings() -> Settings:
    return Settings()
