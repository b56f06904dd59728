"""
Resolved runtime configuration for the media service.
Values are read from the environment once at startup and injected into
storage backends, URL resolution and the upload services.
"""
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

STORAGE_BACKENDS = ("local", "local_secure", "s3")

DEFAULT_AVATAR_URL = "https://www.gravatar.com/avatar/${hash}?s=${size}&d=identicon"


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class MediaConfig:
    """Static configuration. Never changes after the process has started."""
    storage_backend: str = "local"
    local_root: str = "./public"
    secure_root: str = "./storage"
    storage_url: Optional[str] = None  # public base URL override
    base_url: str = "http://localhost:8000"
    s3_bucket: str = "media"
    s3_region: str = "us-east-1"
    s3_endpoint_url: Optional[str] = None
    s3_access_key_id: Optional[str] = None
    s3_secret_access_key: Optional[str] = None
    secure_images: bool = False
    avatar_url: str = ""
    disable_external_services: bool = False
    redis_url: str = "redis://localhost:6379"
    database_url: str = "sqlite:///./media.db"
    thumbnail_cache_ttl: int = 60 * 60 * 72
    sweep_batch_size: int = 1000
    # (image type, configured backend) -> backend actually used
    backend_overrides: dict = field(
        default_factory=lambda: {("system", "local_secure"): "local"}
    )

    def __post_init__(self):
        if self.storage_backend not in STORAGE_BACKENDS:
            raise ValueError(f"Unsupported storage backend: {self.storage_backend}")

    @classmethod
    def from_env(cls) -> "MediaConfig":
        load_dotenv()
        return cls(
            storage_backend=os.getenv("IMAGE_STORAGE_BACKEND", "local").lower(),
            local_root=os.getenv("IMAGE_STORAGE_PATH", "./public"),
            secure_root=os.getenv("IMAGE_SECURE_STORAGE_PATH", "./storage"),
            storage_url=os.getenv("STORAGE_URL") or None,
            base_url=os.getenv("BASE_URL", "http://localhost:8000"),
            s3_bucket=os.getenv("S3_BUCKET_NAME", "media"),
            s3_region=os.getenv("S3_REGION", "us-east-1"),
            s3_endpoint_url=os.getenv("S3_ENDPOINT_URL") or None,
            s3_access_key_id=os.getenv("S3_ACCESS_KEY_ID"),
            s3_secret_access_key=os.getenv("S3_SECRET_ACCESS_KEY"),
            secure_images=_env_bool("SECURE_IMAGES"),
            avatar_url=os.getenv("AVATAR_URL", ""),
            disable_external_services=_env_bool("DISABLE_EXTERNAL_SERVICES"),
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379"),
            database_url=os.getenv("DATABASE_URL", "sqlite:///./media.db"),
            thumbnail_cache_ttl=int(os.getenv("THUMBNAIL_CACHE_TTL", str(60 * 60 * 72))),
            sweep_batch_size=int(os.getenv("IMAGE_SWEEP_BATCH_SIZE", "1000")),
        )

    def backend_for_type(self, image_type: str = "") -> str:
        return self.backend_overrides.get((image_type, self.storage_backend), self.storage_backend)

    def resolved_avatar_url(self) -> str:
        url = (self.avatar_url or "").strip()
        if not url and not self.disable_external_services:
            url = DEFAULT_AVATAR_URL
        return url
