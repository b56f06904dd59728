"""
On-demand thumbnail derivation with a Redis existence cache.

A thumbnail's storage path is computed from the source path and the
requested size/mode alone:

    <source dir>/thumbs-<w>-<h>/<source file>    (fit: crop to fill the box)
    <source dir>/scaled-<w>-<h>/<source file>    (keep ratio, never upscale)

No table records which thumbnails exist. The cache only ever says
"this one exists", and a miss always falls through to storage.
"""
import asyncio
import logging
import posixpath
import time

from apps.media.services.image_cache import ImageCache
from apps.media.services.image_codec import ImageCodec
from apps.media.services.metrics import RESIZE_LATENCY, THUMBNAIL_REQUESTS
from apps.media.services.storage_registry import StorageRegistry
from apps.media.services.url_resolver import UrlResolver
from apps.media.storage.models import Image

logger = logging.getLogger("mediastore.thumbnails")

THUMBNAIL_CACHE_TTL = 60 * 60 * 72

# Resizing these would drop every frame but the first
ANIMATED_EXTENSIONS = ("gif",)


def is_animated(path: str) -> bool:
    return posixpath.splitext(path)[1].lstrip(".").lower() in ANIMATED_EXTENSIONS


def thumbnail_path(source_path: str, width: int, height: int, keep_ratio: bool) -> str:
    prefix = "scaled-" if keep_ratio else "thumbs-"
    directory, file_name = posixpath.split(source_path)
    return f"{directory}/{prefix}{width}-{height}/{file_name}"


def cache_key(image_id: int, derived_path: str) -> str:
    return f"images-{image_id}-{derived_path}"


class ThumbnailService:
    def __init__(
        self,
        storage: StorageRegistry,
        cache: ImageCache,
        codec: ImageCodec,
        urls: UrlResolver,
        cache_ttl: int = THUMBNAIL_CACHE_TTL,
    ):
        self.storage = storage
        self.cache = cache
        self.codec = codec
        self.urls = urls
        self.cache_ttl = cache_ttl

    async def resize(self, data: bytes, width, height, keep_ratio: bool) -> bytes:
        """Run the codec off the event loop"""
        loop = asyncio.get_event_loop()
        t0 = time.perf_counter()
        try:
            return await loop.run_in_executor(None, self.codec.resize, data, width, height, keep_ratio)
        finally:
            RESIZE_LATENCY.observe(time.perf_counter() - t0)

    async def get_thumbnail(
        self, image: Image, width: int = 220, height: int = 220, keep_ratio: bool = False
    ) -> str:
        """
        Public URL of a thumbnail for the image, creating it on first request.

        Checks the cache, then storage, and only then resizes the source.
        Concurrent first requests for the same size may both resize and write;
        the writes are whole-object and identical, so the last one simply wins.

        Raises:
            DerivationError: The source cannot be decoded
            ImageNotFoundError: The source bytes are missing
        """
        if keep_ratio and is_animated(image.path):
            THUMBNAIL_REQUESTS.labels(outcome="animated").inc()
            return self.urls.to_public_url(image.path)

        derived_path = thumbnail_path(image.path, width, height, keep_ratio)
        key = cache_key(image.id, derived_path)

        if await self.cache.has(key):
            THUMBNAIL_REQUESTS.labels(outcome="cache").inc()
            return self.urls.to_public_url(derived_path)

        storage = self.storage.for_type(image.type)
        if await storage.exists(derived_path):
            await self.cache.put(key, derived_path, self.cache_ttl)
            THUMBNAIL_REQUESTS.labels(outcome="storage").inc()
            return self.urls.to_public_url(derived_path)

        source = await storage.get(image.path)
        data = await self.resize(source, width, height, keep_ratio)

        await storage.put(derived_path, data)
        await storage.set_public(derived_path)
        await self.cache.put(key, derived_path, self.cache_ttl)

        THUMBNAIL_REQUESTS.labels(outcome="generated").inc()
        logger.info(f"Generated thumbnail {derived_path} ({len(data)} bytes) for image {image.id}")
        return self.urls.to_public_url(derived_path)
