import logging

from apps.media.config import MediaConfig
from apps.media.services.cleanup_service import CleanupService
from apps.media.services.http_fetcher import HttpFetcher
from apps.media.services.image_cache import ImageCache
from apps.media.services.image_codec import ImageCodec
from apps.media.services.image_service import ImageService
from apps.media.services.local_file_storage import LocalFileStorage
from apps.media.services.path_namer import PathNamer
from apps.media.services.storage_registry import StorageRegistry
from apps.media.services.thumbnail_service import ThumbnailService
from apps.media.services.url_resolver import UrlResolver
from apps.media.storage.image_store import Database, SqlContentReferences, SqlImageStore

logger = logging.getLogger("mediastore")

_config = None
_storage = None
_database = None
_cache = None
_url_resolver = None
_thumbnails = None
_cleanup = None
_image_service = None


def get_config() -> MediaConfig:
    global _config
    if _config is None:
        _config = MediaConfig.from_env()
        logger.info(f"Using {_config.storage_backend} image storage")
    return _config


def _build_s3():
    from apps.media.services.s3_storage import S3Storage

    config = get_config()
    return S3Storage(
        bucket_name=config.s3_bucket,
        endpoint_url=config.s3_endpoint_url,
        access_key_id=config.s3_access_key_id,
        secret_access_key=config.s3_secret_access_key,
        region_name=config.s3_region,
    )


def get_storage() -> StorageRegistry:
    global _storage
    if _storage is None:
        config = get_config()
        _storage = StorageRegistry(config, {
            "local": lambda: LocalFileStorage(config.local_root, name="local"),
            "local_secure": lambda: LocalFileStorage(config.secure_root, name="local_secure"),
            "s3": _build_s3,
        })
    return _storage


def get_database() -> Database:
    global _database
    if _database is None:
        _database = Database(get_config().database_url)
    return _database


def get_image_store() -> SqlImageStore:
    return SqlImageStore(get_database())


def get_cache() -> ImageCache:
    global _cache
    if _cache is None:
        _cache = ImageCache(get_config().redis_url)
    return _cache


def get_url_resolver() -> UrlResolver:
    global _url_resolver
    if _url_resolver is None:
        _url_resolver = UrlResolver(get_config())
    return _url_resolver


def get_thumbnail_service() -> ThumbnailService:
    global _thumbnails
    if _thumbnails is None:
        _thumbnails = ThumbnailService(
            storage=get_storage(),
            cache=get_cache(),
            codec=ImageCodec(),
            urls=get_url_resolver(),
            cache_ttl=get_config().thumbnail_cache_ttl,
        )
    return _thumbnails


def get_cleanup_service() -> CleanupService:
    global _cleanup
    if _cleanup is None:
        _cleanup = CleanupService(
            storage=get_storage(),
            images=get_image_store(),
            references=SqlContentReferences(get_database()),
            batch_size=get_config().sweep_batch_size,
        )
    return _cleanup


def get_image_service() -> ImageService:
    global _image_service
    if _image_service is None:
        config = get_config()
        _image_service = ImageService(
            config=config,
            storage=get_storage(),
            images=get_image_store(),
            namer=PathNamer(secure_uploads=config.secure_images),
            urls=get_url_resolver(),
            codec=ImageCodec(),
            fetcher=HttpFetcher(),
        )
    return _image_service
