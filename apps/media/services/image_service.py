"""
Creating new images from uploads, data URIs and remote URLs.
"""
import asyncio
import hashlib
import logging
import posixpath
from typing import Optional
from urllib.parse import quote_plus, urlparse

from apps.media.auth.models import CurrentUser
from apps.media.config import MediaConfig
from apps.media.errors import RemoteFetchError, StorageWriteError
from apps.media.services.http_fetcher import HttpFetcher
from apps.media.services.image_codec import ImageCodec
from apps.media.services.metrics import IMAGES_UPLOADED
from apps.media.services.path_namer import PathNamer
from apps.media.services.storage_registry import StorageRegistry
from apps.media.services.url_resolver import UrlResolver
from apps.media.services.utils.image_utils import decode_base64_uri, encode_data_uri
from apps.media.storage.image_store import SqlImageStore
from apps.media.storage.models import Image, UNATTACHED

logger = logging.getLogger("mediastore.uploads")


class ImageService:
    def __init__(
        self,
        config: MediaConfig,
        storage: StorageRegistry,
        images: SqlImageStore,
        namer: PathNamer,
        urls: UrlResolver,
        codec: ImageCodec,
        fetcher: HttpFetcher,
    ):
        self.config = config
        self.storage = storage
        self.images = images
        self.namer = namer
        self.urls = urls
        self.codec = codec
        self.fetcher = fetcher

    async def save_new_from_upload(
        self,
        name: str,
        data: bytes,
        image_type: str,
        uploaded_to: int = UNATTACHED,
        resize_width: Optional[int] = None,
        resize_height: Optional[int] = None,
        keep_ratio: bool = True,
        user: Optional[CurrentUser] = None,
    ) -> Image:
        """Save uploaded bytes, resizing first when a width or height is given"""
        if resize_width is not None or resize_height is not None:
            loop = asyncio.get_event_loop()
            data = await loop.run_in_executor(
                None, self.codec.resize, data, resize_width, resize_height, keep_ratio
            )
        return await self.save_new(name, data, image_type, uploaded_to, user)

    async def save_new_from_base64_uri(
        self,
        uri: str,
        name: str,
        image_type: str,
        uploaded_to: int = UNATTACHED,
        user: Optional[CurrentUser] = None,
    ) -> Image:
        data = decode_base64_uri(uri)
        return await self.save_new(name, data, image_type, uploaded_to, user)

    async def save_new_from_url(self, url: str, image_type: str, name: Optional[str] = None) -> Image:
        name = name or posixpath.basename(urlparse(url).path) or "image"
        try:
            data = await self.fetcher.fetch(url)
        except RemoteFetchError as e:
            raise RemoteFetchError(url) from e
        return await self.save_new(name, data, image_type)

    async def save_new(
        self,
        name: str,
        data: bytes,
        image_type: str,
        uploaded_to: int = UNATTACHED,
        user: Optional[CurrentUser] = None,
    ) -> Image:
        """
        Write bytes to a fresh path and create the image record.
        Nothing is recorded if the write fails.

        Raises:
            StorageWriteError: The backend refused the write
        """
        storage = self.storage.for_type(image_type)
        path = await self.namer.new_source_path(name, image_type, storage.exists)

        try:
            await storage.put(path, data)
            await storage.set_public(path)
        except Exception as e:
            logger.error(f"Failed to write image to {path}: {e}")
            raise StorageWriteError(path) from e

        fields = {
            "name": name,
            "path": path,
            "url": self.urls.to_public_url(path),
            "type": image_type,
            "uploaded_to": uploaded_to,
        }
        if user is not None:
            fields["created_by"] = user.id
            fields["updated_by"] = user.id

        image = await self.images.create(fields)
        IMAGES_UPLOADED.labels(type=image_type).inc()
        logger.info(f"Saved image {image.id} at {path} ({len(data)} bytes)")
        return image

    def avatar_fetch_enabled(self) -> bool:
        return self.config.resolved_avatar_url().startswith("http")

    def avatar_url_for(self, user: CurrentUser, size: int = 500) -> str:
        email = (user.email or "").strip().lower()
        replacements = {
            "${hash}": hashlib.md5(email.encode("utf-8")).hexdigest(),
            "${size}": str(size),
            "${email}": quote_plus(email),
        }
        url = self.config.resolved_avatar_url()
        for placeholder, value in replacements.items():
            url = url.replace(placeholder, value)
        return url

    async def save_user_avatar(self, user: CurrentUser, size: int = 500) -> Image:
        """Fetch the user's avatar from the configured avatar service and store it"""
        image_name = f"{user.name or user.id}-avatar.png".replace(" ", "-")
        image = await self.save_new_from_url(self.avatar_url_for(user, size), "user", image_name)
        return await self.images.update(image, {
            "created_by": user.id,
            "updated_by": user.id,
            "uploaded_to": int(user.id) if user.id.isdigit() else UNATTACHED,
        })

    async def get_image_data(self, image: Image) -> bytes:
        return await self.storage.for_type(image.type).get(image.path)

    async def image_uri_to_base64(self, uri: str) -> Optional[str]:
        """
        Data URI for an image URL pointing at our own storage, or None
        when the URL is not local or the file is missing.
        """
        storage_path = self.urls.to_storage_path(uri)
        if not uri or storage_path is None:
            return None

        storage = self.storage.default()
        if not await storage.exists(storage_path):
            return None

        data = await storage.get(storage_path)
        return encode_data_uri(data, storage_path)
