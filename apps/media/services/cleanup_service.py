"""
Image deletion and the unused-image sweep.
"""
import logging
import posixpath
from typing import Iterable, List

from apps.media.services.image_storage import ImageStorage
from apps.media.services.metrics import IMAGES_DESTROYED, SWEEP_UNUSED
from apps.media.services.storage_registry import StorageRegistry
from apps.media.storage.image_store import SqlContentReferences, SqlImageStore
from apps.media.storage.models import Image, SWEEPABLE_TYPES

logger = logging.getLogger("mediastore.cleanup")


async def is_folder_empty(storage: ImageStorage, path: str) -> bool:
    files = await storage.files(path)
    folders = await storage.directories(path)
    return not files and not folders


class CleanupService:
    def __init__(
        self,
        storage: StorageRegistry,
        images: SqlImageStore,
        references: SqlContentReferences,
        batch_size: int = 1000,
    ):
        self.storage = storage
        self.images = images
        self.references = references
        self.batch_size = batch_size

    async def destroy(self, image: Image) -> None:
        """
        Delete an image, every thumbnail of it and any folders left empty.
        The record goes last: if storage deletion fails it is kept.
        """
        await self.destroy_images_from_path(self.storage.for_type(image.type), image.path)
        await self.images.delete(image)
        IMAGES_DESTROYED.inc()
        logger.info(f"Destroyed image {image.id} ({image.path})")

    async def destroy_images_from_path(self, storage: ImageStorage, path: str) -> None:
        """
        Delete the file at path plus every file of the same name below its folder,
        which covers all thumbnail sizes and modes.
        """
        image_folder, file_name = posixpath.split(path.strip("/"))

        matches = [p for p in await storage.all_files(image_folder) if posixpath.basename(p) == file_name]
        if matches:
            await storage.delete(matches)

        folders = [image_folder] + await storage.directories(image_folder)
        # Children before the parent, so an emptied thumbnail folder frees its parent
        for folder in reversed(folders):
            if await is_folder_empty(storage, folder):
                await storage.delete_directory(folder)

    async def is_referenced(self, image: Image, check_revisions: bool) -> bool:
        name = posixpath.basename(image.path)
        if await self.references.count_containing(name) > 0:
            return True
        if check_revisions and await self.references.count_containing(name, revisions=True) > 0:
            return True
        return False

    async def sweep(
        self,
        check_revisions: bool = True,
        dry_run: bool = True,
        types: Iterable[str] = SWEEPABLE_TYPES,
    ) -> List[str]:
        """
        Find images whose file name appears in no page (and optionally no
        revision) and delete them unless dry_run is set.

        The match is a plain substring search on the file name, so an image is
        kept whenever its name shows up anywhere in the content.

        Returns:
            Paths of the images that would be, or have been, deleted
        """
        types = [t for t in types if t in SWEEPABLE_TYPES]
        unused: List[str] = []

        async for batch in self.images.query_by_types(types, batch_size=self.batch_size):
            for image in batch:
                if await self.is_referenced(image, check_revisions):
                    continue
                unused.append(image.path)
                SWEEP_UNUSED.labels(dry_run=str(dry_run).lower()).inc()
                if not dry_run:
                    await self.destroy(image)

        logger.info(
            f"Image sweep {'found' if dry_run else 'deleted'} {len(unused)} unused image(s) "
            f"(types={types}, revisions={check_revisions})"
        )
        return unused
