"""
Local filesystem implementation of ImageStorage.
Logical paths map directly onto a directory tree below a root folder.
"""
import asyncio
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import List, Union

from apps.media.errors import ImageNotFoundError
from apps.media.services.image_storage import ImageStorage, normalize_path

logger = logging.getLogger("mediastore.storage")


class LocalFileStorage(ImageStorage):
    """Local filesystem storage rooted at base_path"""

    def __init__(self, base_path: str = "./public", name: str = "local"):
        self.base_path = Path(base_path).resolve()
        self.name = name
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _full_path(self, path: str) -> Path:
        """Resolve a logical path, refusing anything that escapes the root"""
        full = (self.base_path / normalize_path(path)).resolve()
        if full != self.base_path and self.base_path not in full.parents:
            raise ValueError(f"Path escapes storage root: {path}")
        return full

    def _logical(self, full: Path) -> str:
        return full.relative_to(self.base_path).as_posix()

    async def _run(self, fn, *args):
        # Use executor to avoid blocking event loop
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, fn, *args)

    async def exists(self, path: str) -> bool:
        return await self._run(self._full_path(path).is_file)

    async def get(self, path: str) -> bytes:
        full = self._full_path(path)
        try:
            return await self._run(full.read_bytes)
        except (FileNotFoundError, IsADirectoryError):
            raise ImageNotFoundError(path)

    async def put(self, path: str, data: bytes) -> None:
        full = self._full_path(path)

        def write():
            full.parent.mkdir(parents=True, exist_ok=True)
            # Write beside the target then swap in, so readers never see half a file.
            # Each call gets its own temp file; concurrent writers of one path race on replace only.
            with tempfile.NamedTemporaryFile(
                dir=full.parent, prefix=f".{full.name}.", suffix=".tmp", delete=False
            ) as tmp:
                tmp_path = Path(tmp.name)
            try:
                tmp_path.write_bytes(data)
                os.replace(tmp_path, full)
            finally:
                tmp_path.unlink(missing_ok=True)

        await self._run(write)

    async def set_public(self, path: str) -> None:
        await self._run(os.chmod, self._full_path(path), 0o644)

    async def delete(self, paths: Union[str, List[str]]) -> None:
        if isinstance(paths, str):
            paths = [paths]
        targets = [self._full_path(p) for p in paths]

        def remove():
            for target in targets:
                target.unlink(missing_ok=True)

        await self._run(remove)

    async def files(self, directory: str) -> List[str]:
        full = self._full_path(directory)

        def list_files():
            if not full.is_dir():
                return []
            return sorted(self._logical(p) for p in full.iterdir() if p.is_file())

        return await self._run(list_files)

    async def directories(self, directory: str) -> List[str]:
        full = self._full_path(directory)

        def list_dirs():
            if not full.is_dir():
                return []
            return sorted(self._logical(p) for p in full.iterdir() if p.is_dir())

        return await self._run(list_dirs)

    async def all_files(self, directory: str) -> List[str]:
        full = self._full_path(directory)

        def walk():
            if not full.is_dir():
                return []
            return sorted(self._logical(p) for p in full.rglob("*") if p.is_file())

        return await self._run(walk)

    async def delete_directory(self, directory: str) -> None:
        full = self._full_path(directory)
        if full == self.base_path:
            raise ValueError("Refusing to delete the storage root")
        logger.debug(f"Removing directory {full}")
        await self._run(lambda: shutil.rmtree(full, ignore_errors=True))
