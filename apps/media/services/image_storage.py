"""
Abstract interface for image storage backends.
Supports local filesystem, S3, or other storage providers.

Paths are logical, slash-separated strings such as
``uploads/images/gallery/2024-01/cat.png``. A leading slash is tolerated
and ignored.
"""
from abc import ABC, abstractmethod
from typing import List, Union


def normalize_path(path: str) -> str:
    """Strip surrounding slashes so every backend sees the same key."""
    return path.strip().strip("/")


class ImageStorage(ABC):
    """Abstract base class for image storage backends"""

    name: str = "abstract"

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """
        Check whether a file exists at the given path.

        Args:
            path: Logical storage path

        Returns:
            True if a file is stored at the path
        """
        pass

    @abstractmethod
    async def get(self, path: str) -> bytes:
        """
        Retrieve file bytes.

        Args:
            path: Logical storage path

        Returns:
            Raw bytes

        Raises:
            ImageNotFoundError: If nothing is stored at the path
        """
        pass

    @abstractmethod
    async def put(self, path: str, data: bytes) -> None:
        """
        Write bytes to the given path, replacing any existing file.
        Writes are whole-object: readers never observe a partial file.

        Args:
            path: Logical storage path
            data: Raw bytes
        """
        pass

    @abstractmethod
    async def set_public(self, path: str) -> None:
        """Mark a stored file as publicly readable."""
        pass

    @abstractmethod
    async def delete(self, paths: Union[str, List[str]]) -> None:
        """
        Delete one or many files. Missing files are ignored.

        Args:
            paths: A single path or a list of paths
        """
        pass

    @abstractmethod
    async def files(self, directory: str) -> List[str]:
        """List files directly inside a directory (non-recursive)."""
        pass

    @abstractmethod
    async def directories(self, directory: str) -> List[str]:
        """List subdirectories directly inside a directory (non-recursive)."""
        pass

    @abstractmethod
    async def all_files(self, directory: str) -> List[str]:
        """List every file below a directory, recursively."""
        pass

    @abstractmethod
    async def delete_directory(self, directory: str) -> None:
        """Remove a directory and anything left inside it."""
        pass
