"""
Storage path naming for new source images.

Layout: uploads/images/<type>/<YYYY-MM>/[<secure-token>-]<slug>.<ext>
"""
import posixpath
import re
import secrets
import string
import unicodedata
from datetime import datetime
from typing import Awaitable, Callable, Optional

UPLOAD_ROOT = "uploads/images"

_ALPHABET = string.ascii_letters + string.digits

ExistsProbe = Callable[[str], Awaitable[bool]]


def random_string(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def slugify(value: str) -> str:
    """ASCII, URL-safe, lowercase slug with hyphen separators."""
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    value = value.replace("@", "-at-").lower()
    value = re.sub(r"[^a-z0-9\s_-]+", "", value)
    value = re.sub(r"[\s_-]+", "-", value)
    return value.strip("-")


def clean_file_name(name: str) -> str:
    """
    Make an uploaded file name URL and storage safe.
    The extension is kept as supplied; an empty stem becomes 10 random characters.
    """
    name = posixpath.basename(name.replace("\\", "/")).replace(" ", "-")
    stem, dot, extension = name.rpartition(".")
    if not dot:
        stem, extension = name, ""
    stem = slugify(stem)
    if not stem:
        stem = random_string(10)
    return f"{stem}.{extension}" if extension else stem


class PathNamer:
    """Derives collision-free storage paths for new uploads"""

    def __init__(self, secure_uploads: bool = False, now: Optional[Callable[[], datetime]] = None):
        self.secure_uploads = secure_uploads
        self.now = now or datetime.now

    def directory_for(self, image_type: str) -> str:
        return f"{UPLOAD_ROOT}/{image_type}/{self.now().strftime('%Y-%m')}"

    async def new_source_path(self, original_name: str, image_type: str, exists: ExistsProbe) -> str:
        """
        Build a path for a new image of the given type.

        Args:
            original_name: Client-supplied file name
            image_type: Image type, used as a directory level
            exists: Async storage existence probe

        Returns:
            Path not currently occupied in storage
        """
        directory = self.directory_for(image_type)
        file_name = clean_file_name(original_name)

        while await exists(f"{directory}/{file_name}"):
            file_name = random_string(3) + file_name

        if self.secure_uploads:
            # The 16 character token makes another probe pointless
            return f"{directory}/{random_string(16)}-{file_name}"

        return f"{directory}/{file_name}"
