"""
Mapping between storage paths and public URLs.
"""
from typing import Optional
from urllib.parse import urlsplit

from apps.media.config import MediaConfig
from apps.media.services.path_namer import UPLOAD_ROOT


class UrlResolver:
    """
    Converts storage paths to public URLs and back.

    The public base URL is computed on first use and kept for the lifetime of
    the instance; configuration is static once the process has started.
    """

    def __init__(self, config: MediaConfig):
        self.config = config
        self._storage_url: Optional[str] = None
        self._resolved = False

    def _object_storage_url(self) -> str:
        bucket = self.config.s3_bucket
        endpoint = self.config.s3_endpoint_url
        if endpoint:
            if "://" not in endpoint:
                endpoint = f"https://{endpoint}"
            parts = urlsplit(endpoint)
            scheme, host = parts.scheme, parts.netloc
        else:
            scheme, host = "https", "s3.amazonaws.com"

        # Virtual-hosted URLs break TLS hostname matching when the bucket has periods
        if "." not in bucket:
            return f"{scheme}://{bucket}.{host}"
        if endpoint:
            return f"{scheme}://{host}/{bucket}"
        return f"https://s3-{self.config.s3_region}.amazonaws.com/{bucket}"

    def storage_url(self) -> Optional[str]:
        """Public base URL for stored files, or None to use the app URL"""
        if not self._resolved:
            url = self.config.storage_url
            if not url and self.config.storage_backend == "s3":
                url = self._object_storage_url()
            self._storage_url = url or None
            self._resolved = True
        return self._storage_url

    def to_public_url(self, path: str) -> str:
        base = self.storage_url() or self.config.base_url
        return f"{base.rstrip('/')}/{path.lstrip('/')}"

    def to_storage_path(self, url: str) -> Optional[str]:
        """
        Storage path for a URL that points at one of our images.
        Always returns a path beginning with uploads/images, or None when
        the URL is not a local image.
        """
        url = url.strip().lstrip("/")
        if not url:
            return None

        if not url.startswith("http"):
            if url.lower().startswith(UPLOAD_ROOT):
                return self._safe(url.strip("/"))
            return None

        potential_bases = [
            f"{self.config.base_url.rstrip('/')}/{UPLOAD_ROOT}",
            self.to_public_url(f"{UPLOAD_ROOT}/"),
        ]
        for base in potential_bases:
            base = base.lower()
            if url.lower().startswith(base):
                remainder = url[len(base):].strip("/")
                return self._safe(f"{UPLOAD_ROOT}/{remainder}")

        return None

    @staticmethod
    def _safe(path: str) -> Optional[str]:
        if any(part == ".." for part in path.split("/")):
            return None
        return path
