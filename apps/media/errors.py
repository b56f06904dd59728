"""Error taxonomy for image upload, derivation and storage failures."""


class ImageError(Exception):
    """Base class for all media errors"""


class UploadValidationError(ImageError):
    """Malformed upload input, e.g. a base64 payload without its data-URI delimiter"""


class StorageWriteError(ImageError):
    """The storage backend rejected a write"""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Image path {path} is not writable by the server")


class DerivationError(ImageError):
    """The codec could not read the source bytes (unsupported or corrupt format)"""

    def __init__(self, message: str = "Cannot create thumbnails from this image"):
        super().__init__(message)


class RemoteFetchError(ImageError):
    """Fetching an image from a remote URL failed"""

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        super().__init__(f"Cannot get image from {url}" + (f": {reason}" if reason else ""))


class ImageNotFoundError(ImageError):
    """Source bytes are missing from storage"""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Image not found: {path}")
