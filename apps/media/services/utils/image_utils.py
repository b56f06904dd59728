"""Image utility functions"""

import base64
import binascii
import posixpath

from apps.media.errors import UploadValidationError

BASE64_DELIMITER = ";base64,"


def decode_base64_uri(uri: str) -> bytes:
    """
    Decode the payload of a data URI such as ``data:image/png;base64,....``

    Raises:
        UploadValidationError: If the delimiter is missing or the payload is not base64
    """
    parts = uri.split(BASE64_DELIMITER, 1)
    if len(parts) < 2:
        raise UploadValidationError("Invalid base64 image data provided")

    try:
        return base64.b64decode(parts[1], validate=False)
    except (binascii.Error, ValueError) as e:
        raise UploadValidationError(f"Invalid base64 image data provided: {e}")


def encode_data_uri(img_bytes: bytes, path: str) -> str:
    """
    Encode image bytes as a data URI, typed by the file extension of path.
    """
    extension = posixpath.splitext(path)[1].lstrip(".")
    if extension == "svg":
        extension = "svg+xml"
    b64_string = base64.b64encode(img_bytes).decode("utf-8")
    return f"data:image/{extension};base64,{b64_string}"


CONTENT_TYPES = {
    'jpeg': 'image/jpeg',
    'jpg': 'image/jpeg',
    'png': 'image/png',
    'gif': 'image/gif',
    'webp': 'image/webp',
    'svg': 'image/svg+xml',
    'bmp': 'image/bmp',
}


def content_type_for(path: str) -> str:
    """MIME type from a file extension, octet-stream when unknown"""
    extension = posixpath.splitext(path)[1].lstrip(".").lower()
    return CONTENT_TYPES.get(extension, 'application/octet-stream')
