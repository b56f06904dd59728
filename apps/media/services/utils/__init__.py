"""Utility functions for services"""

from .image_utils import content_type_for, decode_base64_uri, encode_data_uri

__all__ = [
    "content_type_for",
    "decode_base64_uri",
    "encode_data_uri",
]
