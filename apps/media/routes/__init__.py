"""API Routes package"""
from . import health, images, uploads

__all__ = ["health", "images", "uploads"]
