"""Selects the storage backend used for a given image type."""
import logging
from typing import Callable, Dict

from apps.media.config import MediaConfig
from apps.media.services.image_storage import ImageStorage

logger = logging.getLogger("mediastore.storage")


class StorageRegistry:
    """
    Holds one lazily-built backend per name ('local', 'local_secure', 's3')
    and resolves which of them an image type lives on.
    """

    def __init__(self, config: MediaConfig, factories: Dict[str, Callable[[], ImageStorage]]):
        self.config = config
        self._factories = factories
        self._backends: Dict[str, ImageStorage] = {}

    def backend(self, name: str) -> ImageStorage:
        if name not in self._backends:
            if name not in self._factories:
                raise ValueError(f"Unsupported storage backend: {name}")
            self._backends[name] = self._factories[name]()
            logger.info(f"Initialized storage backend: {name}")
        return self._backends[name]

    def for_type(self, image_type: str = "") -> ImageStorage:
        """Backend for an image type, honouring the configured override table"""
        return self.backend(self.config.backend_for_type(image_type))

    def default(self) -> ImageStorage:
        return self.backend(self.config.storage_backend)
