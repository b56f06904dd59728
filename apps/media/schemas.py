from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from apps.media.storage.models import SWEEPABLE_TYPES


class ImageOut(BaseModel):
    id: int
    name: str
    path: str
    url: str
    type: str
    uploaded_to: int
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    thumbnail_url: Optional[str] = None

    model_config = {"from_attributes": True}


class Base64Upload(BaseModel):
    image: str  # data:image/png;base64,...
    name: str
    type: str = "gallery"
    uploaded_to: int = 0


class ThumbnailResponse(BaseModel):
    id: int
    url: str
    width: int
    height: int
    keep_ratio: bool


class CleanupRequest(BaseModel):
    check_revisions: bool = True
    dry_run: bool = True
    types: List[str] = Field(default_factory=lambda: list(SWEEPABLE_TYPES))


class CleanupResponse(BaseModel):
    dry_run: bool
    count: int
    paths: List[str]
