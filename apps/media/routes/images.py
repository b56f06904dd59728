"""Image routes - upload, fetch, thumbnails, delete, cleanup"""
from fastapi import APIRouter, UploadFile, File, Form, HTTPException, Depends, Query, Response
from typing import Optional
import logging

from apps.media.auth.dependencies import require_auth, require_admin
from apps.media.auth.models import CurrentUser
from apps.media.deps import get_cleanup_service, get_image_service, get_image_store, get_thumbnail_service
from apps.media.errors import DerivationError, ImageNotFoundError
from apps.media.schemas import (
    Base64Upload,
    CleanupRequest,
    CleanupResponse,
    ImageOut,
    ThumbnailResponse,
)
from apps.media.services.cleanup_service import CleanupService
from apps.media.services.image_service import ImageService
from apps.media.services.thumbnail_service import ThumbnailService
from apps.media.storage.image_store import SqlImageStore
from apps.media.storage.models import IMAGE_TYPES, Image

logger = logging.getLogger("mediastore")

router = APIRouter(prefix="/images", tags=["images"])

MAX_THUMBNAIL_DIMENSION = 4000


def _check_type(image_type: str):
    if image_type not in IMAGE_TYPES:
        raise HTTPException(400, f"type must be one of: {', '.join(IMAGE_TYPES)}")


async def _load(image_id: int, images: SqlImageStore) -> Image:
    image = await images.get(image_id)
    if image is None:
        raise HTTPException(404, "Image not found")
    return image


@router.post("", response_model=ImageOut)
async def upload_image(
    file: UploadFile = File(...),
    type: str = Form("gallery"),
    uploaded_to: int = Form(0),
    resize_width: Optional[int] = Form(None, ge=1, le=MAX_THUMBNAIL_DIMENSION),
    resize_height: Optional[int] = Form(None, ge=1, le=MAX_THUMBNAIL_DIMENSION),
    keep_ratio: bool = Form(True),
    current_user: CurrentUser = Depends(require_auth),
    service: ImageService = Depends(get_image_service),
):
    _check_type(type)
    data = await file.read()
    if not data:
        raise HTTPException(400, "Uploaded file is empty")

    image = await service.save_new_from_upload(
        name=file.filename or "image",
        data=data,
        image_type=type,
        uploaded_to=uploaded_to,
        resize_width=resize_width,
        resize_height=resize_height,
        keep_ratio=keep_ratio,
        user=current_user,
    )
    return ImageOut.model_validate(image)


@router.post("/base64", response_model=ImageOut)
async def upload_base64_image(
    body: Base64Upload,
    current_user: CurrentUser = Depends(require_auth),
    service: ImageService = Depends(get_image_service),
):
    _check_type(body.type)
    image = await service.save_new_from_base64_uri(
        body.image, body.name, body.type, uploaded_to=body.uploaded_to, user=current_user
    )
    return ImageOut.model_validate(image)


@router.post("/cleanup", response_model=CleanupResponse)
async def cleanup_images(
    body: CleanupRequest,
    admin: CurrentUser = Depends(require_admin),
    cleanup: CleanupService = Depends(get_cleanup_service),
):
    """Find (and unless dry_run, delete) gallery/drawing images no page uses."""
    paths = await cleanup.sweep(
        check_revisions=body.check_revisions, dry_run=body.dry_run, types=body.types
    )
    logger.info(f"Cleanup requested by {admin.id}: {len(paths)} image(s), dry_run={body.dry_run}")
    return CleanupResponse(dry_run=body.dry_run, count=len(paths), paths=paths)


@router.get("/{image_id}", response_model=ImageOut)
async def get_image(
    image_id: int,
    images: SqlImageStore = Depends(get_image_store),
    thumbnails: ThumbnailService = Depends(get_thumbnail_service),
):
    image = await _load(image_id, images)
    out = ImageOut.model_validate(image)
    try:
        out.thumbnail_url = await thumbnails.get_thumbnail(image)
    except (DerivationError, ImageNotFoundError) as e:
        # The record is still readable when no default thumbnail can be made
        logger.warning(f"No thumbnail for image {image.id}: {e}")
    return out


@router.get("/{image_id}/thumbnail", response_model=ThumbnailResponse)
async def get_thumbnail(
    image_id: int,
    width: int = Query(220, ge=1, le=MAX_THUMBNAIL_DIMENSION),
    height: int = Query(220, ge=1, le=MAX_THUMBNAIL_DIMENSION),
    keep_ratio: bool = False,
    images: SqlImageStore = Depends(get_image_store),
    thumbnails: ThumbnailService = Depends(get_thumbnail_service),
):
    image = await _load(image_id, images)
    url = await thumbnails.get_thumbnail(image, width, height, keep_ratio)
    return ThumbnailResponse(id=image.id, url=url, width=width, height=height, keep_ratio=keep_ratio)


@router.delete("/{image_id}", status_code=204)
async def delete_image(
    image_id: int,
    current_user: CurrentUser = Depends(require_auth),
    images: SqlImageStore = Depends(get_image_store),
    cleanup: CleanupService = Depends(get_cleanup_service),
):
    image = await _load(image_id, images)
    if not current_user.can_modify_image(image.created_by):
        raise HTTPException(403, "You can only delete your own images")
    await cleanup.destroy(image)
    return Response(status_code=204)
