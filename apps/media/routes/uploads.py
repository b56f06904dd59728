"""Serves image bytes held on a local storage backend"""
from fastapi import APIRouter, Depends, HTTPException, Response
from typing import Optional

from apps.media.auth.dependencies import get_current_user
from apps.media.auth.models import CurrentUser
from apps.media.deps import get_storage
from apps.media.errors import ImageNotFoundError
from apps.media.services.path_namer import UPLOAD_ROOT
from apps.media.services.storage_registry import StorageRegistry
from apps.media.services.utils.image_utils import content_type_for

router = APIRouter(tags=["uploads"])


@router.get(f"/{UPLOAD_ROOT}/{{path:path}}")
async def serve_upload(
    path: str,
    current_user: Optional[CurrentUser] = Depends(get_current_user),
    registry: StorageRegistry = Depends(get_storage),
):
    backend = registry.config.storage_backend
    if backend == "s3":
        # Object storage files are served from the bucket URL
        raise HTTPException(404, "Not found")

    parts = path.split("/")
    if ".." in parts:
        raise HTTPException(404, "Not found")

    # System images always live on the public disk
    image_type = parts[0] if parts else ""
    if registry.config.backend_for_type(image_type) == "local_secure" and current_user is None:
        raise HTTPException(401, "Authentication required", headers={"WWW-Authenticate": "Bearer"})

    storage = registry.for_type(image_type)
    try:
        data = await storage.get(f"{UPLOAD_ROOT}/{path}")
    except ImageNotFoundError:
        raise HTTPException(404, "Not found")

    return Response(content=data, media_type=content_type_for(path))
