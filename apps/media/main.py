from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import os
import logging

from apps.media.errors import (
    DerivationError,
    ImageNotFoundError,
    RemoteFetchError,
    StorageWriteError,
    UploadValidationError,
)

# Configure basic logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger("mediastore")


@asynccontextmanager
async def lifespan(app: FastAPI):
    from apps.media.deps import get_cache, get_config

    config = get_config()
    logger.info(f"Media service starting (storage={config.storage_backend}, secure_images={config.secure_images})")
    yield
    await get_cache().close()


app = FastAPI(title="Media Store", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[os.getenv("FRONTEND_URL", "http://localhost:3000")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================================================
# Error mapping
# ============================================================================
ERROR_STATUS = {
    UploadValidationError: 422,
    DerivationError: 422,
    RemoteFetchError: 502,
    ImageNotFoundError: 404,
    StorageWriteError: 500,
}


def _error_handler(status_code: int):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        if status_code >= 500:
            logger.error(f"{type(exc).__name__} on {request.url.path}: {exc}")
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})
    return handler


for error_class, status_code in ERROR_STATUS.items():
    app.add_exception_handler(error_class, _error_handler(status_code))

# ============================================================================
# Route Registration
# ============================================================================
from apps.media.routes import health, images, uploads

# Health and metrics routes (root level)
app.include_router(health.router)

# Image routes (/images/*)
app.include_router(images.router)

# Stored file routes (/uploads/images/*)
app.include_router(uploads.router)
