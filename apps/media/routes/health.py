"""Liveness, readiness and Prometheus scrape routes"""
from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from sqlalchemy import text
import asyncio
import logging

from apps.media.deps import get_database, get_storage
from apps.media.services.storage_registry import StorageRegistry
from apps.media.storage.image_store import Database

logger = logging.getLogger("mediastore")

router = APIRouter(tags=["health"])

METRICS_TIMEOUT = 5.0


@router.get("/", include_in_schema=False)
def root():
    return {"service": "media-store", "status": "ok"}


@router.get("/healthz", include_in_schema=False)
def healthz():
    return {"status": "ok"}


@router.get("/readyz", include_in_schema=False)
async def readyz(
    registry: StorageRegistry = Depends(get_storage),
    db: Database = Depends(get_database),
):
    """Ready once the database answers and the default storage can be listed"""
    checks = {}
    loop = asyncio.get_event_loop()

    def ping_db():
        with db.session() as s:
            s.execute(text("SELECT 1"))

    try:
        await loop.run_in_executor(None, ping_db)
        checks["database"] = "ok"
    except Exception as e:
        logger.warning(f"Readiness: database unavailable: {e}")
        checks["database"] = "unavailable"

    try:
        await registry.default().directories("")
        checks["storage"] = "ok"
    except Exception as e:
        logger.warning(f"Readiness: storage unavailable: {e}")
        checks["storage"] = "unavailable"

    ready = all(v == "ok" for v in checks.values())
    return JSONResponse(status_code=200 if ready else 503, content={"ready": ready, **checks})


def _render_metrics():
    from prometheus_client import REGISTRY, generate_latest, CONTENT_TYPE_LATEST

    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST


@router.get("/metrics")
async def metrics():
    """Prometheus text exposition"""
    loop = asyncio.get_event_loop()
    try:
        body, content_type = await asyncio.wait_for(
            loop.run_in_executor(None, _render_metrics), timeout=METRICS_TIMEOUT
        )
    except asyncio.TimeoutError:
        return Response(content="Metrics generation timed out", status_code=504)
    return Response(content=body, media_type=content_type)
