# product_api/routers/health.py
from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Request, status

from product_api.core.settings import Settings
from product_api.routers.deps import get_product_service, get_settings
from product_api.services.product_service import ProductService

logger = logging.getLogger("product-api")

router = APIRouter(tags=["health"])


@router.get("/")
def root(settings: Settings = Depends(get_settings)):
    return {"name": settings.APP_TITLE, "version": settings.APP_VERSION}


@router.get("/__version__")
def version_meta(request: Request, settings: Settings = Depends(get_settings)):
    return {"app_version": settings.APP_VERSION, "started_at": request.app.state.started_ts}


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/health/uptime")
def health_uptime(request: Request):
    started_mono = request.app.state.started_mono
    return {"uptime_seconds": round(time.monotonic() - started_mono, 3), "started_at": request.app.state.started_ts}


@router.get("/health/db")
async def health_db(service: ProductService = Depends(get_product_service)):
    """Rulează SELECT 1 prin worker pool, pe aceeași cale ca apelurile de produse."""
    t0 = time.perf_counter()
    try:
        await service.ping()
    except Exception:
        logger.warning("Health DB check failed", exc_info=True)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="DB not ready")
    return {"status": "ok", "db": "up", "latency_ms": round((time.perf_counter() - t0) * 1000, 1)}
