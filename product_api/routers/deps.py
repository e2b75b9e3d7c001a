# product_api/routers/deps.py
from __future__ import annotations

from fastapi import HTTPException, Request, status

from product_api.core.settings import Settings
from product_api.services.product_service import ProductService


def get_product_service(request: Request) -> ProductService:
    """
    Serviciul e construit explicit în lifespan (vezi product_api.main) și ținut pe app.state.
    """
    service = getattr(request.app.state, "product_service", None)
    if service is None:
        # aplicația a primit request-uri fără să fi trecut prin startup
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service not started")
    return service


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


__all__ = ("get_product_service", "get_settings")
