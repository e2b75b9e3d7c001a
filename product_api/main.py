# product_api/main.py
from __future__ import annotations

import time
import uuid
import logging
import asyncio
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import Optional, Sequence, cast

from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from starlette.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from product_api.core.logging import setup_logging
from product_api.core.settings import Settings, get_settings
from product_api.database import build_engine, build_session_factory, init_db, mask_url
from product_api.errors import (
    ConstraintViolation,
    InvalidInput,
    ProductNotFound,
    StoreUnavailable,
    error_list,
)
from product_api.repositories.product import ProductRepository
from product_api.routers.health import router as health_router
from product_api.routers.product import router as products_router
from product_api.services.product_service import ProductService

logger = logging.getLogger("product-api")

tags_metadata = [
    {"name": "health", "description": "Liveness/Readiness checks"},
    {"name": "products", "description": "Product CRUD"},
]


def _get_req_id_from_headers(request: Request) -> str:
    # Prefer X-Request-ID, apoi X-Correlation-ID; dacă lipsesc, generează unul.
    return (
        request.headers.get("x-request-id")
        or request.headers.get("x-correlation-id")
        or uuid.uuid4().hex[:12]
    )


def _error(request: Request, code: int, detail) -> JSONResponse:
    return JSONResponse(
        status_code=code,
        content={"detail": detail},
        headers={"X-Request-ID": _get_req_id_from_headers(request)},
    )


def _install_middleware(app: FastAPI, settings: Settings) -> None:
    async def request_context_mw(request: Request, call_next):
        """
        - Generează/propagă X-Request-ID
        - Aplică headers de securitate + HSTS (opțional)
        - Limitează mărimea corpului când Content-Length e disponibil
        - Server-Timing / X-Process-Time
        """
        req_id = _get_req_id_from_headers(request)

        if settings.MAX_BODY_SIZE_BYTES > 0:
            cl = request.headers.get("content-length")
            if cl is not None and cl.isdigit() and int(cl) > settings.MAX_BODY_SIZE_BYTES:
                return JSONResponse(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    content={"detail": "Payload too large", "max_bytes": settings.MAX_BODY_SIZE_BYTES},
                    headers={"X-Request-ID": req_id},
                )

        start = time.perf_counter()
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        response.headers.setdefault("X-Request-ID", req_id)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        response.headers.setdefault("Cache-Control", "no-store")
        response.headers.setdefault("X-App-Version", settings.APP_VERSION)
        if settings.ENABLE_HSTS:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains; preload")

        response.headers.setdefault("Server-Timing", f"app;dur={duration_ms:.1f}")
        response.headers.setdefault("X-Process-Time", f"{duration_ms:.1f}ms")
        return response

    app.middleware("http")(request_context_mw)
    app.add_middleware(GZipMiddleware, minimum_size=1024)

    # Trusted hosts (opțional): TRUSTED_HOSTS="localhost,127.0.0.1,.example.com"
    if settings.trusted_hosts:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=cast(Sequence[str], settings.trusted_hosts))

    # CORS din env: CORS_ORIGINS="http://localhost:3000,https://example.com"
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=[
                "X-Total-Count",
                "X-Request-ID",
                "Server-Timing",
                "X-Process-Time",
                "X-App-Version",
            ],
        )


def _install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(InvalidInput)
    async def _invalid_input_handler(request: Request, exc: InvalidInput):
        return _error(request, status.HTTP_400_BAD_REQUEST, exc.errors or str(exc))

    # validarea FastAPI/pydantic a body-ului răspunde 400, la fel ca InvalidInput
    @app.exception_handler(RequestValidationError)
    async def _validation_handler(request: Request, exc: RequestValidationError):
        return _error(request, status.HTTP_400_BAD_REQUEST, error_list(exc.errors()))

    @app.exception_handler(ProductNotFound)
    async def _not_found_handler(request: Request, exc: ProductNotFound):
        return _error(request, status.HTTP_404_NOT_FOUND, str(exc))

    # validarea a trecut, dar store-ul a respins rândul: eroare de server, nu de client
    @app.exception_handler(ConstraintViolation)
    async def _constraint_handler(request: Request, exc: ConstraintViolation):
        logger.error("Store constraint violated on %s %s: %s", request.method, request.url.path, exc)
        return _error(request, status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    @app.exception_handler(StoreUnavailable)
    async def _store_unavailable_handler(request: Request, exc: StoreUnavailable):
        return _error(request, status.HTTP_503_SERVICE_UNAVAILABLE, str(exc))

    # Prinde 404/405 Starlette și răspunde JSON unitar
    @app.exception_handler(StarletteHTTPException)
    async def _starlette_http_exc_handler(request: Request, exc: StarletteHTTPException):
        headers = dict(exc.headers or {})
        headers.setdefault("X-Request-ID", _get_req_id_from_headers(request))
        detail = exc.detail
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            detail = {"message": "Not Found", "path": str(request.url.path)}
        elif exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
            detail = {"message": "Method Not Allowed", "path": str(request.url.path)}
        return JSONResponse(status_code=exc.status_code, content={"detail": detail}, headers=headers)

    @app.exception_handler(HTTPException)
    async def _http_exc_handler(request: Request, exc: HTTPException):
        headers = dict(exc.headers or {})
        headers.setdefault("X-Request-ID", _get_req_id_from_headers(request))
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)

    @app.exception_handler(Exception)
    async def _unhandled_exc_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error: %s", exc)
        return _error(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Construcție explicită, fără container DI:
    engine → session factory → ProductRepository → (lifespan) ProductService pe worker pool.
    """
    settings = settings or get_settings()
    setup_logging(settings.LOG_LEVEL)

    engine = build_engine(settings)
    repository = ProductRepository(build_session_factory(engine))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        executor = ThreadPoolExecutor(max_workers=settings.STORE_WORKERS, thread_name_prefix="store")
        service = ProductService(repository, executor, batch_size=settings.LIST_BATCH_SIZE)
        try:
            # Startup: creare tabele (opțional) + sanity check DB
            try:
                if settings.SQLALCHEMY_CREATE_ALL:
                    await asyncio.get_running_loop().run_in_executor(executor, init_db, engine)
                await service.ping()
                logger.info(
                    "DB startup check OK (url=%s, store_workers=%s, batch_size=%s)",
                    mask_url(settings.DATABASE_URL), settings.STORE_WORKERS, settings.LIST_BATCH_SIZE,
                )
            except Exception:
                logger.exception("DB startup check FAILED (url=%s)", mask_url(settings.DATABASE_URL))

            app.state.product_service = service
            # Ready to serve
            yield
        finally:
            app.state.product_service = None
            executor.shutdown(wait=True)
            engine.dispose()
            logger.info("Store worker pool stopped")

    disable_docs = settings.DISABLE_DOCS
    app = FastAPI(
        title=settings.APP_TITLE,
        version=settings.APP_VERSION,
        openapi_tags=tags_metadata,
        lifespan=lifespan,
        root_path=settings.root_path or "",
        docs_url=None if disable_docs else "/docs",
        redoc_url=None if disable_docs else "/redoc",
        openapi_url=None if disable_docs else "/openapi.json",
    )
    app.state.settings = settings
    app.state.product_service = None
    app.state.started_mono = time.monotonic()
    app.state.started_ts = int(time.time())

    _install_middleware(app, settings)
    _install_exception_handlers(app)

    # --- Routers ---
    app.include_router(health_router)
    app.include_router(products_router)
    return app


app = create_app()
