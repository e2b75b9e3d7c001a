# tests/conftest.py
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from product_api.core.settings import Settings
from product_api.database import build_engine, build_session_factory, init_db
from product_api.main import create_app
from product_api.repositories.product import ProductRepository
from product_api.services.product_service import ProductService

# Loturi mici ca listarea să treacă prin mai multe drumuri pe worker pool
TEST_BATCH_SIZE = 2


def make_settings(db_path: Path, **overrides) -> Settings:
    values = dict(
        DATABASE_URL=f"sqlite:///{db_path}",
        SQLALCHEMY_CREATE_ALL=True,
        STORE_WORKERS=2,
        LIST_BATCH_SIZE=TEST_BATCH_SIZE,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """DB SQLite nou (fișier) pentru fiecare test."""
    return make_settings(tmp_path / "products.db")


@pytest.fixture
def client(settings: Settings):
    """TestClient (httpx) cu lifespan pornit: worker pool + tabele create."""
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture
def engine(settings: Settings):
    eng = build_engine(settings)
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def repository(engine) -> ProductRepository:
    return ProductRepository(build_session_factory(engine))


@pytest.fixture
def executor():
    ex = ThreadPoolExecutor(max_workers=2, thread_name_prefix="store")
    yield ex
    ex.shutdown(wait=True)


@pytest.fixture
def service(repository: ProductRepository, executor) -> ProductService:
    return ProductService(repository, executor, batch_size=TEST_BATCH_SIZE)


@pytest.fixture
def anyio_backend():
    return "asyncio"
