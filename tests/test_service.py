# tests/test_service.py
from __future__ import annotations

import threading
from decimal import Decimal
from typing import List

import pytest

from product_api.errors import InvalidInput, ProductNotFound
from product_api.repositories.product import ProductRepository
from product_api.services.product_service import ProductService

pytestmark = pytest.mark.anyio


class ThreadRecordingRepository(ProductRepository):
    """Notează thread-ul pe care rulează fiecare apel blocant."""

    def __init__(self, inner: ProductRepository):
        super().__init__(inner._session_factory)
        self.threads: List[str] = []

    def find_by_id(self, product_id: int):
        self.threads.append(threading.current_thread().name)
        return super().find_by_id(product_id)

    def insert(self, data):
        self.threads.append(threading.current_thread().name)
        return super().insert(data)


async def _collect(service: ProductService, **filters):
    return [p async for p in service.list_products(**filters)]


@pytest.mark.timeout(5)
async def test_create_then_get_returns_equal_record(service: ProductService):
    created = await service.create_product({"name": "Smartphone", "price": 999.99})
    assert created.id is not None
    assert created.price == Decimal("999.99")

    fetched = await service.get_product(created.id)
    assert fetched == created


@pytest.mark.timeout(5)
async def test_list_on_empty_store_yields_nothing(service: ProductService):
    assert await _collect(service) == []


@pytest.mark.timeout(5)
@pytest.mark.parametrize(
    "payload",
    [
        {"name": "", "price": 999.99},
        {"name": "Tablet", "price": -5},
        {"name": "Tablet"},
        {},
    ],
)
async def test_invalid_input_is_rejected_before_the_store(service: ProductService, payload):
    with pytest.raises(InvalidInput) as exc_info:
        await service.create_product(payload)
    assert exc_info.value.errors
    assert await service.count_products() == 0


@pytest.mark.timeout(5)
async def test_list_pulls_several_batches(service: ProductService):
    # batch_size=2 în fixture → 5 produse = 3 drumuri pe worker pool
    for i in range(5):
        await service.create_product({"name": f"p{i}", "price": i})
    items = await _collect(service)
    assert [p.name for p in items] == ["p0", "p1", "p2", "p3", "p4"]

    exact = await _collect(service, limit=4)
    assert [p.name for p in exact] == ["p0", "p1", "p2", "p3"]


@pytest.mark.timeout(5)
async def test_list_stopped_early_releases_the_stream(service: ProductService):
    for i in range(5):
        await service.create_product({"name": f"p{i}", "price": 1})

    stream = service.list_products()
    first = await stream.__anext__()
    assert first.name == "p0"
    await stream.aclose()

    await service.create_product({"name": "after", "price": 2})
    assert await service.count_products() == 6


@pytest.mark.timeout(5)
async def test_list_rejects_inverted_price_range(service: ProductService):
    with pytest.raises(InvalidInput):
        await _collect(service, min_price=Decimal("10"), max_price=Decimal("1"))


@pytest.mark.timeout(5)
async def test_replace_and_delete(service: ProductService):
    created = await service.create_product({"name": "Laptop", "price": "1499.99"})
    replaced = await service.replace_product(created.id, {"name": "Laptop", "price": "1299.99"})
    assert replaced.id == created.id
    assert replaced.price == Decimal("1299.99")

    with pytest.raises(InvalidInput):
        await service.replace_product(created.id, {"name": "Laptop", "price": -1})

    assert await service.delete_product(created.id) is True
    assert await service.delete_product(created.id) is False
    with pytest.raises(ProductNotFound):
        await service.get_product(created.id)


@pytest.mark.timeout(5)
async def test_repository_calls_run_on_the_store_pool(repository: ProductRepository, executor):
    recording = ThreadRecordingRepository(repository)
    service = ProductService(recording, executor)

    created = await service.create_product({"name": "Monitor", "price": 250})
    await service.get_product(created.id)

    loop_thread = threading.current_thread().name
    assert len(recording.threads) == 2
    assert all(name.startswith("store") for name in recording.threads), recording.threads
    assert loop_thread not in recording.threads


@pytest.mark.timeout(5)
async def test_writes_go_through_while_a_list_is_partly_consumed(service: ProductService):
    for i in range(3):
        await service.create_product({"name": f"p{i}", "price": i})

    stream = service.list_products()
    first = await stream.__anext__()
    assert first.name == "p0"

    # niciun cursor ținut între loturi: scrierea nu așteaptă după stream
    late = await service.create_product({"name": "late", "price": 9})
    replaced = await service.replace_product(first.id, {"name": "p0-new", "price": 0})
    assert replaced.name == "p0-new"

    rest = [p.name async for p in stream]
    assert rest == ["p1", "p2", "late"]
    assert late.id == 4


@pytest.mark.timeout(5)
async def test_list_keeps_order_across_batches_with_equal_sort_keys(service: ProductService):
    prices = [5, 7, 5, 7, 5, 1]
    for i, price in enumerate(prices):
        await service.create_product({"name": f"p{i}", "price": price})

    items = await _collect(service, order_by="price", order_dir="desc")
    assert [p.name for p in items] == ["p1", "p3", "p0", "p2", "p4", "p5"]

    page = await _collect(service, order_by="price", order_dir="desc", offset=1, limit=3)
    assert [p.name for p in page] == ["p3", "p0", "p2"]


async def test_batch_size_must_be_positive(repository: ProductRepository, executor):
    with pytest.raises(ValueError):
        ProductService(repository, executor, batch_size=0)
