# tests/test_repository.py
from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest

from product_api.database import build_engine, build_session_factory
from product_api.errors import ConstraintViolation, ProductNotFound, StoreUnavailable
from product_api.repositories.product import ProductRepository
from product_api.schemas.product import ProductCreate, ProductRead, ProductReplace
from conftest import make_settings


def _new(name: str, price: str) -> ProductCreate:
    return ProductCreate(name=name, price=Decimal(price))


@pytest.mark.timeout(5)
def test_insert_then_find_by_id_returns_equal_record(repository: ProductRepository):
    data = _new("Smartphone", "999.99")
    created = repository.insert(data)

    assert isinstance(created, ProductRead)
    assert created.id is not None
    found = repository.find_by_id(created.id)
    assert found == created
    assert found.model_dump(exclude={"id"}) == data.model_dump()


@pytest.mark.timeout(5)
def test_find_all_on_empty_store_is_empty(repository: ProductRepository):
    assert list(repository.find_all()) == []
    assert repository.count() == 0


@pytest.mark.timeout(5)
def test_find_all_is_restartable_per_call(repository: ProductRepository):
    for name in ("a", "b", "c"):
        repository.insert(_new(name, "1"))
    first = [p.name for p in repository.find_all()]
    second = [p.name for p in repository.find_all()]
    assert first == second == ["a", "b", "c"]


@pytest.mark.timeout(5)
def test_find_all_closed_early_releases_session(repository: ProductRepository):
    for i in range(5):
        repository.insert(_new(f"item-{i}", "2.50"))

    rows = repository.find_all()
    assert next(rows).name == "item-0"
    rows.close()

    # sesiunea eliberată: scrierile și citirile ulterioare merg normal
    repository.insert(_new("after", "3"))
    assert repository.count() == 6


@pytest.mark.timeout(5)
def test_find_all_pages_keep_order_and_limit(repository: ProductRepository):
    for i, price in enumerate(["3", "1", "3", "2", "1"]):
        repository.insert(_new(f"p{i}", price))

    by_price = [p.name for p in repository.find_all(order_by="price", page_size=2)]
    assert by_price == ["p1", "p4", "p3", "p0", "p2"]

    limited = [p.name for p in repository.find_all(order_by="price", page_size=2, offset=1, limit=3)]
    assert limited == ["p4", "p3", "p0"]

    filtered = [p.name for p in repository.find_all(min_price=Decimal("2"), page_size=1)]
    assert filtered == ["p0", "p2", "p3"]


@pytest.mark.timeout(5)
@pytest.mark.parametrize("product_id", [0, -1, 2**31, 10**20])
def test_out_of_range_ids_are_absent(repository: ProductRepository, product_id: int):
    repository.insert(_new("Tablet", "300"))
    with pytest.raises(ProductNotFound):
        repository.find_by_id(product_id)
    with pytest.raises(ProductNotFound):
        repository.update(product_id, ProductReplace(name="x", price=Decimal("1")))
    assert repository.delete_by_id(product_id) is False
    assert repository.count() == 1


@pytest.mark.timeout(5)
def test_find_by_id_missing_raises_not_found(repository: ProductRepository):
    with pytest.raises(ProductNotFound) as exc_info:
        repository.find_by_id(404)
    assert exc_info.value.product_id == 404


@pytest.mark.timeout(5)
def test_save_inserts_or_replaces(repository: ProductRepository):
    created = repository.save(_new("Laptop", "1499.99"))
    replaced = repository.save(ProductReplace(name="Laptop Pro", price=Decimal("1999")), created.id)

    assert replaced.id == created.id
    assert replaced.name == "Laptop Pro"
    assert replaced.price == Decimal("1999.00")
    assert repository.count() == 1


@pytest.mark.timeout(5)
def test_update_missing_raises_not_found(repository: ProductRepository):
    with pytest.raises(ProductNotFound):
        repository.update(77, ProductReplace(name="x", price=Decimal("1")))


@pytest.mark.timeout(5)
def test_delete_by_id_is_idempotent(repository: ProductRepository):
    created = repository.insert(_new("Tablet", "300"))
    assert repository.delete_by_id(created.id) is True
    assert repository.delete_by_id(created.id) is False
    assert repository.delete_by_id(999) is False


@pytest.mark.timeout(5)
@pytest.mark.parametrize("name,price", [("", "1.00"), ("   ", "1.00"), ("Tablet", "-5.00")])
def test_db_constraints_map_to_constraint_violation(repository: ProductRepository, name: str, price: str):
    # model_construct ocolește validarea pydantic → ajunge la CHECK-urile din DB
    bad = ProductCreate.model_construct(name=name, price=Decimal(price))
    with pytest.raises(ConstraintViolation):
        repository.insert(bad)
    assert repository.count() == 0


@pytest.mark.timeout(5)
def test_unreachable_store_maps_to_store_unavailable(tmp_path: Path):
    settings = make_settings(tmp_path / "missing-dir" / "products.db")
    engine = build_engine(settings)
    repo = ProductRepository(build_session_factory(engine))
    try:
        with pytest.raises(StoreUnavailable):
            repo.find_by_id(1)
        with pytest.raises(StoreUnavailable):
            list(repo.find_all())
        with pytest.raises(StoreUnavailable):
            repo.ping()
    finally:
        engine.dispose()
