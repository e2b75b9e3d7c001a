# product_api/services/product_service.py
"""
Stratul de serviciu pentru produse.

Repository-ul este sincron (driver DB blocant), așa că fiecare apel către el
rulează pe un ThreadPoolExecutor dedicat, niciodată pe event loop-ul ASGI.
Listarea e leneșă: rândurile sunt trase din DB în loturi de `batch_size`,
câte un drum pe worker pool per lot (keyset pe cheia de sortare + id),
și livrate apelantului pe rând.
"""
from __future__ import annotations

import asyncio
import functools
import logging
from concurrent.futures import Executor
from decimal import Decimal
from typing import Any, AsyncIterator, Callable, Mapping, Optional, TypeVar, Union

from pydantic import ValidationError

from product_api.crud.product import OrderBy, OrderDir, PageKey, page_key
from product_api.errors import InvalidInput, error_list
from product_api.repositories.product import ProductRepository
from product_api.schemas.product import ProductBase, ProductCreate, ProductRead, ProductReplace

logger = logging.getLogger(__name__)

T = TypeVar("T")
ProductInput = Union[ProductCreate, ProductReplace, Mapping[str, Any]]


def _validate(model: type, data: ProductInput):
    if isinstance(data, model):
        return data
    if isinstance(data, ProductBase):
        data = data.model_dump()
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidInput("Invalid product payload", errors=error_list(e.errors())) from e


class ProductService:
    """Orchestrează repository-ul pe worker pool; API-ul public e async."""

    def __init__(self, repository: ProductRepository, executor: Executor, *, batch_size: int = 100):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._repository = repository
        self._executor = executor
        self._batch_size = batch_size

    async def _run(self, fn: Callable[..., T], *args, **kwargs) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(fn, *args, **kwargs))

    async def list_products(
        self,
        *,
        name_contains: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        order_by: OrderBy = "id",
        order_dir: OrderDir = "asc",
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> AsyncIterator[ProductRead]:
        if min_price is not None and max_price is not None and min_price > max_price:
            raise InvalidInput("min_price cannot be greater than max_price.")

        after: Optional[PageKey] = None
        remaining = limit
        while remaining is None or remaining > 0:
            size = self._batch_size if remaining is None else min(self._batch_size, remaining)
            # fiecare lot are sesiunea lui; între loturi nu rămâne nimic deschis în store
            batch = await self._run(
                self._repository.find_page,
                name_contains=name_contains,
                min_price=min_price,
                max_price=max_price,
                order_by=order_by,
                order_dir=order_dir,
                after=after,
                offset=offset if after is None else 0,
                limit=size,
            )
            for item in batch:
                yield item
            if len(batch) < size:
                break
            if remaining is not None:
                remaining -= len(batch)
            after = page_key(batch[-1], order_by)

    async def count_products(
        self,
        *,
        name_contains: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
    ) -> int:
        return await self._run(
            self._repository.count,
            name_contains=name_contains,
            min_price=min_price,
            max_price=max_price,
        )

    async def get_product(self, product_id: int) -> ProductRead:
        return await self._run(self._repository.find_by_id, product_id)

    async def create_product(self, data: ProductInput) -> ProductRead:
        payload = _validate(ProductCreate, data)
        created = await self._run(self._repository.save, payload)
        logger.info("Created product id=%s name=%r", created.id, created.name)
        return created

    async def replace_product(self, product_id: int, data: ProductInput) -> ProductRead:
        payload = _validate(ProductReplace, data)
        replaced = await self._run(self._repository.save, payload, product_id)
        logger.info("Replaced product id=%s", replaced.id)
        return replaced

    async def delete_product(self, product_id: int) -> bool:
        return await self._run(self._repository.delete_by_id, product_id)

    async def ping(self) -> None:
        await self._run(self._repository.ping)
