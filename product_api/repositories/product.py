from __future__ import annotations

import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import Iterator, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.orm import Session

from product_api.crud import product as crud
from product_api.database import SessionFactory, session_scope
from product_api.errors import ConstraintViolation, StoreUnavailable
from product_api.schemas.product import ProductBase, ProductRead

logger = logging.getLogger(__name__)


@contextmanager
def _mapped_errors(op: str) -> Iterator[None]:
    """Traduce erorile SQLAlchemy în erori de domeniu; ProductNotFound trece neatinsă."""
    try:
        yield
    except IntegrityError as e:
        logger.info("%s rejected by DB constraint: %s", op, getattr(e, "orig", e))
        raise ConstraintViolation("Check constraint violated.") from e
    except (OperationalError, InterfaceError, PoolTimeoutError) as e:
        logger.warning("%s failed, store unavailable: %s", op, e)
        raise StoreUnavailable("Database unavailable.") from e
    except DBAPIError as e:
        if e.connection_invalidated:
            logger.warning("%s failed, connection invalidated: %s", op, e)
            raise StoreUnavailable("Database connection lost.") from e
        raise


class ProductRepository:
    """
    Fațadă tipizată peste funcțiile din `crud.product`.

    Fiecare apel deschide propria sesiune (session_scope) și o eliberează
    pe orice cale de ieșire. În afară ies doar `ProductRead`, niciodată
    obiecte ORM legate de sesiune.
    """

    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    @contextmanager
    def _session(self, op: str) -> Iterator[Session]:
        with _mapped_errors(op), session_scope(self._session_factory) as db:
            yield db

    def find_page(
        self,
        *,
        name_contains: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        order_by: crud.OrderBy = "id",
        order_dir: crud.OrderDir = "asc",
        after: Optional[crud.PageKey] = None,
        offset: int = 0,
        limit: int = crud.PAGE_SIZE,
    ) -> List[ProductRead]:
        """O pagină într-o sesiune proprie; sesiunea e închisă înainte de return."""
        with self._session("find_page") as db:
            rows = crud.find_page(
                db,
                name_contains=name_contains,
                min_price=min_price,
                max_price=max_price,
                order_by=order_by,
                order_dir=order_dir,
                after=after,
                offset=offset,
                limit=limit,
            )
            return [ProductRead.model_validate(obj) for obj in rows]

    def find_all(
        self,
        *,
        order_by: crud.OrderBy = "id",
        order_dir: crud.OrderDir = "asc",
        limit: Optional[int] = None,
        offset: int = 0,
        page_size: int = crud.PAGE_SIZE,
        **filters,
    ) -> Iterator[ProductRead]:
        # generator leneș: fiecare pagină are sesiunea ei, între pagini nu e nimic deschis
        after: Optional[crud.PageKey] = None
        remaining = limit
        while remaining is None or remaining > 0:
            size = page_size if remaining is None else min(page_size, remaining)
            page = self.find_page(
                order_by=order_by,
                order_dir=order_dir,
                after=after,
                offset=offset if after is None else 0,
                limit=size,
                **filters,
            )
            yield from page
            if len(page) < size:
                return
            if remaining is not None:
                remaining -= len(page)
            after = crud.page_key(page[-1], order_by)

    def count(
        self,
        *,
        name_contains: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
    ) -> int:
        with self._session("count") as db:
            return crud.count(db, name_contains=name_contains, min_price=min_price, max_price=max_price)

    def find_by_id(self, product_id: int) -> ProductRead:
        with self._session("find_by_id") as db:
            return ProductRead.model_validate(crud.find_by_id(db, product_id))

    def insert(self, data: ProductBase) -> ProductRead:
        with self._session("insert") as db:
            return ProductRead.model_validate(crud.insert(db, data))

    def update(self, product_id: int, data: ProductBase) -> ProductRead:
        with self._session("update") as db:
            return ProductRead.model_validate(crud.update(db, product_id, data))

    def save(self, data: ProductBase, product_id: Optional[int] = None) -> ProductRead:
        """Insert când nu există id, altfel înlocuire completă."""
        if product_id is None:
            return self.insert(data)
        return self.update(product_id, data)

    def delete_by_id(self, product_id: int) -> bool:
        with self._session("delete_by_id") as db:
            deleted = crud.delete_by_id(db, product_id)
        if deleted:
            logger.info("Deleted product id=%s", product_id)
        return deleted

    def ping(self) -> None:
        """SELECT 1 prin același pool; folosit de /health/db."""
        with self._session("ping") as db:
            db.execute(text("SELECT 1"))
