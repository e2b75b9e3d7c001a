# product_api/crud/product.py
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional, Tuple

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from product_api.errors import ProductNotFound
from product_api.models.product import Product
from product_api.schemas.product import ProductBase

OrderBy = Literal["id", "name", "price"]
OrderDir = Literal["asc", "desc"]
# (valoarea coloanei de sortare, id) pentru ultimul rând dintr-o pagină
PageKey = Tuple[Any, int]

PAGE_SIZE = 100

# INTEGER portabil (Postgres int4); id-uri în afara intervalului nu pot exista în tabel
MIN_ID = 1
MAX_ID = 2**31 - 1


def _id_in_range(product_id: int) -> bool:
    return MIN_ID <= product_id <= MAX_ID


def _order_column(order_by: OrderBy):
    """Mapează parametrul de sortare pe coloana modelului."""
    col_map: Dict[str, object] = {
        "id": Product.id,
        "name": Product.name,
        "price": Product.price,
    }
    return col_map.get(order_by, Product.id)


def _escape_like(raw: str) -> str:
    # % și _ din input sunt caractere literale, nu wildcard-uri
    return raw.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _conditions(
    name_contains: Optional[str],
    min_price: Optional[Decimal],
    max_price: Optional[Decimal],
) -> list:
    conditions = []
    if name_contains:
        pattern = f"%{_escape_like(name_contains.lower())}%"
        conditions.append(func.lower(Product.name).like(pattern, escape="\\"))
    if min_price is not None:
        conditions.append(Product.price >= min_price)
    if max_price is not None:
        conditions.append(Product.price <= max_price)
    return conditions


def _after(col, order_dir: OrderDir, key: PageKey):
    """Condiția keyset: rândurile strict după `key` în ordinea (col dir, id asc)."""
    value, last_id = key
    beyond = col < value if order_dir == "desc" else col > value
    return or_(beyond, and_(col == value, Product.id > last_id))


def find_page(
    db: Session,
    *,
    name_contains: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    order_by: OrderBy = "id",
    order_dir: OrderDir = "asc",
    after: Optional[PageKey] = None,
    offset: int = 0,
    limit: int = PAGE_SIZE,
) -> List[Product]:
    """
    O pagină de produse, cu filtre opționale și sortare stabilă (tiebreaker pe id).

    Paginile următoare se cer cu `after` = cheia ultimului rând (keyset), așa că
    între pagini nu rămâne deschis niciun cursor. `offset` se aplică doar
    pentru prima pagină.
    """
    col = _order_column(order_by)
    stmt = select(Product)
    conditions = _conditions(name_contains, min_price, max_price)
    if after is not None:
        conditions.append(_after(col, order_dir, after))
    if conditions:
        stmt = stmt.where(*conditions)

    order_clause = col.desc() if order_dir == "desc" else col.asc()
    stmt = stmt.order_by(order_clause, Product.id.asc())

    if offset:
        stmt = stmt.offset(offset)
    stmt = stmt.limit(limit)
    return list(db.execute(stmt).scalars().all())


def page_key(obj: Any, order_by: OrderBy) -> PageKey:
    """Cheia keyset a unui rând (ORM sau ProductRead)."""
    return getattr(obj, order_by), obj.id


def count(
    db: Session,
    *,
    name_contains: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
) -> int:
    """Numărul de produse care trec de aceleași filtre ca find_page."""
    stmt = select(func.count(Product.id))
    conditions = _conditions(name_contains, min_price, max_price)
    if conditions:
        stmt = stmt.where(*conditions)
    return int(db.scalar(stmt) or 0)


def find_by_id(db: Session, product_id: int) -> Product:
    """Returnează produsul după ID; ridică ProductNotFound dacă lipsește."""
    obj = db.get(Product, product_id) if _id_in_range(product_id) else None
    if obj is None:
        raise ProductNotFound(product_id)
    return obj


def insert(db: Session, data: ProductBase) -> Product:
    """
    Inserează produsul și face flush ca DB-ul să aloce id-ul.
    Commit-ul e responsabilitatea apelantului (session_scope).
    """
    obj = Product(name=data.name, price=data.price)
    db.add(obj)
    db.flush()
    db.refresh(obj)
    return obj


def update(db: Session, product_id: int, data: ProductBase) -> Product:
    """Înlocuiește complet `name` și `price`; id-ul rămâne neschimbat."""
    obj = find_by_id(db, product_id)
    obj.name = data.name
    obj.price = data.price
    db.flush()
    db.refresh(obj)
    return obj


def delete_by_id(db: Session, product_id: int) -> bool:
    """Șterge produsul după ID. Returnează True dacă s-a șters ceva; lipsa nu e eroare."""
    if not _id_in_range(product_id):
        return False
    obj = db.get(Product, product_id)
    if obj is None:
        return False
    db.delete(obj)
    db.flush()
    return True
