# product_api/errors.py
"""
Erorile de domeniu ale serviciului de produse.

Handler-ele HTTP din `product_api.main` le transformă în răspunsuri JSON:
InvalidInput → 400, ProductNotFound → 404, StoreUnavailable → 503,
ConstraintViolation → 500 (regulă a store-ului încălcată, eroare de server).
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence


class ProductError(Exception):
    """Bază pentru toate erorile serviciului."""


class InvalidInput(ProductError):
    """Payload invalid; clientul îl poate corecta."""

    def __init__(self, message: str = "Invalid input", errors: Optional[List[Any]] = None):
        super().__init__(message)
        self.errors = errors or []


class ProductNotFound(ProductError):
    """Nu există produs cu id-ul cerut."""

    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} not found")
        self.product_id = product_id


class ConstraintViolation(ProductError):
    """DB a respins scrierea (CHECK / NOT NULL / UNIQUE)."""


class StoreUnavailable(ProductError):
    """Eroare tranzitorie de infrastructură (conexiune, pool epuizat)."""


def error_list(errors: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Reduce erorile pydantic la loc/msg/type (ctx poate conține excepții ne-serializabile)."""
    return [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in errors
    ]
