# product_api/models/product.py
from __future__ import annotations

from decimal import Decimal

from sqlalchemy import CheckConstraint, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from product_api.database import Base


class Product(Base):
    """
    Tabelul `products`.

    Note:
    - `id` e alocat de DB la insert și nu se mai schimbă.
    - `name` NOT NULL și nenul după trim (CHECK la nivel DB, pe lângă validarea din schema).
    - `price` NOT NULL și >= 0 (CHECK la nivel DB).
    - Nu există unicitate pe `name`: două produse pot avea același nume.
    """
    __tablename__ = "products"
    __table_args__ = (
        Index("ix_products_price", "price"),
        CheckConstraint("price >= 0", name="price_nonnegative"),
        CheckConstraint("length(trim(name)) > 0", name="name_nonempty"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)  # implicit: integer + PK
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    def __repr__(self) -> str:
        # scurtează numele în repr pentru loguri mai curate
        name_preview = (self.name[:32] + "…") if self.name and len(self.name) > 33 else self.name
        return f"<Product id={self.id!r} name={name_preview!r} price={self.price!r}>"
