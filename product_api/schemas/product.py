# product_api/schemas/product.py
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from pydantic import BaseModel, Field, ConfigDict, field_serializer, field_validator

NAME_MAX_LENGTH = 255  # String(255) în models.product


def _quantize_price(v: Decimal) -> Decimal:
    # Aliniază la NUMERIC(12,2) și evită erori de reprezentare
    return v.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class ProductBase(BaseModel):
    """Câmpuri comune pentru produs; folosit la create/replace/read."""
    # lungimea maximă se verifică după strip, în validator
    name: str = Field(..., min_length=1, json_schema_extra={"maxLength": NAME_MAX_LENGTH})
    price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)

    # --- Validators ---
    @field_validator("name")
    @classmethod
    def _name_strip_nonempty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be empty")
        if len(v) > NAME_MAX_LENGTH:
            raise ValueError(f"name must have at most {NAME_MAX_LENGTH} characters")
        return v

    @field_validator("price", mode="before")
    @classmethod
    def _price_quantize(cls, v):
        # float-urile din JSON (ex. 999.99) trec prin str ca să nu apară 999.98999...
        if isinstance(v, (float, str)) or (isinstance(v, int) and not isinstance(v, bool)):
            try:
                v = Decimal(str(v).strip())
            except InvalidOperation:
                raise ValueError("price must be a number")
        if isinstance(v, Decimal):
            if v.is_nan() or v.is_infinite():
                raise ValueError("price must be a finite number")
            if v < 0:
                raise ValueError("price must be >= 0")
            try:
                return _quantize_price(v)
            except InvalidOperation:
                raise ValueError("price out of range")
        return v

    # JSON: prețul iese ca număr, nu ca string
    @field_serializer("price", when_used="json")
    def _price_as_number(self, v: Decimal) -> float:
        return float(v)

    model_config = ConfigDict(
        # oferă exemple utile în OpenAPI
        json_schema_extra={
            "examples": [
                {
                    "name": "Smartphone",
                    "price": 999.99,
                }
            ]
        }
    )


class ProductCreate(ProductBase):
    """Payload pentru creare produs."""
    pass


class ProductReplace(ProductBase):
    """Payload pentru PUT: înlocuiește complet câmpurile editabile."""
    pass


class ProductRead(ProductBase):
    """Răspuns pentru produs; înregistrare simplă, decuplată de sesiunea ORM."""
    id: int
    model_config = ConfigDict(from_attributes=True, frozen=True)
