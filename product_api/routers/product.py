# product_api/routers/product.py
from __future__ import annotations

from decimal import Decimal
from typing import AsyncIterator, List, Literal

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import StreamingResponse

from product_api.errors import InvalidInput
from product_api.routers.deps import get_product_service
from product_api.schemas.product import ProductCreate, ProductRead, ProductReplace
from product_api.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["products"])


async def _iter_ndjson(items: AsyncIterator[ProductRead]) -> AsyncIterator[bytes]:
    async for item in items:
        yield (item.model_dump_json() + "\n").encode("utf-8")


@router.get(
    "",
    response_model=List[ProductRead],
    summary="List products (filter/sort, JSON array or NDJSON stream)",
)
async def list_products(
    response: Response,
    name: str | None = Query(
        default=None,
        description="Substring (case-insensitive) to match in product name",
        min_length=1,
    ),
    min_price: Decimal | None = Query(default=None, ge=0),
    max_price: Decimal | None = Query(default=None, ge=0),
    order_by: Literal["id", "name", "price"] = Query(default="id", description="Sort key"),
    order_dir: Literal["asc", "desc"] = Query(default="asc", description="Sort direction"),
    limit: int | None = Query(default=None, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    format: Literal["json", "ndjson"] = Query(default="json", description="json = array, ndjson = stream"),
    service: ProductService = Depends(get_product_service),
):
    """
    Returnează produsele ca array JSON (posibil gol) sau ca stream NDJSON.
    - `name`: substring case-insensitive în `name`
    - `min_price`, `max_price`: interval de preț (inclusiv)
    - `order_by`: una dintre `id|name|price`; `order_dir`: `asc|desc`
    - `limit`, `offset`: fereastră opțională peste rezultat
    """
    if min_price is not None and max_price is not None and min_price > max_price:
        raise InvalidInput("min_price cannot be greater than max_price.")

    filters = dict(name_contains=name, min_price=min_price, max_price=max_price)
    total = await service.count_products(**filters)
    items = service.list_products(
        **filters,
        order_by=order_by,
        order_dir=order_dir,
        limit=limit,
        offset=offset,
    )

    if format == "ndjson":
        return StreamingResponse(
            _iter_ndjson(items),
            media_type="application/x-ndjson",
            headers={"X-Total-Count": str(total)},
        )

    # Header util pentru UI-uri/tabele
    response.headers["X-Total-Count"] = str(total)
    return [item async for item in items]


@router.get(
    "/{product_id}",
    response_model=ProductRead,
    summary="Get a product by id",
)
async def get_product(product_id: int, service: ProductService = Depends(get_product_service)):
    return await service.get_product(product_id)


@router.post(
    "",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a product",
)
async def create_product(payload: ProductCreate, service: ProductService = Depends(get_product_service)):
    return await service.create_product(payload)


@router.put(
    "/{product_id}",
    response_model=ProductRead,
    summary="Replace a product",
)
async def replace_product(
    product_id: int,
    payload: ProductReplace,
    service: ProductService = Depends(get_product_service),
):
    return await service.replace_product(product_id, payload)


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a product (idempotent)",
)
async def delete_product(product_id: int, service: ProductService = Depends(get_product_service)):
    # 204 și când produsul nu există
    await service.delete_product(product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
