from fastapi import APIRouter, status

from orderflow.api.deps import CurrentUser, Products
from orderflow.schemas.product import (
    MessageResponse,
    ProductCreate,
    ProductListResponse,
    ProductOut,
    ProductResponse,
    ProductUpdate,
)


router = APIRouter(tags=["Products"])


@router.get(
    "",
    response_model=ProductListResponse,
    response_model_exclude_none=True,
)
async def list_products(products: Products):
    """Public catalogue, grouped by category."""
    items = await products.get_products()
    return ProductListResponse(products=[ProductOut.model_validate(p.to_store()) for p in items])


@router.post(
    "",
    response_model=ProductResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_product(
    data: ProductCreate,
    current_user: CurrentUser,
    products: Products,
):
    product = await products.create_product(current_user, data)
    return ProductResponse(product=ProductOut.model_validate(product.to_store()))


@router.put(
    "/{product_id}",
    response_model=ProductResponse,
    response_model_exclude_none=True,
)
async def update_product(
    product_id: str,
    data: ProductUpdate,
    current_user: CurrentUser,
    products: Products,
):
    product = await products.update_product(current_user, product_id, data)
    return ProductResponse(product=ProductOut.model_validate(product.to_store()))


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: str,
    current_user: CurrentUser,
    products: Products,
):
    await products.delete_product(current_user, product_id)
    return MessageResponse(message="Product deleted successfully")
