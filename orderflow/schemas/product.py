from datetime import datetime
from typing import List, Optional

from pydantic import Field

from orderflow.schemas.base import BaseCreateSchema, BaseResponseSchema, BaseUpdateSchema


class ProductCreate(BaseCreateSchema):
    name: str = Field(..., min_length=1, max_length=200)
    price: float = Field(..., ge=0, allow_inf_nan=False)
    unit: str = ""
    category: str = ""
    image: str = ""
    description: str = ""
    stock: int = Field(0, ge=0)


class ProductUpdate(BaseUpdateSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    unit: Optional[str] = None
    category: Optional[str] = None
    image: Optional[str] = None
    description: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)


class ProductOut(BaseResponseSchema):
    id: str
    name: str
    price: float
    unit: str = ""
    category: str = ""
    image: str = ""
    description: str = ""
    stock: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None


class ProductResponse(BaseResponseSchema):
    product: ProductOut


class ProductListResponse(BaseResponseSchema):
    products: List[ProductOut]


class MessageResponse(BaseResponseSchema):
    message: str
