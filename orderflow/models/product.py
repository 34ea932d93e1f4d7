import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import Field

from orderflow.models.base import StoredRecord


PRODUCT_PREFIX = "product:"


def new_product_id() -> str:
    return f"{PRODUCT_PREFIX}{uuid.uuid4().hex}"


def product_key(product_id: str) -> str:
    if product_id.startswith(PRODUCT_PREFIX):
        return product_id
    return f"{PRODUCT_PREFIX}{product_id}"


class Product(StoredRecord):
    """Catalogue entry. Orders snapshot the price and never read it back."""
    id: str
    name: str
    price: float
    unit: str = ""
    category: str = ""
    image: str = ""
    description: str = ""
    stock: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = None
