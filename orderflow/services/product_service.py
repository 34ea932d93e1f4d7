from typing import List
from datetime import datetime, timezone
import logging

from orderflow.core.exceptions import NotFoundError
from orderflow.core.permissions import require_permission
from orderflow.models.product import PRODUCT_PREFIX, Product, new_product_id, product_key
from orderflow.models.user import UserProfile
from orderflow.schemas.product import ProductCreate, ProductUpdate
from orderflow.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


class ProductService:
    """Catalogue CRUD. Reads are open to everyone, writes are operator-only."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def get_products(self) -> List[Product]:
        products = [Product.from_store(d) for d in await self.store.scan_by_prefix(PRODUCT_PREFIX)]
        products.sort(key=lambda p: (p.category, p.name))
        return products

    async def get_product(self, product_id: str) -> Product:
        data = await self.store.get(product_key(product_id))
        if data is None:
            raise NotFoundError("Product not found")
        return Product.from_store(data)

    async def create_product(self, actor: UserProfile, data: ProductCreate) -> Product:
        require_permission(actor, "products:manage")
        product = Product(id=new_product_id(), **data.model_dump())
        await self.store.set(product.id, product.to_store())
        logger.info(f"Product {product.id} created by {actor.id}")
        return product

    async def update_product(self, actor: UserProfile, product_id: str, data: ProductUpdate) -> Product:
        """Merge the given fields into the stored product (last writer wins)."""
        require_permission(actor, "products:manage")
        product = await self.get_product(product_id)

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        updated = product.model_copy(update={**changes, "updated_at": datetime.now(timezone.utc)})
        await self.store.set(updated.id, updated.to_store())
        logger.info(f"Product {updated.id} updated by {actor.id}: {sorted(changes)}")
        return updated

    async def delete_product(self, actor: UserProfile, product_id: str) -> None:
        require_permission(actor, "products:manage")
        key = product_key(product_id)
        if await self.store.get(key) is None:
            raise NotFoundError("Product not found")
        await self.store.delete(key)
        logger.info(f"Product {key} deleted by {actor.id}")
