import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple
from pydantic import BaseModel

from storefront.domain.models import Product, CategoryCount, has_cent_precision
from storefront.domain.exceptions import ValidationError, ProductNotFoundError, OutOfStockError

logger = logging.getLogger(__name__)


class CreateProductDTO(BaseModel):
    name: str
    description: str = ""
    price: Decimal
    category: str
    stock: int = 0


class UpdateProductDTO(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    category: Optional[str] = None
    # Relative change; stock is never overwritten with an absolute value
    stock_delta: Optional[int] = None


def _check_details(name: Optional[str], price: Optional[Decimal], category: Optional[str]) -> None:
    if name is not None and (not name.strip() or len(name) > 100):
        raise ValidationError("Name must be 1-100 characters", field="name")
    if price is not None and price < 0:
        raise ValidationError("Price cannot be negative", field="price")
    if price is not None and not has_cent_precision(price):
        raise ValidationError("Price cannot have more than 2 decimal places", field="price")
    if category is not None and not category.strip():
        raise ValidationError("Category is required", field="category")


class ListProductsUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(
        self, category: Optional[str] = None, search: Optional[str] = None, page: int = 1, limit: int = 20
    ) -> Tuple[int, List[Product]]:
        page = max(page, 1)
        limit = min(max(limit, 1), 100)
        async with self._uow() as uow:
            return await uow.products.list(category=category, search=search, limit=limit, offset=(page - 1) * limit)


class ListCategoriesUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self) -> List[CategoryCount]:
        async with self._uow() as uow:
            return await uow.products.categories()


class GetProductUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, product_id: str) -> Product:
        async with self._uow() as uow:
            product = await uow.products.get_by_id(product_id)
            if not product:
                raise ProductNotFoundError(product_id)
            return product


class CreateProductUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, data: CreateProductDTO) -> Product:
        _check_details(data.name, data.price, data.category)
        if data.stock < 0:
            raise ValidationError("Stock cannot be negative", field="stock")

        now = datetime.now(timezone.utc)
        product = Product(
            id=str(uuid.uuid4()),
            name=data.name.strip(),
            description=data.description,
            price=data.price,
            category=data.category.strip(),
            stock=data.stock,
            created_at=now,
            updated_at=now,
        )
        async with self._uow() as uow:
            await uow.products.create(product)
            await uow.commit()

        logger.info(f"Product created: {product.id} ({product.name}), stock {product.stock}")
        return product


class UpdateProductUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, product_id: str, data: UpdateProductDTO) -> Product:
        _check_details(data.name, data.price, data.category)
        changes = data.model_dump(exclude_none=True, exclude={"stock_delta"})

        async with self._uow() as uow:
            if changes and not await uow.products.update_details(product_id, changes):
                raise ProductNotFoundError(product_id)

            if data.stock_delta:
                new_stock = await uow.products.adjust_stock(product_id, data.stock_delta)
                if new_stock is None:
                    product = await uow.products.get_by_id(product_id)
                    if not product:
                        raise ProductNotFoundError(product_id)
                    raise OutOfStockError(product_id, product.stock, -data.stock_delta)
                logger.info(f"Product {product_id} stock adjusted by {data.stock_delta} to {new_stock}")

            product = await uow.products.get_by_id(product_id)
            if not product:
                raise ProductNotFoundError(product_id)
            await uow.commit()
        return product


class DeleteProductUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, product_id: str) -> None:
        async with self._uow() as uow:
            if not await uow.products.delete(product_id):
                raise ProductNotFoundError(product_id)
            await uow.commit()
        logger.info(f"Product deleted: {product_id}")
