import logging

from storefront.domain.models import Cart
from storefront.domain.exceptions import ValidationError, ProductNotFoundError, CartItemNotFoundError

logger = logging.getLogger(__name__)


async def _load_cart(uow, user_id: str, cart_id: str) -> Cart:
    lines = await uow.carts.get_lines(cart_id)
    return Cart(id=cart_id, user_id=user_id, items=lines)


class GetCartUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str) -> Cart:
        async with self._uow() as uow:
            cart_id = await uow.carts.get_or_create(user_id)
            cart = await _load_cart(uow, user_id, cart_id)
            await uow.commit()
        return cart


class AddCartItemUseCase:
    """Adds a line or accumulates onto an existing one. Stock is not checked here."""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str, product_id: str, quantity: int) -> Cart:
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1", field="quantity")

        async with self._uow() as uow:
            product = await uow.products.get_by_id(product_id)
            if not product:
                raise ProductNotFoundError(product_id)

            cart_id = await uow.carts.get_or_create(user_id)
            await uow.carts.add_quantity(cart_id, product_id, quantity)

            cart = await _load_cart(uow, user_id, cart_id)
            await uow.commit()

        logger.info(f"Cart of user {user_id}: +{quantity} x {product_id}")
        return cart


class UpdateCartQuantityUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str, product_id: str, quantity: int) -> Cart:
        if quantity < 0:
            raise ValidationError("Quantity cannot be negative", field="quantity")

        async with self._uow() as uow:
            cart_id = await uow.carts.get_or_create(user_id)
            if quantity == 0:
                await uow.carts.remove_line(cart_id, product_id)
            elif not await uow.carts.set_quantity(cart_id, product_id, quantity):
                raise CartItemNotFoundError(product_id)

            cart = await _load_cart(uow, user_id, cart_id)
            await uow.commit()
        return cart


class RemoveCartItemUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str, product_id: str) -> Cart:
        async with self._uow() as uow:
            cart_id = await uow.carts.get_or_create(user_id)
            await uow.carts.remove_line(cart_id, product_id)
            cart = await _load_cart(uow, user_id, cart_id)
            await uow.commit()
        return cart


class ClearCartUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, user_id: str) -> Cart:
        async with self._uow() as uow:
            cart_id = await uow.carts.get_or_create(user_id)
            await uow.carts.clear(cart_id)
            await uow.commit()
        return Cart(id=cart_id, user_id=user_id, items=[])
