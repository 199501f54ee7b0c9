import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import select

from storefront.application.manage_cart import (
    GetCartUseCase, AddCartItemUseCase, UpdateCartQuantityUseCase, RemoveCartItemUseCase, ClearCartUseCase,
)
from storefront.application.merge_guest_cart import MergeGuestCartUseCase
from storefront.domain.exceptions import ValidationError, ProductNotFoundError, CartItemNotFoundError
from storefront.domain.models import CartItem
from storefront.infrastructure.db_schema import carts_tbl


def _quantities(cart):
    return {line.product.id: line.quantity for line in cart.items}


@pytest.mark.asyncio
async def test_one_cart_per_customer(uow, make_user):
    user = await make_user()
    get_cart = GetCartUseCase(uow)

    first = await get_cart(user.id)
    second = await get_cart(user.id)

    assert first.id == second.id
    assert first.is_empty()


@pytest.mark.asyncio
async def test_adding_twice_accumulates(uow, make_user, make_product):
    user = await make_user()
    apples = await make_product(price="30")
    add = AddCartItemUseCase(uow)

    await add(user.id, apples.id, 2)
    cart = await add(user.id, apples.id, 3)

    assert _quantities(cart) == {apples.id: 5}
    assert cart.subtotal == Decimal("150")
    assert cart.items[0].product.name == "Apples"


@pytest.mark.asyncio
async def test_add_does_not_check_stock(uow, make_user, make_product):
    user = await make_user()
    apples = await make_product(stock=1)

    cart = await AddCartItemUseCase(uow)(user.id, apples.id, 7)

    assert _quantities(cart) == {apples.id: 7}


@pytest.mark.asyncio
async def test_add_rejects_bad_quantity_and_unknown_product(uow, make_user):
    user = await make_user()
    add = AddCartItemUseCase(uow)

    with pytest.raises(ValidationError):
        await add(user.id, "whatever", 0)
    with pytest.raises(ProductNotFoundError):
        await add(user.id, "missing", 1)


class TestUpdateQuantity:
    @pytest.mark.asyncio
    async def test_sets_quantity(self, uow, make_user, make_product):
        user = await make_user()
        apples = await make_product()
        await AddCartItemUseCase(uow)(user.id, apples.id, 2)

        cart = await UpdateCartQuantityUseCase(uow)(user.id, apples.id, 9)

        assert _quantities(cart) == {apples.id: 9}

    @pytest.mark.asyncio
    async def test_zero_removes_line(self, uow, make_user, make_product):
        user = await make_user()
        apples = await make_product()
        await AddCartItemUseCase(uow)(user.id, apples.id, 2)

        cart = await UpdateCartQuantityUseCase(uow)(user.id, apples.id, 0)

        assert cart.is_empty()

    @pytest.mark.asyncio
    async def test_negative_is_rejected(self, uow, make_user, make_product):
        user = await make_user()
        apples = await make_product()
        await AddCartItemUseCase(uow)(user.id, apples.id, 2)

        with pytest.raises(ValidationError):
            await UpdateCartQuantityUseCase(uow)(user.id, apples.id, -1)
        cart = await GetCartUseCase(uow)(user.id)
        assert _quantities(cart) == {apples.id: 2}

    @pytest.mark.asyncio
    async def test_missing_line(self, uow, make_user, make_product):
        user = await make_user()
        apples = await make_product()

        with pytest.raises(CartItemNotFoundError):
            await UpdateCartQuantityUseCase(uow)(user.id, apples.id, 3)


@pytest.mark.asyncio
async def test_remove_and_clear_are_idempotent(uow, make_user, make_product):
    user = await make_user()
    apples = await make_product()
    bread = await make_product(name="Bread")
    await AddCartItemUseCase(uow)(user.id, apples.id, 1)
    await AddCartItemUseCase(uow)(user.id, bread.id, 1)

    cart = await RemoveCartItemUseCase(uow)(user.id, apples.id)
    cart = await RemoveCartItemUseCase(uow)(user.id, apples.id)
    assert _quantities(cart) == {bread.id: 1}

    await ClearCartUseCase(uow)(user.id)
    cart = await ClearCartUseCase(uow)(user.id)
    assert cart.is_empty()
    assert (await GetCartUseCase(uow)(user.id)).is_empty()


class TestMerge:
    @staticmethod
    def _merge(uow):
        return MergeGuestCartUseCase(AddCartItemUseCase(uow), GetCartUseCase(uow))

    @pytest.mark.asyncio
    async def test_merges_into_existing_lines(self, uow, make_user, make_product):
        user = await make_user()
        apples = await make_product()
        bread = await make_product(name="Bread")
        await AddCartItemUseCase(uow)(user.id, apples.id, 1)

        result = await self._merge(uow)(
            user.id, [CartItem(product_id=apples.id, quantity=2), CartItem(product_id=bread.id, quantity=1)]
        )

        assert _quantities(result.cart) == {apples.id: 3, bread.id: 1}
        assert all(r.merged for r in result.results)
        assert not result.degraded

    @pytest.mark.asyncio
    async def test_bad_line_does_not_stop_the_rest(self, uow, make_user, make_product):
        user = await make_user()
        apples = await make_product()

        result = await self._merge(uow)(
            user.id,
            [
                CartItem(product_id="gone", quantity=1),
                CartItem(product_id=apples.id, quantity=2),
                CartItem(product_id=apples.id, quantity=0),
            ],
        )

        assert [r.merged for r in result.results] == [False, True, False]
        assert result.results[0].error
        assert _quantities(result.cart) == {apples.id: 2}
        assert result.fallback_items == []

    @pytest.mark.asyncio
    async def test_falls_back_to_guest_items_when_nothing_merged(self, uow, make_user):
        user = await make_user()
        guest = [CartItem(product_id="gone", quantity=2)]

        result = await self._merge(uow)(user.id, guest)

        assert result.degraded
        assert result.fallback_items == guest
        assert result.cart.is_empty()

    @pytest.mark.asyncio
    async def test_empty_guest_cart(self, uow, make_user):
        user = await make_user()

        result = await self._merge(uow)(user.id, [])

        assert result.results == []
        assert not result.degraded


class TestConcurrentFirstUse:
    @pytest.mark.asyncio
    async def test_first_cart_requests_share_one_cart(self, uow, make_user, make_product):
        user = await make_user()
        apples = await make_product()

        fetched, added = await asyncio.gather(
            GetCartUseCase(uow)(user.id),
            AddCartItemUseCase(uow)(user.id, apples.id, 1),
        )

        assert fetched.id == added.id
        assert _quantities(await GetCartUseCase(uow)(user.id)) == {apples.id: 1}

    @pytest.mark.asyncio
    async def test_concurrent_adds_accumulate(self, uow, make_user, make_product):
        user = await make_user()
        apples = await make_product()
        add = AddCartItemUseCase(uow)

        await asyncio.gather(add(user.id, apples.id, 2), add(user.id, apples.id, 3))

        assert _quantities(await GetCartUseCase(uow)(user.id)) == {apples.id: 5}


@pytest.mark.asyncio
async def test_accumulating_add_touches_cart(uow, session_factory, make_user, make_product):
    user = await make_user()
    apples = await make_product()
    add = AddCartItemUseCase(uow)

    async def cart_updated_at():
        async with session_factory() as session:
            result = await session.execute(select(carts_tbl.c.updated_at).where(carts_tbl.c.user_id == user.id))
            return result.scalar_one()

    await add(user.id, apples.id, 1)
    before = await cart_updated_at()
    await asyncio.sleep(0.01)
    await add(user.id, apples.id, 1)

    assert await cart_updated_at() > before
