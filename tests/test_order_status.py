import asyncio

import pytest

from storefront.application.get_order import GetOrderUseCase, TrackOrderUseCase
from storefront.application.place_order import PlaceOrderUseCase, PlaceOrderDTO, OrderLineDTO
from storefront.application.update_status import (
    SetOrderStatusUseCase, CancelOrderUseCase, DeleteOrderUseCase,
)
from storefront.domain.exceptions import (
    ValidationError, InvalidStatusError, InvalidTransitionError, OrderNotFoundError,
    OrderNotDeletableError, ConflictError, ForbiddenError,
)
from storefront.domain.models import OrderStatus


@pytest.fixture
def place_order(uow, make_user, make_product, shipping_address):
    async def _place(user=None):
        user = user or await make_user()
        product = await make_product()
        return await PlaceOrderUseCase(uow)(
            PlaceOrderDTO(
                user_id=user.id,
                items=[OrderLineDTO(product_id=product.id, quantity=1)],
                shipping_address=shipping_address,
            )
        )

    return _place


@pytest.mark.asyncio
async def test_fulfilment_appends_history(uow, place_order):
    order = await place_order()
    set_status = SetOrderStatusUseCase(uow)

    await set_status(order.id, "Shipped")
    updated = await set_status(order.id, "Delivered")

    assert [e.status for e in updated.status_history] == [
        OrderStatus.PENDING, OrderStatus.SHIPPED, OrderStatus.DELIVERED,
    ]
    assert updated.current_status == OrderStatus.DELIVERED
    assert updated.status_history[-1].status == updated.current_status


@pytest.mark.asyncio
async def test_order_can_be_referenced_by_number(uow, place_order):
    order = await place_order()

    updated = await SetOrderStatusUseCase(uow)(order.order_number, OrderStatus.PROCESSING)

    assert updated.id == order.id
    assert updated.current_status == OrderStatus.PROCESSING


@pytest.mark.asyncio
async def test_unknown_status_leaves_history_alone(uow, make_user, place_order):
    admin = await make_user(is_admin=True)
    order = await place_order()

    with pytest.raises(InvalidStatusError) as exc_info:
        await SetOrderStatusUseCase(uow)(order.id, "Lost")

    assert isinstance(exc_info.value, ValidationError)
    stored = await GetOrderUseCase(uow)(order.id, admin)
    assert len(stored.status_history) == 1
    assert stored.current_status == OrderStatus.PENDING


@pytest.mark.asyncio
async def test_status_is_case_sensitive(uow, place_order):
    order = await place_order()
    with pytest.raises(InvalidStatusError):
        await SetOrderStatusUseCase(uow)(order.id, "shipped")


@pytest.mark.asyncio
async def test_unknown_order(uow):
    with pytest.raises(OrderNotFoundError):
        await SetOrderStatusUseCase(uow)("ORD0", "Shipped")


@pytest.mark.asyncio
async def test_cancel_twice_appends_twice(uow, place_order):
    order = await place_order()
    cancel = CancelOrderUseCase(SetOrderStatusUseCase(uow))

    await cancel(order.order_number)
    updated = await cancel(order.order_number)

    assert [e.status for e in updated.status_history] == [
        OrderStatus.PENDING, OrderStatus.CANCELLED, OrderStatus.CANCELLED,
    ]


@pytest.mark.asyncio
async def test_permissive_mode_accepts_backwards_moves(uow, place_order):
    order = await place_order()
    set_status = SetOrderStatusUseCase(uow)

    await set_status(order.id, "Delivered")
    updated = await set_status(order.id, "Pending")

    assert updated.current_status == OrderStatus.PENDING
    assert len(updated.status_history) == 3


@pytest.mark.asyncio
async def test_strict_mode_rejects_backwards_moves(uow, place_order):
    order = await place_order()
    set_status = SetOrderStatusUseCase(uow, strict_transitions=True)

    await set_status(order.id, "Processing")
    await set_status(order.id, "Delivered")
    with pytest.raises(InvalidTransitionError):
        await set_status(order.id, "Pending")
    with pytest.raises(InvalidTransitionError):
        await set_status(order.id, "Cancelled")


@pytest.mark.asyncio
async def test_strict_mode_allows_repeated_cancel(uow, place_order):
    order = await place_order()
    cancel = CancelOrderUseCase(SetOrderStatusUseCase(uow, strict_transitions=True))

    await cancel(order.id)
    updated = await cancel(order.id)

    assert updated.current_status == OrderStatus.CANCELLED


@pytest.mark.asyncio
async def test_concurrent_updates_keep_current_status_in_step(uow, place_order):
    order = await place_order()
    set_status = SetOrderStatusUseCase(uow)

    await asyncio.gather(
        set_status(order.id, "Processing"),
        set_status(order.id, "Shipped"),
        set_status(order.id, "Cancelled"),
    )
    async with uow() as u:
        stored = await u.orders.get_by_id(order.id)

    assert len(stored.status_history) == 4
    assert stored.status_history[-1].status == stored.current_status


class TestDelete:
    @pytest.mark.asyncio
    async def test_only_cancelled_orders_are_deleted(self, uow, place_order):
        order = await place_order()

        with pytest.raises(OrderNotDeletableError) as exc_info:
            await DeleteOrderUseCase(uow)(order.id)
        assert isinstance(exc_info.value, ConflictError)

        await CancelOrderUseCase(SetOrderStatusUseCase(uow))(order.id)
        deleted_id = await DeleteOrderUseCase(uow)(order.order_number)

        assert deleted_id == order.id
        with pytest.raises(OrderNotFoundError):
            await DeleteOrderUseCase(uow)(order.id)
        async with uow() as u:
            assert await u.orders.count() == 0


class TestVisibility:
    @pytest.mark.asyncio
    async def test_other_customers_are_refused(self, uow, make_user, place_order):
        stranger = await make_user()
        order = await place_order()

        with pytest.raises(ForbiddenError):
            await GetOrderUseCase(uow)(order.id, stranger)

    @pytest.mark.asyncio
    async def test_admin_sees_every_order(self, uow, make_user, place_order):
        admin = await make_user(is_admin=True)
        order = await place_order()

        stored = await GetOrderUseCase(uow)(order.order_number, admin)

        assert stored.id == order.id

    @pytest.mark.asyncio
    async def test_tracking_follows_history(self, uow, make_user, place_order):
        owner = await make_user()
        order = await place_order(owner)
        await SetOrderStatusUseCase(uow)(order.id, "Shipped")

        tracking = await TrackOrderUseCase(GetOrderUseCase(uow))(order.order_number, owner)

        assert tracking.order_number == order.order_number
        assert tracking.current_status == OrderStatus.SHIPPED
        assert len(tracking.status_history) == 2
