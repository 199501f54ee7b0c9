from typing import List

from storefront.domain.models import Order, TrackingInfo, User, OrderStatus
from storefront.domain.exceptions import OrderNotFoundError, ForbiddenError


class GetOrderUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_ref: str, caller: User) -> Order:
        async with self._uow() as uow:
            order_id = await uow.orders.resolve(order_ref)
            order = await uow.orders.get_by_id(order_id) if order_id else None
            if not order:
                raise OrderNotFoundError(order_ref)
            if not order.can_be_viewed_by(caller):
                raise ForbiddenError("Access denied")
            return order


class TrackOrderUseCase:
    def __init__(self, get_order: GetOrderUseCase):
        self._get_order = get_order

    async def __call__(self, order_ref: str, caller: User) -> TrackingInfo:
        order = await self._get_order(order_ref, caller)
        history = order.status_history
        return TrackingInfo(
            order_number=order.order_number,
            status_history=history,
            current_status=history[-1].status if history else OrderStatus.PENDING,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class ListCustomerOrdersUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, caller: User) -> List[Order]:
        async with self._uow() as uow:
            return await uow.orders.list_for_user(caller.id)
