import logging
from datetime import datetime, timezone
from typing import Union

from storefront.domain.models import Order, OrderStatus, transition_allowed
from storefront.domain.exceptions import (
    InvalidStatusError, InvalidTransitionError, OrderNotFoundError, OrderNotDeletableError,
)

logger = logging.getLogger(__name__)


def parse_status(value: Union[str, OrderStatus]) -> OrderStatus:
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidStatusError(value)


class SetOrderStatusUseCase:
    """Appends a status entry and moves current_status in one transaction.

    The order may be referenced by its id or its order number. Transitions are
    permissive unless strict mode is switched on, see ``transition_allowed``.
    """

    def __init__(self, unit_of_work, strict_transitions: bool = False):
        self._uow = unit_of_work
        self._strict = strict_transitions

    async def __call__(self, order_ref: str, new_status: Union[str, OrderStatus]) -> Order:
        status = parse_status(new_status)

        async with self._uow() as uow:
            order_id = await uow.orders.resolve(order_ref)
            if not order_id:
                raise OrderNotFoundError(order_ref)

            if self._strict:
                current = await uow.orders.get_current_status(order_id, for_update=True)
                if current is None:
                    raise OrderNotFoundError(order_ref)
                if not transition_allowed(current, status, strict=True):
                    logger.warning(f"Order {order_ref}: transition {current.value} -> {status.value} rejected")
                    raise InvalidTransitionError(current.value, status.value)

            appended = await uow.orders.append_status(order_id, status, datetime.now(timezone.utc))
            if not appended:
                # Deleted between resolution and update
                raise OrderNotFoundError(order_ref)

            order = await uow.orders.get_by_id(order_id)
            await uow.commit()

        logger.info(f"Order {order.order_number} moved to {status.value}")
        return order


class CancelOrderUseCase:
    """Idempotent: cancelling a cancelled order appends another Cancelled entry"""

    def __init__(self, set_status: SetOrderStatusUseCase):
        self._set_status = set_status

    async def __call__(self, order_ref: str) -> Order:
        return await self._set_status(order_ref, OrderStatus.CANCELLED)


class DeleteOrderUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, order_ref: str) -> str:
        async with self._uow() as uow:
            order_id = await uow.orders.resolve(order_ref)
            if not order_id:
                raise OrderNotFoundError(order_ref)

            # Lock the row before reading the status the rule depends on
            if await uow.orders.get_current_status(order_id, for_update=True) is None:
                raise OrderNotFoundError(order_ref)
            order = await uow.orders.get_by_id(order_id)
            if not order.can_be_deleted():
                status = order.current_status.value
                logger.warning(f"Refusing to delete order {order_ref} in status {status}")
                raise OrderNotDeletableError(order_ref, status)

            await uow.orders.delete(order_id)
            await uow.commit()

        logger.info(f"Order {order_ref} deleted")
        return order_id
