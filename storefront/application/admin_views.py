from typing import List, Optional, Union

from storefront.domain.models import DashboardStats, OrderStatus, OrderWithCustomer
from storefront.domain.exceptions import ValidationError
from storefront.application.update_status import parse_status

MAX_RECENT_ORDERS = 100


class DashboardStatsUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self) -> DashboardStats:
        async with self._uow() as uow:
            return DashboardStats(
                products=await uow.products.count(),
                orders=await uow.orders.count(),
                customers=await uow.users.count_customers(),
                total_sales=await uow.orders.sum_total_for_status(OrderStatus.DELIVERED),
            )


class RecentOrdersUseCase:
    def __init__(self, unit_of_work, default_limit: int = 5):
        self._uow = unit_of_work
        self._default_limit = default_limit

    async def __call__(self, limit: Optional[int] = None) -> List[OrderWithCustomer]:
        limit = self._default_limit if limit is None else limit
        if limit < 1:
            raise ValidationError("Limit must be at least 1", field="limit")
        async with self._uow() as uow:
            return await uow.orders.list_with_customers(limit=min(limit, MAX_RECENT_ORDERS))


class ListOrdersUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, status: Optional[Union[str, OrderStatus]] = None) -> List[OrderWithCustomer]:
        status_filter = parse_status(status) if status else None
        async with self._uow() as uow:
            return await uow.orders.list_with_customers(status=status_filter)
