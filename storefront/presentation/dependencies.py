from typing import Optional
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.config import settings
from storefront.database import get_session_factory
from storefront.domain.models import User
from storefront.domain.exceptions import ForbiddenError
from storefront.infrastructure.unit_of_work import UnitOfWork
from storefront.application.authenticate import AuthenticateUseCase
from storefront.application.place_order import PlaceOrderUseCase
from storefront.application.get_order import GetOrderUseCase, TrackOrderUseCase, ListCustomerOrdersUseCase
from storefront.application.update_status import SetOrderStatusUseCase, CancelOrderUseCase, DeleteOrderUseCase
from storefront.application.manage_cart import (
    GetCartUseCase, AddCartItemUseCase, UpdateCartQuantityUseCase, RemoveCartItemUseCase, ClearCartUseCase,
)
from storefront.application.merge_guest_cart import MergeGuestCartUseCase
from storefront.application.admin_views import DashboardStatsUseCase, RecentOrdersUseCase, ListOrdersUseCase
from storefront.application.manage_products import (
    ListProductsUseCase, ListCategoriesUseCase, GetProductUseCase, CreateProductUseCase,
    UpdateProductUseCase, DeleteProductUseCase,
)
from storefront.application.store_settings import GetStoreSettingsUseCase, UpdateStoreSettingsUseCase
from storefront.application.manage_users import ListUsersUseCase, ToggleUserActiveUseCase, DeleteUserUseCase


def get_unit_of_work(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> UnitOfWork:
    return UnitOfWork(session_factory)


# Auth collaborator

async def get_current_user(
    x_api_key: Optional[str] = Header(default=None),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> User:
    return await AuthenticateUseCase(uow)(x_api_key)


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise ForbiddenError("Admin access only")
    return user


# Use case factories

def get_place_order_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return PlaceOrderUseCase(uow)


def get_get_order_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return GetOrderUseCase(uow)


def get_track_order_use_case(get_order: GetOrderUseCase = Depends(get_get_order_use_case)):
    return TrackOrderUseCase(get_order)


def get_list_customer_orders_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return ListCustomerOrdersUseCase(uow)


def get_set_status_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return SetOrderStatusUseCase(uow, strict_transitions=settings.STRICT_STATUS_TRANSITIONS)


def get_cancel_order_use_case(set_status: SetOrderStatusUseCase = Depends(get_set_status_use_case)):
    return CancelOrderUseCase(set_status)


def get_delete_order_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return DeleteOrderUseCase(uow)


def get_get_cart_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return GetCartUseCase(uow)


def get_add_cart_item_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return AddCartItemUseCase(uow)


def get_update_cart_quantity_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return UpdateCartQuantityUseCase(uow)


def get_remove_cart_item_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return RemoveCartItemUseCase(uow)


def get_clear_cart_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return ClearCartUseCase(uow)


def get_merge_guest_cart_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return MergeGuestCartUseCase(AddCartItemUseCase(uow), GetCartUseCase(uow))


def get_dashboard_stats_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return DashboardStatsUseCase(uow)


def get_recent_orders_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return RecentOrdersUseCase(uow, default_limit=settings.RECENT_ORDERS_DEFAULT)


def get_list_orders_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return ListOrdersUseCase(uow)


def get_list_products_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return ListProductsUseCase(uow)


def get_list_categories_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return ListCategoriesUseCase(uow)


def get_get_product_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return GetProductUseCase(uow)


def get_create_product_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return CreateProductUseCase(uow)


def get_update_product_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return UpdateProductUseCase(uow)


def get_delete_product_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return DeleteProductUseCase(uow)


def get_get_store_settings_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return GetStoreSettingsUseCase(uow)


def get_update_store_settings_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return UpdateStoreSettingsUseCase(uow)


def get_list_users_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return ListUsersUseCase(uow)


def get_toggle_user_active_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return ToggleUserActiveUseCase(uow)


def get_delete_user_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return DeleteUserUseCase(uow)
