from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from storefront.presentation.dependencies import (
    require_admin,
    get_dashboard_stats_use_case,
    get_list_orders_use_case,
    get_recent_orders_use_case,
    get_set_status_use_case,
    get_cancel_order_use_case,
    get_delete_order_use_case,
    get_create_product_use_case,
    get_update_product_use_case,
    get_delete_product_use_case,
    get_update_store_settings_use_case,
    get_list_users_use_case,
    get_toggle_user_active_use_case,
    get_delete_user_use_case,
)
from storefront.presentation.schemas import (
    DashboardResponse, OrderListResponse, AdminOrderResponse, UpdateStatusRequest, StatusChangeResponse,
    DeleteOrderResponse, CreateProductRequest, UpdateProductRequest, ProductResponse,
    UpdateSettingsRequest, StoreSettingsResponse, ErrorResponse, UserListResponse, UserResponse,
    ToggleActiveResponse,
)
from storefront.application.admin_views import DashboardStatsUseCase, ListOrdersUseCase, RecentOrdersUseCase
from storefront.application.update_status import SetOrderStatusUseCase, CancelOrderUseCase, DeleteOrderUseCase
from storefront.application.manage_products import (
    CreateProductUseCase, CreateProductDTO, UpdateProductUseCase, UpdateProductDTO, DeleteProductUseCase,
)
from storefront.application.store_settings import UpdateStoreSettingsUseCase, UpdateStoreSettingsDTO
from storefront.application.manage_users import ListUsersUseCase, ToggleUserActiveUseCase, DeleteUserUseCase

admin_router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


@admin_router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(use_case: DashboardStatsUseCase = Depends(get_dashboard_stats_use_case)):
    """Counts and delivered revenue"""
    stats = await use_case()
    return DashboardResponse.model_validate(stats)


@admin_router.get("/orders", response_model=OrderListResponse, responses={400: {"model": ErrorResponse}})
async def list_orders(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    use_case: ListOrdersUseCase = Depends(get_list_orders_use_case),
):
    orders = await use_case(status_filter)
    return OrderListResponse(data=[AdminOrderResponse.model_validate(order) for order in orders])


@admin_router.get("/orders/recent", response_model=OrderListResponse)
async def recent_orders(
    limit: Optional[int] = Query(default=None, ge=1),
    use_case: RecentOrdersUseCase = Depends(get_recent_orders_use_case),
):
    orders = await use_case(limit)
    return OrderListResponse(data=[AdminOrderResponse.model_validate(order) for order in orders])


@admin_router.patch(
    "/orders/{order_ref}/status",
    response_model=StatusChangeResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_order_status(
    order_ref: str,
    request: UpdateStatusRequest,
    use_case: SetOrderStatusUseCase = Depends(get_set_status_use_case),
):
    """Append a status entry (order id or order number)"""
    order = await use_case(order_ref, request.status)
    return StatusChangeResponse(order_id=order.id, order_number=order.order_number, current_status=order.current_status)


@admin_router.post(
    "/orders/{order_ref}/cancel",
    response_model=StatusChangeResponse,
    responses={404: {"model": ErrorResponse}},
)
async def cancel_order(
    order_ref: str,
    use_case: CancelOrderUseCase = Depends(get_cancel_order_use_case),
):
    order = await use_case(order_ref)
    return StatusChangeResponse(order_id=order.id, order_number=order.order_number, current_status=order.current_status)


@admin_router.delete(
    "/orders/{order_ref}",
    response_model=DeleteOrderResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_order(
    order_ref: str,
    use_case: DeleteOrderUseCase = Depends(get_delete_order_use_case),
):
    """Remove a cancelled order"""
    order_id = await use_case(order_ref)
    return DeleteOrderResponse(order_id=order_id)


@admin_router.post(
    "/products",
    response_model=ProductResponse,
    responses={400: {"model": ErrorResponse}},
    status_code=status.HTTP_201_CREATED,
)
async def create_product(
    request: CreateProductRequest,
    use_case: CreateProductUseCase = Depends(get_create_product_use_case),
):
    product = await use_case(CreateProductDTO(**request.model_dump()))
    return ProductResponse.model_validate(product)


@admin_router.patch(
    "/products/{product_id}",
    response_model=ProductResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_product(
    product_id: str,
    request: UpdateProductRequest,
    use_case: UpdateProductUseCase = Depends(get_update_product_use_case),
):
    """Edit details; stock only through stock_delta"""
    product = await use_case(product_id, UpdateProductDTO(**request.model_dump()))
    return ProductResponse.model_validate(product)


@admin_router.delete(
    "/products/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def delete_product(
    product_id: str,
    use_case: DeleteProductUseCase = Depends(get_delete_product_use_case),
):
    await use_case(product_id)


@admin_router.put(
    "/settings",
    response_model=StoreSettingsResponse,
    responses={400: {"model": ErrorResponse}},
)
async def update_store_settings(
    request: UpdateSettingsRequest,
    use_case: UpdateStoreSettingsUseCase = Depends(get_update_store_settings_use_case),
):
    store_settings = await use_case(UpdateStoreSettingsDTO(**request.model_dump()))
    return StoreSettingsResponse.model_validate(store_settings)


@admin_router.get("/users", response_model=UserListResponse)
async def list_users(use_case: ListUsersUseCase = Depends(get_list_users_use_case)):
    users = await use_case()
    return UserListResponse(data=[UserResponse.model_validate(user) for user in users])


@admin_router.patch(
    "/users/{user_id}/toggle-active",
    response_model=ToggleActiveResponse,
    responses={404: {"model": ErrorResponse}},
)
async def toggle_user_active(
    user_id: str,
    use_case: ToggleUserActiveUseCase = Depends(get_toggle_user_active_use_case),
):
    is_active = await use_case(user_id)
    return ToggleActiveResponse(id=user_id, is_active=is_active)


@admin_router.delete(
    "/users/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_user(
    user_id: str,
    use_case: DeleteUserUseCase = Depends(get_delete_user_use_case),
):
    """Only deactivated customers without orders"""
    await use_case(user_id)
