import math
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status

from storefront.domain.models import CartItem, User
from storefront.presentation.dependencies import (
    get_current_user,
    get_place_order_use_case,
    get_get_order_use_case,
    get_track_order_use_case,
    get_list_customer_orders_use_case,
    get_get_cart_use_case,
    get_add_cart_item_use_case,
    get_update_cart_quantity_use_case,
    get_remove_cart_item_use_case,
    get_clear_cart_use_case,
    get_merge_guest_cart_use_case,
    get_list_products_use_case,
    get_list_categories_use_case,
    get_get_product_use_case,
    get_get_store_settings_use_case,
)
from storefront.presentation.schemas import (
    PlaceOrderRequest, OrderResponse, TrackingResponse, ErrorResponse,
    AddCartItemRequest, UpdateCartItemRequest, MergeCartRequest, CartResponse, MergeCartResponse,
    ProductResponse, ProductListResponse, PaginationInfo, CategoryResponse, StoreSettingsResponse,
)
from storefront.application.place_order import PlaceOrderUseCase, PlaceOrderDTO, OrderLineDTO
from storefront.application.get_order import GetOrderUseCase, TrackOrderUseCase, ListCustomerOrdersUseCase
from storefront.application.manage_cart import (
    GetCartUseCase, AddCartItemUseCase, UpdateCartQuantityUseCase, RemoveCartItemUseCase, ClearCartUseCase,
)
from storefront.application.merge_guest_cart import MergeGuestCartUseCase
from storefront.application.manage_products import ListProductsUseCase, ListCategoriesUseCase, GetProductUseCase
from storefront.application.store_settings import GetStoreSettingsUseCase

router = APIRouter()


# Orders

@router.post(
    "/orders",
    response_model=OrderResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    status_code=status.HTTP_201_CREATED,
)
async def place_order(
    request: PlaceOrderRequest,
    user: User = Depends(get_current_user),
    use_case: PlaceOrderUseCase = Depends(get_place_order_use_case),
):
    """Place an order (cash on delivery)"""
    dto = PlaceOrderDTO(
        user_id=user.id,
        items=[
            OrderLineDTO(product_id=item.product_id, quantity=item.quantity, price=item.price)
            for item in request.items
        ],
        shipping_address=request.shipping_address.model_dump(),
        payment_method=request.payment_method,
        notes=request.notes,
    )
    order = await use_case(dto)
    return OrderResponse.from_domain(order)


@router.get("/orders/mine", response_model=List[OrderResponse])
async def list_my_orders(
    user: User = Depends(get_current_user),
    use_case: ListCustomerOrdersUseCase = Depends(get_list_customer_orders_use_case),
):
    """Orders of the current customer, newest first"""
    orders = await use_case(user)
    return [OrderResponse.from_domain(order) for order in orders]


@router.get(
    "/orders/{order_ref}",
    response_model=OrderResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def get_order(
    order_ref: str,
    user: User = Depends(get_current_user),
    use_case: GetOrderUseCase = Depends(get_get_order_use_case),
):
    """Get an order by id or order number"""
    order = await use_case(order_ref, user)
    return OrderResponse.from_domain(order)


@router.get(
    "/orders/{order_ref}/track",
    response_model=TrackingResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def track_order(
    order_ref: str,
    user: User = Depends(get_current_user),
    use_case: TrackOrderUseCase = Depends(get_track_order_use_case),
):
    """Status timeline for polling clients"""
    tracking = await use_case(order_ref, user)
    return TrackingResponse.model_validate(tracking)


# Cart

@router.get("/cart", response_model=CartResponse)
async def get_cart(
    user: User = Depends(get_current_user),
    use_case: GetCartUseCase = Depends(get_get_cart_use_case),
):
    cart = await use_case(user.id)
    return CartResponse.from_domain(cart)


@router.post(
    "/cart/add",
    response_model=CartResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def add_to_cart(
    request: AddCartItemRequest,
    user: User = Depends(get_current_user),
    use_case: AddCartItemUseCase = Depends(get_add_cart_item_use_case),
):
    cart = await use_case(user.id, request.product_id, request.quantity)
    return CartResponse.from_domain(cart)


@router.put(
    "/cart/update",
    response_model=CartResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_cart_item(
    request: UpdateCartItemRequest,
    user: User = Depends(get_current_user),
    use_case: UpdateCartQuantityUseCase = Depends(get_update_cart_quantity_use_case),
):
    """Set a line quantity; 0 removes the line"""
    cart = await use_case(user.id, request.product_id, request.quantity)
    return CartResponse.from_domain(cart)


@router.delete("/cart/remove/{product_id}", response_model=CartResponse)
async def remove_from_cart(
    product_id: str,
    user: User = Depends(get_current_user),
    use_case: RemoveCartItemUseCase = Depends(get_remove_cart_item_use_case),
):
    cart = await use_case(user.id, product_id)
    return CartResponse.from_domain(cart)


@router.delete("/cart/clear", response_model=CartResponse)
async def clear_cart(
    user: User = Depends(get_current_user),
    use_case: ClearCartUseCase = Depends(get_clear_cart_use_case),
):
    cart = await use_case(user.id)
    return CartResponse.from_domain(cart)


@router.post("/cart/merge", response_model=MergeCartResponse)
async def merge_guest_cart(
    request: MergeCartRequest,
    user: User = Depends(get_current_user),
    use_case: MergeGuestCartUseCase = Depends(get_merge_guest_cart_use_case),
):
    """Merge the guest cart into the server cart after login"""
    guest_items = [CartItem(product_id=item.product_id, quantity=item.quantity) for item in request.items]
    result = await use_case(user.id, guest_items)
    return MergeCartResponse.from_domain(result)


# Catalog

@router.get("/products", response_model=ProductListResponse)
async def list_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    use_case: ListProductsUseCase = Depends(get_list_products_use_case),
):
    total, products = await use_case(category=category, search=search, page=page, limit=limit)
    return ProductListResponse(
        data=[ProductResponse.model_validate(product) for product in products],
        pagination=PaginationInfo(
            total_products=total,
            current_page=page,
            total_pages=math.ceil(total / limit),
            has_prev=page > 1,
            has_next=page * limit < total,
        ),
    )


@router.get("/products/categories", response_model=List[CategoryResponse])
async def list_categories(use_case: ListCategoriesUseCase = Depends(get_list_categories_use_case)):
    categories = await use_case()
    return [CategoryResponse.model_validate(category) for category in categories]


@router.get("/products/{product_id}", response_model=ProductResponse, responses={404: {"model": ErrorResponse}})
async def get_product(product_id: str, use_case: GetProductUseCase = Depends(get_get_product_use_case)):
    product = await use_case(product_id)
    return ProductResponse.model_validate(product)


# Settings

@router.get("/settings", response_model=StoreSettingsResponse)
async def get_store_settings(use_case: GetStoreSettingsUseCase = Depends(get_get_store_settings_use_case)):
    store_settings = await use_case()
    return StoreSettingsResponse.model_validate(store_settings)
