from pydantic import BaseModel, ConfigDict
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from storefront.domain.models import OrderStatus, PaymentMethod


# Requests

class CartItemPayload(BaseModel):
    product_id: str
    quantity: int


class AddCartItemRequest(CartItemPayload):
    pass


class UpdateCartItemRequest(CartItemPayload):
    pass


class MergeCartRequest(BaseModel):
    """Guest cart held by the client before login"""

    items: List[CartItemPayload] = []


class OrderItemPayload(BaseModel):
    product_id: str
    quantity: int
    price: Optional[Decimal] = None


class ShippingAddressPayload(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None


class PlaceOrderRequest(BaseModel):
    items: List[OrderItemPayload]
    shipping_address: ShippingAddressPayload
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class UpdateStatusRequest(BaseModel):
    status: str


class CreateProductRequest(BaseModel):
    name: str
    description: str = ""
    price: Decimal
    category: str
    stock: int = 0


class UpdateProductRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = None
    category: Optional[str] = None
    stock_delta: Optional[int] = None


class UpdateSettingsRequest(BaseModel):
    store_name: Optional[str] = None
    support_email: Optional[str] = None
    delivery_fee: Optional[Decimal] = None
    tax_rate: Optional[Decimal] = None
    currency: Optional[str] = None
    currency_symbol: Optional[str] = None


# Responses

class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str
    price: Decimal
    category: str
    stock: int
    created_at: datetime
    updated_at: datetime


class PaginationInfo(BaseModel):
    total_products: int
    current_page: int
    total_pages: int
    has_prev: bool
    has_next: bool


class ProductListResponse(BaseModel):
    data: List[ProductResponse]
    pagination: PaginationInfo


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    category: str
    count: int


class CartLineResponse(BaseModel):
    product: ProductResponse
    quantity: int
    line_total: Decimal


class CartResponse(BaseModel):
    id: str
    user_id: str
    items: List[CartLineResponse]
    item_count: int
    subtotal: Decimal

    @classmethod
    def from_domain(cls, cart):
        return cls(
            id=cart.id,
            user_id=cart.user_id,
            items=[
                CartLineResponse(
                    product=ProductResponse.model_validate(line.product),
                    quantity=line.quantity,
                    line_total=line.line_total,
                )
                for line in cart.items
            ],
            item_count=cart.item_count,
            subtotal=cart.subtotal,
        )


class MergeLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: str
    quantity: int
    merged: bool
    error: Optional[str] = None


class MergeCartResponse(BaseModel):
    cart: CartResponse
    results: List[MergeLineResponse]
    fallback_items: List[CartItemPayload]
    degraded: bool

    @classmethod
    def from_domain(cls, result):
        return cls(
            cart=CartResponse.from_domain(result.cart),
            results=[MergeLineResponse.model_validate(line) for line in result.results],
            fallback_items=[
                CartItemPayload(product_id=item.product_id, quantity=item.quantity)
                for item in result.fallback_items
            ],
            degraded=result.degraded,
        )


class OrderLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: str
    name: str
    price: Decimal
    quantity: int


class ShippingAddressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    first_name: str
    last_name: str
    email: str
    phone: str
    address: str
    city: str
    state: str
    zip_code: str


class StatusEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: OrderStatus
    timestamp: datetime


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    order_number: str
    user_id: str
    items: List[OrderLineResponse]
    total_price: Decimal
    shipping_address: ShippingAddressResponse
    payment_method: PaymentMethod
    notes: Optional[str] = None
    status_history: List[StatusEntryResponse]
    current_status: OrderStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, order):
        return cls.model_validate(order)


class AdminOrderResponse(OrderResponse):
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None


class OrderListResponse(BaseModel):
    data: List[AdminOrderResponse]


class TrackingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_number: str
    status_history: List[StatusEntryResponse]
    current_status: OrderStatus
    created_at: datetime
    updated_at: datetime


class StatusChangeResponse(BaseModel):
    ok: bool = True
    order_id: str
    order_number: str
    current_status: OrderStatus


class DeleteOrderResponse(BaseModel):
    ok: bool = True
    order_id: str


class DashboardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    products: int
    orders: int
    customers: int
    total_sales: Decimal


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    is_admin: bool
    is_active: bool
    created_at: Optional[datetime] = None


class UserListResponse(BaseModel):
    data: List[UserResponse]


class ToggleActiveResponse(BaseModel):
    id: str
    is_active: bool


class StoreSettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    store_name: str
    support_email: str
    delivery_fee: Decimal
    tax_rate: Decimal
    currency: str
    currency_symbol: str
    updated_at: Optional[datetime] = None


class ErrorResponse(BaseModel):
    detail: str
    error_type: Optional[str] = None
    field: Optional[str] = None
