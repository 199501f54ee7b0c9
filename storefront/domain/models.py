from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field, TypeAdapter, ValidationError as PydanticValidationError


# Money columns are Numeric(12, 2)
MONEY_STEP = Decimal("0.01")

_email_adapter = TypeAdapter(EmailStr)

SHIPPING_ADDRESS_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "address",
    "city",
    "state",
    "zip_code",
)


class OrderStatus(str, Enum):
    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


# Forward order of fulfilment; Cancelled sits outside it
FULFILMENT_SEQUENCE = (
    OrderStatus.PENDING,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
)


def transition_allowed(current: OrderStatus, requested: OrderStatus, strict: bool = False) -> bool:
    """Business rule for status changes.

    Permissive mode accepts any member status after any other. Strict mode keeps
    fulfilment moving forward: Cancelled is reachable from every non-terminal state
    and may be repeated, Delivered and Cancelled are otherwise terminal.
    """
    if not strict:
        return True
    if requested == OrderStatus.CANCELLED:
        return current != OrderStatus.DELIVERED
    if current in (OrderStatus.CANCELLED, OrderStatus.DELIVERED):
        return False
    return FULFILMENT_SEQUENCE.index(requested) >= FULFILMENT_SEQUENCE.index(current)


def is_valid_email(value: str) -> bool:
    try:
        _email_adapter.validate_python(value)
    except PydanticValidationError:
        return False
    return True


def has_cent_precision(amount: Decimal) -> bool:
    """True when the amount fits the money columns without rounding"""
    try:
        return amount == amount.quantize(MONEY_STEP)
    except InvalidOperation:
        return False


class PaymentMethod(str, Enum):
    COD = "cod"
    CARD = "card"
    UPI = "upi"


class User(BaseModel):
    """Customer or admin identity supplied by the auth collaborator"""
    id: str
    name: str
    email: str
    is_admin: bool = False
    is_active: bool = True
    created_at: Optional[datetime] = None

    def can_be_deleted(self) -> bool:
        """Admins never; customers only once deactivated"""
        return not self.is_admin and not self.is_active


class Product(BaseModel):
    """Catalog record"""
    id: str
    name: str
    description: str = ""
    price: Decimal
    category: str
    stock: int = 0
    created_at: datetime
    updated_at: datetime


class ReservedStock(BaseModel):
    """Product state returned by a successful compare-and-decrement"""
    product_id: str
    name: str
    price: Decimal


class CartItem(BaseModel):
    product_id: str
    quantity: int


class CartLine(BaseModel):
    product: Product
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.product.price * self.quantity


class Cart(BaseModel):
    id: str
    user_id: str
    items: List[CartLine] = Field(default_factory=list)

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.items)

    @property
    def subtotal(self) -> Decimal:
        return sum((line.line_total for line in self.items), Decimal("0"))

    def is_empty(self) -> bool:
        return not self.items


class MergeLineResult(BaseModel):
    product_id: str
    quantity: int
    merged: bool
    error: Optional[str] = None


class MergeResult(BaseModel):
    cart: Cart
    results: List[MergeLineResult]
    fallback_items: List[CartItem] = Field(default_factory=list)
    degraded: bool = False


class OrderLine(BaseModel):
    """Snapshot of a product at order time"""
    product_id: str
    name: str
    price: Decimal
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


class ShippingAddress(BaseModel):
    first_name: str
    last_name: str
    email: str
    phone: str
    address: str
    city: str
    state: str
    zip_code: str


class StatusEntry(BaseModel):
    status: OrderStatus
    timestamp: datetime


class Order(BaseModel):
    """Domain Entity - placed order"""
    id: str
    order_number: str
    user_id: str
    items: List[OrderLine]
    total_price: Decimal
    shipping_address: ShippingAddress
    payment_method: PaymentMethod = PaymentMethod.COD
    notes: Optional[str] = None
    status_history: List[StatusEntry]
    current_status: OrderStatus = OrderStatus.PENDING
    created_at: datetime
    updated_at: datetime

    def is_owned_by(self, user: User) -> bool:
        return self.user_id == user.id

    def can_be_viewed_by(self, user: User) -> bool:
        return self.is_owned_by(user) or user.is_admin

    def can_be_deleted(self) -> bool:
        """Only cancelled orders may be removed from the ledger"""
        return self.current_status == OrderStatus.CANCELLED


class OrderWithCustomer(Order):
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None


class TrackingInfo(BaseModel):
    order_number: str
    status_history: List[StatusEntry]
    current_status: OrderStatus
    created_at: datetime
    updated_at: datetime


class DashboardStats(BaseModel):
    products: int = 0
    orders: int = 0
    customers: int = 0
    total_sales: Decimal = Decimal("0")


class CategoryCount(BaseModel):
    category: str
    count: int


class StoreSettings(BaseModel):
    """Persisted store configuration; field defaults apply until the first save"""
    store_name: str = "FreshMart"
    support_email: str = "support@freshmart.com"
    delivery_fee: Decimal = Decimal("40")
    tax_rate: Decimal = Decimal("5")
    currency: str = "INR"
    currency_symbol: str = "₹"
    updated_at: Optional[datetime] = None
