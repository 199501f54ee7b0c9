import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Dict, List, Optional
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from storefront.domain.models import (
    SHIPPING_ADDRESS_FIELDS, Order, OrderLine, OrderStatus, PaymentMethod, ShippingAddress, StatusEntry,
    has_cent_precision, is_valid_email,
)
from storefront.domain.exceptions import (
    ValidationError, ProductNotFoundError, OutOfStockError, StorageError,
)
from storefront.infrastructure.order_numbers import time_based_order_number


logger = logging.getLogger(__name__)


class OrderLineDTO(BaseModel):
    product_id: str
    quantity: int
    # Price shown to the customer; overrides the catalog price when supplied
    price: Optional[Decimal] = None


class PlaceOrderDTO(BaseModel):
    user_id: str
    items: List[OrderLineDTO]
    shipping_address: Dict[str, Optional[str]]
    payment_method: Optional[str] = None
    notes: Optional[str] = None


def parse_shipping_address(raw: Dict[str, Optional[str]]) -> ShippingAddress:
    cleaned = {}
    for field in SHIPPING_ADDRESS_FIELDS:
        value = raw.get(field)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"Shipping address field '{field}' is required", field=f"shipping_address.{field}")
        cleaned[field] = value.strip()
    if not is_valid_email(cleaned["email"]):
        raise ValidationError("Shipping address email is invalid", field="shipping_address.email")
    return ShippingAddress(**cleaned)


def parse_payment_method(value: Optional[str]) -> PaymentMethod:
    if value is None or value == "":
        return PaymentMethod.COD
    try:
        return PaymentMethod(value.lower())
    except ValueError:
        raise ValidationError(f"Unsupported payment method: {value}", field="payment_method")


class PlaceOrderUseCase:
    def __init__(self, unit_of_work, order_number_factory: Callable[[], str] = time_based_order_number):
        self._uow = unit_of_work
        self._order_number_factory = order_number_factory

    async def __call__(self, order_data: PlaceOrderDTO) -> Order:
        logger.info(f"Placing order for user {order_data.user_id}, {len(order_data.items)} line(s)")

        # 1. Input checks before touching stock
        self._validate_items(order_data.items)
        shipping_address = parse_shipping_address(order_data.shipping_address)
        payment_method = parse_payment_method(order_data.payment_method)

        async with self._uow() as uow:
            # 2. Reserve stock line by line; any failure rolls back every decrement
            lines: List[OrderLine] = []
            total = Decimal("0")
            for item in order_data.items:
                reserved = await uow.products.reserve_stock(item.product_id, item.quantity)
                if reserved is None:
                    product = await uow.products.get_by_id(item.product_id)
                    if product is None:
                        logger.warning(f"Order rejected: product {item.product_id} not found")
                        raise ProductNotFoundError(item.product_id)
                    logger.warning(
                        f"Order rejected: product {item.product_id} has {product.stock}, requested {item.quantity}"
                    )
                    raise OutOfStockError(item.product_id, product.stock, item.quantity)

                # 3. Total from the captured price when the client sent one
                unit_price = item.price if item.price is not None else reserved.price
                total += unit_price * item.quantity
                lines.append(
                    OrderLine(
                        product_id=item.product_id,
                        name=reserved.name,
                        price=unit_price,
                        quantity=item.quantity,
                    )
                )

            # 4. Order with seeded history
            now = datetime.now(timezone.utc)
            order = Order(
                id=str(uuid.uuid4()),
                order_number=self._order_number_factory(),
                user_id=order_data.user_id,
                items=lines,
                total_price=total,
                shipping_address=shipping_address,
                payment_method=payment_method,
                notes=order_data.notes,
                status_history=[StatusEntry(status=OrderStatus.PENDING, timestamp=now)],
                current_status=OrderStatus.PENDING,
                created_at=now,
                updated_at=now,
            )

            try:
                await uow.orders.create(order)
                await uow.commit()
            except SQLAlchemyError as e:
                reserved_lines = ", ".join(f"{line.product_id} x{line.quantity}" for line in lines)
                logger.error(
                    f"Failed to persist order {order.order_number} for user {order.user_id}; "
                    f"reservations rolled back [{reserved_lines}]: {e}"
                )
                raise StorageError("Order could not be saved") from e

        logger.info(f"Order placed: {order.order_number} ({order.id}), total {order.total_price}")
        return order

    def _validate_items(self, items: List[OrderLineDTO]) -> None:
        if not items:
            raise ValidationError("Order must contain at least one item", field="items")
        for index, item in enumerate(items):
            if not item.product_id:
                raise ValidationError("Product reference is required", field=f"items[{index}].product_id")
            if item.quantity < 1:
                raise ValidationError("Quantity must be at least 1", field=f"items[{index}].quantity")
            if item.price is not None and item.price < 0:
                raise ValidationError("Price cannot be negative", field=f"items[{index}].price")
            if item.price is not None and not has_cent_precision(item.price):
                raise ValidationError("Price cannot have more than 2 decimal places", field=f"items[{index}].price")
