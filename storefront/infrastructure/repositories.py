import logging
import uuid
from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, List, Tuple, Dict
from sqlalchemy import select, insert, update, delete, func, not_
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.domain.exceptions import OrderNumberConflictError
from storefront.domain.models import (
    User, Product, ReservedStock, CartLine, Order, OrderWithCustomer, OrderLine, OrderStatus,
    PaymentMethod, ShippingAddress, StatusEntry, CategoryCount, StoreSettings,
)
from storefront.infrastructure.db_schema import (
    users_tbl, products_tbl, carts_tbl, cart_items_tbl, orders_tbl, order_items_tbl,
    order_status_history_tbl, store_settings_tbl,
)
from storefront.application.interfaces import (
    UserRepository, ProductRepository, CartRepository, OrderRepository, StoreSettingsRepository,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _dialect_insert(session: AsyncSession, table):
    """INSERT supporting ON CONFLICT for the configured backend (Postgres or SQLite)"""
    if session.get_bind().dialect.name == "postgresql":
        return pg_insert(table)
    return sqlite_insert(table)


def _as_decimal(value) -> Decimal:
    # SQLite hands numerics back as floats
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _product_from_row(row) -> Product:
    return Product(
        id=row.id,
        name=row.name,
        description=row.description or "",
        price=_as_decimal(row.price),
        category=row.category,
        stock=row.stock,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SQLAlchemyUserRepository(UserRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, user_id: str) -> Optional[User]:
        result = await self._session.execute(
            select(users_tbl).where(users_tbl.c.id == user_id)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def get_by_api_token(self, api_token: str) -> Optional[User]:
        result = await self._session.execute(
            select(users_tbl).where(users_tbl.c.api_token == api_token)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def create(self, user: User, api_token: str) -> None:
        stmt = insert(users_tbl).values(
            id=user.id,
            name=user.name,
            email=user.email,
            api_token=api_token,
            is_admin=user.is_admin,
            is_active=user.is_active,
            created_at=user.created_at or _utcnow(),
        )
        await self._session.execute(stmt)

    async def list_all(self) -> List[User]:
        result = await self._session.execute(
            select(users_tbl).order_by(users_tbl.c.created_at.desc())
        )
        return [self._to_domain(row) for row in result.fetchall()]

    async def toggle_active(self, user_id: str) -> Optional[bool]:
        """Flips is_active and returns the new value, None for an unknown user"""
        result = await self._session.execute(
            update(users_tbl)
            .where(users_tbl.c.id == user_id)
            .values(is_active=not_(users_tbl.c.is_active))
            .returning(users_tbl.c.is_active)
        )
        row = result.fetchone()
        return bool(row.is_active) if row else None

    async def delete(self, user_id: str) -> bool:
        cart_ids = select(carts_tbl.c.id).where(carts_tbl.c.user_id == user_id)
        await self._session.execute(
            delete(cart_items_tbl).where(cart_items_tbl.c.cart_id.in_(cart_ids))
        )
        await self._session.execute(delete(carts_tbl).where(carts_tbl.c.user_id == user_id))
        result = await self._session.execute(delete(users_tbl).where(users_tbl.c.id == user_id))
        return result.rowcount > 0

    async def count_customers(self) -> int:
        result = await self._session.execute(
            select(func.count()).select_from(users_tbl).where(users_tbl.c.is_admin.is_(False))
        )
        return result.scalar_one()

    def _to_domain(self, row) -> User:
        return User(
            id=row.id,
            name=row.name,
            email=row.email,
            is_admin=row.is_admin,
            is_active=row.is_active,
            created_at=row.created_at,
        )


class SQLAlchemyProductRepository(ProductRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, product_id: str) -> Optional[Product]:
        result = await self._session.execute(
            select(products_tbl).where(products_tbl.c.id == product_id)
        )
        row = result.fetchone()
        return _product_from_row(row) if row else None

    async def list(
        self, category: Optional[str] = None, search: Optional[str] = None, limit: int = 20, offset: int = 0
    ) -> Tuple[int, List[Product]]:
        count_stmt = select(func.count()).select_from(products_tbl)
        stmt = select(products_tbl)
        if category:
            count_stmt = count_stmt.where(products_tbl.c.category == category)
            stmt = stmt.where(products_tbl.c.category == category)
        if search:
            # User input is matched literally, % and _ included
            matches = products_tbl.c.name.icontains(search, autoescape=True)
            count_stmt = count_stmt.where(matches)
            stmt = stmt.where(matches)

        total = (await self._session.execute(count_stmt)).scalar_one()
        result = await self._session.execute(
            stmt.order_by(products_tbl.c.created_at.desc(), products_tbl.c.name.asc())
            .limit(limit)
            .offset(offset)
        )
        return total, [_product_from_row(row) for row in result.fetchall()]

    async def categories(self) -> List[CategoryCount]:
        result = await self._session.execute(
            select(products_tbl.c.category, func.count().label("count"))
            .group_by(products_tbl.c.category)
            .order_by(products_tbl.c.category.asc())
        )
        return [CategoryCount(category=row.category, count=row.count) for row in result.fetchall()]

    async def create(self, product: Product) -> None:
        stmt = insert(products_tbl).values(
            id=product.id,
            name=product.name,
            description=product.description,
            price=product.price,
            category=product.category,
            stock=product.stock,
            created_at=product.created_at,
            updated_at=product.updated_at,
        )
        await self._session.execute(stmt)

    async def update_details(self, product_id: str, changes: dict) -> bool:
        """Last-writer-wins for descriptive fields; stock never goes through here"""
        values = {key: value for key, value in changes.items() if key != "stock"}
        values["updated_at"] = _utcnow()
        result = await self._session.execute(
            update(products_tbl).where(products_tbl.c.id == product_id).values(**values)
        )
        return result.rowcount > 0

    async def adjust_stock(self, product_id: str, delta: int) -> Optional[int]:
        """Incremental stock change; returns the new stock or None if it would go negative"""
        result = await self._session.execute(
            update(products_tbl)
            .where(
                products_tbl.c.id == product_id,
                products_tbl.c.stock + delta >= 0,
            )
            .values(stock=products_tbl.c.stock + delta, updated_at=_utcnow())
            .returning(products_tbl.c.stock)
        )
        row = result.fetchone()
        return row.stock if row else None

    async def reserve_stock(self, product_id: str, quantity: int) -> Optional[ReservedStock]:
        """Compare-and-decrement: succeeds only while enough stock remains"""
        result = await self._session.execute(
            update(products_tbl)
            .where(
                products_tbl.c.id == product_id,
                products_tbl.c.stock >= quantity,
            )
            .values(stock=products_tbl.c.stock - quantity, updated_at=_utcnow())
            .returning(products_tbl.c.id, products_tbl.c.name, products_tbl.c.price)
        )
        row = result.fetchone()
        if not row:
            return None
        return ReservedStock(
            product_id=row.id,
            name=row.name,
            price=_as_decimal(row.price),
        )

    async def delete(self, product_id: str) -> bool:
        await self._session.execute(
            delete(cart_items_tbl).where(cart_items_tbl.c.product_id == product_id)
        )
        result = await self._session.execute(
            delete(products_tbl).where(products_tbl.c.id == product_id)
        )
        return result.rowcount > 0

    async def count(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(products_tbl))
        return result.scalar_one()


class SQLAlchemyCartRepository(CartRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_or_create(self, user_id: str) -> str:
        result = await self._session.execute(
            select(carts_tbl.c.id).where(carts_tbl.c.user_id == user_id)
        )
        cart_id = result.scalar_one_or_none()
        if cart_id:
            return cart_id

        # A concurrent first request may create the cart in between; keep whichever row won
        now = _utcnow()
        await self._session.execute(
            _dialect_insert(self._session, carts_tbl)
            .values(id=str(uuid.uuid4()), user_id=user_id, created_at=now, updated_at=now)
            .on_conflict_do_nothing(index_elements=[carts_tbl.c.user_id])
        )
        result = await self._session.execute(
            select(carts_tbl.c.id).where(carts_tbl.c.user_id == user_id)
        )
        return result.scalar_one()

    async def get_lines(self, cart_id: str) -> List[CartLine]:
        result = await self._session.execute(
            select(cart_items_tbl.c.quantity.label("line_quantity"), products_tbl)
            .select_from(
                cart_items_tbl.join(products_tbl, products_tbl.c.id == cart_items_tbl.c.product_id)
            )
            .where(cart_items_tbl.c.cart_id == cart_id)
            .order_by(cart_items_tbl.c.id.asc())
        )
        return [
            CartLine(product=_product_from_row(row), quantity=row.line_quantity)
            for row in result.fetchall()
        ]

    async def add_quantity(self, cart_id: str, product_id: str, quantity: int) -> None:
        """Inserts the line or adds onto the existing one in a single statement"""
        stmt = _dialect_insert(self._session, cart_items_tbl).values(
            cart_id=cart_id, product_id=product_id, quantity=quantity
        )
        await self._session.execute(
            stmt.on_conflict_do_update(
                index_elements=[cart_items_tbl.c.cart_id, cart_items_tbl.c.product_id],
                set_={"quantity": cart_items_tbl.c.quantity + stmt.excluded.quantity},
            )
        )
        await self._touch(cart_id)

    async def set_quantity(self, cart_id: str, product_id: str, quantity: int) -> bool:
        result = await self._session.execute(
            update(cart_items_tbl)
            .where(
                cart_items_tbl.c.cart_id == cart_id,
                cart_items_tbl.c.product_id == product_id,
            )
            .values(quantity=quantity)
        )
        if result.rowcount > 0:
            await self._touch(cart_id)
        return result.rowcount > 0

    async def remove_line(self, cart_id: str, product_id: str) -> None:
        await self._session.execute(
            delete(cart_items_tbl).where(
                cart_items_tbl.c.cart_id == cart_id,
                cart_items_tbl.c.product_id == product_id,
            )
        )
        await self._touch(cart_id)

    async def clear(self, cart_id: str) -> None:
        await self._session.execute(
            delete(cart_items_tbl).where(cart_items_tbl.c.cart_id == cart_id)
        )
        await self._touch(cart_id)

    async def _touch(self, cart_id: str) -> None:
        await self._session.execute(
            update(carts_tbl).where(carts_tbl.c.id == cart_id).values(updated_at=_utcnow())
        )


class SQLAlchemyOrderRepository(OrderRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def resolve(self, order_ref: str) -> Optional[str]:
        """Internal identifier first, then the human-readable order number"""
        result = await self._session.execute(
            select(orders_tbl.c.id).where(orders_tbl.c.id == order_ref)
        )
        order_id = result.scalar_one_or_none()
        if order_id:
            return order_id

        result = await self._session.execute(
            select(orders_tbl.c.id).where(orders_tbl.c.order_number == order_ref)
        )
        return result.scalar_one_or_none()

    async def get_by_id(self, order_id: str) -> Optional[Order]:
        result = await self._session.execute(
            select(orders_tbl).where(orders_tbl.c.id == order_id)
        )
        row = result.fetchone()
        if not row:
            return None
        items, history = await self._load_children([row.id])
        return self._to_domain(row, items[row.id], history[row.id])

    async def get_current_status(self, order_id: str, for_update: bool = False) -> Optional[OrderStatus]:
        stmt = select(orders_tbl.c.current_status).where(orders_tbl.c.id == order_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        value = result.scalar_one_or_none()
        return OrderStatus(value) if value else None

    async def create(self, order: Order) -> None:
        try:
            await self._session.execute(
                insert(orders_tbl).values(
                    id=order.id,
                    order_number=order.order_number,
                    user_id=order.user_id,
                    total_price=order.total_price,
                    shipping_address=order.shipping_address.model_dump(),
                    payment_method=order.payment_method.value,
                    notes=order.notes,
                    current_status=order.current_status.value,
                    created_at=order.created_at,
                    updated_at=order.updated_at,
                )
            )
        except IntegrityError as e:
            if "order_number" in str(e.orig):
                logger.warning(f"Order number collision: {order.order_number}")
                raise OrderNumberConflictError(order.order_number) from e
            raise

        await self._session.execute(
            insert(order_items_tbl),
            [
                {
                    "order_id": order.id,
                    "product_id": line.product_id,
                    "name": line.name,
                    "price": line.price,
                    "quantity": line.quantity,
                }
                for line in order.items
            ],
        )
        await self._session.execute(
            insert(order_status_history_tbl),
            [
                {"order_id": order.id, "status": entry.status.value, "created_at": entry.timestamp}
                for entry in order.status_history
            ],
        )

    async def append_status(self, order_id: str, status: OrderStatus, at: datetime) -> bool:
        # The UPDATE takes the row lock first, so concurrent appends serialize on the order
        result = await self._session.execute(
            update(orders_tbl)
            .where(orders_tbl.c.id == order_id)
            .values(current_status=status.value, updated_at=at)
        )
        if result.rowcount == 0:
            return False
        await self._session.execute(
            insert(order_status_history_tbl).values(
                order_id=order_id,
                status=status.value,
                created_at=at,
            )
        )
        return True

    async def delete(self, order_id: str) -> bool:
        await self._session.execute(
            delete(order_status_history_tbl).where(order_status_history_tbl.c.order_id == order_id)
        )
        await self._session.execute(
            delete(order_items_tbl).where(order_items_tbl.c.order_id == order_id)
        )
        result = await self._session.execute(
            delete(orders_tbl).where(orders_tbl.c.id == order_id)
        )
        return result.rowcount > 0

    async def list_for_user(self, user_id: str) -> List[Order]:
        result = await self._session.execute(
            select(orders_tbl)
            .where(orders_tbl.c.user_id == user_id)
            .order_by(orders_tbl.c.created_at.desc())
        )
        rows = result.fetchall()
        items, history = await self._load_children([row.id for row in rows])
        return [self._to_domain(row, items[row.id], history[row.id]) for row in rows]

    async def list_with_customers(
        self, status: Optional[OrderStatus] = None, limit: Optional[int] = None
    ) -> List[OrderWithCustomer]:
        stmt = (
            select(
                orders_tbl,
                users_tbl.c.name.label("customer_name"),
                users_tbl.c.email.label("customer_email"),
            )
            .select_from(orders_tbl.outerjoin(users_tbl, users_tbl.c.id == orders_tbl.c.user_id))
            .order_by(orders_tbl.c.created_at.desc())
        )
        if status is not None:
            stmt = stmt.where(orders_tbl.c.current_status == status.value)
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self._session.execute(stmt)
        rows = result.fetchall()
        items, history = await self._load_children([row.id for row in rows])
        return [
            OrderWithCustomer(
                **self._to_domain(row, items[row.id], history[row.id]).model_dump(),
                customer_name=row.customer_name,
                customer_email=row.customer_email,
            )
            for row in rows
        ]

    async def count(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(orders_tbl))
        return result.scalar_one()

    async def count_for_user(self, user_id: str) -> int:
        result = await self._session.execute(
            select(func.count()).select_from(orders_tbl).where(orders_tbl.c.user_id == user_id)
        )
        return result.scalar_one()

    async def sum_total_for_status(self, status: OrderStatus) -> Decimal:
        result = await self._session.execute(
            select(func.sum(orders_tbl.c.total_price)).where(orders_tbl.c.current_status == status.value)
        )
        return _as_decimal(result.scalar_one_or_none())

    async def _load_children(self, order_ids: List[str]) -> Tuple[Dict[str, list], Dict[str, list]]:
        items: Dict[str, list] = defaultdict(list)
        history: Dict[str, list] = defaultdict(list)
        if not order_ids:
            return items, history

        result = await self._session.execute(
            select(order_items_tbl)
            .where(order_items_tbl.c.order_id.in_(order_ids))
            .order_by(order_items_tbl.c.id.asc())
        )
        for row in result.fetchall():
            items[row.order_id].append(
                OrderLine(
                    product_id=row.product_id,
                    name=row.name,
                    price=_as_decimal(row.price),
                    quantity=row.quantity,
                )
            )

        result = await self._session.execute(
            select(order_status_history_tbl)
            .where(order_status_history_tbl.c.order_id.in_(order_ids))
            .order_by(order_status_history_tbl.c.id.asc())
        )
        for row in result.fetchall():
            history[row.order_id].append(
                StatusEntry(status=OrderStatus(row.status), timestamp=row.created_at)
            )
        return items, history

    def _to_domain(self, row, items: List[OrderLine], history: List[StatusEntry]) -> Order:
        """DB -> Domain"""
        return Order(
            id=row.id,
            order_number=row.order_number,
            user_id=row.user_id,
            items=items,
            total_price=_as_decimal(row.total_price),
            shipping_address=ShippingAddress(**row.shipping_address),
            payment_method=PaymentMethod(row.payment_method),
            notes=row.notes,
            status_history=history,
            current_status=OrderStatus(row.current_status),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class SQLAlchemyStoreSettingsRepository(StoreSettingsRepository):
    _ROW_ID = 1

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self) -> Optional[StoreSettings]:
        result = await self._session.execute(
            select(store_settings_tbl).where(store_settings_tbl.c.id == self._ROW_ID)
        )
        row = result.fetchone()
        if not row:
            return None
        return StoreSettings(
            store_name=row.store_name,
            support_email=row.support_email,
            delivery_fee=_as_decimal(row.delivery_fee),
            tax_rate=_as_decimal(row.tax_rate),
            currency=row.currency,
            currency_symbol=row.currency_symbol,
            updated_at=row.updated_at,
        )

    async def save(self, store_settings: StoreSettings) -> None:
        values = store_settings.model_dump(exclude={"updated_at"})
        values["updated_at"] = store_settings.updated_at or _utcnow()
        result = await self._session.execute(
            update(store_settings_tbl)
            .where(store_settings_tbl.c.id == self._ROW_ID)
            .values(**values)
        )
        if result.rowcount == 0:
            await self._session.execute(
                insert(store_settings_tbl).values(id=self._ROW_ID, **values)
            )
