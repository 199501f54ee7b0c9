from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Tuple
from storefront.domain.models import (
    User, Product, ReservedStock, CartLine, Order, OrderWithCustomer, OrderStatus,
    CategoryCount, StoreSettings,
)


class UserRepository(ABC):
    @abstractmethod
    async def get_by_id(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    async def get_by_api_token(self, api_token: str) -> Optional[User]:
        pass

    @abstractmethod
    async def create(self, user: User, api_token: str) -> None:
        pass

    @abstractmethod
    async def list_all(self) -> List[User]:
        pass

    @abstractmethod
    async def toggle_active(self, user_id: str) -> Optional[bool]:
        pass

    @abstractmethod
    async def delete(self, user_id: str) -> bool:
        pass

    @abstractmethod
    async def count_customers(self) -> int:
        pass


class ProductRepository(ABC):
    @abstractmethod
    async def get_by_id(self, product_id: str) -> Optional[Product]:
        pass

    @abstractmethod
    async def list(
        self, category: Optional[str] = None, search: Optional[str] = None, limit: int = 20, offset: int = 0
    ) -> Tuple[int, List[Product]]:
        pass

    @abstractmethod
    async def categories(self) -> List[CategoryCount]:
        pass

    @abstractmethod
    async def create(self, product: Product) -> None:
        pass

    @abstractmethod
    async def update_details(self, product_id: str, changes: dict) -> bool:
        pass

    @abstractmethod
    async def adjust_stock(self, product_id: str, delta: int) -> Optional[int]:
        pass

    @abstractmethod
    async def reserve_stock(self, product_id: str, quantity: int) -> Optional[ReservedStock]:
        pass

    @abstractmethod
    async def delete(self, product_id: str) -> bool:
        pass

    @abstractmethod
    async def count(self) -> int:
        pass


class CartRepository(ABC):
    @abstractmethod
    async def get_or_create(self, user_id: str) -> str:
        pass

    @abstractmethod
    async def get_lines(self, cart_id: str) -> List[CartLine]:
        pass

    @abstractmethod
    async def add_quantity(self, cart_id: str, product_id: str, quantity: int) -> None:
        pass

    @abstractmethod
    async def set_quantity(self, cart_id: str, product_id: str, quantity: int) -> bool:
        pass

    @abstractmethod
    async def remove_line(self, cart_id: str, product_id: str) -> None:
        pass

    @abstractmethod
    async def clear(self, cart_id: str) -> None:
        pass


class OrderRepository(ABC):
    @abstractmethod
    async def resolve(self, order_ref: str) -> Optional[str]:
        pass

    @abstractmethod
    async def get_by_id(self, order_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def get_current_status(self, order_id: str, for_update: bool = False) -> Optional[OrderStatus]:
        pass

    @abstractmethod
    async def create(self, order: Order) -> None:
        pass

    @abstractmethod
    async def append_status(self, order_id: str, status: OrderStatus, at: datetime) -> bool:
        pass

    @abstractmethod
    async def delete(self, order_id: str) -> bool:
        pass

    @abstractmethod
    async def list_for_user(self, user_id: str) -> List[Order]:
        pass

    @abstractmethod
    async def list_with_customers(
        self, status: Optional[OrderStatus] = None, limit: Optional[int] = None
    ) -> List[OrderWithCustomer]:
        pass

    @abstractmethod
    async def count(self) -> int:
        pass

    @abstractmethod
    async def count_for_user(self, user_id: str) -> int:
        pass

    @abstractmethod
    async def sum_total_for_status(self, status: OrderStatus) -> Decimal:
        pass


class StoreSettingsRepository(ABC):
    @abstractmethod
    async def get(self) -> Optional[StoreSettings]:
        pass

    @abstractmethod
    async def save(self, store_settings: StoreSettings) -> None:
        pass


class UnitOfWork(ABC):
    @property
    @abstractmethod
    def users(self) -> UserRepository:
        pass

    @property
    @abstractmethod
    def products(self) -> ProductRepository:
        pass

    @property
    @abstractmethod
    def carts(self) -> CartRepository:
        pass

    @property
    @abstractmethod
    def orders(self) -> OrderRepository:
        pass

    @property
    @abstractmethod
    def store_settings(self) -> StoreSettingsRepository:
        pass

    @abstractmethod
    async def __call__(self):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass
