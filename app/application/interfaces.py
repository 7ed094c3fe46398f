from abc import ABC, abstractmethod
from typing import Optional, List
from app.domain.models import Order, OrderStatus, PaymentStatus, Product, CustomerProfile


class OrderRepository(ABC):
    @abstractmethod
    async def get_by_id(self, order_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def get_by_idempotency_key(self, customer_id: str, key: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def create(self, order: Order) -> None:
        pass

    @abstractmethod
    async def list_for_customer(
        self, customer_id: str, status: Optional[OrderStatus], offset: int, limit: int
    ) -> List[Order]:
        pass

    @abstractmethod
    async def count_for_customer(self, customer_id: str, status: Optional[OrderStatus]) -> int:
        pass

    @abstractmethod
    async def list_for_shop(
        self, shop_id: str, status: Optional[OrderStatus], offset: int, limit: int
    ) -> List[Order]:
        pass

    @abstractmethod
    async def count_for_shop(self, shop_id: str, status: Optional[OrderStatus]) -> int:
        pass

    @abstractmethod
    async def update_status(self, order_id: str, status: OrderStatus, **fields) -> None:
        pass

    @abstractmethod
    async def update_payment(self, order_id: str, payment_status: PaymentStatus, payment_id: Optional[str]) -> None:
        pass

    @abstractmethod
    async def customer_status_buckets(self, customer_id: str) -> List[dict]:
        pass

    @abstractmethod
    async def shop_status_buckets(self, shop_id: str) -> List[dict]:
        pass


class CatalogService(ABC):
    @abstractmethod
    async def get_product(self, product_id: str) -> Optional[Product]:
        pass


class CartService(ABC):
    @abstractmethod
    async def clear(self, customer_id: str) -> None:
        pass


class CustomerDirectory(ABC):
    @abstractmethod
    async def get_customer(self, customer_id: str) -> Optional[CustomerProfile]:
        pass
