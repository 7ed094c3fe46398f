import random
import time
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import BaseModel

from app.domain.exceptions import ValidationError, ConflictError


class OrderStatus(str, Enum):
    PLACED = "Placed"
    CONFIRMED = "Confirmed"
    PROCESSING = "Processing"
    PACKED = "Packed"
    SHIPPED = "Shipped"
    OUT_FOR_DELIVERY = "Out for Delivery"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"
    REFUNDED = "Refunded"


class PaymentMethod(str, Enum):
    COD = "COD"
    ONLINE = "Online"
    WALLET = "Wallet"


class OrderType(str, Enum):
    DIRECT = "direct"      # Buy Now
    CHECKOUT = "checkout"  # из корзины


class Role(str, Enum):
    CUSTOMER = "customer"
    SHOP = "shop"
    DELIVERY = "delivery"
    ADMIN = "admin"


class Decision(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


class PaymentOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    REFUNDED = "refunded"


CANCELLABLE_STATUSES = frozenset({
    OrderStatus.PLACED,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
})

FULFILLMENT_STATUSES = frozenset({
    OrderStatus.PROCESSING,
    OrderStatus.PACKED,
    OrderStatus.SHIPPED,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
})

# Из Placed магазин сначала принимает решение, терминальные статусы не меняются
ADVANCEABLE_STATUSES = frozenset({
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.PACKED,
    OrderStatus.SHIPPED,
    OrderStatus.OUT_FOR_DELIVERY,
})


class Actor(BaseModel):
    """Идентичность, пришедшая от upstream auth слоя"""
    id: str
    role: Role

    @property
    def is_customer(self) -> bool:
        return self.role == Role.CUSTOMER

    @property
    def is_shop(self) -> bool:
        return self.role == Role.SHOP


class Variant(BaseModel):
    """Value Object — вариант товара (вес и цена)"""
    weight: str
    price: Decimal


class OrderItem(BaseModel):
    product_id: str
    shop_id: str
    variant: Variant
    quantity: int
    item_total: Decimal


class Order(BaseModel):
    """Domain Entity — заказ"""
    id: str
    order_number: str
    customer_id: str
    items: list[OrderItem]
    address: str
    status: OrderStatus = OrderStatus.PLACED
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: PaymentMethod = PaymentMethod.COD
    total_amount: Decimal
    order_type: OrderType = OrderType.DIRECT
    cancellation_reason: Optional[str] = None
    notes: Optional[str] = None
    tracking_number: Optional[str] = None
    actual_delivery: Optional[datetime] = None
    payment_order_id: Optional[str] = None
    payment_id: Optional[str] = None
    idempotency_key: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    def has_items_from(self, shop_id: str) -> bool:
        return any(item.shop_id == shop_id for item in self.items)

    def items_for_shop(self, shop_id: str) -> list[OrderItem]:
        return [item for item in self.items if item.shop_id == shop_id]

    def shop_subtotal(self, shop_id: str) -> Decimal:
        """Сумма только по позициям магазина — не путать с total_amount всего заказа"""
        return sum((item.item_total for item in self.items_for_shop(shop_id)), Decimal("0"))

    def can_be_cancelled(self) -> bool:
        """Бизнес-правило: покупатель отменяет только Placed, Confirmed или Processing"""
        return self.status in CANCELLABLE_STATUSES

    def can_be_decided(self) -> bool:
        """Бизнес-правило: принять/отклонить можно только Placed"""
        return self.status == OrderStatus.PLACED

    def can_advance_to(self, target: OrderStatus) -> bool:
        return target in FULFILLMENT_STATUSES and self.status in ADVANCEABLE_STATUSES


class Product(BaseModel):
    """Value Object — товар из каталога"""
    id: str
    name: str
    category: Optional[str] = None
    image: Optional[str] = None
    shop_id: Optional[str] = None
    variants: list[Variant] = []

    def find_variant(self, weight: str) -> Optional[Variant]:
        for variant in self.variants:
            if variant.weight == weight:
                return variant
        return None


class CustomerProfile(BaseModel):
    """Value Object — контактные данные покупателя для отображения"""
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


def actor_owns_order(actor: Actor, order: Order) -> bool:
    """Может ли actor действовать над заказом: владелец-покупатель или магазин с товарами в заказе"""
    if actor.is_customer:
        return order.customer_id == actor.id
    if actor.is_shop:
        return order.has_items_from(actor.id)
    return False


def parse_status(value: Optional[str]) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(f"Недопустимый статус заказа: {value}")


def parse_decision(value: Optional[str]) -> Decision:
    try:
        return Decision(value)
    except ValueError:
        raise ValidationError('Решение должно быть "accept" или "reject"')


def decision_target(decision: Decision) -> OrderStatus:
    if decision == Decision.ACCEPT:
        return OrderStatus.CONFIRMED
    return OrderStatus.CANCELLED


def next_payment_status(current: PaymentStatus, outcome: PaymentOutcome) -> PaymentStatus:
    """Переход статуса оплаты по сигналу платежной системы"""
    if outcome == PaymentOutcome.SUCCEEDED and current in (PaymentStatus.PENDING, PaymentStatus.FAILED, PaymentStatus.PAID):
        return PaymentStatus.PAID
    if outcome == PaymentOutcome.FAILED and current == PaymentStatus.PENDING:
        return PaymentStatus.FAILED
    if outcome == PaymentOutcome.REFUNDED and current == PaymentStatus.PAID:
        return PaymentStatus.REFUNDED
    raise ConflictError(f"Нельзя применить '{outcome.value}' к оплате в статусе {current.value}")


def generate_order_number() -> str:
    timestamp = str(int(time.time() * 1000))
    suffix = str(random.randint(0, 999)).zfill(3)
    return f"ORD-{timestamp[-8:]}{suffix}"
