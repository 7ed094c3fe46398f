from decimal import Decimal
from pydantic import BaseModel

from app.domain.models import Actor, PaymentStatus
from app.application.shop_orders import require_shop


class CustomerStatusStats(BaseModel):
    count: int = 0
    total_amount: Decimal = Decimal("0")


class CustomerStats(BaseModel):
    total_orders: int
    total_spent: Decimal
    status_breakdown: dict[str, CustomerStatusStats]


class ShopStatusStats(BaseModel):
    count: int = 0
    revenue: Decimal = Decimal("0")


class ShopStats(BaseModel):
    total_orders: int
    total_revenue: Decimal
    status_breakdown: dict[str, ShopStatusStats]


def _money(value) -> Decimal:
    return Decimal(str(value))


def summarize_customer(total_orders: int, buckets: list[dict]) -> CustomerStats:
    """Потрачено считается только по оплаченным заказам, разбивка — по всем"""
    total_spent = Decimal("0")
    breakdown: dict[str, CustomerStatusStats] = {}
    for bucket in buckets:
        entry = breakdown.setdefault(bucket["status"].value, CustomerStatusStats())
        entry.count += bucket["count"]
        entry.total_amount += _money(bucket["amount"])
        if bucket["payment_status"] == PaymentStatus.PAID:
            total_spent += _money(bucket["amount"])
    return CustomerStats(total_orders=total_orders, total_spent=total_spent, status_breakdown=breakdown)


def summarize_shop(total_orders: int, buckets: list[dict]) -> ShopStats:
    """count — все позиции магазина, revenue — только оплаченные"""
    total_revenue = Decimal("0")
    breakdown: dict[str, ShopStatusStats] = {}
    for bucket in buckets:
        entry = breakdown.setdefault(bucket["status"].value, ShopStatusStats())
        entry.count += bucket["count"]
        if bucket["payment_status"] == PaymentStatus.PAID:
            entry.revenue += _money(bucket["amount"])
            total_revenue += _money(bucket["amount"])
    return ShopStats(total_orders=total_orders, total_revenue=total_revenue, status_breakdown=breakdown)


class CustomerStatsUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, actor: Actor) -> CustomerStats:
        async with self._uow() as uow:
            total_orders = await uow.orders.count_for_customer(actor.id, None)
            buckets = await uow.orders.customer_status_buckets(actor.id)
        return summarize_customer(total_orders, buckets)


class ShopStatsUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, actor: Actor) -> ShopStats:
        require_shop(actor)
        async with self._uow() as uow:
            total_orders = await uow.orders.count_for_shop(actor.id, None)
            buckets = await uow.orders.shop_status_buckets(actor.id)
        return summarize_shop(total_orders, buckets)
