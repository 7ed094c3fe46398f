from decimal import Decimal

import pytest

from app.domain.models import OrderStatus, PaymentStatus
from app.domain.exceptions import ForbiddenError
from app.application.statistics import (
    CustomerStatsUseCase, ShopStatsUseCase, summarize_customer, summarize_shop
)


def _bucket(status, payment_status, count, amount):
    return {"status": status, "payment_status": payment_status, "count": count, "amount": Decimal(amount)}


def test_pending_order_counts_but_is_not_spent():
    stats = summarize_customer(1, [_bucket(OrderStatus.PLACED, PaymentStatus.PENDING, 1, "500")])
    assert stats.total_spent == Decimal("0")
    assert stats.status_breakdown["Placed"].count == 1
    assert stats.status_breakdown["Placed"].total_amount == Decimal("500")


def test_customer_breakdown_merges_payment_groups():
    stats = summarize_customer(4, [
        _bucket(OrderStatus.DELIVERED, PaymentStatus.PAID, 2, "900"),
        _bucket(OrderStatus.DELIVERED, PaymentStatus.PENDING, 1, "100"),
        _bucket(OrderStatus.CANCELLED, PaymentStatus.REFUNDED, 1, "250"),
    ])
    assert stats.total_orders == 4
    assert stats.total_spent == Decimal("900")
    assert stats.status_breakdown["Delivered"].count == 3
    assert stats.status_breakdown["Delivered"].total_amount == Decimal("1000")
    assert stats.status_breakdown["Cancelled"].count == 1


def test_shop_revenue_only_from_paid():
    stats = summarize_shop(3, [
        _bucket(OrderStatus.SHIPPED, PaymentStatus.PAID, 2, "600"),
        _bucket(OrderStatus.SHIPPED, PaymentStatus.PENDING, 1, "200"),
        _bucket(OrderStatus.PLACED, PaymentStatus.FAILED, 1, "50"),
    ])
    assert stats.total_revenue == Decimal("600")
    assert stats.status_breakdown["Shipped"].count == 3
    assert stats.status_breakdown["Shipped"].revenue == Decimal("600")
    assert stats.status_breakdown["Placed"].count == 1
    assert stats.status_breakdown["Placed"].revenue == Decimal("0")


async def test_customer_stats_from_store(uow, customer, create_order, store):
    paid = await create_order([("p1", "500g", 2)], payment_id="pay-1")
    await create_order([("p2", "1kg", 1)])
    await create_order([("p3", "250g", 1)], customer_id="cust-2", payment_id="pay-2")
    await store.set_status(paid.order.id, OrderStatus.CONFIRMED)

    stats = await CustomerStatsUseCase(uow)(customer)
    assert stats.total_orders == 2
    assert stats.total_spent == Decimal("400")
    assert stats.status_breakdown["Placed"].count == 1
    assert stats.status_breakdown["Placed"].total_amount == Decimal("400")
    assert stats.status_breakdown["Confirmed"].total_amount == Decimal("400")


async def test_shop_stats_only_count_own_items(uow, shop_1, shop_2, create_order, store):
    shared = await create_order([("p1", "500g", 1), ("p3", "250g", 2), ("p2", "1kg", 1)], payment_id="pay-1")
    await create_order([("p1", "1kg", 1)])
    await create_order([("p3", "250g", 1)])
    await store.set_status(shared.order.id, OrderStatus.CONFIRMED)

    stats_1 = await ShopStatsUseCase(uow)(shop_1)
    assert stats_1.total_orders == 2
    assert stats_1.total_revenue == Decimal("600")
    assert stats_1.status_breakdown["Confirmed"].count == 2
    assert stats_1.status_breakdown["Confirmed"].revenue == Decimal("600")
    assert stats_1.status_breakdown["Placed"].count == 1
    assert stats_1.status_breakdown["Placed"].revenue == Decimal("0")

    stats_2 = await ShopStatsUseCase(uow)(shop_2)
    assert stats_2.total_orders == 2
    assert stats_2.total_revenue == Decimal("300")


async def test_shop_stats_require_shop_role(uow, customer):
    with pytest.raises(ForbiddenError):
        await ShopStatsUseCase(uow)(customer)
