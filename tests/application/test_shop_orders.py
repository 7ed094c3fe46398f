from decimal import Decimal

import pytest

from app.domain.models import OrderStatus
from app.domain.exceptions import ForbiddenError, ValidationError
from app.application.shop_orders import ListShopOrdersUseCase


@pytest.fixture
def list_shop_orders(uow, assembler):
    return ListShopOrdersUseCase(uow, assembler)


async def test_shared_order_is_projected_per_shop(create_order, list_shop_orders, shop_1, shop_2, store):
    details = await create_order([("p1", "500g", 2), ("p3", "250g", 1), ("p2", "1kg", 1)])

    page_1 = await list_shop_orders(shop_1)
    view_1 = page_1.orders[0]
    assert view_1.shop_scoped
    assert [i.product_id for i in view_1.items] == ["p1", "p2"]
    assert all(i.shop_id == "shop-1" for i in view_1.items)
    assert view_1.total_amount == Decimal("800")
    assert "p3" not in view_1.products

    page_2 = await list_shop_orders(shop_2)
    view_2 = page_2.orders[0]
    assert [i.product_id for i in view_2.items] == ["p3"]
    assert view_2.total_amount == Decimal("150")

    # Хранимый заказ не меняется
    stored = await store.get(details.order.id)
    assert len(stored.items) == 3
    assert stored.total_amount == Decimal("950")


async def test_orders_without_shop_items_are_excluded(create_order, list_shop_orders, shop_2):
    await create_order([("p1", "500g", 1)])
    page = await list_shop_orders(shop_2)
    assert page.orders == []
    assert page.pagination.total_orders == 0
    assert page.pagination.total_pages == 0


async def test_pagination_over_orders_newest_first(create_order, list_shop_orders, shop_1):
    created = []
    for _ in range(3):
        details = await create_order([("p1", "500g", 1), ("p2", "1kg", 1)])
        created.append(details.order.id)

    first = await list_shop_orders(shop_1, page=1, limit=2)
    assert [d.order.id for d in first.orders] == [created[2], created[1]]
    assert first.pagination.total_orders == 3
    assert first.pagination.total_pages == 2
    assert first.pagination.has_next
    assert not first.pagination.has_prev

    second = await list_shop_orders(shop_1, page=2, limit=2)
    assert [d.order.id for d in second.orders] == [created[0]]
    assert not second.pagination.has_next
    assert second.pagination.has_prev


async def test_status_filter(create_order, list_shop_orders, shop_1, store):
    placed = await create_order([("p1", "500g", 1)])
    confirmed = await create_order([("p1", "500g", 1)])
    await store.set_status(confirmed.order.id, OrderStatus.CONFIRMED)

    page = await list_shop_orders(shop_1, status="Confirmed")
    assert [d.order.id for d in page.orders] == [confirmed.order.id]
    assert page.pagination.total_orders == 1

    page = await list_shop_orders(shop_1, status="Placed")
    assert [d.order.id for d in page.orders] == [placed.order.id]


async def test_unknown_status_filter(list_shop_orders, shop_1):
    with pytest.raises(ValidationError):
        await list_shop_orders(shop_1, status="Lost")


async def test_customer_cannot_use_shop_view(list_shop_orders, customer):
    with pytest.raises(ForbiddenError):
        await list_shop_orders(customer)
