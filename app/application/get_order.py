from typing import Optional

from app.domain.models import Actor, actor_owns_order, parse_status
from app.domain.exceptions import OrderNotFoundError
from app.application.order_details import OrderDetails, OrderDetailsAssembler, OrderPage, Pagination


class GetOrderUseCase:
    def __init__(self, unit_of_work, assembler: OrderDetailsAssembler):
        self._uow = unit_of_work
        self._assembler = assembler

    async def __call__(self, actor: Actor, order_id: str) -> OrderDetails:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
        # Чужой заказ для покупателя не существует
        if not order or not actor_owns_order(actor, order):
            raise OrderNotFoundError(f"Заказ {order_id} не найден")
        return await self._assembler.assemble_one(order)


class ListCustomerOrdersUseCase:
    def __init__(self, unit_of_work, assembler: OrderDetailsAssembler):
        self._uow = unit_of_work
        self._assembler = assembler

    async def __call__(self, actor: Actor, status: Optional[str] = None, page: int = 1, limit: int = 10) -> OrderPage:
        status_filter = parse_status(status) if status else None
        async with self._uow() as uow:
            orders = await uow.orders.list_for_customer(actor.id, status_filter, (page - 1) * limit, limit)
            total = await uow.orders.count_for_customer(actor.id, status_filter)
        return OrderPage(
            orders=await self._assembler.assemble(orders),
            pagination=Pagination.build(page, limit, total)
        )
