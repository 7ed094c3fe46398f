"""Представление заказов для магазина.

Заказ может содержать позиции нескольких магазинов. Магазин получает
проекцию: только свои позиции и сумму по ним под ключом total_amount.
Сохраненный заказ при этом не меняется, блокировки не нужны.
"""
import logging
from typing import Optional

from app.domain.models import Actor, parse_status
from app.domain.exceptions import ForbiddenError
from app.application.order_details import OrderDetailsAssembler, OrderPage, Pagination

logger = logging.getLogger(__name__)


def require_shop(actor: Actor) -> None:
    if not actor.is_shop:
        raise ForbiddenError("Доступ только для магазинов")


class ListShopOrdersUseCase:
    def __init__(self, unit_of_work, assembler: OrderDetailsAssembler):
        self._uow = unit_of_work
        self._assembler = assembler

    async def __call__(self, actor: Actor, status: Optional[str] = None, page: int = 1, limit: int = 10) -> OrderPage:
        require_shop(actor)
        status_filter = parse_status(status) if status else None

        async with self._uow() as uow:
            orders = await uow.orders.list_for_shop(actor.id, status_filter, (page - 1) * limit, limit)
            total = await uow.orders.count_for_shop(actor.id, status_filter)
        logger.info(f"Магазин {actor.id}: {len(orders)} из {total} заказов, страница {page}")

        return OrderPage(
            orders=await self._assembler.assemble(orders, shop_id=actor.id),
            pagination=Pagination.build(page, limit, total)
        )
