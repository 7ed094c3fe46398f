import logging
from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel

from app.domain.models import (
    Actor, Order, OrderStatus, Decision, FULFILLMENT_STATUSES,
    actor_owns_order, parse_status, parse_decision, decision_target
)
from app.domain.exceptions import OrderNotFoundError, ForbiddenError, ValidationError, ConflictError
from app.application.order_details import OrderDetails, OrderDetailsAssembler
from app.application.shop_orders import require_shop

logger = logging.getLogger(__name__)


class ShopDecisionDTO(BaseModel):
    decision: Optional[str] = None
    reason: Optional[str] = None


class UpdateStatusDTO(BaseModel):
    status: Optional[str] = None
    notes: Optional[str] = None
    tracking_number: Optional[str] = None


async def _load_order(uow, order_id: str) -> Order:
    order = await uow.orders.get_by_id(order_id)
    if not order:
        raise OrderNotFoundError(f"Заказ {order_id} не найден")
    return order


def _authorize_shop(actor: Actor, order: Order) -> None:
    require_shop(actor)
    if not actor_owns_order(actor, order):
        raise ForbiddenError("Нет прав на этот заказ")


class CancelOrderUseCase:
    """Отмена заказа покупателем"""

    def __init__(self, unit_of_work, assembler: OrderDetailsAssembler):
        self._uow = unit_of_work
        self._assembler = assembler

    async def __call__(self, actor: Actor, order_id: str, reason: Optional[str] = None) -> OrderDetails:
        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order or not actor.is_customer or not actor_owns_order(actor, order):
                raise OrderNotFoundError(f"Заказ {order_id} не найден")
            if not order.can_be_cancelled():
                raise ConflictError("Заказ нельзя отменить на этом этапе")

            fields = {"cancellation_reason": reason} if reason else {}
            await uow.orders.update_status(order_id, OrderStatus.CANCELLED, **fields)
            await uow.commit()
            updated = await _load_order(uow, order_id)

        logger.info(f"Заказ {updated.order_number} отменен покупателем {actor.id}")
        return await self._assembler.assemble_one(updated)


class ShopDecisionUseCase:
    """Магазин принимает или отклоняет только что оформленный заказ"""

    def __init__(self, unit_of_work, assembler: OrderDetailsAssembler):
        self._uow = unit_of_work
        self._assembler = assembler

    async def __call__(self, actor: Actor, order_id: str, dto: ShopDecisionDTO) -> OrderDetails:
        async with self._uow() as uow:
            order = await _load_order(uow, order_id)
            # Права проверяются до валидации тела запроса
            _authorize_shop(actor, order)
            decision = parse_decision(dto.decision)
            if not order.can_be_decided():
                raise ConflictError("Заказ уже обработан")

            fields = {}
            if decision == Decision.REJECT and dto.reason:
                fields["cancellation_reason"] = dto.reason
            await uow.orders.update_status(order_id, decision_target(decision), **fields)
            await uow.commit()
            updated = await _load_order(uow, order_id)

        logger.info(f"Магазин {actor.id}: решение '{decision.value}' по заказу {updated.order_number}")
        return await self._assembler.assemble_one(updated, shop_id=actor.id)


class UpdateShopOrderStatusUseCase:
    """Магазин продвигает заказ по этапам выполнения"""

    def __init__(self, unit_of_work, assembler: OrderDetailsAssembler):
        self._uow = unit_of_work
        self._assembler = assembler

    async def __call__(self, actor: Actor, order_id: str, dto: UpdateStatusDTO) -> OrderDetails:
        async with self._uow() as uow:
            order = await _load_order(uow, order_id)
            _authorize_shop(actor, order)
            target = parse_status(dto.status)
            if target not in FULFILLMENT_STATUSES:
                raise ValidationError(f"Статус {target.value} нельзя установить как этап выполнения")
            if not order.can_advance_to(target):
                raise ConflictError(f"Заказ в статусе {order.status.value} нельзя перевести в {target.value}")

            fields = {}
            if dto.notes:
                fields["notes"] = dto.notes
            if dto.tracking_number:
                fields["tracking_number"] = dto.tracking_number
            if target == OrderStatus.DELIVERED:
                fields["actual_delivery"] = datetime.now(timezone.utc)
            await uow.orders.update_status(order_id, target, **fields)
            await uow.commit()
            updated = await _load_order(uow, order_id)

        logger.info(f"Заказ {updated.order_number}: {order.status.value} -> {target.value} (магазин {actor.id})")
        return await self._assembler.assemble_one(updated, shop_id=actor.id)
