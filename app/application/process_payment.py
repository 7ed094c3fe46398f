import logging
from pydantic import BaseModel
from typing import Optional

from app.domain.models import Order, PaymentOutcome, next_payment_status
from app.domain.exceptions import OrderNotFoundError, ValidationError

logger = logging.getLogger(__name__)


class PaymentCallbackDTO(BaseModel):
    order_id: str
    status: str
    payment_id: Optional[str] = None
    error_message: Optional[str] = None


class ProcessPaymentCallbackUseCase:
    """Применяет уже проверенный сигнал платежной системы к статусу оплаты"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, dto: PaymentCallbackDTO) -> Order:
        logger.info(f"Обработка payment callback: заказ {dto.order_id}, статус {dto.status}")
        try:
            outcome = PaymentOutcome(dto.status)
        except ValueError:
            raise ValidationError(f"Неизвестный статус платежа: {dto.status}")

        async with self._uow() as uow:
            order = await uow.orders.get_by_id(dto.order_id)
            if not order:
                raise OrderNotFoundError(f"Заказ {dto.order_id} не найден")

            new_status = next_payment_status(order.payment_status, outcome)
            # Идемпотентность
            if new_status == order.payment_status:
                logger.info(f"Оплата заказа {order.order_number} уже в статусе {new_status.value}")
                return order

            payment_id = dto.payment_id if not order.payment_id else None
            await uow.orders.update_payment(order.id, new_status, payment_id)
            await uow.commit()
            updated = await uow.orders.get_by_id(order.id)

        if dto.error_message:
            logger.warning(f"Платеж по заказу {order.order_number}: {dto.error_message}")
        logger.info(f"Заказ {order.order_number}: оплата {order.payment_status.value} -> {new_status.value}")
        return updated
