import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
from pydantic import BaseModel
from datetime import datetime, timezone
import uuid

from app.domain.models import (
    Order, OrderItem, OrderStatus, OrderType, PaymentMethod, PaymentStatus, Variant, generate_order_number
)
from app.domain.exceptions import (
    DomainException, DuplicateOrderError, ValidationError, ProductNotFoundError, VariantNotFoundError,
    InternalError
)
from app.application.interfaces import CatalogService, CartService
from app.application.order_details import OrderDetails, OrderDetailsAssembler


logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class OrderItemDTO(BaseModel):
    product_id: str
    weight: Optional[str] = None
    quantity: int = 1


class CreateOrderDTO(BaseModel):
    customer_id: str
    items: list[OrderItemDTO] = []
    address: Optional[str] = None
    order_type: str = OrderType.DIRECT.value
    payment_method: Optional[str] = None
    payment_order_id: Optional[str] = None
    payment_id: Optional[str] = None
    idempotency_key: Optional[str] = None


class CreateOrderUseCase:
    def __init__(
        self,
        unit_of_work,
        catalog_service: CatalogService,
        cart_service: CartService,
        assembler: OrderDetailsAssembler
    ):
        self._uow = unit_of_work
        self._catalog = catalog_service
        self._cart = cart_service
        self._assembler = assembler

    async def __call__(self, order_data: CreateOrderDTO) -> OrderDetails:
        logger.info(f"Создание заказа для покупателя {order_data.customer_id}, позиций: {len(order_data.items)}")

        # 1. Валидация входа
        if not order_data.items:
            raise ValidationError("Необходимо указать товары")
        if not order_data.address or not order_data.address.strip():
            raise ValidationError("Необходимо указать адрес доставки")
        order_type = self._parse_order_type(order_data.order_type)
        requested_method = self._parse_payment_method(order_data.payment_method)

        # 2. Проверка идемпотентности
        idempotency_key = order_data.idempotency_key
        if not idempotency_key and order_data.payment_order_id:
            idempotency_key = f"payment:{order_data.payment_order_id}"
        if idempotency_key:
            async with self._uow() as uow:
                existing = await uow.orders.get_by_idempotency_key(order_data.customer_id, idempotency_key)
            if existing:
                logger.info(f"Заказ уже существует: {existing.order_number}")
                return await self._assembler.assemble_one(existing)

        # 3. Проверка каталога и расчет суммы на сервере
        items = []
        calculated_total = Decimal("0")
        for item_data in order_data.items:
            item = await self._build_item(item_data)
            calculated_total += item.item_total
            items.append(item)

        # 4. Оплата
        if order_data.payment_id:
            payment_status = PaymentStatus.PAID
            payment_method = PaymentMethod.WALLET if requested_method == PaymentMethod.WALLET else PaymentMethod.ONLINE
        else:
            payment_status = PaymentStatus.PENDING
            payment_method = requested_method or PaymentMethod.COD

        # 5. Создание заказа
        now = datetime.now(timezone.utc)
        order = Order(
            id=str(uuid.uuid4()),
            order_number=generate_order_number(),
            customer_id=order_data.customer_id,
            items=items,
            address=order_data.address.strip(),
            status=OrderStatus.PLACED,
            payment_status=payment_status,
            payment_method=payment_method,
            total_amount=calculated_total,
            order_type=order_type,
            payment_order_id=order_data.payment_order_id,
            payment_id=order_data.payment_id,
            idempotency_key=idempotency_key,
            created_at=now,
            updated_at=now
        )
        try:
            async with self._uow() as uow:
                await uow.orders.create(order)
                await uow.commit()
        except DuplicateOrderError:
            # Параллельный запрос с тем же ключом успел сохранить заказ раньше
            return await self._existing_order(order.customer_id, idempotency_key)
        except DomainException:
            raise
        except Exception as e:
            logger.exception(f"Ошибка сохранения заказа для покупателя {order.customer_id}")
            raise InternalError("Не удалось сохранить заказ") from e
        logger.info(f"Заказ создан: {order.order_number} на сумму {order.total_amount}")

        # 6. Корзину чистим только при оформлении из корзины
        if order.order_type == OrderType.CHECKOUT:
            try:
                await self._cart.clear(order.customer_id)
                logger.info(f"Корзина покупателя {order.customer_id} очищена")
            except Exception as e:
                logger.error(f"Ошибка очистки корзины для {order.customer_id}: {e}")
                # Не блокируем создание заказа

        return await self._assembler.assemble_one(order)

    async def _existing_order(self, customer_id: str, idempotency_key: str) -> OrderDetails:
        async with self._uow() as uow:
            existing = await uow.orders.get_by_idempotency_key(customer_id, idempotency_key)
        if not existing:
            logger.error(f"Конфликт ключа {idempotency_key}, но заказ не найден")
            raise InternalError("Не удалось сохранить заказ")
        logger.info(f"Заказ уже существует: {existing.order_number}")
        return await self._assembler.assemble_one(existing)

    async def _build_item(self, item_data: OrderItemDTO) -> OrderItem:
        if item_data.quantity < 1:
            raise ValidationError(f"Количество для товара {item_data.product_id} должно быть не меньше 1")
        if not item_data.weight:
            raise ValidationError(f"Не указан вариант для товара {item_data.product_id}")

        product = await self._catalog.get_product(item_data.product_id)
        if not product:
            raise ProductNotFoundError(item_data.product_id)

        variant = product.find_variant(item_data.weight)
        if not variant:
            raise VariantNotFoundError(product.name, item_data.weight)
        if not product.shop_id:
            raise ValidationError(f"У товара {product.name} не указан магазин")

        price = variant.price.quantize(CENT, rounding=ROUND_HALF_UP)
        return OrderItem(
            product_id=product.id,
            shop_id=product.shop_id,
            variant=Variant(weight=variant.weight, price=price),
            quantity=item_data.quantity,
            item_total=price * item_data.quantity
        )

    def _parse_order_type(self, value: str) -> OrderType:
        try:
            return OrderType(value)
        except ValueError:
            raise ValidationError(f"Недопустимый тип заказа: {value}")

    def _parse_payment_method(self, value: Optional[str]) -> Optional[PaymentMethod]:
        if value is None:
            return None
        try:
            return PaymentMethod(value)
        except ValueError:
            raise ValidationError(f"Недопустимый способ оплаты: {value}")
