from typing import Optional, List
from datetime import datetime, timezone
from sqlalchemy import select, insert, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.models import (
    Order, OrderItem, Variant, OrderStatus, PaymentStatus, PaymentMethod, OrderType
)
from app.domain.exceptions import DuplicateOrderError
from app.infrastructure.db_schema import orders_tbl, order_items_tbl
from app.application.interfaces import OrderRepository


class SQLAlchemyOrderRepository(OrderRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, order_id: str) -> Optional[Order]:
        result = await self._session.execute(
            select(orders_tbl).where(orders_tbl.c.id == order_id)
        )
        row = result.fetchone()
        if not row:
            return None
        items = await self._load_items([row.id])
        return self._to_domain(row, items.get(row.id, []))

    async def get_by_idempotency_key(self, customer_id: str, key: str) -> Optional[Order]:
        result = await self._session.execute(
            select(orders_tbl).where(
                orders_tbl.c.customer_id == customer_id,
                orders_tbl.c.idempotency_key == key
            )
        )
        row = result.fetchone()
        if not row:
            return None
        items = await self._load_items([row.id])
        return self._to_domain(row, items.get(row.id, []))

    async def create(self, order: Order) -> None:
        try:
            await self._insert_order(order)
        except IntegrityError:
            if order.idempotency_key:
                raise DuplicateOrderError(order.customer_id, order.idempotency_key)
            raise
        await self._session.execute(
            insert(order_items_tbl),
            [
                {
                    "order_id": order.id,
                    "position": position,
                    "product_id": item.product_id,
                    "shop_id": item.shop_id,
                    "variant_weight": item.variant.weight,
                    "variant_price": item.variant.price,
                    "quantity": item.quantity,
                    "item_total": item.item_total,
                }
                for position, item in enumerate(order.items)
            ]
        )

    async def _insert_order(self, order: Order) -> None:
        await self._session.execute(
            insert(orders_tbl).values(
                id=order.id,
                order_number=order.order_number,
                customer_id=order.customer_id,
                address=order.address,
                status=order.status,
                payment_status=order.payment_status,
                payment_method=order.payment_method,
                total_amount=order.total_amount,
                order_type=order.order_type,
                payment_order_id=order.payment_order_id,
                payment_id=order.payment_id,
                idempotency_key=order.idempotency_key,
                created_at=order.created_at,
                updated_at=order.updated_at
            )
        )

    async def list_for_customer(
        self, customer_id: str, status: Optional[OrderStatus], offset: int, limit: int
    ) -> List[Order]:
        conditions = [orders_tbl.c.customer_id == customer_id]
        if status:
            conditions.append(orders_tbl.c.status == status)
        return await self._list(conditions, offset, limit)

    async def count_for_customer(self, customer_id: str, status: Optional[OrderStatus]) -> int:
        conditions = [orders_tbl.c.customer_id == customer_id]
        if status:
            conditions.append(orders_tbl.c.status == status)
        return await self._count(conditions)

    async def list_for_shop(
        self, shop_id: str, status: Optional[OrderStatus], offset: int, limit: int
    ) -> List[Order]:
        return await self._list(self._shop_conditions(shop_id, status), offset, limit)

    async def count_for_shop(self, shop_id: str, status: Optional[OrderStatus]) -> int:
        return await self._count(self._shop_conditions(shop_id, status))

    async def update_status(self, order_id: str, status: OrderStatus, **fields) -> None:
        stmt = (
            update(orders_tbl)
            .where(orders_tbl.c.id == order_id)
            .values(
                status=status,
                updated_at=datetime.now(timezone.utc),
                **fields
            )
        )
        await self._session.execute(stmt)

    async def update_payment(self, order_id: str, payment_status: PaymentStatus, payment_id: Optional[str]) -> None:
        values = {"payment_status": payment_status, "updated_at": datetime.now(timezone.utc)}
        if payment_id:
            values["payment_id"] = payment_id
        stmt = (
            update(orders_tbl)
            .where(orders_tbl.c.id == order_id)
            .values(**values)
        )
        await self._session.execute(stmt)

    async def customer_status_buckets(self, customer_id: str) -> List[dict]:
        result = await self._session.execute(
            select(
                orders_tbl.c.status,
                orders_tbl.c.payment_status,
                func.count(orders_tbl.c.id).label("entries"),
                func.sum(orders_tbl.c.total_amount).label("amount")
            )
            .where(orders_tbl.c.customer_id == customer_id)
            .group_by(orders_tbl.c.status, orders_tbl.c.payment_status)
        )
        return [self._bucket(row) for row in result.fetchall()]

    async def shop_status_buckets(self, shop_id: str) -> List[dict]:
        """Позиции магазина, сгруппированные по (status, payment_status) заказа"""
        result = await self._session.execute(
            select(
                orders_tbl.c.status,
                orders_tbl.c.payment_status,
                func.count(order_items_tbl.c.id).label("entries"),
                func.sum(order_items_tbl.c.item_total).label("amount")
            )
            .select_from(order_items_tbl.join(orders_tbl, order_items_tbl.c.order_id == orders_tbl.c.id))
            .where(order_items_tbl.c.shop_id == shop_id)
            .group_by(orders_tbl.c.status, orders_tbl.c.payment_status)
        )
        return [self._bucket(row) for row in result.fetchall()]

    def _shop_conditions(self, shop_id: str, status: Optional[OrderStatus]) -> list:
        shop_order_ids = select(order_items_tbl.c.order_id).where(order_items_tbl.c.shop_id == shop_id)
        conditions = [orders_tbl.c.id.in_(shop_order_ids)]
        if status:
            conditions.append(orders_tbl.c.status == status)
        return conditions

    async def _list(self, conditions: list, offset: int, limit: int) -> List[Order]:
        result = await self._session.execute(
            select(orders_tbl)
            .where(*conditions)
            .order_by(orders_tbl.c.created_at.desc(), orders_tbl.c.id.desc())
            .offset(offset)
            .limit(limit)
        )
        rows = result.fetchall()
        items = await self._load_items([row.id for row in rows])
        return [self._to_domain(row, items.get(row.id, [])) for row in rows]

    async def _count(self, conditions: list) -> int:
        result = await self._session.execute(
            select(func.count()).select_from(orders_tbl).where(*conditions)
        )
        return result.scalar_one()

    async def _load_items(self, order_ids: List[str]) -> dict:
        if not order_ids:
            return {}
        result = await self._session.execute(
            select(order_items_tbl)
            .where(order_items_tbl.c.order_id.in_(order_ids))
            .order_by(order_items_tbl.c.order_id, order_items_tbl.c.position)
        )
        items: dict = {}
        for row in result.fetchall():
            items.setdefault(row.order_id, []).append(
                OrderItem(
                    product_id=row.product_id,
                    shop_id=row.shop_id,
                    variant=Variant(weight=row.variant_weight, price=row.variant_price),
                    quantity=row.quantity,
                    item_total=row.item_total
                )
            )
        return items

    def _bucket(self, row) -> dict:
        return {
            "status": OrderStatus(row.status),
            "payment_status": PaymentStatus(row.payment_status),
            "count": row.entries,
            "amount": row.amount or 0
        }

    def _to_domain(self, row, items: List[OrderItem]) -> Order:
        """Трансформация DB → Domain"""
        return Order(
            id=row.id,
            order_number=row.order_number,
            customer_id=row.customer_id,
            items=items,
            address=row.address,
            status=OrderStatus(row.status),
            payment_status=PaymentStatus(row.payment_status),
            payment_method=PaymentMethod(row.payment_method),
            total_amount=row.total_amount,
            order_type=OrderType(row.order_type),
            cancellation_reason=row.cancellation_reason,
            notes=row.notes,
            tracking_number=row.tracking_number,
            actual_delivery=row.actual_delivery,
            payment_order_id=row.payment_order_id,
            payment_id=row.payment_id,
            idempotency_key=row.idempotency_key,
            created_at=row.created_at,
            updated_at=row.updated_at
        )
