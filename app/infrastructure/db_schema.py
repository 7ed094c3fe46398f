from sqlalchemy import (
    Table, Column, String, Integer, Numeric, Enum, DateTime, ForeignKey, MetaData, UniqueConstraint
)
from sqlalchemy.sql import func

from app.domain.models import OrderStatus, PaymentStatus, PaymentMethod, OrderType

metadata = MetaData()


def _enum(enum_cls, name: str) -> Enum:
    # В БД храним значения ("Out for Delivery"), а не имена членов
    return Enum(enum_cls, name=name, values_callable=lambda e: [m.value for m in e])


orders_tbl = Table(
    "orders",
    metadata,
    Column("id", String, primary_key=True),
    Column("order_number", String, nullable=False, unique=True),
    Column("customer_id", String, nullable=False, index=True),
    Column("address", String, nullable=False),
    Column("status", _enum(OrderStatus, "order_status"), nullable=False, default=OrderStatus.PLACED, index=True),
    Column("payment_status", _enum(PaymentStatus, "payment_status"), nullable=False, default=PaymentStatus.PENDING),
    Column("payment_method", _enum(PaymentMethod, "payment_method"), nullable=False, default=PaymentMethod.COD),
    Column("total_amount", Numeric(12, 2), nullable=False),
    Column("order_type", _enum(OrderType, "order_type"), nullable=False, default=OrderType.DIRECT),
    Column("cancellation_reason", String, nullable=True),
    Column("notes", String, nullable=True),
    Column("tracking_number", String, nullable=True),
    Column("actual_delivery", DateTime(timezone=True), nullable=True),
    Column("payment_order_id", String, nullable=True),
    Column("payment_id", String, nullable=True),
    Column("idempotency_key", String, nullable=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now(), index=True),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now()),
    UniqueConstraint("customer_id", "idempotency_key", name="uq_orders_customer_idempotency_key"),
)


order_items_tbl = Table(
    "order_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("order_id", String, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("position", Integer, nullable=False),
    Column("product_id", String, nullable=False),
    Column("shop_id", String, nullable=False, index=True),
    Column("variant_weight", String, nullable=False),
    Column("variant_price", Numeric(12, 2), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("item_total", Numeric(12, 2), nullable=False),
)
