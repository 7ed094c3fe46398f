from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

from app.domain.models import Order, OrderStatus, PaymentStatus, PaymentMethod, OrderType
from app.application.order_details import OrderDetails, OrderPage
from app.application.statistics import CustomerStats, ShopStats


class VariantRequest(BaseModel):
    weight: Optional[str] = None


class OrderItemRequest(BaseModel):
    product_id: str
    variant: VariantRequest = VariantRequest()
    quantity: int = 1


class CreateOrderRequest(BaseModel):
    # Сумму клиента не принимаем: итог считается на сервере
    items: list[OrderItemRequest] = []
    address: Optional[str] = None
    order_type: str = OrderType.DIRECT.value
    payment_method: Optional[str] = None
    payment_order_id: Optional[str] = None
    payment_id: Optional[str] = None
    idempotency_key: Optional[str] = None


class CancelOrderRequest(BaseModel):
    reason: Optional[str] = None


class ShopDecisionRequest(BaseModel):
    decision: Optional[str] = None
    reason: Optional[str] = None


class UpdateStatusRequest(BaseModel):
    status: Optional[str] = None
    notes: Optional[str] = None
    tracking_number: Optional[str] = None


class PaymentCallbackRequest(BaseModel):
    order_id: str
    status: str
    payment_id: Optional[str] = None
    error_message: Optional[str] = None


class VariantResponse(BaseModel):
    weight: str
    price: float


class ProductResponse(BaseModel):
    id: str
    name: str
    image: Optional[str] = None
    category: Optional[str] = None


class OrderItemResponse(BaseModel):
    product_id: str
    shop_id: str
    variant: VariantResponse
    quantity: int
    item_total: float
    product: Optional[ProductResponse] = None


class CustomerResponse(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class OrderResponse(BaseModel):
    id: str
    order_number: str
    customer_id: str
    customer: Optional[CustomerResponse] = None
    items: list[OrderItemResponse]
    address: str
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    total_amount: float
    order_type: OrderType
    cancellation_reason: Optional[str] = None
    notes: Optional[str] = None
    tracking_number: Optional[str] = None
    actual_delivery: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_details(cls, details: OrderDetails):
        order = details.order
        customer = details.customer
        return cls(
            id=order.id,
            order_number=order.order_number,
            customer_id=order.customer_id,
            customer=CustomerResponse(**customer.model_dump()) if customer else None,
            items=[
                OrderItemResponse(
                    product_id=item.product_id,
                    shop_id=item.shop_id,
                    variant=VariantResponse(weight=item.variant.weight, price=float(item.variant.price)),
                    quantity=item.quantity,
                    item_total=float(item.item_total),
                    product=(
                        ProductResponse(**details.products[item.product_id].model_dump())
                        if item.product_id in details.products else None
                    )
                )
                for item in details.items
            ],
            address=order.address,
            status=order.status,
            payment_status=order.payment_status,
            payment_method=order.payment_method,
            total_amount=float(details.total_amount),
            order_type=order.order_type,
            cancellation_reason=order.cancellation_reason,
            notes=order.notes,
            tracking_number=order.tracking_number,
            actual_delivery=order.actual_delivery,
            created_at=order.created_at,
            updated_at=order.updated_at
        )


class ShopOrderResponse(OrderResponse):
    total_amount: float = Field(
        description="Сумма только по позициям магазина, а не итог всего заказа"
    )


class PaginationResponse(BaseModel):
    current_page: int
    total_pages: int
    total_orders: int
    has_next: bool
    has_prev: bool


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]
    pagination: PaginationResponse

    @classmethod
    def from_page(cls, page: OrderPage):
        return cls(
            orders=[OrderResponse.from_details(d) for d in page.orders],
            pagination=PaginationResponse(**page.pagination.model_dump())
        )


class ShopOrderListResponse(BaseModel):
    orders: list[ShopOrderResponse]
    pagination: PaginationResponse

    @classmethod
    def from_page(cls, page: OrderPage):
        return cls(
            orders=[ShopOrderResponse.from_details(d) for d in page.orders],
            pagination=PaginationResponse(**page.pagination.model_dump())
        )


class CustomerStatusStatsResponse(BaseModel):
    count: int
    total_amount: float


class CustomerStatsResponse(BaseModel):
    total_orders: int
    total_spent: float
    status_breakdown: dict[str, CustomerStatusStatsResponse]

    @classmethod
    def from_stats(cls, stats: CustomerStats):
        return cls(
            total_orders=stats.total_orders,
            total_spent=float(stats.total_spent),
            status_breakdown={
                status: CustomerStatusStatsResponse(count=entry.count, total_amount=float(entry.total_amount))
                for status, entry in stats.status_breakdown.items()
            }
        )


class ShopStatusStatsResponse(BaseModel):
    count: int
    revenue: float


class ShopStatsResponse(BaseModel):
    total_orders: int
    total_revenue: float
    status_breakdown: dict[str, ShopStatusStatsResponse]

    @classmethod
    def from_stats(cls, stats: ShopStats):
        return cls(
            total_orders=stats.total_orders,
            total_revenue=float(stats.total_revenue),
            status_breakdown={
                status: ShopStatusStatsResponse(count=entry.count, revenue=float(entry.revenue))
                for status, entry in stats.status_breakdown.items()
            }
        )


class PaymentStatusResponse(BaseModel):
    order_id: str
    order_number: str
    payment_status: PaymentStatus

    @classmethod
    def from_domain(cls, order: Order):
        return cls(
            order_id=order.id,
            order_number=order.order_number,
            payment_status=order.payment_status
        )


class ErrorResponse(BaseModel):
    detail: str
