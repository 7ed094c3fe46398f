import logging
import math
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel

from app.domain.models import Order, OrderItem, CustomerProfile
from app.domain.exceptions import DomainException
from app.application.interfaces import CatalogService, CustomerDirectory

logger = logging.getLogger(__name__)


class ProductSummary(BaseModel):
    id: str
    name: str
    image: Optional[str] = None
    category: Optional[str] = None


class OrderDetails(BaseModel):
    """Заказ, каким его видит конкретный участник, с данными для отображения.

    Для магазина `items` содержит только его позиции, а `total_amount` —
    производная сумма по этим позициям, а не сохраненный итог заказа.
    """
    order: Order
    items: list[OrderItem]
    total_amount: Decimal
    shop_scoped: bool = False
    customer: Optional[CustomerProfile] = None
    products: dict[str, ProductSummary] = {}


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_orders: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_orders=total,
            has_next=page < total_pages,
            has_prev=page > 1
        )


class OrderPage(BaseModel):
    orders: list[OrderDetails]
    pagination: Pagination


class OrderDetailsAssembler:
    """Подмешивает к заказам данные покупателя и товаров (name, image, category)"""

    def __init__(self, catalog_service: CatalogService, customer_directory: CustomerDirectory):
        self._catalog = catalog_service
        self._customers = customer_directory

    async def assemble(self, orders: list[Order], shop_id: Optional[str] = None) -> list[OrderDetails]:
        customers: dict[str, Optional[CustomerProfile]] = {}
        products: dict[str, Optional[ProductSummary]] = {}
        result = []
        for order in orders:
            if shop_id is None:
                items = list(order.items)
                total = order.total_amount
            else:
                items = order.items_for_shop(shop_id)
                total = order.shop_subtotal(shop_id)

            if order.customer_id not in customers:
                customers[order.customer_id] = await self._fetch_customer(order.customer_id)
            for item in items:
                if item.product_id not in products:
                    products[item.product_id] = await self._fetch_product(item.product_id)

            result.append(OrderDetails(
                order=order,
                items=items,
                total_amount=total,
                shop_scoped=shop_id is not None,
                customer=customers[order.customer_id],
                products={
                    item.product_id: products[item.product_id]
                    for item in items
                    if products[item.product_id] is not None
                }
            ))
        return result

    async def assemble_one(self, order: Order, shop_id: Optional[str] = None) -> OrderDetails:
        details = await self.assemble([order], shop_id)
        return details[0]

    async def _fetch_customer(self, customer_id: str) -> Optional[CustomerProfile]:
        try:
            return await self._customers.get_customer(customer_id)
        except DomainException as e:
            logger.warning(f"Не удалось получить покупателя {customer_id}: {e}")
            return None

    async def _fetch_product(self, product_id: str) -> Optional[ProductSummary]:
        try:
            product = await self._catalog.get_product(product_id)
        except DomainException as e:
            logger.warning(f"Не удалось получить товар {product_id}: {e}")
            return None
        if not product:
            return None
        return ProductSummary(
            id=product.id,
            name=product.name,
            image=product.image,
            category=product.category
        )
