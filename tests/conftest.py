from decimal import Decimal
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.database import create_tables
from app.domain.models import Actor, CustomerProfile, Product, Role, Variant
from app.domain.exceptions import ExternalServiceError
from app.application.create_order import CreateOrderDTO, CreateOrderUseCase, OrderItemDTO
from app.application.order_details import OrderDetailsAssembler
from app.infrastructure.unit_of_work import UnitOfWork

CUSTOMER_ID = "cust-1"
OTHER_CUSTOMER_ID = "cust-2"
SHOP_1 = "shop-1"
SHOP_2 = "shop-2"


class FakeCatalog:
    def __init__(self, products: list[Product]):
        self.products = {p.id: p for p in products}
        self.lookups: list[str] = []

    async def get_product(self, product_id: str) -> Optional[Product]:
        self.lookups.append(product_id)
        return self.products.get(product_id)

    def set_price(self, product_id: str, weight: str, price: str) -> None:
        product = self.products[product_id]
        variants = [
            Variant(weight=v.weight, price=Decimal(price)) if v.weight == weight else v
            for v in product.variants
        ]
        self.products[product_id] = product.model_copy(update={"variants": variants})


class FakeCart:
    def __init__(self):
        self.cleared: list[str] = []
        self.fail = False

    async def clear(self, customer_id: str) -> None:
        if self.fail:
            raise ExternalServiceError("Cart service не доступен")
        self.cleared.append(customer_id)


class FakeCustomers:
    async def get_customer(self, customer_id: str) -> Optional[CustomerProfile]:
        return CustomerProfile(id=customer_id, name="Asha", email="asha@example.com", phone="+91 90000 00000")


@pytest.fixture
def products():
    return [
        Product(
            id="p1", name="Chicken Curry Cut", category="chicken", image="p1.jpg", shop_id=SHOP_1,
            variants=[Variant(weight="500g", price=Decimal("200")), Variant(weight="1kg", price=Decimal("380"))]
        ),
        Product(
            id="p2", name="Mutton Keema", category="mutton", image="p2.jpg", shop_id=SHOP_1,
            variants=[Variant(weight="1kg", price=Decimal("400"))]
        ),
        Product(
            id="p3", name="Seer Fish Steaks", category="seafood", image="p3.jpg", shop_id=SHOP_2,
            variants=[Variant(weight="250g", price=Decimal("150"))]
        ),
    ]


@pytest.fixture
def catalog(products):
    return FakeCatalog(products)


@pytest.fixture
def cart():
    return FakeCart()


@pytest.fixture
def customers():
    return FakeCustomers()


@pytest.fixture
def assembler(catalog, customers):
    return OrderDetailsAssembler(catalog, customers)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def uow(engine):
    return UnitOfWork(async_sessionmaker(engine, expire_on_commit=False))


@pytest.fixture
def customer():
    return Actor(id=CUSTOMER_ID, role=Role.CUSTOMER)


@pytest.fixture
def shop_1():
    return Actor(id=SHOP_1, role=Role.SHOP)


@pytest.fixture
def shop_2():
    return Actor(id=SHOP_2, role=Role.SHOP)


@pytest.fixture
def create_order(uow, catalog, cart, assembler):
    use_case = CreateOrderUseCase(uow, catalog, cart, assembler)

    async def _create(items, customer_id=CUSTOMER_ID, **kwargs):
        dto = CreateOrderDTO(
            customer_id=customer_id,
            items=[OrderItemDTO(product_id=p, weight=w, quantity=q) for p, w, q in items],
            address=kwargs.pop("address", "12 MG Road, Bengaluru"),
            **kwargs
        )
        return await use_case(dto)

    return _create


@pytest.fixture
def store(uow):
    """Прямой доступ к хранилищу для подготовки и проверки состояния"""
    class _Store:
        async def set_status(self, order_id, status):
            async with uow() as session:
                await session.orders.update_status(order_id, status)
                await session.commit()

        async def get(self, order_id):
            async with uow() as session:
                return await session.orders.get_by_id(order_id)

        async def set_payment(self, order_id, payment_status):
            async with uow() as session:
                await session.orders.update_payment(order_id, payment_status, None)
                await session.commit()

    return _Store()
