from contextlib import asynccontextmanager
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.infrastructure.repositories import SQLAlchemyOrderRepository


class UnitOfWork:
    """Фабрика транзакций над хранилищем заказов.

    Каждый вызов открывает отдельную сессию. Use case открывает новую
    единицу работы на каждый шаг: проверка идемпотентности, сохранение
    заказа и смена статуса идут в разных транзакциях, а обращения к
    каталогу и корзине выполняются вне их.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def __call__(self):
        async with self._session_factory() as session:
            try:
                yield _OrderTransaction(session)
                # Без явного commit изменения отбрасываются
                await session.rollback()
            except Exception:
                await session.rollback()
                raise


class _OrderTransaction:
    def __init__(self, session: AsyncSession):
        self._session = session
        self.orders = SQLAlchemyOrderRepository(session)

    async def commit(self):
        await self._session.commit()

    async def rollback(self):
        await self._session.rollback()
