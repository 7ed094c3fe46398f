from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from app.presentation.api import router
from app.database import get_engine, create_tables
from app.config import settings
import logging
import uvicorn

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Управление жизненным циклом приложения"""
    try:
        await create_tables(get_engine())
        logger.info("Таблицы созданы")
    except Exception as e:
        logger.error(f"Не удалось создать таблицы: {e}")
        raise

    yield

    logger.info("Приложение останавливается...")
    await get_engine().dispose()


app = FastAPI(
    title="Marketplace Order Service",
    description="Заказы маркетплейса мяса и морепродуктов: покупатели и магазины",
    version="1.0.0",
    lifespan=lifespan
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": "Некорректный запрос", "errors": jsonable_encoder(exc.errors())})


app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    return {"message": "Order Service работает"}


@app.get("/health")
async def health():
    return {"status": "healthy"}


def run():
    """Запуск сервиса: `order-service` или `python -m app.main`"""
    uvicorn.run("app.main:app", host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    run()
