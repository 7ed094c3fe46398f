import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.database import get_session_factory
from app.domain.models import Actor
from app.domain.exceptions import (
    DomainException, ValidationError, NotFoundError, ForbiddenError, ConflictError, ExternalServiceError
)
from app.presentation.auth import get_customer_actor, get_shop_actor, verify_service_token
from app.presentation.schemas import (
    CreateOrderRequest, CancelOrderRequest, ShopDecisionRequest, UpdateStatusRequest, PaymentCallbackRequest,
    OrderResponse, ShopOrderResponse, OrderListResponse, ShopOrderListResponse,
    CustomerStatsResponse, ShopStatsResponse, PaymentStatusResponse, ErrorResponse
)
from app.application.create_order import CreateOrderUseCase, CreateOrderDTO, OrderItemDTO
from app.application.get_order import GetOrderUseCase, ListCustomerOrdersUseCase
from app.application.shop_orders import ListShopOrdersUseCase
from app.application.order_status import (
    CancelOrderUseCase, ShopDecisionUseCase, UpdateShopOrderStatusUseCase, ShopDecisionDTO, UpdateStatusDTO
)
from app.application.process_payment import ProcessPaymentCallbackUseCase, PaymentCallbackDTO
from app.application.statistics import CustomerStatsUseCase, ShopStatsUseCase
from app.application.order_details import OrderDetailsAssembler
from app.infrastructure.unit_of_work import UnitOfWork
from app.infrastructure.http_clients import HTTPCatalogClient, HTTPCartClient, HTTPCustomerDirectory
from app.config import settings

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


# Зависимости: хранилище и внешние сервисы
def get_unit_of_work():
    return UnitOfWork(get_session_factory())


def get_catalog_service():
    return HTTPCatalogClient(settings.CATALOG_BASE_URL, settings.API_TOKEN, settings.HTTP_TIMEOUT)


def get_cart_service():
    return HTTPCartClient(settings.CART_BASE_URL, settings.API_TOKEN, settings.HTTP_TIMEOUT)


def get_customer_directory():
    return HTTPCustomerDirectory(settings.USERS_BASE_URL, settings.API_TOKEN, settings.HTTP_TIMEOUT)


def get_assembler(catalog=Depends(get_catalog_service), customers=Depends(get_customer_directory)):
    return OrderDetailsAssembler(catalog, customers)


# Фабрики для создания use cases
def get_create_order_use_case(
    uow=Depends(get_unit_of_work),
    catalog=Depends(get_catalog_service),
    cart=Depends(get_cart_service),
    assembler=Depends(get_assembler)
):
    return CreateOrderUseCase(uow, catalog, cart, assembler)


def get_get_order_use_case(uow=Depends(get_unit_of_work), assembler=Depends(get_assembler)):
    return GetOrderUseCase(uow, assembler)


def get_list_orders_use_case(uow=Depends(get_unit_of_work), assembler=Depends(get_assembler)):
    return ListCustomerOrdersUseCase(uow, assembler)


def get_cancel_order_use_case(uow=Depends(get_unit_of_work), assembler=Depends(get_assembler)):
    return CancelOrderUseCase(uow, assembler)


def get_shop_orders_use_case(uow=Depends(get_unit_of_work), assembler=Depends(get_assembler)):
    return ListShopOrdersUseCase(uow, assembler)


def get_shop_decision_use_case(uow=Depends(get_unit_of_work), assembler=Depends(get_assembler)):
    return ShopDecisionUseCase(uow, assembler)


def get_update_status_use_case(uow=Depends(get_unit_of_work), assembler=Depends(get_assembler)):
    return UpdateShopOrderStatusUseCase(uow, assembler)


def get_customer_stats_use_case(uow=Depends(get_unit_of_work)):
    return CustomerStatsUseCase(uow)


def get_shop_stats_use_case(uow=Depends(get_unit_of_work)):
    return ShopStatsUseCase(uow)


def get_process_payment_use_case(uow=Depends(get_unit_of_work)):
    return ProcessPaymentCallbackUseCase(uow)


def _http_error(e: DomainException) -> HTTPException:
    if isinstance(e, ValidationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ForbiddenError):
        return HTTPException(status_code=403, detail=str(e))
    if isinstance(e, ConflictError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, ExternalServiceError):
        return HTTPException(status_code=503, detail="Внешний сервис недоступен")
    return HTTPException(status_code=500, detail=str(e) or "Внутренняя ошибка сервера")


def _unexpected(action: str) -> HTTPException:
    logger.exception(f"Ошибка: {action}")
    return HTTPException(status_code=500, detail="Внутренняя ошибка сервера")


@router.post(
    "/orders",
    response_model=OrderResponse,
    responses={**ERROR_RESPONSES, 503: {"model": ErrorResponse}},
    status_code=status.HTTP_201_CREATED
)
async def create_order(
    request: CreateOrderRequest,
    actor: Actor = Depends(get_customer_actor),
    use_case: CreateOrderUseCase = Depends(get_create_order_use_case)
):
    """Создать новый заказ (Buy Now или из корзины)"""
    try:
        dto = CreateOrderDTO(
            customer_id=actor.id,
            items=[
                OrderItemDTO(product_id=item.product_id, weight=item.variant.weight, quantity=item.quantity)
                for item in request.items
            ],
            address=request.address,
            order_type=request.order_type,
            payment_method=request.payment_method,
            payment_order_id=request.payment_order_id,
            payment_id=request.payment_id,
            idempotency_key=request.idempotency_key
        )
        details = await use_case(dto)
        return OrderResponse.from_details(details)
    except DomainException as e:
        raise _http_error(e)
    except Exception:
        raise _unexpected("создание заказа")


@router.get("/orders", response_model=OrderListResponse, responses=ERROR_RESPONSES)
async def list_orders(
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    actor: Actor = Depends(get_customer_actor),
    use_case: ListCustomerOrdersUseCase = Depends(get_list_orders_use_case)
):
    """Заказы покупателя"""
    try:
        return OrderListResponse.from_page(await use_case(actor, status, page, limit))
    except DomainException as e:
        raise _http_error(e)
    except Exception:
        raise _unexpected("список заказов покупателя")


@router.get("/orders/stats", response_model=CustomerStatsResponse, responses=ERROR_RESPONSES)
async def customer_stats(
    actor: Actor = Depends(get_customer_actor),
    use_case: CustomerStatsUseCase = Depends(get_customer_stats_use_case)
):
    """Статистика покупателя"""
    try:
        return CustomerStatsResponse.from_stats(await use_case(actor))
    except DomainException as e:
        raise _http_error(e)
    except Exception:
        raise _unexpected("статистика покупателя")


@router.post(
    "/orders/payment-callback",
    response_model=PaymentStatusResponse,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(verify_service_token)]
)
async def payment_callback(
    callback: PaymentCallbackRequest,
    use_case: ProcessPaymentCallbackUseCase = Depends(get_process_payment_use_case)
):
    """Обработка уже проверенного результата оплаты"""
    try:
        dto = PaymentCallbackDTO(
            order_id=callback.order_id,
            status=callback.status,
            payment_id=callback.payment_id,
            error_message=callback.error_message
        )
        return PaymentStatusResponse.from_domain(await use_case(dto))
    except DomainException as e:
        raise _http_error(e)
    except Exception:
        raise _unexpected("обработка payment callback")


@router.get("/orders/{order_id}", response_model=OrderResponse, responses=ERROR_RESPONSES)
async def get_order(
    order_id: str,
    actor: Actor = Depends(get_customer_actor),
    use_case: GetOrderUseCase = Depends(get_get_order_use_case)
):
    """Получить свой заказ по ID"""
    try:
        return OrderResponse.from_details(await use_case(actor, order_id))
    except DomainException as e:
        raise _http_error(e)
    except Exception:
        raise _unexpected("получение заказа")


@router.put("/orders/{order_id}/cancel", response_model=OrderResponse, responses=ERROR_RESPONSES)
async def cancel_order(
    order_id: str,
    request: Optional[CancelOrderRequest] = None,
    actor: Actor = Depends(get_customer_actor),
    use_case: CancelOrderUseCase = Depends(get_cancel_order_use_case)
):
    """Отменить заказ"""
    try:
        reason = request.reason if request else None
        return OrderResponse.from_details(await use_case(actor, order_id, reason))
    except DomainException as e:
        raise _http_error(e)
    except Exception:
        raise _unexpected("отмена заказа")


@router.get("/shop/orders", response_model=ShopOrderListResponse, responses=ERROR_RESPONSES)
async def list_shop_orders(
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    actor: Actor = Depends(get_shop_actor),
    use_case: ListShopOrdersUseCase = Depends(get_shop_orders_use_case)
):
    """Заказы магазина: только его позиции и сумма по ним"""
    try:
        return ShopOrderListResponse.from_page(await use_case(actor, status, page, limit))
    except DomainException as e:
        raise _http_error(e)
    except Exception:
        raise _unexpected("список заказов магазина")


@router.get("/shop/orders/stats", response_model=ShopStatsResponse, responses=ERROR_RESPONSES)
async def shop_stats(
    actor: Actor = Depends(get_shop_actor),
    use_case: ShopStatsUseCase = Depends(get_shop_stats_use_case)
):
    """Статистика магазина"""
    try:
        return ShopStatsResponse.from_stats(await use_case(actor))
    except DomainException as e:
        raise _http_error(e)
    except Exception:
        raise _unexpected("статистика магазина")


@router.put("/shop/orders/{order_id}/decision", response_model=ShopOrderResponse, responses=ERROR_RESPONSES)
async def shop_decision(
    order_id: str,
    request: ShopDecisionRequest,
    actor: Actor = Depends(get_shop_actor),
    use_case: ShopDecisionUseCase = Depends(get_shop_decision_use_case)
):
    """Принять или отклонить заказ"""
    try:
        dto = ShopDecisionDTO(decision=request.decision, reason=request.reason)
        return ShopOrderResponse.from_details(await use_case(actor, order_id, dto))
    except DomainException as e:
        raise _http_error(e)
    except Exception:
        raise _unexpected("решение магазина")


@router.put("/shop/orders/{order_id}/status", response_model=ShopOrderResponse, responses=ERROR_RESPONSES)
async def update_shop_order_status(
    order_id: str,
    request: UpdateStatusRequest,
    actor: Actor = Depends(get_shop_actor),
    use_case: UpdateShopOrderStatusUseCase = Depends(get_update_status_use_case)
):
    """Обновить статус выполнения заказа"""
    try:
        dto = UpdateStatusDTO(status=request.status, notes=request.notes, tracking_number=request.tracking_number)
        return ShopOrderResponse.from_details(await use_case(actor, order_id, dto))
    except DomainException as e:
        raise _http_error(e)
    except Exception:
        raise _unexpected("обновление статуса заказа")
