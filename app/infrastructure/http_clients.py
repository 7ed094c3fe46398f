import httpx
import logging
from typing import Optional

from app.domain.models import Product, Variant, CustomerProfile
from app.domain.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


class HTTPCatalogClient:
    def __init__(self, base_url: str, api_token: str, timeout: float = 10.0):
        self._base_url = base_url
        self._api_token = api_token
        self._timeout = timeout

    async def get_product(self, product_id: str) -> Optional[Product]:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    f"{self._base_url}/api/products/{product_id}",
                    headers={"X-API-Key": self._api_token},
                    timeout=self._timeout
                )

                if response.status_code == 200:
                    return self._to_product(response.json())
                elif response.status_code == 404:
                    return None
                else:
                    raise ExternalServiceError(f"Catalog service ошибка: {response.status_code}")

        except httpx.RequestError as e:
            logger.error(f"Catalog service ошибка подключения: {e}")
            raise ExternalServiceError(f"Catalog service не доступен: {str(e)}")

    def _to_product(self, data: dict) -> Product:
        """Каталог отдает camelCase и _id"""
        return Product(
            id=str(data.get("id") or data.get("_id")),
            name=data["name"],
            category=data.get("category"),
            image=data.get("image"),
            shop_id=data.get("shopId") or data.get("shop_id"),
            variants=[Variant(weight=v["weight"], price=str(v["price"])) for v in data.get("variants", [])]
        )


class HTTPCartClient:
    def __init__(self, base_url: str, api_token: str, timeout: float = 10.0):
        self._base_url = base_url
        self._api_token = api_token
        self._timeout = timeout

    async def clear(self, customer_id: str) -> None:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.delete(
                    f"{self._base_url}/api/cart/{customer_id}/items",
                    headers={"X-API-Key": self._api_token},
                    timeout=self._timeout
                )
                if response.status_code not in (200, 204):
                    raise ExternalServiceError(f"Cart service ошибка: {response.status_code}")

        except httpx.RequestError as e:
            logger.error(f"Cart service ошибка подключения: {e}")
            raise ExternalServiceError(f"Cart service не доступен: {str(e)}")


class HTTPCustomerDirectory:
    def __init__(self, base_url: str, api_token: str, timeout: float = 10.0):
        self._base_url = base_url
        self._api_token = api_token
        self._timeout = timeout

    async def get_customer(self, customer_id: str) -> Optional[CustomerProfile]:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    f"{self._base_url}/api/users/{customer_id}",
                    headers={"X-API-Key": self._api_token},
                    timeout=self._timeout
                )

                if response.status_code == 200:
                    data = response.json()
                    return CustomerProfile(
                        id=str(data.get("id") or data.get("_id") or customer_id),
                        name=data.get("name"),
                        email=data.get("email"),
                        phone=data.get("phone")
                    )
                elif response.status_code == 404:
                    return None
                else:
                    raise ExternalServiceError(f"Users service ошибка: {response.status_code}")

        except httpx.RequestError as e:
            logger.error(f"Users service ошибка подключения: {e}")
            raise ExternalServiceError(f"Users service не доступен: {str(e)}")
