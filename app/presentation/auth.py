"""Идентичность запроса.

Аутентификацию выполняет upstream gateway и пробрасывает заголовки
X-User-Id и X-User-Role. Здесь им доверяют, проверяются только роль
и, для межсервисных вызовов, X-API-Key.
"""
import secrets
from typing import Optional
from fastapi import Depends, Header, HTTPException, status

from app.config import settings
from app.domain.models import Actor, Role


async def get_actor(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None)
) -> Actor:
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Требуется аутентификация")
    try:
        role = Role(x_user_role)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Недопустимая роль")
    return Actor(id=x_user_id, role=role)


async def get_customer_actor(actor: Actor = Depends(get_actor)) -> Actor:
    if not actor.is_customer:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Доступ только для покупателей")
    return actor


async def get_shop_actor(actor: Actor = Depends(get_actor)) -> Actor:
    if not actor.is_shop:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Доступ только для магазинов")
    return actor


async def verify_service_token(x_api_key: Optional[str] = Header(None)) -> None:
    if not settings.API_TOKEN or not x_api_key or not secrets.compare_digest(x_api_key, settings.API_TOKEN):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Неверный X-API-Key")
