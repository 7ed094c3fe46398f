"""HTTP-уровень: роли, коды ошибок, формат ответов."""
import httpx
import pytest
import pytest_asyncio

from app.main import app
from app.config import settings
from app.presentation.api import (
    get_unit_of_work, get_catalog_service, get_cart_service, get_customer_directory
)

CUSTOMER = {"X-User-Id": "cust-1", "X-User-Role": "customer"}
SHOP_1 = {"X-User-Id": "shop-1", "X-User-Role": "shop"}
SHOP_2 = {"X-User-Id": "shop-2", "X-User-Role": "shop"}


@pytest_asyncio.fixture
async def client(uow, catalog, cart, customers):
    app.dependency_overrides[get_unit_of_work] = lambda: uow
    app.dependency_overrides[get_catalog_service] = lambda: catalog
    app.dependency_overrides[get_cart_service] = lambda: cart
    app.dependency_overrides[get_customer_directory] = lambda: customers
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


async def _place(client, items=None, **extra):
    body = {
        "items": items or [
            {"product_id": "p1", "variant": {"weight": "500g"}, "quantity": 2},
            {"product_id": "p2", "variant": {"weight": "1kg"}, "quantity": 1},
        ],
        "address": "12 MG Road, Bengaluru",
        **extra,
    }
    return await client.post("/api/orders", json=body, headers=CUSTOMER)


async def test_create_order(client):
    response = await _place(client, total_amount=1)
    assert response.status_code == 201
    data = response.json()
    assert data["total_amount"] == 800.0
    assert data["status"] == "Placed"
    assert data["payment_status"] == "Pending"
    assert [item["shop_id"] for item in data["items"]] == ["shop-1", "shop-1"]
    assert data["items"][0]["product"]["name"] == "Chicken Curry Cut"
    assert data["customer"]["email"] == "asha@example.com"


async def test_create_requires_identity(client):
    response = await client.post("/api/orders", json={"items": [], "address": "x"})
    assert response.status_code == 401


async def test_shop_cannot_create_order(client):
    response = await client.post("/api/orders", json={"items": [], "address": "x"}, headers=SHOP_1)
    assert response.status_code == 403


async def test_create_validation_errors(client):
    response = await client.post("/api/orders", json={"address": "x"}, headers=CUSTOMER)
    assert response.status_code == 400

    response = await _place(client, items=[{"product_id": "nope", "variant": {"weight": "1kg"}, "quantity": 1}])
    assert response.status_code == 404
    assert "nope" in response.json()["detail"]

    response = await _place(client, items=[{"product_id": "p2", "variant": {"weight": "5kg"}, "quantity": 1}])
    assert response.status_code == 400
    assert "Mutton Keema" in response.json()["detail"]


async def test_malformed_body_is_400(client):
    response = await _place(client, items=[{"product_id": "p1", "quantity": "many"}])
    assert response.status_code == 400


async def test_customer_order_endpoints(client):
    order_id = (await _place(client)).json()["id"]

    response = await client.get("/api/orders", headers=CUSTOMER)
    assert response.status_code == 200
    assert response.json()["pagination"]["total_orders"] == 1

    response = await client.get(f"/api/orders/{order_id}", headers=CUSTOMER)
    assert response.status_code == 200

    stranger = {"X-User-Id": "cust-2", "X-User-Role": "customer"}
    response = await client.get(f"/api/orders/{order_id}", headers=stranger)
    assert response.status_code == 404

    response = await client.get("/api/orders/stats", headers=CUSTOMER)
    assert response.json()["total_spent"] == 0
    assert response.json()["status_breakdown"]["Placed"]["count"] == 1


async def test_cancel_twice(client):
    order_id = (await _place(client)).json()["id"]

    response = await client.put(f"/api/orders/{order_id}/cancel", headers=CUSTOMER)
    assert response.status_code == 200
    assert response.json()["status"] == "Cancelled"

    response = await client.put(f"/api/orders/{order_id}/cancel", json={"reason": "again"}, headers=CUSTOMER)
    assert response.status_code == 409


async def test_shop_flow(client):
    items = [
        {"product_id": "p1", "variant": {"weight": "500g"}, "quantity": 1},
        {"product_id": "p3", "variant": {"weight": "250g"}, "quantity": 2},
    ]
    order_id = (await _place(client, items=items)).json()["id"]

    response = await client.get("/api/shop/orders", headers=SHOP_2)
    assert response.status_code == 200
    view = response.json()["orders"][0]
    assert [item["product_id"] for item in view["items"]] == ["p3"]
    assert view["total_amount"] == 300.0

    response = await client.put(
        f"/api/shop/orders/{order_id}/decision", json={"decision": "accept"}, headers=SHOP_1
    )
    assert response.status_code == 200
    assert response.json()["status"] == "Confirmed"
    assert response.json()["total_amount"] == 200.0

    response = await client.put(
        f"/api/shop/orders/{order_id}/status", json={"status": "Delivered"}, headers=SHOP_2
    )
    assert response.status_code == 200
    assert response.json()["actual_delivery"] is not None

    response = await client.get("/api/shop/orders/stats", headers=SHOP_1)
    assert response.json()["total_orders"] == 1
    assert response.json()["total_revenue"] == 0


async def test_foreign_shop_decision_is_forbidden(client):
    order_id = (await _place(client)).json()["id"]

    response = await client.put(f"/api/shop/orders/{order_id}/decision", json={}, headers=SHOP_2)
    assert response.status_code == 403

    response = await client.get(f"/api/orders/{order_id}", headers=CUSTOMER)
    assert response.json()["status"] == "Placed"


async def test_shop_endpoints_require_shop_role(client):
    response = await client.get("/api/shop/orders", headers=CUSTOMER)
    assert response.status_code == 403


async def test_unknown_status_value(client):
    order_id = (await _place(client)).json()["id"]
    response = await client.put(
        f"/api/shop/orders/{order_id}/status", json={"status": "Lost"}, headers=SHOP_1
    )
    assert response.status_code == 400


async def test_payment_callback(client, monkeypatch):
    monkeypatch.setattr(settings, "API_TOKEN", "service-secret")
    order_id = (await _place(client)).json()["id"]
    body = {"order_id": order_id, "status": "succeeded", "payment_id": "pay-1"}

    response = await client.post("/api/orders/payment-callback", json=body)
    assert response.status_code == 401

    response = await client.post(
        "/api/orders/payment-callback", json=body, headers={"X-API-Key": "service-secret"}
    )
    assert response.status_code == 200
    assert response.json()["payment_status"] == "Paid"

    response = await client.get("/api/orders/stats", headers=CUSTOMER)
    assert response.json()["total_spent"] == 800.0


async def test_health(client):
    response = await client.get("/health")
    assert response.json() == {"status": "healthy"}


def test_run_starts_uvicorn_with_settings(monkeypatch):
    import app.main as main
    calls = []
    monkeypatch.setattr(main.uvicorn, "run", lambda target, **kwargs: calls.append((target, kwargs)))
    monkeypatch.setattr(settings, "PORT", 8081)
    monkeypatch.setattr(settings, "LOG_LEVEL", "INFO")

    main.run()

    assert calls == [("app.main:app", {"host": settings.HOST, "port": 8081, "log_level": "info"})]
