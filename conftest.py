import json
import os
from typing import AsyncGenerator, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Load .env.test for tests if present
from dotenv import load_dotenv

env_test_path = os.path.join(os.path.dirname(__file__), ".env.test")
if os.path.exists(env_test_path):
    load_dotenv(env_test_path, override=True)

os.environ.setdefault("ENVIRONMENT", "local")
os.environ.setdefault("ORDERS_API_URL", "http://orders-api.test/v1")

from libs.common.config import get_settings

# Clear cached settings to reload with test env vars
get_settings.cache_clear()

FAKE_API_BASE = "http://orders-api.test/v1"


class FakeOrdersApi:
    """
    In-memory stand-in for the orders REST API.

    Serves stored order documents and records every write so tests can
    assert on what was (or was not) persisted. Set ``fail_writes`` to make
    every write answer with a 500.
    """

    def __init__(self):
        self.orders: dict[str, dict] = {}
        self.writes: list[tuple[str, str, Optional[dict]]] = []
        self.fail_writes = False

    def add(self, document: dict) -> dict:
        self.orders[document["_id"]] = document
        return document

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/v1")
        parts = [p for p in path.split("/") if p]

        if request.method == "GET" and parts == ["orders", "all"]:
            page = int(request.url.params.get("page", 1))
            limit = int(request.url.params.get("limit", 10))
            status = request.url.params.get("status")
            docs = [
                d for d in self.orders.values() if not status or d.get("status") == status
            ]
            chunk = docs[(page - 1) * limit : page * limit]
            return httpx.Response(
                200,
                json={"data": {"results": chunk, "total": len(docs), "page": page, "limit": limit}},
            )

        if len(parts) < 2 or parts[0] != "orders" or parts[1] not in self.orders:
            return httpx.Response(404, json={"message": "Order not found"})

        if request.method == "GET" and len(parts) == 2:
            return httpx.Response(200, json={"data": self.orders[parts[1]]})

        body = json.loads(request.content) if request.content else None
        self.writes.append((request.method, path, body))
        if self.fail_writes:
            return httpx.Response(500, json={"message": "Internal server error"})
        return httpx.Response(200, json={"success": True})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_orders_api() -> FakeOrdersApi:
    return FakeOrdersApi()


@pytest.fixture
def orders_api_client(fake_orders_api):
    from services.orders_service.orders_client import OrdersApiClient

    return OrdersApiClient(base_url=FAKE_API_BASE, transport=fake_orders_api.transport())


@pytest_asyncio.fixture
async def client(orders_api_client) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient for the orders app with admin auth and the
    orders API replaced by the in-memory fake.
    """
    from libs.auth.dependencies import require_admin
    from libs.auth.models import AuthUser
    from services.orders_service.app.main import app
    from services.orders_service.routers.admin_orders import get_orders_client

    app.dependency_overrides[require_admin] = lambda: AuthUser(
        user_id="admin-user", email="admin@example.com", role="admin"
    )
    app.dependency_overrides[get_orders_client] = lambda: orders_api_client

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    """
    Headers for a real-looking bearer token, for tests that exercise JWT decoding.
    """
    from jose import jwt

    token = jwt.encode(
        {"sub": "admin-user", "role": "service_role"},
        get_settings().SUPABASE_JWT_SECRET,
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}
