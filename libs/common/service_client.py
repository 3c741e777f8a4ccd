"""Reusable async HTTP client for calls to the orders REST API.

All reads and writes of order data go through this helper so that auth
headers, request-id propagation and timeouts stay consistent.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx
from libs.common.config import get_settings
from libs.common.logging import get_logger, get_request_id

logger = get_logger(__name__)


def build_headers(calling_service: str, token: Optional[str] = None) -> dict[str, str]:
    """Headers shared by every outbound call."""
    headers = {"X-Caller-Service": calling_service}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    request_id = get_request_id()
    if request_id:
        headers["X-Request-ID"] = request_id
    return headers


async def api_request(
    *,
    method: str,
    path: str,
    calling_service: str,
    base_url: Optional[str] = None,
    json: Any = None,
    params: Optional[dict] = None,
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.Response:
    """Make an authenticated HTTP call to the orders API.

    Args:
        method: HTTP method (GET, POST, PATCH, …).
        path: URL path on the API (e.g. "/orders/all").
        calling_service: Name of the calling service, sent as X-Caller-Service.
        base_url: Overrides settings.ORDERS_API_URL.
        json: Optional JSON body.
        params: Optional query parameters; ``None`` values are dropped.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).

    Returns:
        The httpx.Response object.

    Raises:
        httpx.RequestError on connection failures.
    """
    settings = get_settings()
    url = f"{base_url or settings.ORDERS_API_URL}{path}"
    headers = build_headers(calling_service, settings.ORDERS_API_TOKEN)
    if params:
        params = {k: v for k, v in params.items() if v is not None}

    async with httpx.AsyncClient(
        timeout=timeout or settings.ORDERS_API_TIMEOUT, transport=transport
    ) as client:
        response = await client.request(
            method,
            url,
            headers=headers,
            json=json,
            params=params,
        )

    logger.debug("%s %s -> %s", method, path, response.status_code)
    return response
