"""
Orders API client.

The orders REST API is the system of record; this client reads orders into
domain models and writes confirmed changes back:

- Listing and fetching orders
- Status updates (with cancel reason / tracking details)
- Payment status corrections
- Refund initiation and settlement
- Shipping charge edits
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List, Optional

import httpx
from libs.common.service_client import api_request
from pydantic import ValidationError
from services.orders_service.lifecycle import TransitionInputs
from services.orders_service.models import (
    Order,
    OrderStatus,
    PaymentStatus,
    RefundStatus,
)
from services.orders_service.schemas import OrderDocument

logger = logging.getLogger(__name__)

CALLING_SERVICE = "orders-admin"


@dataclass
class OrderPage:
    """One page of the orders list."""

    orders: List[Order]
    total: int
    page: Optional[int] = None
    limit: Optional[int] = None
    # Rows on this page that could not be parsed and were left out
    skipped: int = 0


class OrdersApiError(Exception):
    """Base exception for orders API errors."""

    def __init__(
        self, message: str, status_code: int = None, response_data: dict = None
    ):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(message)


def _unwrap(payload: Any) -> Any:
    """The API wraps most bodies as ``{"data": ...}``; some responses are bare."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


def _amount(value: Decimal) -> float:
    return float(value)


class OrdersApiClient:
    """Async client for the orders REST API."""

    def __init__(
        self,
        base_url: str = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.transport = transport

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict = None,
        json_data: dict = None,
    ) -> Any:
        """Make an async request to the orders API and return the unwrapped body."""
        try:
            response = await api_request(
                method=method,
                path=endpoint,
                calling_service=CALLING_SERVICE,
                base_url=self.base_url,
                params=params,
                json=json_data,
                transport=self.transport,
            )
        except httpx.RequestError as exc:
            logger.error(f"Orders API unreachable: {method} {endpoint} - {exc}")
            raise OrdersApiError(message=f"Orders API unreachable: {exc}") from exc

        try:
            data = response.json() if response.content else {}
        except ValueError:
            data = {"message": response.text}

        if not response.is_success:
            logger.error(f"Orders API error: {response.status_code} - {data}")
            message = data.get("message") if isinstance(data, dict) else None
            raise OrdersApiError(
                message=message or f"Orders API request failed ({response.status_code})",
                status_code=response.status_code,
                response_data=data if isinstance(data, dict) else {"body": data},
            )

        return _unwrap(data)

    def _parse_order(self, payload: Any) -> Order:
        try:
            return OrderDocument.model_validate(payload).to_domain()
        except ValidationError as exc:
            raise OrdersApiError(
                message=f"Orders API returned a malformed order: {exc.error_count()} errors",
                response_data={"body": payload},
            ) from exc

    # =========================================================================
    # Reads
    # =========================================================================

    async def list_orders(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        status: Optional[OrderStatus] = None,
        sort_by: Optional[str] = None,
    ) -> OrderPage:
        """
        List orders.

        Accepts every envelope the API has used: a bare list, ``{results,
        total}``, or ``count`` / ``totalResults`` instead of ``total``.
        Rows that do not parse (e.g. legacy status values) are logged and
        skipped so one bad document cannot hide the rest of the page.
        """
        payload = await self._request(
            "GET",
            "/orders/all",
            params={
                "page": page,
                "limit": limit,
                "search": search or None,
                "status": status.value if status else None,
                "sortBy": sort_by,
            },
        )

        if isinstance(payload, list):
            raw_orders = payload
            meta: dict = {}
        else:
            payload = payload or {}
            raw_orders = payload.get("results") or []
            meta = payload

        orders = []
        for raw in raw_orders:
            try:
                orders.append(self._parse_order(raw))
            except OrdersApiError as exc:
                order_id = raw.get("_id") if isinstance(raw, dict) else None
                logger.warning(f"Skipping unreadable order {order_id}: {exc.message}")

        total = meta.get("total", meta.get("count", meta.get("totalResults")))
        return OrderPage(
            orders=orders,
            total=int(total) if total is not None else len(raw_orders),
            page=meta.get("page", meta.get("currentPage", page)),
            limit=meta.get("limit", meta.get("pageSize", limit)),
            skipped=len(raw_orders) - len(orders),
        )

    async def get_order(self, order_id: str) -> Order:
        payload = await self._request("GET", f"/orders/{order_id}")
        return self._parse_order(payload)

    # =========================================================================
    # Writes
    # =========================================================================

    async def update_status(
        self,
        order_id: str,
        status: OrderStatus,
        inputs: Optional[TransitionInputs] = None,
    ) -> None:
        inputs = inputs or TransitionInputs()
        body = {
            "status": status.value,
            # The API stores the cancel reason from the note field
            "note": inputs.cancel_reason or inputs.note,
            "trackingLink": inputs.tracking_link,
            "trackingNumber": inputs.tracking_number,
            "courierName": inputs.courier_name,
            "customMessage": inputs.custom_message,
        }
        await self._request(
            "PATCH",
            f"/orders/{order_id}/status",
            json_data={k: v for k, v in body.items() if v is not None},
        )

    async def update_payment_status(
        self, order_id: str, payment_status: PaymentStatus
    ) -> None:
        await self._request(
            "PATCH",
            f"/orders/{order_id}/payment-status",
            json_data={"paymentStatus": payment_status.value},
        )

    async def initiate_refund(
        self, order_id: str, amount: Decimal, reason: Optional[str] = None
    ) -> None:
        body: dict[str, Any] = {"amount": _amount(amount)}
        if reason:
            body["reason"] = reason
        await self._request("POST", f"/orders/{order_id}/refund", json_data=body)

    async def settle_refund(
        self, order_id: str, outcome: RefundStatus, note: Optional[str] = None
    ) -> None:
        body: dict[str, Any] = {"refundStatus": outcome.value}
        if note:
            body["note"] = note
        await self._request(
            "PATCH", f"/orders/{order_id}/refund-status", json_data=body
        )

    async def update_shipping_charge(self, order_id: str, amount: Decimal) -> None:
        await self._request(
            "PATCH",
            f"/orders/{order_id}/shipping-charge",
            json_data={"shippingCharge": _amount(amount)},
        )
