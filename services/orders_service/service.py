"""Order commands: propose with the lifecycle rules, persist, then adopt.

The proposed order is handed back only after the orders API has accepted
the write. When the write fails the caller gets a ``persistence_error`` and
keeps the order it already had; nothing is updated ahead of confirmation.
"""

from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from libs.common.logging import get_logger
from services.orders_service import lifecycle
from services.orders_service.errors import (
    Ok,
    OrderError,
    Outcome,
    persistence_error,
)
from services.orders_service.lifecycle import TransitionInputs
from services.orders_service.models import (
    Order,
    OrderStatus,
    PaymentStatus,
    RefundStatus,
)
from services.orders_service.orders_client import OrdersApiClient, OrdersApiError

logger = get_logger(__name__)


class OrderCommandService:
    """Runs admin commands against one orders API."""

    def __init__(self, client: OrdersApiClient):
        self.client = client

    async def _commit(
        self,
        order: Order,
        proposal: Outcome[Order],
        write: Callable[[Order], Awaitable[None]],
        action: str,
    ) -> Outcome[Order]:
        if isinstance(proposal, OrderError):
            return proposal
        try:
            await write(proposal.value)
        except OrdersApiError as exc:
            logger.error(
                "Persisting %s for order %s failed: %s", action, order.order_id, exc.message
            )
            return persistence_error(f"Failed to {action}: {exc.message}")
        return proposal

    async def load(self, order_id: str) -> Outcome[Order]:
        try:
            return Ok(await self.client.get_order(order_id))
        except OrdersApiError as exc:
            return persistence_error(f"Failed to load order {order_id}: {exc.message}")

    async def change_status(
        self,
        order: Order,
        target: Union[OrderStatus, str],
        inputs: Union[TransitionInputs, Mapping[str, Any], None] = None,
    ) -> Outcome[Order]:
        proposal = lifecycle.transition(order, target, inputs)
        if isinstance(proposal, OrderError):
            return proposal
        # Already validated by transition()
        side_inputs = lifecycle.coerce_inputs(inputs)
        return await self._commit(
            order,
            proposal,
            lambda proposed: self.client.update_status(
                order.order_id, proposed.status, side_inputs
            ),
            "update status",
        )

    async def change_payment_status(
        self, order: Order, target: Union[PaymentStatus, str]
    ) -> Outcome[Order]:
        return await self._commit(
            order,
            lifecycle.set_payment_status(order, target),
            lambda proposed: self.client.update_payment_status(
                order.order_id, proposed.payment_status
            ),
            "update payment status",
        )

    async def refund(
        self, order: Order, amount: Any, reason: Optional[str] = None
    ) -> Outcome[Order]:
        proposal = lifecycle.initiate_refund(order, amount, reason)

        async def write(proposed: Order) -> None:
            event = proposed.refund.refund_history[-1]
            await self.client.initiate_refund(order.order_id, event.amount, event.note)

        return await self._commit(order, proposal, write, "initiate refund")

    async def settle_refund(
        self,
        order: Order,
        outcome: Union[RefundStatus, str],
        note: Optional[str] = None,
    ) -> Outcome[Order]:
        return await self._commit(
            order,
            lifecycle.settle_refund(order, outcome, note=note),
            lambda proposed: self.client.settle_refund(
                order.order_id, proposed.refund.refund_status, note
            ),
            "settle refund",
        )

    async def change_shipping_charge(self, order: Order, amount: Any) -> Outcome[Order]:
        return await self._commit(
            order,
            lifecycle.update_shipping_charge(order, amount),
            lambda proposed: self.client.update_shipping_charge(
                order.order_id, proposed.shipping_charge
            ),
            "update shipping charge",
        )
