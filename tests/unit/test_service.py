"""Unit tests for OrderCommandService against the in-memory orders API.

The service must only hand back a proposed order once the write succeeded.
"""

import pytest
from services.orders_service.errors import ErrorKind, Ok, OrderError
from services.orders_service.models import OrderStatus, PaymentStatus, RefundStatus
from services.orders_service.service import OrderCommandService
from tests.factories import D, OrderDocumentFactory

pytestmark = [pytest.mark.asyncio, pytest.mark.unit]


@pytest.fixture
def service(orders_api_client):
    return OrderCommandService(orders_api_client)


async def _load(service, fake_orders_api, document):
    fake_orders_api.add(document)
    outcome = await service.load(document["_id"])
    assert isinstance(outcome, Ok)
    return outcome.value


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


async def test_load_order(service, fake_orders_api):
    order = await _load(service, fake_orders_api, OrderDocumentFactory.create(_id="ord-1"))

    assert order.order_id == "ord-1"


async def test_load_missing_order_is_persistence_error(service):
    outcome = await service.load("does-not-exist")

    assert isinstance(outcome, OrderError)
    assert outcome.kind == ErrorKind.PERSISTENCE_ERROR
    assert "Order not found" in outcome.message


# ---------------------------------------------------------------------------
# Status
# ---------------------------------------------------------------------------


async def test_change_status_writes_then_adopts(service, fake_orders_api):
    order = await _load(service, fake_orders_api, OrderDocumentFactory.create(_id="ord-1"))

    outcome = await service.change_status(order, OrderStatus.ACCEPTED, {"note": "Baking now"})

    assert isinstance(outcome, Ok)
    assert outcome.value.status == OrderStatus.ACCEPTED
    assert fake_orders_api.writes == [
        ("PATCH", "/orders/ord-1/status", {"status": "accepted", "note": "Baking now"})
    ]


async def test_cancel_sends_reason_as_note(service, fake_orders_api):
    order = await _load(service, fake_orders_api, OrderDocumentFactory.create(_id="ord-1"))

    await service.change_status(order, "cancelled", {"cancel_reason": "Out of flour"})

    assert fake_orders_api.writes[-1][2] == {"status": "cancelled", "note": "Out of flour"}


async def test_complete_sends_tracking(service, fake_orders_api):
    document = OrderDocumentFactory.create(_id="ord-1", status="inprogress")
    order = await _load(service, fake_orders_api, document)

    await service.change_status(
        order,
        OrderStatus.COMPLETED,
        {"tracking_number": "AWB991", "courier_name": "Delhivery"},
    )

    assert fake_orders_api.writes[-1][2] == {
        "status": "completed",
        "trackingNumber": "AWB991",
        "courierName": "Delhivery",
    }


async def test_rejected_transition_makes_no_write(service, fake_orders_api):
    order = await _load(service, fake_orders_api, OrderDocumentFactory.create())

    outcome = await service.change_status(order, OrderStatus.DELIVERED)

    assert outcome.kind == ErrorKind.INVALID_TRANSITION
    assert fake_orders_api.writes == []


async def test_failed_write_is_persistence_error(service, fake_orders_api):
    order = await _load(service, fake_orders_api, OrderDocumentFactory.create())
    fake_orders_api.fail_writes = True

    outcome = await service.change_status(order, OrderStatus.ACCEPTED)

    assert isinstance(outcome, OrderError)
    assert outcome.kind == ErrorKind.PERSISTENCE_ERROR
    assert outcome.message.startswith("Failed to update status")
    assert order.status == OrderStatus.PLACED
    assert len(fake_orders_api.writes) == 1


# ---------------------------------------------------------------------------
# Payment status, refunds, shipping
# ---------------------------------------------------------------------------


async def test_change_payment_status(service, fake_orders_api):
    order = await _load(service, fake_orders_api, OrderDocumentFactory.create(_id="ord-1"))

    outcome = await service.change_payment_status(order, PaymentStatus.PAID)

    assert outcome.value.payment_status == PaymentStatus.PAID
    assert fake_orders_api.writes == [
        ("PATCH", "/orders/ord-1/payment-status", {"paymentStatus": "paid"})
    ]


async def test_refund_writes_amount_and_reason(service, fake_orders_api):
    order = await _load(service, fake_orders_api, OrderDocumentFactory.prepaid(_id="ord-2"))

    outcome = await service.refund(order, "35.50", "Burnt crust")

    assert outcome.value.refund.refund_amount == D("35.50")
    assert outcome.value.refund.refund_status == RefundStatus.PENDING
    assert fake_orders_api.writes == [
        ("POST", "/orders/ord-2/refund", {"amount": 35.5, "reason": "Burnt crust"})
    ]


async def test_refund_failure_keeps_balance(service, fake_orders_api):
    order = await _load(service, fake_orders_api, OrderDocumentFactory.prepaid())
    fake_orders_api.fail_writes = True

    outcome = await service.refund(order, 100)

    assert outcome.kind == ErrorKind.PERSISTENCE_ERROR
    assert order.refund is None


async def test_ineligible_refund_makes_no_write(service, fake_orders_api):
    order = await _load(service, fake_orders_api, OrderDocumentFactory.create())

    outcome = await service.refund(order, 10)

    assert outcome.kind == ErrorKind.REFUND_NOT_ELIGIBLE
    assert fake_orders_api.writes == []


async def test_settle_refund(service, fake_orders_api):
    document = OrderDocumentFactory.prepaid(
        _id="ord-3",
        refund={
            "refundAmount": 50,
            "refundStatus": "pending",
            "refundHistory": [{"status": "pending", "amount": 50}],
        },
    )
    order = await _load(service, fake_orders_api, document)

    outcome = await service.settle_refund(order, "failed", "Bank rejected")

    assert outcome.value.refund.refund_amount == D(0)
    assert fake_orders_api.writes == [
        (
            "PATCH",
            "/orders/ord-3/refund-status",
            {"refundStatus": "failed", "note": "Bank rejected"},
        )
    ]


async def test_change_shipping_charge(service, fake_orders_api):
    order = await _load(service, fake_orders_api, OrderDocumentFactory.create(_id="ord-4"))

    outcome = await service.change_shipping_charge(order, 80)

    assert outcome.value.shipping_charge == D(80)
    assert fake_orders_api.writes == [
        ("PATCH", "/orders/ord-4/shipping-charge", {"shippingCharge": 80.0})
    ]
