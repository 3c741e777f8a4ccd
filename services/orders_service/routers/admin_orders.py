"""Admin orders router: order list/detail, status changes, refunds, revenue."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.datetime_utils import ensure_aware
from libs.common.logging import get_logger
from services.orders_service import lifecycle
from services.orders_service.errors import ErrorKind, OrderError, Outcome
from services.orders_service.models import (
    Order,
    OrderStatus,
    expanded_value,
    resolve_ref_id,
)
from services.orders_service.orders_client import OrdersApiClient, OrdersApiError
from services.orders_service.pricing import compute_breakdown, compute_line, line_quantity
from services.orders_service.revenue import DateRange, summarize
from services.orders_service.schemas import (
    LineItemResponse,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    PaymentStatusUpdate,
    PricingBreakdownResponse,
    RefundCreate,
    RefundResponse,
    RefundSettle,
    RevenueResponse,
    SeriesBucketResponse,
    ShippingChargeUpdate,
    StatusHistoryResponse,
)
from services.orders_service.service import OrderCommandService

logger = get_logger(__name__)

router = APIRouter(tags=["admin-orders"])

ERROR_STATUS_CODES = {
    ErrorKind.VALIDATION_ERROR: 422,
    ErrorKind.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorKind.REFUND_NOT_ELIGIBLE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.PERSISTENCE_ERROR: status.HTTP_502_BAD_GATEWAY,
}

REVENUE_PAGE_SIZE = 100


# ============================================================================
# DEPENDENCIES / HELPERS
# ============================================================================


def get_orders_client() -> OrdersApiClient:
    return OrdersApiClient()


def get_command_service(
    client: OrdersApiClient = Depends(get_orders_client),
) -> OrderCommandService:
    return OrderCommandService(client)


def raise_for_error(error: OrderError):
    raise HTTPException(
        status_code=ERROR_STATUS_CODES[error.kind],
        detail={
            "kind": error.kind.value,
            "message": error.message,
            "reason": error.reason.value if error.reason else None,
        },
    )


def unwrap(outcome: Outcome[Order]) -> Order:
    if isinstance(outcome, OrderError):
        raise_for_error(outcome)
    return outcome.value


def build_order_response(order: Order) -> OrderResponse:
    """Everything an order row or detail dialog needs, totals included."""
    breakdown = compute_breakdown(order)
    blocked = lifecycle.refund_eligibility(order, breakdown)

    items = []
    for item in order.line_items:
        product = expanded_value(item.product)
        items.append(
            LineItemResponse(
                product_id=resolve_ref_id(item.product),
                product_name=product.name if product else None,
                unit_price=item.unit_price or 0,
                unit_discount=item.unit_discount or 0,
                quantity=line_quantity(item),
                line_total=compute_line(item).line_total,
                weight_variant=item.weight_variant,
            )
        )

    return OrderResponse(
        id=order.order_id,
        status=order.status,
        payment_method=order.payment_terms.method,
        payment_status=order.payment_status,
        cancel_reason=order.cancel_reason,
        created_at=order.created_at,
        coupon_label=order.coupon.discount_percentage_label if order.coupon else None,
        items=items,
        breakdown=PricingBreakdownResponse.model_validate(breakdown),
        allowed_transitions=sorted(
            lifecycle.allowed_transitions(order.status), key=lambda s: s.value
        ),
        refundable=blocked is None,
        refund_block_reason=blocked.message if blocked else None,
        refund=RefundResponse.model_validate(order.refund) if order.refund else None,
        status_history=[
            StatusHistoryResponse.model_validate(entry) for entry in order.status_history
        ],
    )


async def _load(service: OrderCommandService, order_id: str) -> Order:
    return unwrap(await service.load(order_id))


async def _fetch_all_orders(client: OrdersApiClient) -> list[Order]:
    orders: list[Order] = []
    seen = 0
    page = 1
    while True:
        try:
            result = await client.list_orders(page=page, limit=REVENUE_PAGE_SIZE)
        except OrdersApiError as exc:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail={"kind": ErrorKind.PERSISTENCE_ERROR.value, "message": exc.message},
            )
        orders.extend(result.orders)
        rows = len(result.orders) + result.skipped
        seen += rows
        if not rows or seen >= result.total:
            return orders
        page += 1


# ============================================================================
# ORDERS
# ============================================================================


@router.get("/orders", response_model=OrderListResponse)
async def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    search: Optional[str] = None,
    sort_by: Optional[str] = Query("createdAt:desc"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    current_user: AuthUser = Depends(require_admin),
    client: OrdersApiClient = Depends(get_orders_client),
):
    """List orders with their computed totals."""
    try:
        result = await client.list_orders(
            page=page,
            limit=page_size,
            search=search,
            status=status_filter,
            sort_by=sort_by,
        )
    except OrdersApiError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"kind": ErrorKind.PERSISTENCE_ERROR.value, "message": exc.message},
        )

    return OrderListResponse(
        items=[build_order_response(o) for o in result.orders],
        total=result.total,
        page=result.page,
        page_size=result.limit,
    )


@router.get("/orders/revenue", response_model=RevenueResponse)
async def get_revenue(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    current_user: AuthUser = Depends(require_admin),
    client: OrdersApiClient = Depends(get_orders_client),
):
    """Dashboard revenue cards and overview chart."""
    if start and end and ensure_aware(start) > ensure_aware(end):
        raise HTTPException(status_code=422, detail="start must be before end")

    orders = await _fetch_all_orders(client)
    summary = summarize(orders, DateRange(start=start, end=end))

    return RevenueResponse(
        non_cancelled=summary.revenue.non_cancelled,
        cancelled=summary.revenue.cancelled,
        total=summary.revenue.total,
        non_cancelled_paid=summary.paid.non_cancelled_paid,
        cancelled_paid=summary.paid.cancelled_paid,
        total_paid=summary.paid.total_paid,
        non_cancelled_unpaid=summary.unpaid.non_cancelled_unpaid,
        cancelled_unpaid=summary.unpaid.cancelled_unpaid,
        total_unpaid=summary.unpaid.total_unpaid,
        series=[SeriesBucketResponse.model_validate(b) for b in summary.series],
    )


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    current_user: AuthUser = Depends(require_admin),
    service: OrderCommandService = Depends(get_command_service),
):
    """Order detail with breakdown, allowed transitions and refund eligibility."""
    return build_order_response(await _load(service, order_id))


@router.post("/orders/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    status_update: OrderStatusUpdate,
    current_user: AuthUser = Depends(require_admin),
    service: OrderCommandService = Depends(get_command_service),
):
    """Move an order along its lifecycle."""
    order = await _load(service, order_id)
    inputs = lifecycle.TransitionInputs(
        **status_update.model_dump(exclude={"status"})
    )
    updated = unwrap(await service.change_status(order, status_update.status, inputs))

    logger.info(
        "Order %s status changed to %s by %s",
        order_id,
        updated.status.value,
        current_user.user_id,
    )
    return build_order_response(updated)


@router.post("/orders/{order_id}/payment-status", response_model=OrderResponse)
async def update_payment_status(
    order_id: str,
    payment_update: PaymentStatusUpdate,
    current_user: AuthUser = Depends(require_admin),
    service: OrderCommandService = Depends(get_command_service),
):
    """Correct payment status between paid and unpaid."""
    order = await _load(service, order_id)
    updated = unwrap(
        await service.change_payment_status(order, payment_update.payment_status)
    )
    return build_order_response(updated)


@router.post("/orders/{order_id}/refund", response_model=OrderResponse)
async def initiate_refund(
    order_id: str,
    refund: RefundCreate,
    current_user: AuthUser = Depends(require_admin),
    service: OrderCommandService = Depends(get_command_service),
):
    """Refund part or all of a prepaid order."""
    order = await _load(service, order_id)
    updated = unwrap(await service.refund(order, refund.amount, refund.reason))

    logger.info(
        "Refund of %s initiated on order %s by %s",
        refund.amount,
        order_id,
        current_user.user_id,
    )
    return build_order_response(updated)


@router.post("/orders/{order_id}/refund/settle", response_model=OrderResponse)
async def settle_refund(
    order_id: str,
    settlement: RefundSettle,
    current_user: AuthUser = Depends(require_admin),
    service: OrderCommandService = Depends(get_command_service),
):
    """Record the payment processor's result for the pending refund."""
    order = await _load(service, order_id)
    updated = unwrap(
        await service.settle_refund(order, settlement.outcome, settlement.note)
    )
    return build_order_response(updated)


@router.patch("/orders/{order_id}/shipping-charge", response_model=OrderResponse)
async def update_shipping_charge(
    order_id: str,
    shipping: ShippingChargeUpdate,
    current_user: AuthUser = Depends(require_admin),
    service: OrderCommandService = Depends(get_command_service),
):
    """Set the shipping charge (POS orders are priced after placement)."""
    order = await _load(service, order_id)
    updated = unwrap(
        await service.change_shipping_charge(order, shipping.shipping_charge)
    )
    return build_order_response(updated)
