"""Order lifecycle: status transitions, payment status corrections and refunds.

Two independent axes are tracked on an order:

- ``status``: placed → accepted → inprogress → completed → delivered, with
  ``cancelled`` reachable from placed/accepted. cancelled and delivered are
  terminal.
- ``payment_status``: unpaid ↔ paid are free administrative corrections;
  refunded is reachable only through ``initiate_refund``.

Every operation here is pure. It returns ``Ok(new_order)`` or an
``OrderError`` and never touches the order it was given, so the caller
decides when (and whether) to adopt the proposed order.
"""

from dataclasses import dataclass, fields, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional, Union

from libs.common.config import get_settings
from libs.common.currency import ZERO, floor_zero
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.orders_service.errors import (
    Ok,
    OrderError,
    Outcome,
    RefundIneligibility,
    invalid_transition,
    refund_not_eligible,
    validation_error,
)
from services.orders_service.models import (
    Actor,
    Order,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    RefundEvent,
    RefundRecord,
    RefundStatus,
    StatusHistoryEntry,
    TrackingInfo,
)
from services.orders_service.pricing import PricingBreakdown, compute_breakdown

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# Transition tables
# ---------------------------------------------------------------------------

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PLACED: frozenset({OrderStatus.ACCEPTED, OrderStatus.CANCELLED}),
    OrderStatus.ACCEPTED: frozenset({OrderStatus.INPROGRESS, OrderStatus.CANCELLED}),
    OrderStatus.INPROGRESS: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.DELIVERED: frozenset(),
}

PAYMENT_CORRECTIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.UNPAID: frozenset({PaymentStatus.PAID}),
    PaymentStatus.PAID: frozenset({PaymentStatus.UNPAID}),
    PaymentStatus.REFUNDED: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in TRANSITIONS.items() if not targets)


def allowed_transitions(status: OrderStatus) -> frozenset[OrderStatus]:
    return TRANSITIONS.get(status, frozenset())


def can_transition(source: OrderStatus, target: OrderStatus) -> bool:
    return target in allowed_transitions(source)


def _reject(order: Order, error: OrderError) -> OrderError:
    logger.warning(
        "Rejected command on order %s: %s (%s)", order.order_id, error.message, error.kind.value
    )
    return error


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TransitionInputs:
    """Side inputs a status change may carry."""

    cancel_reason: Optional[str] = None
    note: Optional[str] = None
    tracking_link: Optional[str] = None
    tracking_number: Optional[str] = None
    courier_name: Optional[str] = None
    custom_message: Optional[str] = None

    def tracking(self) -> TrackingInfo:
        return TrackingInfo(
            tracking_link=self.tracking_link,
            tracking_number=self.tracking_number,
            courier_name=self.courier_name,
            custom_message=self.custom_message,
        )


_INPUT_FIELDS = frozenset(f.name for f in fields(TransitionInputs))


def coerce_inputs(
    raw: Union[TransitionInputs, Mapping[str, Any], None],
) -> Union[TransitionInputs, OrderError]:
    if raw is None:
        return TransitionInputs()
    if isinstance(raw, TransitionInputs):
        values = {name: getattr(raw, name) for name in _INPUT_FIELDS}
    else:
        unknown = set(raw) - _INPUT_FIELDS
        if unknown:
            return validation_error(f"Unknown transition fields: {', '.join(sorted(unknown))}")
        values = dict(raw)

    for name, value in values.items():
        if value is None:
            continue
        # Tracking numbers are often typed as numbers in forms
        if name == "tracking_number" and isinstance(value, int) and not isinstance(value, bool):
            values[name] = str(value)
        elif not isinstance(value, str):
            return validation_error(f"{name} must be a string")
        else:
            values[name] = value.strip() or None

    return TransitionInputs(**values)


def _coerce_status(target: Union[OrderStatus, str]) -> Optional[OrderStatus]:
    try:
        return OrderStatus(str(getattr(target, "value", target)).lower())
    except ValueError:
        return None


def transition(
    order: Order,
    target: Union[OrderStatus, str],
    inputs: Union[TransitionInputs, Mapping[str, Any], None] = None,
    *,
    actor: Actor = Actor.ADMIN,
    at: Optional[datetime] = None,
) -> Outcome[Order]:
    """Propose ``order`` moved to ``target``.

    cancelled needs a non-blank ``cancel_reason``; completed accepts optional
    tracking details. One status history entry is appended.
    """
    next_status = _coerce_status(target)
    if next_status is None:
        return _reject(order, invalid_transition(f"Unknown order status '{target}'"))

    if not can_transition(order.status, next_status):
        if order.status in TERMINAL_STATUSES:
            message = f"Order is {order.status.value}; no further status changes are allowed"
        else:
            message = f"Cannot move order from {order.status.value} to {next_status.value}"
        return _reject(order, invalid_transition(message))

    side_inputs = coerce_inputs(inputs)
    if isinstance(side_inputs, OrderError):
        return _reject(order, side_inputs)

    cancel_reason = order.cancel_reason
    note = side_inputs.note
    tracking = None

    if next_status == OrderStatus.CANCELLED:
        if not side_inputs.cancel_reason:
            return _reject(order, validation_error("Please enter a cancellation reason"))
        cancel_reason = side_inputs.cancel_reason
        note = note or cancel_reason
    elif next_status == OrderStatus.COMPLETED:
        tracking = side_inputs.tracking()
        if tracking.is_empty():
            tracking = None

    entry = StatusHistoryEntry(
        status=next_status,
        timestamp=at or utc_now(),
        actor=actor,
        note=note,
        tracking=tracking,
    )
    logger.info(
        "Order %s status %s -> %s", order.order_id, order.status.value, next_status.value
    )
    return Ok(
        replace(
            order,
            status=next_status,
            cancel_reason=cancel_reason,
            status_history=tuple(order.status_history) + (entry,),
        )
    )


# ---------------------------------------------------------------------------
# Payment status
# ---------------------------------------------------------------------------


def set_payment_status(
    order: Order, target: Union[PaymentStatus, str]
) -> Outcome[Order]:
    """Administrative correction between unpaid and paid."""
    try:
        next_status = PaymentStatus(str(getattr(target, "value", target)).lower())
    except ValueError:
        return _reject(order, validation_error(f"Unknown payment status '{target}'"))

    current = order.payment_status
    if next_status == current:
        return _reject(order, validation_error(f"Payment status is already {current.value}"))
    if next_status == PaymentStatus.REFUNDED:
        return _reject(
            order,
            invalid_transition("Refunds must be issued with the refund operation"),
        )
    if next_status not in PAYMENT_CORRECTIONS[current]:
        return _reject(
            order,
            invalid_transition(
                f"Cannot change payment status from {current.value} to {next_status.value}"
            ),
        )

    logger.info(
        "Order %s payment status %s -> %s", order.order_id, current.value, next_status.value
    )
    return Ok(
        replace(
            order,
            payment_terms=replace(order.payment_terms, payment_status=next_status),
        )
    )


# ---------------------------------------------------------------------------
# Refunds
# ---------------------------------------------------------------------------


def _parse_amount(value: Any) -> Optional[Decimal]:
    """Strict amount parsing; ``None`` means malformed."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def refund_eligibility(
    order: Order, breakdown: Optional[PricingBreakdown] = None
) -> Optional[OrderError]:
    """Return why ``order`` cannot be refunded at all, or None when it can.

    Order status plays no part: delivered and cancelled orders are refundable.
    """
    terms = order.payment_terms
    if terms.method != PaymentMethod.PREPAID:
        return refund_not_eligible(
            RefundIneligibility.WRONG_METHOD, "Only prepaid orders can be refunded"
        )
    if not terms.payment_reference:
        return refund_not_eligible(
            RefundIneligibility.MISSING_PAYMENT_REFERENCE,
            "No payment ID found for this order",
        )
    if terms.payment_status == PaymentStatus.REFUNDED:
        return refund_not_eligible(
            RefundIneligibility.ALREADY_REFUNDED,
            "Order has already been fully refunded",
        )
    breakdown = breakdown or compute_breakdown(order)
    if breakdown.max_refundable <= ZERO:
        return refund_not_eligible(
            RefundIneligibility.NO_BALANCE, "No refundable amount available"
        )
    return None


def initiate_refund(
    order: Order,
    amount: Any,
    reason: Optional[str] = None,
    *,
    at: Optional[datetime] = None,
) -> Outcome[Order]:
    """Propose a (partial or full) refund of ``amount`` rupees.

    The refund is recorded as pending until the payment processor confirms it
    through ``settle_refund``. Payment status flips to refunded only once the
    cumulative refunded amount reaches the grand total.
    """
    refund_amount = _parse_amount(amount)
    if refund_amount is None:
        return _reject(order, validation_error("Please enter a valid refund amount"))
    if refund_amount < ZERO:
        return _reject(order, validation_error("Refund amount cannot be negative"))

    if reason is not None and not isinstance(reason, str):
        return _reject(order, validation_error("Refund reason must be text"))
    reason = reason.strip() if reason else None
    max_length = get_settings().REFUND_REASON_MAX_LENGTH
    if reason and len(reason) > max_length:
        return _reject(
            order, validation_error(f"Refund reason cannot exceed {max_length} characters")
        )

    breakdown = compute_breakdown(order)
    ineligible = refund_eligibility(order, breakdown)
    if ineligible is not None:
        return _reject(order, ineligible)

    if refund_amount <= ZERO or refund_amount > breakdown.max_refundable:
        return _reject(
            order,
            refund_not_eligible(
                RefundIneligibility.AMOUNT_OUT_OF_BOUNDS,
                f"Refund amount must be between 0 and {breakdown.max_refundable}",
            ),
        )

    previous = order.refund or RefundRecord()
    cumulative = breakdown.already_refunded + refund_amount
    event = RefundEvent(
        status=RefundStatus.PENDING,
        amount=refund_amount,
        timestamp=at or utc_now(),
        note=reason,
    )
    refund = RefundRecord(
        refund_amount=cumulative,
        refund_status=RefundStatus.PENDING,
        refund_history=tuple(previous.refund_history) + (event,),
    )

    terms = order.payment_terms
    if cumulative >= breakdown.grand_total:
        terms = replace(terms, payment_status=PaymentStatus.REFUNDED)

    logger.info(
        "Order %s refund of %s initiated (cumulative %s of %s)",
        order.order_id,
        refund_amount,
        cumulative,
        breakdown.grand_total,
    )
    return Ok(replace(order, refund=refund, payment_terms=terms))


def pending_refund_amount(refund: Optional[RefundRecord]) -> Decimal:
    """Sum of pending events recorded since the last settlement."""
    if refund is None:
        return ZERO
    pending = ZERO
    for event in reversed(refund.refund_history):
        if event.status != RefundStatus.PENDING:
            break
        pending += event.amount
    return pending


def settle_refund(
    order: Order,
    outcome: Union[RefundStatus, str],
    *,
    note: Optional[str] = None,
    at: Optional[datetime] = None,
) -> Outcome[Order]:
    """Record the payment processor's verdict on the pending refund.

    processed keeps the refunded amount; failed gives it back to the
    refundable balance and undoes a full-refund payment status.
    """
    try:
        result = RefundStatus(str(getattr(outcome, "value", outcome)).lower())
    except ValueError:
        result = None
    if result not in (RefundStatus.PROCESSED, RefundStatus.FAILED):
        return _reject(
            order, validation_error("Refund outcome must be processed or failed")
        )

    refund = order.refund
    if refund is None or refund.refund_status != RefundStatus.PENDING:
        return _reject(order, validation_error("Order has no pending refund"))

    pending = pending_refund_amount(refund)
    event = RefundEvent(status=result, amount=pending, timestamp=at or utc_now(), note=note)
    history = tuple(refund.refund_history) + (event,)
    terms = order.payment_terms

    if result == RefundStatus.PROCESSED:
        settled = replace(refund, refund_status=result, refund_history=history)
    else:
        settled = RefundRecord(
            refund_amount=floor_zero(refund.refund_amount - pending),
            refund_status=result,
            refund_history=history,
        )
        if terms.payment_status == PaymentStatus.REFUNDED:
            terms = replace(terms, payment_status=PaymentStatus.PAID)

    logger.info("Order %s refund of %s %s", order.order_id, pending, result.value)
    return Ok(replace(order, refund=settled, payment_terms=terms))


# ---------------------------------------------------------------------------
# Shipping
# ---------------------------------------------------------------------------


def update_shipping_charge(order: Order, amount: Any) -> Outcome[Order]:
    """Propose a new shipping charge (POS orders are priced after placement)."""
    shipping = _parse_amount(amount)
    if shipping is None or shipping < ZERO:
        return _reject(order, validation_error("Shipping charge must be a non-negative amount"))
    if order.status in TERMINAL_STATUSES:
        return _reject(
            order,
            invalid_transition(f"Cannot change shipping on a {order.status.value} order"),
        )

    proposed = replace(order, shipping_charge=shipping)
    breakdown = compute_breakdown(proposed)
    if breakdown.grand_total < breakdown.already_refunded:
        return _reject(
            order,
            validation_error("Shipping change would drop the total below the amount refunded"),
        )

    logger.info(
        "Order %s shipping charge %s -> %s", order.order_id, order.shipping_charge, shipping
    )
    return Ok(proposed)
