"""Order monetary breakdown.

The one place order totals are computed. Every screen (order list, POS
orders, order detail, dashboard revenue) reads its figures from
``compute_breakdown`` so they cannot drift apart.

Steps run in a fixed order:

1. line totals: ``max(0, unit_price - unit_discount) * quantity``
2. product discount: ``Σ unit_discount * quantity``
3. coupon: subtracted once, floored at zero
4. payment method: prepaid discount subtracted (floored), or COD fee added
5. shipping added
6. savings: product discount + coupon + prepaid discount (COD fee is not a saving)
7. refundable balance: grand total minus what was already refunded

Missing numbers are treated as zero (a missing quantity as one), so partial
order payloads yield a breakdown instead of an exception.
"""

from dataclasses import dataclass
from decimal import Decimal

from libs.common.currency import ZERO, floor_zero, to_amount
from services.orders_service.models import (
    Order,
    OrderLineItem,
    PaymentMethod,
)


@dataclass(frozen=True)
class LineBreakdown:
    gross_total: Decimal
    discount_total: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class PricingBreakdown:
    gross_subtotal: Decimal
    product_discount_total: Decimal
    post_product_discount_subtotal: Decimal
    coupon_discount: Decimal
    after_coupon: Decimal
    prepaid_discount: Decimal
    cod_fee: Decimal
    after_payment: Decimal
    shipping_charge: Decimal
    grand_total: Decimal
    total_savings: Decimal
    already_refunded: Decimal
    max_refundable: Decimal

    @property
    def payment_adjustment(self) -> Decimal:
        """Signed effect of the payment method on the total."""
        return self.cod_fee - self.prepaid_discount


def line_quantity(item: OrderLineItem) -> int:
    # Absent or non-positive quantities count as one unit
    try:
        quantity = int(item.quantity) if item.quantity is not None else 1
    except (TypeError, ValueError):
        return 1
    return quantity if quantity > 0 else 1


def compute_line(item: OrderLineItem) -> LineBreakdown:
    unit_price = floor_zero(to_amount(item.unit_price))
    unit_discount = min(floor_zero(to_amount(item.unit_discount)), unit_price)
    quantity = line_quantity(item)

    return LineBreakdown(
        gross_total=unit_price * quantity,
        discount_total=unit_discount * quantity,
        line_total=(unit_price - unit_discount) * quantity,
    )


def compute_breakdown(order: Order) -> PricingBreakdown:
    """Compute every displayed and persisted money figure for ``order``.

    Pure: reads ``order`` only and returns a new value.
    """
    lines = [compute_line(item) for item in order.line_items or ()]
    gross_subtotal = sum((line.gross_total for line in lines), ZERO)
    product_discount_total = sum((line.discount_total for line in lines), ZERO)
    post_product_discount_subtotal = sum((line.line_total for line in lines), ZERO)

    requested_coupon = (
        floor_zero(to_amount(order.coupon.discount_amount)) if order.coupon else ZERO
    )
    coupon_discount = min(requested_coupon, post_product_discount_subtotal)
    after_coupon = post_product_discount_subtotal - coupon_discount

    terms = order.payment_terms
    prepaid_discount = ZERO
    cod_fee = ZERO
    if terms is not None and terms.method == PaymentMethod.PREPAID:
        prepaid_discount = min(floor_zero(to_amount(terms.prepaid_discount)), after_coupon)
        after_payment = after_coupon - prepaid_discount
    elif terms is not None and terms.method == PaymentMethod.COD:
        cod_fee = floor_zero(to_amount(terms.cod_fee))
        after_payment = after_coupon + cod_fee
    else:
        after_payment = after_coupon

    shipping_charge = floor_zero(to_amount(order.shipping_charge))
    grand_total = after_payment + shipping_charge

    total_savings = product_discount_total + coupon_discount + prepaid_discount

    already_refunded = refunded_amount(order)
    max_refundable = floor_zero(grand_total - already_refunded)

    return PricingBreakdown(
        gross_subtotal=gross_subtotal,
        product_discount_total=product_discount_total,
        post_product_discount_subtotal=post_product_discount_subtotal,
        coupon_discount=coupon_discount,
        after_coupon=after_coupon,
        prepaid_discount=prepaid_discount,
        cod_fee=cod_fee,
        after_payment=after_payment,
        shipping_charge=shipping_charge,
        grand_total=grand_total,
        total_savings=total_savings,
        already_refunded=already_refunded,
        max_refundable=max_refundable,
    )


def refunded_amount(order: Order) -> Decimal:
    refund = order.refund
    if refund is None:
        return ZERO
    return floor_zero(to_amount(refund.refund_amount))


def grand_total(order: Order) -> Decimal:
    """Shortcut for callers that only need the final figure."""
    return compute_breakdown(order).grand_total
