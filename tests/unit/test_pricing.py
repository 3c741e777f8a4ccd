"""Unit tests for the order pricing breakdown.

Pure computation, no HTTP layer and no orders API involved.
"""

from dataclasses import fields
from decimal import Decimal

import pytest
from services.orders_service.models import (
    CouponApplication,
    PaymentMethod,
    PaymentStatus,
    PaymentTerms,
    RefundRecord,
)
from services.orders_service.pricing import PricingBreakdown, compute_breakdown
from tests.factories import D, LineItemFactory, OrderFactory

pytestmark = pytest.mark.unit


def _cod(fee=0):
    return PaymentTerms(method=PaymentMethod.COD, cod_fee=D(fee))


def _prepaid(discount=0):
    return PaymentTerms(
        method=PaymentMethod.PREPAID,
        prepaid_discount=D(discount),
        payment_status=PaymentStatus.PAID,
        payment_reference="pay_1",
    )


class TestComputeBreakdownScenarios:
    """Worked examples the dashboard screens rely on."""

    def test_no_discounts_with_cod_fee_and_shipping(self):
        order = OrderFactory.create(
            line_items=(LineItemFactory.create(unit_price=D(100), quantity=2),),
            payment_terms=_cod(fee=20),
            shipping_charge=D(50),
        )

        breakdown = compute_breakdown(order)

        assert breakdown.gross_subtotal == D(200)
        assert breakdown.product_discount_total == D(0)
        assert breakdown.coupon_discount == D(0)
        assert breakdown.cod_fee == D(20)
        assert breakdown.prepaid_discount == D(0)
        assert breakdown.shipping_charge == D(50)
        assert breakdown.grand_total == D(270)
        assert breakdown.total_savings == D(0)

    def test_full_discount_stack_on_prepaid_order(self):
        order = OrderFactory.create(
            line_items=(
                LineItemFactory.create(unit_price=D(100), unit_discount=D(10), quantity=3),
            ),
            coupon=CouponApplication(coupon_id="c1", discount_amount=D(20)),
            payment_terms=_prepaid(discount=15),
            shipping_charge=D(0),
        )

        breakdown = compute_breakdown(order)

        assert breakdown.gross_subtotal == D(300)
        assert breakdown.product_discount_total == D(30)
        assert breakdown.post_product_discount_subtotal == D(270)
        assert breakdown.after_coupon == D(250)
        assert breakdown.after_payment == D(235)
        assert breakdown.grand_total == D(235)
        assert breakdown.total_savings == D(65)

    def test_refund_balance(self):
        order = OrderFactory.prepaid(grand_total=500, refunded=200)

        breakdown = compute_breakdown(order)

        assert breakdown.grand_total == D(500)
        assert breakdown.already_refunded == D(200)
        assert breakdown.max_refundable == D(300)

    def test_multiple_lines_sum(self):
        order = OrderFactory.create(
            line_items=(
                LineItemFactory.create(unit_price=D("49.50"), quantity=2),
                LineItemFactory.create(unit_price=D(250), unit_discount=D(25), quantity=1),
            ),
        )

        breakdown = compute_breakdown(order)

        assert breakdown.gross_subtotal == D(349)
        assert breakdown.product_discount_total == D(25)
        assert breakdown.post_product_discount_subtotal == D(324)
        assert breakdown.grand_total == D(324)


class TestPaymentMethodAdjustments:
    def test_cod_fee_not_counted_as_saving(self):
        order = OrderFactory.create(payment_terms=_cod(fee=40))

        breakdown = compute_breakdown(order)

        assert breakdown.total_savings == D(0)
        assert breakdown.payment_adjustment == D(40)

    def test_prepaid_discount_ignored_on_cod_orders(self):
        terms = PaymentTerms(method=PaymentMethod.COD, prepaid_discount=D(15), cod_fee=D(0))
        order = OrderFactory.create(payment_terms=terms)

        breakdown = compute_breakdown(order)

        assert breakdown.prepaid_discount == D(0)
        assert breakdown.grand_total == D(100)

    def test_cod_fee_ignored_on_prepaid_orders(self):
        terms = PaymentTerms(method=PaymentMethod.PREPAID, prepaid_discount=D(0), cod_fee=D(30))
        order = OrderFactory.create(payment_terms=terms)

        breakdown = compute_breakdown(order)

        assert breakdown.cod_fee == D(0)
        assert breakdown.grand_total == D(100)


class TestDefensiveFloors:
    def test_coupon_larger_than_subtotal_floors_at_zero(self):
        order = OrderFactory.create(
            coupon=CouponApplication(coupon_id="big", discount_amount=D(150)),
            shipping_charge=D(40),
        )

        breakdown = compute_breakdown(order)

        assert breakdown.after_coupon == D(0)
        assert breakdown.coupon_discount == D(100)
        assert breakdown.grand_total == D(40)

    def test_prepaid_discount_larger_than_remaining_floors_at_zero(self):
        order = OrderFactory.create(payment_terms=_prepaid(discount=500))

        breakdown = compute_breakdown(order)

        assert breakdown.after_payment == D(0)
        assert breakdown.prepaid_discount == D(100)

    def test_unit_discount_above_price_is_capped(self):
        order = OrderFactory.create(
            line_items=(LineItemFactory.create(unit_price=D(80), unit_discount=D(100), quantity=2),),
        )

        breakdown = compute_breakdown(order)

        assert breakdown.post_product_discount_subtotal == D(0)
        assert breakdown.product_discount_total == D(160)

    def test_over_refunded_order_has_no_balance(self):
        order = OrderFactory.prepaid(grand_total=100, refunded=150)

        assert compute_breakdown(order).max_refundable == D(0)


class TestPermissiveInputs:
    def test_missing_numbers_count_as_zero(self):
        order = OrderFactory.create(
            line_items=(
                LineItemFactory.create(unit_price=None, unit_discount=None, quantity=None),
            ),
            coupon=CouponApplication(coupon_id=None, discount_amount=None),
            payment_terms=PaymentTerms(
                method=PaymentMethod.COD, prepaid_discount=None, cod_fee=None
            ),
            shipping_charge=None,
            refund=RefundRecord(refund_amount=None),
        )

        breakdown = compute_breakdown(order)

        assert breakdown.grand_total == D(0)
        assert breakdown.max_refundable == D(0)

    def test_missing_quantity_counts_as_one(self):
        order = OrderFactory.create(
            line_items=(LineItemFactory.create(unit_price=D(60), quantity=None),),
        )

        assert compute_breakdown(order).gross_subtotal == D(60)

    def test_order_without_lines(self):
        order = OrderFactory.create(line_items=(), shipping_charge=D(50))

        breakdown = compute_breakdown(order)

        assert breakdown.gross_subtotal == D(0)
        assert breakdown.grand_total == D(50)

    def test_numeric_strings_and_floats_accepted(self):
        order = OrderFactory.create(
            line_items=(LineItemFactory.create(unit_price="99.90", unit_discount=0.1, quantity=1),),
            shipping_charge="10",
        )

        breakdown = compute_breakdown(order)

        assert breakdown.post_product_discount_subtotal == D("99.80")
        assert breakdown.grand_total == D("109.80")

    def test_huge_magnitudes_treated_as_zero(self):
        order = OrderFactory.create(
            line_items=(
                LineItemFactory.create(unit_price=Decimal("9e999999"), quantity=10),
                LineItemFactory.create(unit_price=D(100), quantity=1),
            ),
            shipping_charge=Decimal("1e999999"),
        )

        breakdown = compute_breakdown(order)

        assert breakdown.gross_subtotal == D(100)
        assert breakdown.grand_total == D(100)


class TestBreakdownProperties:
    ORDERS = [
        OrderFactory.create(payment_terms=_cod(fee=20), shipping_charge=D(50)),
        OrderFactory.create(
            line_items=(
                LineItemFactory.create(unit_price=D(100), unit_discount=D(10), quantity=3),
                LineItemFactory.create(unit_price=D("12.75"), quantity=4),
            ),
            coupon=CouponApplication(coupon_id="c", discount_amount=D(20)),
            payment_terms=_prepaid(discount=15),
            shipping_charge=D(35),
        ),
        OrderFactory.prepaid(grand_total=500, refunded=200),
    ]

    @pytest.mark.parametrize("order", ORDERS)
    def test_idempotent(self, order):
        assert compute_breakdown(order) == compute_breakdown(order)

    @pytest.mark.parametrize("order", ORDERS)
    def test_all_fields_non_negative(self, order):
        breakdown = compute_breakdown(order)
        for f in fields(PricingBreakdown):
            assert getattr(breakdown, f.name) >= Decimal("0"), f.name

    @pytest.mark.parametrize("order", ORDERS)
    def test_conservation(self, order):
        b = compute_breakdown(order)
        assert b.gross_subtotal - b.product_discount_total == b.post_product_discount_subtotal
        assert b.grand_total == (
            b.post_product_discount_subtotal
            - b.coupon_discount
            + b.payment_adjustment
            + b.shipping_charge
        )

    def test_input_order_not_modified(self):
        order = OrderFactory.prepaid(grand_total=500, refunded=200)
        snapshot = repr(order)

        compute_breakdown(order)

        assert repr(order) == snapshot
