"""Order aggregate and its value objects.

Everything here is immutable. Lifecycle operations build new ``Order``
values with ``dataclasses.replace`` so callers can persist first and adopt
the result only once the orders API has confirmed the write.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from services.orders_service.models.enums import (
    Actor,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    RefundStatus,
)
from services.orders_service.models.refs import ProductSummary, Ref

ZERO = Decimal("0")


@dataclass(frozen=True)
class OrderLineItem:
    """One product line within an order."""

    product: Optional[Ref[ProductSummary]]
    unit_price: Optional[Decimal] = ZERO
    unit_discount: Optional[Decimal] = ZERO
    quantity: Optional[int] = 1
    weight_variant: Optional[str] = None
    weight: Optional[str] = None


@dataclass(frozen=True)
class CouponApplication:
    coupon_id: Optional[str]
    discount_amount: Optional[Decimal] = ZERO
    discount_percentage_label: Optional[str] = None


@dataclass(frozen=True)
class PaymentTerms:
    method: PaymentMethod
    prepaid_discount: Optional[Decimal] = ZERO
    cod_fee: Optional[Decimal] = ZERO
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    # Gateway payment id; refunds are impossible without it.
    payment_reference: Optional[str] = None


@dataclass(frozen=True)
class RefundEvent:
    status: RefundStatus
    amount: Decimal
    timestamp: datetime
    note: Optional[str] = None


@dataclass(frozen=True)
class RefundRecord:
    refund_amount: Decimal = ZERO
    refund_status: RefundStatus = RefundStatus.NONE
    refund_history: tuple[RefundEvent, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class TrackingInfo:
    tracking_link: Optional[str] = None
    tracking_number: Optional[str] = None
    courier_name: Optional[str] = None
    custom_message: Optional[str] = None

    def is_empty(self) -> bool:
        return not any(
            (self.tracking_link, self.tracking_number, self.courier_name, self.custom_message)
        )


@dataclass(frozen=True)
class StatusHistoryEntry:
    status: OrderStatus
    timestamp: datetime
    actor: Actor = Actor.ADMIN
    note: Optional[str] = None
    tracking: Optional[TrackingInfo] = None


@dataclass(frozen=True)
class Order:
    """Aggregate root. Owns its lines, coupon, payment terms and history logs."""

    order_id: str
    line_items: tuple[OrderLineItem, ...] = field(default_factory=tuple)
    payment_terms: PaymentTerms = field(
        default_factory=lambda: PaymentTerms(method=PaymentMethod.COD)
    )
    coupon: Optional[CouponApplication] = None
    shipping_charge: Optional[Decimal] = ZERO
    status: OrderStatus = OrderStatus.PLACED
    status_history: tuple[StatusHistoryEntry, ...] = field(default_factory=tuple)
    cancel_reason: Optional[str] = None
    refund: Optional[RefundRecord] = None
    created_at: Optional[datetime] = None

    @property
    def payment_status(self) -> PaymentStatus:
        return self.payment_terms.payment_status

    @property
    def is_cancelled(self) -> bool:
        return self.status == OrderStatus.CANCELLED
