"""Pydantic schemas for orders service.

``*Document`` models mirror the camelCase JSON the orders API returns and
convert into the immutable domain models. Request/response models define
the admin HTTP surface.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional, Union

from libs.common.currency import to_amount
from pydantic import BaseModel, ConfigDict, Field, field_validator
from services.orders_service.models import (
    Actor,
    CouponApplication,
    Expanded,
    IdRef,
    Order,
    OrderLineItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    PaymentTerms,
    ProductSummary,
    RefundEvent,
    RefundRecord,
    RefundStatus,
    StatusHistoryEntry,
    TrackingInfo,
)


EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def _lower(value: Any) -> Any:
    return value.strip().lower() if isinstance(value, str) else value


# ============================================================================
# ORDERS API DOCUMENTS
# ============================================================================


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ProductDocument(_Document):
    id: str = Field(..., alias="_id")
    name: Optional[str] = None
    images: list[str] = Field(default_factory=list)


class LineItemDocument(_Document):
    product_id: Union[ProductDocument, str, None] = Field(None, alias="productId")
    weight_variant: Optional[str] = Field(None, alias="weightVariant")
    weight: Optional[str] = None
    price_per_unit: Any = Field(None, alias="pricePerUnit")
    discount: Any = None
    total_unit: Any = Field(None, alias="totalUnit")

    def to_domain(self) -> OrderLineItem:
        if isinstance(self.product_id, ProductDocument):
            product = Expanded(
                id=self.product_id.id,
                value=ProductSummary(
                    id=self.product_id.id,
                    name=self.product_id.name,
                    images=tuple(self.product_id.images),
                ),
            )
        elif self.product_id:
            product = IdRef(self.product_id)
        else:
            product = None

        quantity = to_amount(self.total_unit)
        return OrderLineItem(
            product=product,
            unit_price=to_amount(self.price_per_unit),
            unit_discount=to_amount(self.discount),
            quantity=int(quantity) if quantity > 0 else 1,
            weight_variant=self.weight_variant,
            weight=self.weight,
        )


class CouponDocument(_Document):
    coupon_id: Optional[str] = Field(None, alias="couponId")
    discount_amount: Any = Field(None, alias="discountAmount")
    discount_percentage: Optional[str] = Field(None, alias="discountPercentage")

    @field_validator("coupon_id", "discount_percentage", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> Any:
        return str(v) if isinstance(v, (int, float)) else v

    def to_domain(self) -> CouponApplication:
        return CouponApplication(
            coupon_id=self.coupon_id,
            discount_amount=to_amount(self.discount_amount),
            discount_percentage_label=self.discount_percentage,
        )


class TrackingDocument(_Document):
    tracking_link: Optional[str] = Field(None, alias="trackingLink")
    tracking_number: Optional[str] = Field(None, alias="trackingNumber")
    courier_name: Optional[str] = Field(None, alias="courierName")
    custom_message: Optional[str] = Field(None, alias="customMessage")

    @field_validator("tracking_number", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v


class StatusHistoryDocument(_Document):
    status: OrderStatus
    note: Optional[str] = None
    tracking_info: Optional[TrackingDocument] = Field(None, alias="trackingInfo")
    timestamp: Optional[datetime] = None
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")
    actor: Actor = Field(Actor.ADMIN, alias="updatedBy")

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        return _lower(v)

    @field_validator("actor", mode="before")
    @classmethod
    def normalize_actor(cls, v: Any) -> Any:
        # Older documents store the acting user id here
        v = _lower(v)
        return v if v in (Actor.USER.value, Actor.ADMIN.value) else Actor.ADMIN

    def to_domain(self, fallback: datetime) -> StatusHistoryEntry:
        tracking = None
        if self.tracking_info is not None:
            tracking = TrackingInfo(**self.tracking_info.model_dump())
            if tracking.is_empty():
                tracking = None
        return StatusHistoryEntry(
            status=self.status,
            timestamp=self.timestamp or self.updated_at or fallback,
            actor=self.actor,
            note=self.note,
            tracking=tracking,
        )


class RefundEventDocument(_Document):
    status: RefundStatus
    amount: Any = None
    timestamp: Optional[datetime] = None
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    note: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        return _lower(v)

    def to_domain(self, fallback: datetime) -> RefundEvent:
        return RefundEvent(
            status=self.status,
            amount=to_amount(self.amount),
            timestamp=self.timestamp or self.created_at or fallback,
            note=self.note,
        )


class RefundDocument(_Document):
    refund_amount: Any = Field(None, alias="refundAmount")
    refund_status: RefundStatus = Field(RefundStatus.NONE, alias="refundStatus")
    refund_history: list[RefundEventDocument] = Field(
        default_factory=list, alias="refundHistory"
    )

    @field_validator("refund_status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        return _lower(v) or RefundStatus.NONE

    def to_domain(self, fallback: datetime) -> RefundRecord:
        return RefundRecord(
            refund_amount=to_amount(self.refund_amount),
            refund_status=self.refund_status,
            refund_history=tuple(e.to_domain(fallback) for e in self.refund_history),
        )


class CancelDetailsDocument(_Document):
    reason: Optional[str] = None


class OrderDocument(_Document):
    """An order as the orders API serialises it."""

    id: str = Field(..., alias="_id")
    products_details: list[LineItemDocument] = Field(
        default_factory=list, alias="productsDetails"
    )
    apply_coupon: Optional[CouponDocument] = Field(None, alias="applyCoupon")
    payment_method: PaymentMethod = Field(PaymentMethod.COD, alias="paymentMethod")
    prepaid_discount: Any = Field(None, alias="prepaidDiscount")
    cod_fee: Any = Field(None, alias="codFee")
    payment_status: PaymentStatus = Field(PaymentStatus.UNPAID, alias="paymentStatus")
    razorpay_payment_id: Optional[str] = Field(None, alias="razorpayPaymentId")
    shipping_charge: Any = Field(None, alias="shippingCharge")
    status: OrderStatus = OrderStatus.PLACED
    status_history: list[StatusHistoryDocument] = Field(
        default_factory=list, alias="statusHistory"
    )
    cancel_details: Optional[CancelDetailsDocument] = Field(None, alias="cancelDetails")
    refund: Optional[RefundDocument] = None
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    @field_validator("payment_method", mode="before")
    @classmethod
    def normalize_method(cls, v: Any) -> Any:
        return _lower(v) or PaymentMethod.COD

    @field_validator("payment_status", mode="before")
    @classmethod
    def normalize_payment_status(cls, v: Any) -> Any:
        return _lower(v) or PaymentStatus.UNPAID

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        return _lower(v) or OrderStatus.PLACED

    @field_validator("products_details", "status_history", mode="before")
    @classmethod
    def none_to_list(cls, v: Any) -> Any:
        return v or []

    def to_domain(self) -> Order:
        fallback = self.created_at or EPOCH
        coupon = self.apply_coupon.to_domain() if self.apply_coupon else None
        cancel_reason = self.cancel_details.reason if self.cancel_details else None
        return Order(
            order_id=self.id,
            line_items=tuple(item.to_domain() for item in self.products_details),
            coupon=coupon,
            payment_terms=PaymentTerms(
                method=self.payment_method,
                prepaid_discount=to_amount(self.prepaid_discount),
                cod_fee=to_amount(self.cod_fee),
                payment_status=self.payment_status,
                payment_reference=self.razorpay_payment_id or None,
            ),
            shipping_charge=to_amount(self.shipping_charge),
            status=self.status,
            status_history=tuple(h.to_domain(fallback) for h in self.status_history),
            cancel_reason=cancel_reason if self.status == OrderStatus.CANCELLED else None,
            refund=self.refund.to_domain(fallback) if self.refund else None,
            created_at=self.created_at,
        )


# ============================================================================
# ADMIN REQUESTS
# ============================================================================


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    cancel_reason: Optional[str] = None
    note: Optional[str] = None
    tracking_link: Optional[str] = None
    tracking_number: Optional[str] = None
    courier_name: Optional[str] = None
    custom_message: Optional[str] = None


class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus


class RefundCreate(BaseModel):
    amount: Decimal
    reason: Optional[str] = None


class RefundSettle(BaseModel):
    outcome: RefundStatus
    note: Optional[str] = None


class ShippingChargeUpdate(BaseModel):
    shipping_charge: Decimal


# ============================================================================
# ADMIN RESPONSES
# ============================================================================


class PricingBreakdownResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

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


class TrackingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tracking_link: Optional[str] = None
    tracking_number: Optional[str] = None
    courier_name: Optional[str] = None
    custom_message: Optional[str] = None


class StatusHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: OrderStatus
    timestamp: datetime
    actor: Actor
    note: Optional[str] = None
    tracking: Optional[TrackingResponse] = None


class RefundEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: RefundStatus
    amount: Decimal
    timestamp: datetime
    note: Optional[str] = None


class RefundResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    refund_amount: Decimal
    refund_status: RefundStatus
    refund_history: list[RefundEventResponse] = []


class LineItemResponse(BaseModel):
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    unit_price: Decimal
    unit_discount: Decimal
    quantity: int
    line_total: Decimal
    weight_variant: Optional[str] = None


class OrderResponse(BaseModel):
    id: str
    status: OrderStatus
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    cancel_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    coupon_label: Optional[str] = None
    items: list[LineItemResponse]
    breakdown: PricingBreakdownResponse
    allowed_transitions: list[OrderStatus]
    refundable: bool
    refund_block_reason: Optional[str] = None
    refund: Optional[RefundResponse] = None
    status_history: list[StatusHistoryResponse] = []


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    total: int
    page: Optional[int] = None
    page_size: Optional[int] = None


class SeriesBucketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    label: str
    total: Decimal
    non_cancelled: Decimal
    cancelled: Decimal
    paid: Decimal
    unpaid: Decimal
    non_cancelled_paid: Decimal
    non_cancelled_unpaid: Decimal
    cancelled_paid: Decimal
    cancelled_unpaid: Decimal


class RevenueResponse(BaseModel):
    non_cancelled: Decimal
    cancelled: Decimal
    total: Decimal
    non_cancelled_paid: Decimal
    cancelled_paid: Decimal
    total_paid: Decimal
    non_cancelled_unpaid: Decimal
    cancelled_unpaid: Decimal
    total_unpaid: Decimal
    series: list[SeriesBucketResponse]
