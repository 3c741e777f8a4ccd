"""Orders Service models package."""

from services.orders_service.models.enums import (
    Actor,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    RefundStatus,
)
from services.orders_service.models.order import (
    CouponApplication,
    Order,
    OrderLineItem,
    PaymentTerms,
    RefundEvent,
    RefundRecord,
    StatusHistoryEntry,
    TrackingInfo,
)
from services.orders_service.models.refs import (
    Expanded,
    IdRef,
    ProductSummary,
    Ref,
    expanded_value,
    resolve_ref_id,
)

__all__ = [
    "Actor",
    "CouponApplication",
    "Expanded",
    "IdRef",
    "Order",
    "OrderLineItem",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "PaymentTerms",
    "ProductSummary",
    "Ref",
    "RefundEvent",
    "RefundRecord",
    "RefundStatus",
    "StatusHistoryEntry",
    "TrackingInfo",
    "expanded_value",
    "resolve_ref_id",
]
