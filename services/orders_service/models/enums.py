"""Enum definitions for orders service models."""

import enum


class OrderStatus(str, enum.Enum):
    PLACED = "placed"
    ACCEPTED = "accepted"
    INPROGRESS = "inprogress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DELIVERED = "delivered"


class PaymentStatus(str, enum.Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    REFUNDED = "refunded"


class PaymentMethod(str, enum.Enum):
    PREPAID = "prepaid"
    COD = "cod"


class RefundStatus(str, enum.Enum):
    NONE = "none"
    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"


class Actor(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"
