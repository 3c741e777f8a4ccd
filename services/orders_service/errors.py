"""Result values for order commands.

Business-rule violations are returned as ``OrderError`` values, never raised.
Callers branch with ``isinstance(outcome, OrderError)`` and map the kind to a
user-facing message or HTTP status.
"""

import enum
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    VALIDATION_ERROR = "validation_error"
    INVALID_TRANSITION = "invalid_transition"
    REFUND_NOT_ELIGIBLE = "refund_not_eligible"
    PERSISTENCE_ERROR = "persistence_error"


class RefundIneligibility(str, enum.Enum):
    WRONG_METHOD = "wrong_method"
    MISSING_PAYMENT_REFERENCE = "missing_payment_reference"
    ALREADY_REFUNDED = "already_refunded"
    NO_BALANCE = "no_balance"
    AMOUNT_OUT_OF_BOUNDS = "amount_out_of_bounds"


@dataclass(frozen=True)
class OrderError:
    kind: ErrorKind
    message: str
    reason: Optional[RefundIneligibility] = None


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


Outcome = Union[Ok[T], OrderError]


def validation_error(message: str) -> OrderError:
    return OrderError(ErrorKind.VALIDATION_ERROR, message)


def invalid_transition(message: str) -> OrderError:
    return OrderError(ErrorKind.INVALID_TRANSITION, message)


def refund_not_eligible(reason: RefundIneligibility, message: str) -> OrderError:
    return OrderError(ErrorKind.REFUND_NOT_ELIGIBLE, message, reason)


def persistence_error(message: str) -> OrderError:
    return OrderError(ErrorKind.PERSISTENCE_ERROR, message)
