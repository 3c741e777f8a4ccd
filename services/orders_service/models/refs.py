"""References that arrive either as a bare id or as an expanded document.

The orders API populates some relations (``productId``, ``categoryId``) and
leaves others as plain ids, so one field can carry either shape.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class IdRef:
    """Unexpanded reference."""

    id: str


@dataclass(frozen=True)
class Expanded(Generic[T]):
    """Populated reference carrying the related document."""

    id: str
    value: T


Ref = Union[IdRef, Expanded[T]]


@dataclass(frozen=True)
class ProductSummary:
    """The slice of a product the order screens show."""

    id: str
    name: Optional[str] = None
    images: tuple[str, ...] = field(default_factory=tuple)


def resolve_ref_id(ref: Optional["Ref[Any]"]) -> Optional[str]:
    """Return the referenced id whichever shape the reference has."""
    if ref is None:
        return None
    return ref.id


def expanded_value(ref: Optional["Ref[T]"]) -> Optional[T]:
    """Return the expanded document, or None for bare ids."""
    if isinstance(ref, Expanded):
        return ref.value
    return None
