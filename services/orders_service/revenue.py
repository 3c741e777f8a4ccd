"""Dashboard revenue aggregation.

Totals per order always come from ``compute_breakdown`` so the dashboard
cards agree with the order detail view.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from libs.common.config import get_settings
from libs.common.currency import ZERO
from libs.common.datetime_utils import ensure_aware, to_local, utc_now
from services.orders_service.models import Order, PaymentStatus
from services.orders_service.pricing import compute_breakdown


@dataclass(frozen=True)
class DateRange:
    """Inclusive creation-time window; either bound may be open."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @property
    def is_bounded(self) -> bool:
        return self.start is not None or self.end is not None

    def contains(self, moment: Optional[datetime]) -> bool:
        if not self.is_bounded:
            return True
        if moment is None:
            return False
        moment = ensure_aware(moment)
        if self.start is not None and moment < ensure_aware(self.start):
            return False
        if self.end is not None and moment > ensure_aware(self.end):
            return False
        return True


@dataclass(frozen=True)
class RevenueBreakdown:
    non_cancelled: Decimal
    cancelled: Decimal
    total: Decimal


@dataclass(frozen=True)
class PaidBreakdown:
    cancelled_paid: Decimal
    non_cancelled_paid: Decimal
    total_paid: Decimal


@dataclass(frozen=True)
class UnpaidBreakdown:
    cancelled_unpaid: Decimal
    non_cancelled_unpaid: Decimal
    total_unpaid: Decimal


@dataclass
class SeriesBucket:
    label: str
    total: Decimal = ZERO
    non_cancelled: Decimal = ZERO
    cancelled: Decimal = ZERO
    paid: Decimal = ZERO
    unpaid: Decimal = ZERO
    non_cancelled_paid: Decimal = ZERO
    non_cancelled_unpaid: Decimal = ZERO
    cancelled_paid: Decimal = ZERO
    cancelled_unpaid: Decimal = ZERO

    def add(self, amount: Decimal, *, cancelled: bool, paid: bool) -> None:
        self.total += amount
        if cancelled:
            self.cancelled += amount
            if paid:
                self.cancelled_paid += amount
            else:
                self.cancelled_unpaid += amount
        else:
            self.non_cancelled += amount
            if paid:
                self.non_cancelled_paid += amount
            else:
                self.non_cancelled_unpaid += amount
        if paid:
            self.paid += amount
        else:
            self.unpaid += amount


@dataclass(frozen=True)
class RevenueSummary:
    revenue: RevenueBreakdown
    paid: PaidBreakdown
    unpaid: UnpaidBreakdown
    series: list[SeriesBucket] = field(default_factory=list)


def _in_range(orders: Iterable[Order], date_range: Optional[DateRange]) -> list[Order]:
    date_range = date_range or DateRange()
    return [o for o in orders if date_range.contains(o.created_at)]


def _sum_totals(orders: Iterable[Order]) -> Decimal:
    return sum((compute_breakdown(o).grand_total for o in orders), ZERO)


def _is_paid(order: Order) -> bool:
    return order.payment_status == PaymentStatus.PAID


def revenue_breakdown(
    orders: Iterable[Order], date_range: Optional[DateRange] = None
) -> RevenueBreakdown:
    selected = _in_range(orders, date_range)
    cancelled = _sum_totals(o for o in selected if o.is_cancelled)
    non_cancelled = _sum_totals(o for o in selected if not o.is_cancelled)
    return RevenueBreakdown(
        non_cancelled=non_cancelled, cancelled=cancelled, total=non_cancelled + cancelled
    )


def paid_breakdown(
    orders: Iterable[Order], date_range: Optional[DateRange] = None
) -> PaidBreakdown:
    paid = [o for o in _in_range(orders, date_range) if _is_paid(o)]
    cancelled = _sum_totals(o for o in paid if o.is_cancelled)
    non_cancelled = _sum_totals(o for o in paid if not o.is_cancelled)
    return PaidBreakdown(
        cancelled_paid=cancelled,
        non_cancelled_paid=non_cancelled,
        total_paid=cancelled + non_cancelled,
    )


def unpaid_breakdown(
    orders: Iterable[Order], date_range: Optional[DateRange] = None
) -> UnpaidBreakdown:
    """Everything not marked paid, refunded orders included."""
    unpaid = [o for o in _in_range(orders, date_range) if not _is_paid(o)]
    cancelled = _sum_totals(o for o in unpaid if o.is_cancelled)
    non_cancelled = _sum_totals(o for o in unpaid if not o.is_cancelled)
    return UnpaidBreakdown(
        cancelled_unpaid=cancelled,
        non_cancelled_unpaid=non_cancelled,
        total_unpaid=cancelled + non_cancelled,
    )


# ---------------------------------------------------------------------------
# Overview chart series
# ---------------------------------------------------------------------------


def _day_label(day: date) -> str:
    return day.strftime("%d/%m/%y")


def _month_label(day: date) -> str:
    return day.strftime("%b '%y")


def _month_start(day: date) -> date:
    return day.replace(day=1)


def _next_month(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


def uses_daily_buckets(date_range: Optional[DateRange]) -> bool:
    if date_range is None or date_range.start is None or date_range.end is None:
        return False
    span = abs(ensure_aware(date_range.end) - ensure_aware(date_range.start))
    return span <= timedelta(days=get_settings().DAILY_SERIES_MAX_DAYS)


def _bucket_days(date_range: Optional[DateRange], daily: bool, today: date) -> list[date]:
    """Every bucket key the chart should show, including empty ones."""
    start = to_local(date_range.start).date() if date_range and date_range.start else None
    end = to_local(date_range.end).date() if date_range and date_range.end else None
    # Inverted bounds still describe a span
    if start and end and start > end:
        start, end = end, start

    if daily:
        return [start + timedelta(days=n) for n in range((end - start).days + 1)]

    last = _month_start(end or today)
    if start is not None:
        first = _month_start(start)
    else:
        # Open start: the twelve months ending at the end bound (or today)
        first = last
        for _ in range(11):
            first = _month_start(first - timedelta(days=1))

    months = []
    cursor = first
    while cursor <= last:
        months.append(cursor)
        cursor = _next_month(cursor)
    return months


def overview_series(
    orders: Iterable[Order],
    date_range: Optional[DateRange] = None,
    *,
    today: Optional[date] = None,
) -> list[SeriesBucket]:
    """Revenue per day (bounded ranges up to 92 days) or per month, oldest first."""
    daily = uses_daily_buckets(date_range)
    label_for = _day_label if daily else _month_label
    today = today or to_local(utc_now()).date()

    buckets: dict[date, SeriesBucket] = {}
    for key in _bucket_days(date_range, daily, today):
        buckets[key] = SeriesBucket(label=label_for(key))

    for order in _in_range(orders, date_range):
        if order.created_at is None:
            continue
        local_day = to_local(order.created_at).date()
        key = local_day if daily else _month_start(local_day)
        bucket = buckets.setdefault(key, SeriesBucket(label=label_for(key)))
        bucket.add(
            compute_breakdown(order).grand_total,
            cancelled=order.is_cancelled,
            paid=_is_paid(order),
        )

    return [buckets[key] for key in sorted(buckets)]


def summarize(
    orders: Iterable[Order],
    date_range: Optional[DateRange] = None,
    *,
    today: Optional[date] = None,
) -> RevenueSummary:
    orders = list(orders)
    return RevenueSummary(
        revenue=revenue_breakdown(orders, date_range),
        paid=paid_breakdown(orders, date_range),
        unpaid=unpaid_breakdown(orders, date_range),
        series=overview_series(orders, date_range, today=today),
    )
