"""Dashboard metrics derived from aggregation results.

Percent change rule, given a new value and a baseline:

    baseline unknown            -> None (not computable)
    baseline 0, new value 0     -> 0
    baseline 0, new value != 0  -> 100
    otherwise                   -> ((new - baseline) / baseline) * 100, two decimals

A metric whose precondition is unmet is reported as None, never as zero.
"""

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Optional, Sequence, Union

from tally.config import settings
from tally.services.periods import Month, utc_today
from tally.services.trend_buckets import MonthBucket

Number = Union[int, float, Decimal]
UNCATEGORIZED = "Uncategorized"


def round_half_up(value: float, places: int = 2) -> float:
    """Round to `places` decimals with ties going toward +infinity."""
    scale = 10 ** places
    return math.floor(value * scale + 0.5) / scale


def percent_change(new_value: Number, baseline: Optional[Number]) -> Optional[float]:
    if baseline is None:
        return None
    new_value = float(new_value)
    baseline = float(baseline)
    if baseline == 0:
        return 0.0 if new_value == 0 else 100.0
    return math.floor(((new_value - baseline) / baseline) * 10000 + 0.5) / 100


@dataclass
class DerivedMetric:
    value: float
    baseline: Optional[float]
    percent_change: Optional[float]

    @classmethod
    def compare(cls, value: Number, baseline: Optional[Number]) -> "DerivedMetric":
        return cls(
            value=float(value),
            baseline=None if baseline is None else float(baseline),
            percent_change=percent_change(value, baseline),
        )


def window_comparison(amounts: Sequence[Number], window: int) -> DerivedMetric:
    """
    Total of the last `window` months against the `window` months before it.
    The baseline is None unless at least 2 * window months are available.
    """
    if window < 1:
        raise ValueError("window must be at least 1")
    recent = sum((Decimal(str(a)) for a in amounts[-window:]), Decimal("0"))
    baseline = None
    if len(amounts) >= 2 * window:
        previous = amounts[len(amounts) - 2 * window:len(amounts) - window]
        baseline = sum((Decimal(str(a)) for a in previous), Decimal("0"))
    return DerivedMetric.compare(recent, baseline)


def month_over_month(amounts: Sequence[Number]) -> DerivedMetric:
    """Latest month against the one before it; no prior month means no baseline."""
    latest = amounts[-1] if amounts else 0
    previous = amounts[-2] if len(amounts) > 1 else None
    return DerivedMetric.compare(latest, previous)


def select_month(available: Sequence[str], requested: Optional[str] = None, today=None) -> str:
    """Explicit choice, else the latest month in the series, else the current month."""
    if requested:
        return requested
    if available:
        return available[-1]
    return Month.of(today or utc_today()).key


@dataclass
class MonthAmount:
    month: str
    amount: float


@dataclass
class CategorySlice:
    category_id: Optional[str]
    name: str
    value: float
    share: float
    color: str


def fallback_color(position: int, palette_size: Optional[int] = None) -> str:
    """Palette color by position in the response, so repeated renders are stable."""
    size = palette_size or settings.category_palette_size
    return f"var(--chart-{(position % size) + 1})"


def category_slices(
    rows: Sequence,
    currency: str,
    colors: Optional[Mapping[str, str]] = None,
    palette_size: Optional[int] = None,
) -> list[CategorySlice]:
    """Pie-chart slices for one currency from by-category rows, in response order."""
    colors = colors or {}
    values = [float(row.total(currency)) for row in rows]
    grand_total = sum(values)

    slices = []
    for position, (row, value) in enumerate(zip(rows, values)):
        name = row.category_name or UNCATEGORIZED
        share = round_half_up(value / grand_total * 100) if grand_total else 0.0
        slices.append(CategorySlice(
            category_id=row.category_id,
            name=name,
            value=value,
            share=share,
            color=colors.get(name) or fallback_color(position, palette_size),
        ))
    return slices


@dataclass
class DashboardMetrics:
    window: int
    currency: str
    selected_month: str
    available_months: list[str]
    monthly: list[MonthAmount]
    categories: list[CategorySlice]
    total: DerivedMetric
    last_month: DerivedMetric
    transactions: DerivedMetric


def build_dashboard(
    trend: Sequence[MonthBucket],
    window: int,
    currency: str,
    selected_month: str,
    category_rows: Sequence,
    transactions_count: int,
    prev_transactions_count: Optional[int],
    category_colors: Optional[Mapping[str, str]] = None,
) -> DashboardMetrics:
    """
    Assemble dashboard numbers for one display currency. `trend` may hold up
    to 2 * window months so the previous window can be compared; only the
    last `window` months are charted.
    """
    amounts = [bucket.total(currency) for bucket in trend]
    shown = trend[-window:] if window else []

    total = window_comparison(amounts, window)

    return DashboardMetrics(
        window=window,
        currency=currency,
        selected_month=selected_month,
        available_months=[bucket.month for bucket in shown],
        monthly=[MonthAmount(month=b.month, amount=float(b.total(currency))) for b in shown],
        categories=category_slices(category_rows, currency, category_colors),
        total=total,
        last_month=month_over_month(amounts),
        transactions=DerivedMetric.compare(transactions_count, prev_transactions_count),
    )


def load_dashboard(
    service,
    owner_id: str,
    window: int,
    currency: str,
    requested_month: Optional[str] = None,
    today=None,
) -> DashboardMetrics:
    """Fetch everything the dashboard needs through an AggregationService."""
    today = today or utc_today()
    trend = service.trend(owner_id, 2 * window, today=today)
    shown_months = [bucket.month for bucket in trend[-window:]]
    month = Month.parse(select_month(shown_months, requested_month, today))

    return build_dashboard(
        trend=trend,
        window=window,
        currency=currency,
        selected_month=month.key,
        category_rows=service.by_category(owner_id, month.range()),
        transactions_count=service.transaction_count(owner_id, month.range()),
        prev_transactions_count=service.transaction_count(owner_id, month.shift(-1).range()),
        category_colors=service.category_colors(owner_id),
    )
