"""Gap-free monthly series from sparse grouped sums."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Mapping

from tally.services.periods import Month, month_window

ZERO = Decimal("0")


@dataclass
class MonthBucket:
    """One calendar month's totals, keyed by currency code."""

    month: str
    totals: dict[str, Decimal] = field(default_factory=dict)

    def total(self, currency: str) -> Decimal:
        return self.totals.get(currency, ZERO)


def fill_month_buckets(
    sums: Mapping[tuple[str, str], Decimal],
    anchor: Month,
    count: int,
    currencies: Iterable[str],
) -> list[MonthBucket]:
    """
    Expand sparse `(YYYY-MM, currency) -> total` sums into exactly `count`
    buckets ending at `anchor`, oldest first. Missing months and currencies
    are zero. Keys outside the window or currency set are ignored.
    """
    if count < 1:
        raise ValueError("count must be at least 1")
    currencies = tuple(currencies)

    buckets = []
    for month in month_window(anchor, count):
        totals = {currency: sums.get((month.key, currency), ZERO) for currency in currencies}
        buckets.append(MonthBucket(month=month.key, totals=totals))
    return buckets
