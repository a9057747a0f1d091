"""Aggregation service: trend, monthly totals and category breakdowns.

Every query is owner-scoped and restricted to the supported currency set,
and every sum is pushed into the store as a grouped query.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import case, extract, func, select
from sqlalchemy.orm import Session

from tally.config import settings
from tally.errors import RequestValidationError, store_guard
from tally.models.category import Category
from tally.models.transaction import Transaction
from tally.services.periods import Month, PeriodRange, month_window, utc_today
from tally.services.query_filters import range_clauses, validate_owner_id
from tally.services.trend_buckets import ZERO, MonthBucket, fill_month_buckets

logger = logging.getLogger(__name__)


@dataclass
class CurrencyTotal:
    currency: str
    total: Decimal
    count: int
    avg: Decimal


@dataclass
class CategoryTotal:
    """Per-category sums. `total_all` is for ranking only, never for display."""

    category_id: Optional[str]
    category_name: Optional[str]
    totals: dict[str, Decimal] = field(default_factory=dict)
    total_all: Decimal = ZERO

    def total(self, currency: str) -> Decimal:
        return self.totals.get(currency, ZERO)


@dataclass
class MonthlyTotals:
    period: str
    totals: list[CurrencyTotal]
    top_categories: list[CategoryTotal]

    def total(self, currency: str) -> Decimal:
        for row in self.totals:
            if row.currency == currency:
                return row.total
        return ZERO


@dataclass
class SpendingTotals:
    """Spend-to-date for one month, optionally narrowed to a category."""

    period: str
    category_id: Optional[str]
    category_name: Optional[str]
    totals: list[CurrencyTotal]


def as_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def parse_month_count(months_count) -> int:
    """Clamp a month count to [1, trend_max_months]. Raises ValueError for non-integers."""
    if isinstance(months_count, bool) or not isinstance(months_count, (int, str)):
        raise ValueError("months must be an integer")
    try:
        months = int(months_count)
    except ValueError:
        raise ValueError("months must be an integer")
    return max(1, min(settings.trend_max_months, months))


def clamp_months(months_count) -> int:
    try:
        return parse_month_count(months_count)
    except ValueError as e:
        raise RequestValidationError.for_field("months", str(e)) from e


class AggregationService:
    def __init__(self, db: Session, currencies: Optional[Sequence[str]] = None):
        self.db = db
        self.currencies = tuple(currencies) if currencies else settings.currencies

    def trend(self, owner_id: str, months_count, today=None) -> list[MonthBucket]:
        """
        Monthly per-currency totals for the `months_count` months ending at the
        current UTC month. Always returns exactly that many buckets.
        """
        owner_id = validate_owner_id(owner_id)
        months = clamp_months(months_count)
        anchor = Month.of(today or utc_today())
        window = month_window(anchor, months)
        period = PeriodRange(window[0].start, anchor.end)

        year_col = extract("year", Transaction.occurred_at).label("year")
        month_col = extract("month", Transaction.occurred_at).label("month")
        query = (
            select(
                year_col,
                month_col,
                Transaction.currency,
                func.sum(Transaction.amount).label("total"),
            )
            .where(*range_clauses(owner_id, period, currencies=self.currencies))
            .group_by(year_col, month_col, Transaction.currency)
        )

        with store_guard("trend", owner_id=owner_id, months=months, anchor=anchor.key):
            rows = self.db.execute(query).all()

        sums: dict[tuple[str, str], Decimal] = {}
        for row in rows:
            key = (Month(int(row.year), int(row.month)).key, row.currency)
            sums[key] = sums.get(key, ZERO) + as_decimal(row.total)

        logger.debug("trend owner=%s months=%s groups=%s", owner_id, months, len(rows))
        return fill_month_buckets(sums, anchor, months, self.currencies)

    def monthly_totals(self, owner_id: str, month: Month) -> MonthlyTotals:
        """Totals, counts and averages per currency plus the top categories for one month."""
        owner_id = validate_owner_id(owner_id)
        clauses = range_clauses(owner_id, month.range(), currencies=self.currencies)

        with store_guard("monthly_totals", owner_id=owner_id, period=month.key):
            totals = self._currency_totals(clauses)
            top = self._category_rows(clauses, limit=settings.top_categories_limit)

        return MonthlyTotals(period=month.key, totals=totals, top_categories=top)

    def by_category(self, owner_id: str, period: PeriodRange) -> list[CategoryTotal]:
        """Per-category, per-currency sums over a half-open range, largest first."""
        owner_id = validate_owner_id(owner_id)
        clauses = range_clauses(owner_id, period, currencies=self.currencies)

        with store_guard(
            "by_category",
            owner_id=owner_id,
            start=period.start.isoformat(),
            end=period.end.isoformat(),
        ):
            return self._category_rows(clauses)

    def spend_to_date(
        self,
        owner_id: str,
        month: Month,
        category_id: Optional[str] = None,
        category_name: Optional[str] = None,
    ) -> SpendingTotals:
        """Budget spend for a month, computed in the store rather than by listing rows."""
        owner_id = validate_owner_id(owner_id)
        clauses = range_clauses(
            owner_id,
            month.range(),
            category_id=category_id,
            category_name=None if category_id else category_name,
            currencies=self.currencies,
        )

        with store_guard("spend_to_date", owner_id=owner_id, period=month.key, category_id=category_id):
            totals = self._currency_totals(clauses)

        return SpendingTotals(
            period=month.key,
            category_id=category_id,
            category_name=None if category_id else category_name,
            totals=totals,
        )

    def transaction_count(self, owner_id: str, period: PeriodRange) -> int:
        """Number of transactions in a half-open range, any currency."""
        owner_id = validate_owner_id(owner_id)
        query = select(func.count(Transaction.id)).where(*range_clauses(owner_id, period))
        with store_guard("transaction_count", owner_id=owner_id, start=period.start.isoformat()):
            return int(self.db.execute(query).scalar() or 0)

    def category_colors(self, owner_id: str) -> dict[str, str]:
        """Configured colors by category name."""
        owner_id = validate_owner_id(owner_id)
        query = select(Category.name, Category.color).where(
            Category.owner_id == owner_id,
            Category.color.is_not(None),
        )
        with store_guard("category_colors", owner_id=owner_id):
            return {row.name: row.color for row in self.db.execute(query).all() if row.color}

    def _currency_totals(self, clauses: list) -> list[CurrencyTotal]:
        query = (
            select(
                Transaction.currency,
                func.sum(Transaction.amount).label("total"),
                func.count(Transaction.id).label("count"),
                func.avg(Transaction.amount).label("avg"),
            )
            .where(*clauses)
            .group_by(Transaction.currency)
        )
        by_currency = {
            row.currency: CurrencyTotal(
                currency=row.currency,
                total=as_decimal(row.total),
                count=int(row.count),
                avg=as_decimal(row.avg).quantize(Decimal("0.01")),
            )
            for row in self.db.execute(query).all()
        }
        return [by_currency[c] for c in self.currencies if c in by_currency]

    def _category_rows(self, clauses: list, limit: Optional[int] = None) -> list[CategoryTotal]:
        per_currency = [
            func.sum(case((Transaction.currency == currency, Transaction.amount), else_=0)).label(f"total_{i}")
            for i, currency in enumerate(self.currencies)
        ]
        total_all = func.sum(Transaction.amount).label("total_all")
        query = (
            select(Transaction.category_id, Transaction.category_name, *per_currency, total_all)
            .where(*clauses)
            .group_by(Transaction.category_id, Transaction.category_name)
            .order_by(total_all.desc(), Transaction.category_name, Transaction.category_id)
        )
        if limit is not None:
            query = query.limit(limit)

        rows = []
        for row in self.db.execute(query).all():
            rows.append(CategoryTotal(
                category_id=row.category_id,
                category_name=row.category_name,
                totals={c: as_decimal(row[2 + i]) for i, c in enumerate(self.currencies)},
                total_all=as_decimal(row.total_all),
            ))
        return rows
