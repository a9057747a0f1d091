"""
Owner-scoped transaction filters shared by listing, exports and aggregates.

List filters treat both date bounds as inclusive; aggregate filters use a
half-open PeriodRange.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from math import ceil
from typing import Iterable, Optional

from sqlalchemy import or_
from sqlalchemy.sql.elements import ColumnElement

from tally.config import settings
from tally.errors import RequestValidationError
from tally.models.transaction import Transaction
from tally.services.periods import PeriodRange

CATEGORY_ID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)
LIKE_ESCAPE = "\\"
MAX_OWNER_ID_LENGTH = 64


def is_valid_category_id(value: str) -> bool:
    return bool(CATEGORY_ID_RE.match(value))


def validate_owner_id(owner_id: Optional[str]) -> str:
    owner_id = (owner_id or "").strip()
    if not owner_id:
        raise RequestValidationError.for_field("ownerId", "owner id is required")
    if len(owner_id) > MAX_OWNER_ID_LENGTH:
        raise RequestValidationError.for_field("ownerId", "owner id is too long")
    return owner_id


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so user input only ever matches literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def contains_pattern(term: str) -> str:
    return f"%{escape_like(term)}%"


@dataclass(frozen=True)
class Pagination:
    limit: int
    page: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def pages(self, total: int) -> int:
        return ceil(total / self.limit) if total else 0


def normalize_pagination(limit: Optional[int] = None, page: Optional[int] = None) -> Pagination:
    """Clamp limit to [1, list_max_limit] and page to >= 1, filling defaults."""
    if limit is None:
        limit = settings.list_default_limit
    if page is None:
        page = 1
    return Pagination(
        limit=max(1, min(settings.list_max_limit, int(limit))),
        page=max(1, int(page)),
    )


@dataclass(frozen=True)
class TransactionFilter:
    """What a caller asked for. Category id takes precedence over category name."""

    owner_id: str
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    category_id: Optional[str] = None
    category_name: Optional[str] = None
    term: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "owner_id", validate_owner_id(self.owner_id))
        if self.category_id is not None and not is_valid_category_id(self.category_id):
            raise RequestValidationError.for_field("categoryId", "invalid categoryId")
        term = (self.term or "").strip()
        object.__setattr__(self, "term", term or None)

    @property
    def category_pinned(self) -> bool:
        return bool(self.category_id or self.category_name)


def category_clauses(category_id: Optional[str] = None, category_name: Optional[str] = None) -> list:
    if category_id:
        return [Transaction.category_id == category_id]
    if category_name:
        return [Transaction.category_name == category_name]
    return []


def search_clause(term: str, category_pinned: bool) -> ColumnElement:
    """
    Case-insensitive substring match. With a category already pinned the term
    only narrows the description; otherwise description OR category name.
    """
    pattern = contains_pattern(term)
    description_match = Transaction.description.ilike(pattern, escape=LIKE_ESCAPE)
    if category_pinned:
        return description_match
    return or_(
        description_match,
        Transaction.category_name.ilike(pattern, escape=LIKE_ESCAPE),
    )


def list_clauses(query: TransactionFilter) -> list:
    """WHERE clauses for the transaction listing (inclusive date bounds)."""
    clauses = [Transaction.owner_id == query.owner_id]
    clauses.extend(category_clauses(query.category_id, query.category_name))
    if query.date_from is not None:
        clauses.append(Transaction.occurred_at >= query.date_from)
    if query.date_to is not None:
        clauses.append(Transaction.occurred_at <= query.date_to)
    if query.term:
        clauses.append(search_clause(query.term, query.category_pinned))
    return clauses


def range_clauses(
    owner_id: str,
    period: PeriodRange,
    *,
    category_id: Optional[str] = None,
    category_name: Optional[str] = None,
    currencies: Optional[Iterable[str]] = None,
) -> list:
    """WHERE clauses for aggregates and exports over a half-open range."""
    owner_id = validate_owner_id(owner_id)
    if category_id is not None and not is_valid_category_id(category_id):
        raise RequestValidationError.for_field("categoryId", "invalid categoryId")
    clauses = [
        Transaction.owner_id == owner_id,
        Transaction.occurred_at >= period.start,
        Transaction.occurred_at < period.end,
    ]
    clauses.extend(category_clauses(category_id, category_name))
    if currencies is not None:
        clauses.append(Transaction.currency.in_(tuple(currencies)))
    return clauses
