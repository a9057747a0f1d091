"""
Typed request models. Each report operation parses its raw query parameters
into one of these before any store access.
"""

from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, Field, field_validator, model_validator

from tally.config import settings
from tally.services.aggregation_service import parse_month_count
from tally.services.periods import Month, PeriodRange, parse_iso_datetime
from tally.services.query_filters import is_valid_category_id


def _iso_datetime(value):
    if isinstance(value, datetime):
        return value
    try:
        return parse_iso_datetime(value)
    except (TypeError, ValueError):
        raise ValueError("invalid date, expected ISO-8601")


def _month_count(value):
    if value is None or value == "":
        return settings.trend_default_months
    return parse_month_count(value)


def _bounded_month(month: Month) -> Month:
    # The exclusive end must exist, which rules out 9999-12
    month.range()
    return month


def _page_number(value):
    """Non-integer paging values fall back to the defaults."""
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _category_id(value):
    if value is None or value == "":
        return None
    if not isinstance(value, str) or not is_valid_category_id(value):
        raise ValueError("invalid categoryId")
    return value


def _month_key(value):
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError("expected a YYYY-MM month")
    return _bounded_month(Month.parse(value)).key


IsoDatetime = Annotated[datetime, BeforeValidator(_iso_datetime)]
MonthCount = Annotated[int, BeforeValidator(_month_count)]
CategoryId = Annotated[Optional[str], BeforeValidator(_category_id)]
MonthKey = Annotated[Optional[str], BeforeValidator(_month_key)]
PageNumber = Annotated[Optional[int], BeforeValidator(_page_number)]


class TrendQuery(BaseModel):
    months: MonthCount = settings.trend_default_months


class MonthlyQuery(BaseModel):
    year: int = Field(ge=1, le=9999)
    month: int = Field(ge=1, le=12)

    @model_validator(mode="after")
    def check_bounds(self):
        _bounded_month(Month(self.year, self.month))
        return self

    @property
    def period(self) -> Month:
        return Month(self.year, self.month)


class RangeQuery(BaseModel):
    """`from`/`to` as given; `period` is the half-open range actually queried."""

    date_from: IsoDatetime
    date_to: IsoDatetime

    @model_validator(mode="after")
    def check_order(self):
        PeriodRange.from_bounds(self.date_from, self.date_to)
        return self

    @property
    def period(self) -> PeriodRange:
        return PeriodRange.from_bounds(self.date_from, self.date_to)


class ExportQuery(RangeQuery):
    format: str = "csv"


class TransactionListQuery(BaseModel):
    date_from: Optional[IsoDatetime] = None
    date_to: Optional[IsoDatetime] = None
    category: Optional[str] = Field(default=None, min_length=1)
    category_id: CategoryId = None
    q: Optional[str] = None
    limit: PageNumber = None
    page: PageNumber = None


class SpendingQuery(BaseModel):
    """Budget spend-to-date for the month containing `period`."""

    period: str
    category_id: CategoryId = None
    category: Optional[str] = Field(default=None, min_length=1)

    @field_validator("period", mode="before")
    @classmethod
    def parse_period(cls, value):
        if not isinstance(value, str) or not value.strip():
            raise ValueError("period is required")
        value = value.strip()
        if len(value) == 7:
            return _bounded_month(Month.parse(value)).key
        return _bounded_month(Month.of(_iso_datetime(value))).key

    @property
    def month(self) -> Month:
        return Month.parse(self.period)


class DashboardQuery(BaseModel):
    months: MonthCount = settings.trend_default_months
    month: MonthKey = None
    currency: Optional[str] = None

    @field_validator("currency", mode="before")
    @classmethod
    def check_currency(cls, value):
        if value is None or value == "":
            return None
        code = str(value).strip().upper()
        if code not in settings.currencies:
            raise ValueError(f"currency must be one of {', '.join(settings.currencies)}")
        return code

    @property
    def display_currency(self) -> str:
        return self.currency or settings.currencies[-1]
