"""
Report schemas.

Currency-keyed totals are emitted as `total<CODE>` fields (totalUSD, totalNGN)
for every supported currency, so they are declared as extra fields.
"""

from decimal import Decimal
from typing import List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def currency_fields(totals: Mapping[str, Decimal], currencies) -> dict:
    return {f"total{code}": float(totals.get(code, Decimal("0"))) for code in currencies}


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MonthTrend(BaseModel):
    model_config = ConfigDict(extra="allow")

    month: str


class TrendResponse(BaseModel):
    months: List[MonthTrend]


class CurrencyTotal(BaseModel):
    currency: str
    total: float
    count: int
    avg: float


class TopCategory(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    category_id: Optional[str]
    category: Optional[str]
    total: float  # Combined across currencies, ranking only


class MonthlyReportResponse(CamelModel):
    period: str
    totals: List[CurrencyTotal]
    top_categories: List[TopCategory]


class CategoryRow(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    category_id: Optional[str]
    category: Optional[str]


class CategoryReportResponse(CamelModel):
    from_: str = Field(alias="from")
    to: str
    by_category: List[CategoryRow]


class SpendingResponse(CamelModel):
    period: str
    category_id: Optional[str]
    category: Optional[str]
    totals: List[CurrencyTotal]


class MetricOut(CamelModel):
    value: float
    baseline: Optional[float]
    percent_change: Optional[float]


class MonthAmountOut(BaseModel):
    month: str
    amount: float


class CategorySliceOut(CamelModel):
    category_id: Optional[str]
    name: str
    value: float
    share: float
    color: str


class DashboardResponse(CamelModel):
    months: int
    currency: str
    selected_month: str
    available_months: List[str]
    monthly: List[MonthAmountOut]
    categories: List[CategorySliceOut]
    total: MetricOut
    last_month: MetricOut
    transactions: MetricOut
