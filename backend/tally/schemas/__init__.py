"""
Pydantic schemas package.
"""

from tally.schemas.reports import (
    CategoryReportResponse,
    CategoryRow,
    CurrencyTotal,
    DashboardResponse,
    MonthlyReportResponse,
    MonthTrend,
    SpendingResponse,
    TopCategory,
    TrendResponse,
)
from tally.schemas.requests import (
    DashboardQuery,
    ExportQuery,
    MonthlyQuery,
    RangeQuery,
    SpendingQuery,
    TransactionListQuery,
    TrendQuery,
)
from tally.schemas.transaction import TransactionListResponse, TransactionResponse

__all__ = [
    "CategoryReportResponse",
    "CategoryRow",
    "CurrencyTotal",
    "DashboardResponse",
    "MonthlyReportResponse",
    "MonthTrend",
    "SpendingResponse",
    "TopCategory",
    "TrendResponse",
    "DashboardQuery",
    "ExportQuery",
    "MonthlyQuery",
    "RangeQuery",
    "SpendingQuery",
    "TransactionListQuery",
    "TrendQuery",
    "TransactionListResponse",
    "TransactionResponse",
]
