"""
Report API endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from tally.dependencies import get_db, get_owner_id, parse_query
from tally.errors import RequestValidationError
from tally.schemas.reports import (
    CategoryReportResponse,
    CategoryRow,
    CategorySliceOut,
    CurrencyTotal,
    DashboardResponse,
    MetricOut,
    MonthAmountOut,
    MonthlyReportResponse,
    MonthTrend,
    SpendingResponse,
    TopCategory,
    TrendResponse,
    currency_fields,
)
from tally.schemas.requests import (
    DashboardQuery,
    ExportQuery,
    MonthlyQuery,
    RangeQuery,
    SpendingQuery,
    TrendQuery,
)
from tally.services.aggregation_service import AggregationService
from tally.services.csv_export import CSV_MEDIA_TYPE, CsvExporter, export_filename
from tally.services.derived_metrics import load_dashboard

router = APIRouter(prefix="/reports", tags=["reports"])


def _currency_totals(rows) -> list[CurrencyTotal]:
    return [
        CurrencyTotal(currency=r.currency, total=float(r.total), count=r.count, avg=float(r.avg))
        for r in rows
    ]


@router.get("/trends", response_model=TrendResponse)
def get_trends(
    months: Optional[str] = Query(None, description="Number of months, clamped to 1-24"),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """
    Per-currency spending for the last N calendar months, oldest first.
    Months without transactions are present with zero totals.
    """
    query = parse_query(TrendQuery, months=months)
    service = AggregationService(db)
    buckets = service.trend(owner_id, query.months)

    return TrendResponse(months=[
        MonthTrend(month=b.month, **currency_fields(b.totals, service.currencies))
        for b in buckets
    ])


@router.get("/monthly", response_model=MonthlyReportResponse)
def get_monthly_report(
    year: Optional[str] = Query(None, description="Four-digit year"),
    month: Optional[str] = Query(None, description="Month number, 1-12"),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """Totals, counts and averages per currency plus the top categories of one month."""
    query = parse_query(MonthlyQuery, year=year, month=month)
    service = AggregationService(db)
    report = service.monthly_totals(owner_id, query.period)

    return MonthlyReportResponse(
        period=report.period,
        totals=_currency_totals(report.totals),
        top_categories=[
            TopCategory(
                category_id=c.category_id,
                category=c.category_name,
                total=float(c.total_all),
                **currency_fields(c.totals, service.currencies),
            )
            for c in report.top_categories
        ],
    )


@router.get("/by-category", response_model=CategoryReportResponse)
def get_category_report(
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """Per-category, per-currency totals, largest combined total first."""
    query = parse_query(RangeQuery, date_from=date_from, date_to=date_to)
    service = AggregationService(db)
    rows = service.by_category(owner_id, query.period)

    return CategoryReportResponse(
        from_=date_from,
        to=date_to,
        by_category=[
            CategoryRow(
                category_id=r.category_id,
                category=r.category_name,
                **currency_fields(r.totals, service.currencies),
            )
            for r in rows
        ],
    )


@router.get("/export")
def export_csv(
    date_from: Optional[str] = Query(None, alias="from"),
    date_to: Optional[str] = Query(None, alias="to"),
    format: Optional[str] = Query(None),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """
    Download transactions in a range as CSV, newest first.
    Returns 413 instead of a truncated file when the range holds too many rows.
    """
    query = parse_query(ExportQuery, date_from=date_from, date_to=date_to, format=format)
    if query.format != "csv":
        raise RequestValidationError("Only CSV supported for now.", error="unsupported_format")

    export = CsvExporter(db).export(
        owner_id,
        query.period,
        filename=export_filename(query.date_from, query.date_to),
    )
    return Response(
        content=export.content,
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": export.content_disposition},
    )


@router.get("/spending", response_model=SpendingResponse)
def get_spending(
    period: Optional[str] = Query(None, description="YYYY-MM or any date inside the month"),
    category_id: Optional[str] = Query(None, alias="categoryId"),
    category: Optional[str] = Query(None),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """Spend so far in a budget month, optionally for one category."""
    query = parse_query(SpendingQuery, period=period, category_id=category_id, category=category)
    spending = AggregationService(db).spend_to_date(
        owner_id,
        query.month,
        category_id=query.category_id,
        category_name=query.category,
    )

    return SpendingResponse(
        period=spending.period,
        category_id=spending.category_id,
        category=spending.category_name,
        totals=_currency_totals(spending.totals),
    )


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    months: Optional[str] = Query(None),
    month: Optional[str] = Query(None, description="YYYY-MM, defaults to the latest month"),
    currency: Optional[str] = Query(None),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
):
    """Dashboard numbers: monthly bars, category shares and period-over-period changes."""
    query = parse_query(DashboardQuery, months=months, month=month, currency=currency)
    metrics = load_dashboard(
        AggregationService(db),
        owner_id,
        window=query.months,
        currency=query.display_currency,
        requested_month=query.month,
    )

    return DashboardResponse(
        months=metrics.window,
        currency=metrics.currency,
        selected_month=metrics.selected_month,
        available_months=metrics.available_months,
        monthly=[MonthAmountOut(month=m.month, amount=m.amount) for m in metrics.monthly],
        categories=[
            CategorySliceOut(
                category_id=s.category_id,
                name=s.name,
                value=s.value,
                share=s.share,
                color=s.color,
            )
            for s in metrics.categories
        ],
        total=MetricOut(**vars(metrics.total)),
        last_month=MetricOut(**vars(metrics.last_month)),
        transactions=MetricOut(**vars(metrics.transactions)),
    )
