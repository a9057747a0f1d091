"""Tests for trend, monthly and category aggregation."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy.exc import OperationalError, ProgrammingError

from tally.errors import InternalFaultError, RequestValidationError, StoreUnavailableError
from tally.services.aggregation_service import AggregationService, clamp_months, parse_month_count
from tally.services.periods import Month, PeriodRange

from conftest import OTHER_OWNER_ID, OWNER_ID


class BrokenSession:
    """Session stand-in whose every query fails with the given error."""

    def __init__(self, error):
        self.error = error
        self.calls = 0

    def execute(self, *args, **kwargs):
        self.calls += 1
        raise self.error


class TestMonthCount:
    """Test month count clamping."""

    @pytest.mark.parametrize("value,expected", [(0, 1), (-5, 1), (1, 1), (6, 6), (24, 24), (100, 24), ("3", 3)])
    def test_clamps(self, value, expected):
        assert parse_month_count(value) == expected

    @pytest.mark.parametrize("value", ["abc", "2.5", 2.5, None, True])
    def test_rejects_non_integers(self, value):
        with pytest.raises(RequestValidationError) as exc:
            clamp_months(value)
        assert exc.value.details[0]["path"] == "months"


class TestTrend:
    """Test the monthly trend."""

    def test_gap_months_are_zero(self, db_session, add_transaction):
        """Sparse history should still produce one bucket per month."""
        add_transaction(amount="100", currency="USD", occurred_at=datetime(2025, 1, 10))
        add_transaction(amount="50", currency="NGN", occurred_at=datetime(2025, 2, 3))

        buckets = AggregationService(db_session).trend(OWNER_ID, 3, today=date(2025, 2, 10))

        assert [b.month for b in buckets] == ["2024-12", "2025-01", "2025-02"]
        assert buckets[0].totals == {"USD": Decimal("0"), "NGN": Decimal("0")}
        assert buckets[1].total("USD") == Decimal("100")
        assert buckets[1].total("NGN") == Decimal("0")
        assert buckets[2].total("NGN") == Decimal("50")

    def test_sums_within_month(self, db_session, add_transaction):
        add_transaction(amount="10.25", occurred_at=datetime(2025, 2, 1))
        add_transaction(amount="4.75", occurred_at=datetime(2025, 2, 28, 23, 59))

        buckets = AggregationService(db_session).trend(OWNER_ID, 1, today=date(2025, 2, 10))
        assert buckets[0].total("USD") == Decimal("15.00")

    def test_year_boundary(self, db_session, add_transaction):
        add_transaction(amount="7", occurred_at=datetime(2024, 12, 31, 23, 59))
        add_transaction(amount="3", occurred_at=datetime(2025, 1, 1))

        buckets = AggregationService(db_session).trend(OWNER_ID, 2, today=date(2025, 1, 20))
        assert [(b.month, b.total("USD")) for b in buckets] == [
            ("2024-12", Decimal("7")),
            ("2025-01", Decimal("3")),
        ]

    def test_excludes_other_owners_and_currencies(self, db_session, add_transaction):
        add_transaction(amount="10", occurred_at=datetime(2025, 2, 1))
        add_transaction(amount="999", occurred_at=datetime(2025, 2, 1), owner_id=OTHER_OWNER_ID)
        add_transaction(amount="5", currency="EUR", occurred_at=datetime(2025, 2, 1))

        buckets = AggregationService(db_session).trend(OWNER_ID, 1, today=date(2025, 2, 10))
        assert buckets[0].totals == {"USD": Decimal("10"), "NGN": Decimal("0")}

    def test_excludes_history_before_window(self, db_session, add_transaction):
        add_transaction(amount="10", occurred_at=datetime(2024, 11, 30))

        buckets = AggregationService(db_session).trend(OWNER_ID, 3, today=date(2025, 2, 10))
        assert all(b.total("USD") == 0 for b in buckets)

    def test_out_of_range_count_is_clamped(self, db_session):
        service = AggregationService(db_session)
        assert len(service.trend(OWNER_ID, 0, today=date(2025, 2, 10))) == 1
        assert len(service.trend(OWNER_ID, 50, today=date(2025, 2, 10))) == 24

    def test_validation_happens_before_store_access(self):
        session = BrokenSession(OperationalError("SELECT", {}, Exception("down")))
        with pytest.raises(RequestValidationError):
            AggregationService(session).trend(OWNER_ID, "lots")
        with pytest.raises(RequestValidationError):
            AggregationService(session).trend("", 3)
        assert session.calls == 0


class TestMonthlyTotals:
    """Test per-month totals and top categories."""

    def test_totals_count_and_average(self, db_session, add_transaction):
        add_transaction(amount="10", occurred_at=datetime(2025, 1, 2))
        add_transaction(amount="20", occurred_at=datetime(2025, 1, 30))
        add_transaction(amount="1500", currency="NGN", occurred_at=datetime(2025, 1, 15))
        add_transaction(amount="99", occurred_at=datetime(2025, 2, 1))

        report = AggregationService(db_session).monthly_totals(OWNER_ID, Month(2025, 1))

        assert report.period == "2025-01"
        assert [t.currency for t in report.totals] == ["USD", "NGN"]
        usd = report.totals[0]
        assert usd.total == Decimal("30")
        assert usd.count == 2
        assert usd.avg == Decimal("15.00")
        assert report.total("NGN") == Decimal("1500")

    def test_empty_month(self, db_session):
        report = AggregationService(db_session).monthly_totals(OWNER_ID, Month(2025, 1))
        assert report.totals == []
        assert report.top_categories == []
        assert report.total("USD") == 0

    def test_top_categories_are_capped_and_ordered(self, db_session, add_transaction, add_category):
        for i, name in enumerate(["A", "B", "C", "D", "E", "F"]):
            category = add_category(name=name)
            add_transaction(amount=str(10 * (i + 1)), occurred_at=datetime(2025, 1, 5), category=category)

        report = AggregationService(db_session).monthly_totals(OWNER_ID, Month(2025, 1))
        assert [c.category_name for c in report.top_categories] == ["F", "E", "D", "C", "B"]


class TestByCategory:
    """Test per-category breakdowns."""

    def test_groups_per_currency(self, db_session, add_transaction, add_category):
        food = add_category(name="Food")
        add_transaction(amount="10", occurred_at=datetime(2025, 1, 5), category=food)
        add_transaction(amount="2000", currency="NGN", occurred_at=datetime(2025, 1, 6), category=food)
        add_transaction(amount="5", occurred_at=datetime(2025, 1, 7))

        rows = AggregationService(db_session).by_category(OWNER_ID, Month(2025, 1).range())

        assert [r.category_name for r in rows] == ["Food", None]
        assert rows[0].category_id == food.id
        assert rows[0].total("USD") == Decimal("10")
        assert rows[0].total("NGN") == Decimal("2000")
        assert rows[1].total("USD") == Decimal("5")

    def test_matches_monthly_totals(self, db_session, add_transaction, add_category):
        """Category sums over a month should add up to that month's totals."""
        food = add_category(name="Food")
        rent = add_category(name="Rent")
        add_transaction(amount="12.50", occurred_at=datetime(2025, 3, 1), category=food)
        add_transaction(amount="800", occurred_at=datetime(2025, 3, 2), category=rent)
        add_transaction(amount="4000", currency="NGN", occurred_at=datetime(2025, 3, 31, 23, 0), category=food)
        add_transaction(amount="3.10", occurred_at=datetime(2025, 3, 15))
        add_transaction(amount="7", currency="EUR", occurred_at=datetime(2025, 3, 15))

        service = AggregationService(db_session)
        month = Month(2025, 3)
        rows = service.by_category(OWNER_ID, month.range())
        monthly = service.monthly_totals(OWNER_ID, month)

        for currency in ("USD", "NGN"):
            assert sum(r.total(currency) for r in rows) == monthly.total(currency)

    def test_calendar_day_range(self, db_session, add_transaction):
        add_transaction(amount="1", occurred_at=datetime(2025, 1, 31, 22, 0))
        add_transaction(amount="2", occurred_at=datetime(2025, 2, 1))

        period = PeriodRange.from_bounds(datetime(2025, 1, 1), datetime(2025, 1, 31))
        rows = AggregationService(db_session).by_category(OWNER_ID, period)
        assert rows[0].total("USD") == Decimal("1")


class TestSpendToDate:
    """Test budget spend for a month."""

    def test_category_spend(self, db_session, add_transaction, add_category):
        food = add_category(name="Food")
        add_transaction(amount="30", occurred_at=datetime(2025, 4, 2), category=food)
        add_transaction(amount="15", occurred_at=datetime(2025, 4, 20), category=food)
        add_transaction(amount="100", occurred_at=datetime(2025, 4, 3))
        add_transaction(amount="8", occurred_at=datetime(2025, 3, 31), category=food)

        spending = AggregationService(db_session).spend_to_date(OWNER_ID, Month(2025, 4), category_id=food.id)

        assert spending.period == "2025-04"
        assert [(t.currency, t.total, t.count) for t in spending.totals] == [("USD", Decimal("45"), 2)]

    def test_category_name(self, db_session, add_transaction, add_category):
        food = add_category(name="Food")
        add_transaction(amount="30", occurred_at=datetime(2025, 4, 2), category=food)
        add_transaction(amount="100", occurred_at=datetime(2025, 4, 3))

        spending = AggregationService(db_session).spend_to_date(OWNER_ID, Month(2025, 4), category_name="Food")
        assert spending.totals[0].total == Decimal("30")

    def test_whole_month(self, db_session, add_transaction):
        add_transaction(amount="30", occurred_at=datetime(2025, 4, 2))
        add_transaction(amount="100", occurred_at=datetime(2025, 4, 3))

        spending = AggregationService(db_session).spend_to_date(OWNER_ID, Month(2025, 4))
        assert spending.totals[0].total == Decimal("130")


class TestCountsAndColors:
    """Test transaction counts and category colors."""

    def test_transaction_count_any_currency(self, db_session, add_transaction):
        add_transaction(occurred_at=datetime(2025, 1, 1))
        add_transaction(currency="EUR", occurred_at=datetime(2025, 1, 2))
        add_transaction(occurred_at=datetime(2025, 2, 1))

        count = AggregationService(db_session).transaction_count(OWNER_ID, Month(2025, 1).range())
        assert count == 2

    def test_category_colors(self, db_session, add_category):
        add_category(name="Food", color="#ff0000")
        add_category(name="Rent")
        add_category(name="Other", color="#00ff00", owner_id=OTHER_OWNER_ID)

        assert AggregationService(db_session).category_colors(OWNER_ID) == {"Food": "#ff0000"}


class TestStoreFailures:
    """Test store failure classification."""

    def test_connection_failure_is_unavailable(self):
        session = BrokenSession(OperationalError("SELECT", {}, Exception("connection refused")))
        with pytest.raises(StoreUnavailableError) as exc:
            AggregationService(session).trend(OWNER_ID, 3)
        assert exc.value.status_code == 503
        assert exc.value.to_dict()["error"] == "database_unavailable"

    def test_other_store_errors_are_internal(self):
        session = BrokenSession(ProgrammingError("SELECT", {}, Exception("no such column")))
        with pytest.raises(InternalFaultError) as exc:
            AggregationService(session).monthly_totals(OWNER_ID, Month(2025, 1))
        assert exc.value.status_code == 500
        assert "no such column" not in exc.value.message
