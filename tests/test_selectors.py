"""Tests for the derived view selectors and the selector cache."""

import pytest
from datetime import date

from budget_tracker.models import Expense
from budget_tracker.services import selectors
from budget_tracker.services.selectors import SelectorCache


def _expense(expense_id, date_iso, amount=10.0, user_id="u1", name="Item") -> Expense:
    return Expense(id=expense_id, user_id=user_id, name=name, amount=amount, date_iso=date_iso)


@pytest.fixture
def january_expenses():
    return [
        _expense("e0", "2023-12-31T23:59:59Z", 1.0),
        _expense("e1", "2024-01-01T00:00:00", 2.0),
        _expense("e2", "2024-01-15T12:30:00Z", 4.0),
        _expense("e3", "2024-01-31T23:59:59", 8.0),
        _expense("e4", "2024-02-01T00:00:00Z", 16.0),
        _expense("e5", "2024-01-20", 32.0, user_id="u2"),
        # 23:00 on Jan 31 in UTC.
        _expense("e6", "2024-02-01T01:00:00+02:00", 64.0),
    ]


class TestExpensesByMonth:
    """Calendar month filtering in UTC."""

    def test_inclusive_bounds(self, january_expenses):
        result = selectors.expenses_by_month(january_expenses, "u1", 2024, 1)
        assert [e.id for e in result] == ["e1", "e2", "e3", "e6"]

    def test_total_matches_window_sum(self, january_expenses):
        result = selectors.expenses_by_month(january_expenses, "u1", 2024, 1)
        assert selectors.monthly_total(result) == 2.0 + 4.0 + 8.0 + 64.0

    def test_other_user_excluded(self, january_expenses):
        result = selectors.expenses_by_month(january_expenses, "u2", 2024, 1)
        assert [e.id for e in result] == ["e5"]

    def test_empty_month(self, january_expenses):
        assert selectors.expenses_by_month(january_expenses, "u1", 2024, 4) == []

    def test_unparseable_dates_never_match(self):
        broken = Expense.model_construct(
            id="x", user_id="u1", name="Broken", amount=1.0, date_iso="not a date",
        )
        assert selectors.expenses_by_month([broken], "u1", 2024, 1) == []

    def test_invalid_month(self):
        with pytest.raises(ValueError):
            selectors.expenses_by_month([], "u1", 2024, 13)

    def test_last_supported_month(self):
        expense = _expense("e9", "9999-12-31T23:59:59Z")
        assert selectors.expenses_by_month([expense], "u1", 9999, 12) == [expense]


class TestAggregates:
    """Totals and budget projections."""

    def test_monthly_total_empty(self):
        assert selectors.monthly_total([]) == 0

    @pytest.mark.parametrize(
        "total, limit, expected",
        [(101, 100, True), (100, 100, False), (0, None, False), (0.01, None, True)],
    )
    def test_is_over_budget(self, total, limit, expected):
        assert selectors.is_over_budget(total, limit) is expected

    @pytest.mark.parametrize(
        "total, limit, expected",
        [(50, 200, 25.0), (300, 200, 100.0), (0, 200, 0.0), (10, None, 100.0), (0, None, 0.0)],
    )
    def test_budget_usage_percent(self, total, limit, expected):
        assert selectors.budget_usage_percent(total, limit) == expected

    def test_user_expenses_keeps_insertion_order(self, january_expenses):
        result = selectors.user_expenses(january_expenses, "u1")
        assert [e.id for e in result] == ["e0", "e1", "e2", "e3", "e4", "e6"]

    def test_expense_by_id(self, january_expenses):
        assert selectors.expense_by_id(january_expenses, "e2").amount == 4.0
        assert selectors.expense_by_id(january_expenses, "missing") is None

    def test_report_range_months(self):
        assert selectors.report_range_months("12m") == 12
        with pytest.raises(ValueError):
            selectors.report_range_months("3m")


class TestMonthlySeries:
    """Analytics chart data."""

    def test_oldest_first_with_zero_months(self, january_expenses):
        series = selectors.monthly_series(january_expenses, "u1", 3, today=date(2024, 2, 10))
        assert series == [
            ("2023-12", 1.0),
            ("2024-01", 78.0),
            ("2024-02", 16.0),
        ]

    def test_crosses_year_boundary(self):
        series = selectors.monthly_series([], "u1", 12, today=date(2024, 3, 1))
        assert series[0] == ("2023-04", 0.0)
        assert series[-1] == ("2024-03", 0.0)
        assert len(series) == 12

    def test_deterministic(self, january_expenses):
        first = selectors.monthly_series(january_expenses, "u1", 6, today=date(2024, 2, 1))
        second = selectors.monthly_series(january_expenses, "u1", 6, today=date(2024, 2, 1))
        assert first == second

    def test_non_positive_months(self):
        assert selectors.monthly_series([], "u1", 0) == []


class TestSelectorCache:
    """Version-keyed memoization."""

    def test_hit_on_same_version(self):
        cache = SelectorCache()
        calls = []
        compute = lambda: calls.append(1) or len(calls)  # noqa: E731
        assert cache.get_or_compute("s", 1, ("u1",), compute) == 1
        assert cache.get_or_compute("s", 1, ("u1",), compute) == 1
        assert len(calls) == 1
        assert cache.hits == 1

    def test_params_are_part_of_key(self):
        cache = SelectorCache()
        assert cache.get_or_compute("s", 1, ("u1",), lambda: "a") == "a"
        assert cache.get_or_compute("s", 1, ("u2",), lambda: "b") == "b"
        assert len(cache) == 2

    def test_new_version_drops_every_entry(self):
        cache = SelectorCache()
        cache.get_or_compute("s", 1, ("u1",), lambda: "old")
        cache.get_or_compute("t", 1, (), lambda: "old")
        assert cache.get_or_compute("s", 2, ("u1",), lambda: "new") == "new"
        assert len(cache) == 1
