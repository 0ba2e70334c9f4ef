"""
Tests for time series normalization, aggregation, gap filling and moving
averages.
"""

import pytest

from ingestion.contracts import EntityPeriodData, NormalizedMetric, SeriesInput, SeriesPoint
from ingestion.metric_schema import Category
from ingestion.transforms.time_series_normalizer import (
    Period,
    TimeSeriesError,
    aggregate_by_period,
    fill_missing_dates,
    moving_average,
    normalize_entity,
    sorted_series,
    validate,
)
from ingestion.transforms.value_parser import days_between


def points(*pairs):
    return SeriesInput(points=tuple(SeriesPoint(v, d) for v, d in pairs))


class TestNormalizeEntity:
    """Tests for normalize_entity."""

    def test_single_point(self):
        data, warnings = normalize_entity(points(("100.50", "01/15/2025")))
        assert data.current == {"2025-01-15": 100.5}
        assert data.previous is None
        assert warnings == []

    def test_duplicate_dates_last_write_wins(self):
        data, _ = normalize_entity(points(("10", "2025-01-15"), ("25", "01/15/2025")))
        assert data.current == {"2025-01-15": 25.0}

    def test_unparsable_points_dropped_not_zeroed(self):
        data, warnings = normalize_entity(points(
            ("10", "2025-01-01"),
            ("abc", "2025-01-02"),
            ("5", "not a date"),
            ("7", None),
        ))

        assert data.current == {"2025-01-01": 10.0}
        assert warnings == ["Dropped 3 time series point(s) with unparsable date or value"]

    def test_scalar_only_payloads_dropped_with_warning(self):
        series_input = SeriesInput(points=(SeriesPoint("1", "2025-01-01"),), scalar_only_payloads=2)
        data, warnings = normalize_entity(series_input)

        assert data.current == {"2025-01-01": 1.0}
        assert warnings == [
            "Dropped 2 scalar value(s) on a time series metric: no date to attach them to"
        ]

    def test_empty_input(self):
        data, warnings = normalize_entity(SeriesInput())
        assert data.current == {}
        assert warnings == []


class TestAggregateByPeriod:
    """Tests for aggregate_by_period."""

    SERIES = {
        "2025-01-30": 1.0,
        "2025-01-31": 2.0,
        "2025-02-01": 3.0,
        "2025-02-02": 4.0,
        "2025-02-03": 5.0,
        "2025-04-01": 6.0,
    }

    def test_daily_returns_copy(self):
        result = aggregate_by_period(self.SERIES, 'daily')
        assert result == self.SERIES
        assert result is not self.SERIES

    def test_weekly_keys_are_mondays(self):
        # 2025-01-27 and 2025-02-03 are Mondays
        assert aggregate_by_period(self.SERIES, Period.WEEKLY) == {
            "2025-01-27": 10.0,
            "2025-02-03": 5.0,
            "2025-03-31": 6.0,
        }

    def test_monthly(self):
        assert aggregate_by_period(self.SERIES, 'monthly') == {
            "2025-01": 3.0,
            "2025-02": 12.0,
            "2025-04": 6.0,
        }

    def test_quarterly(self):
        assert aggregate_by_period(self.SERIES, 'quarterly') == {"2025-Q1": 15.0, "2025-Q2": 6.0}

    def test_yearly_across_years(self):
        series = {"2024-12-31": 1.5, "2025-01-01": 2.5}
        assert aggregate_by_period(series, 'yearly') == {"2024": 1.5, "2025": 2.5}

    @pytest.mark.parametrize("period", ['weekly', 'monthly', 'quarterly', 'yearly'])
    def test_sum_preserving(self, period):
        result = aggregate_by_period(self.SERIES, period)
        assert sum(result.values()) == pytest.approx(sum(self.SERIES.values()))

    def test_unordered_input(self):
        series = {"2025-02-01": 3.0, "2025-01-01": 1.0}
        assert list(aggregate_by_period(series, 'monthly')) == ["2025-01", "2025-02"]

    def test_empty(self):
        assert aggregate_by_period({}, 'weekly') == {}

    def test_unknown_period_raises(self):
        with pytest.raises(TimeSeriesError, match="Unknown aggregation period"):
            aggregate_by_period(self.SERIES, 'hourly')


class TestFillMissingDates:
    """Tests for fill_missing_dates."""

    def test_fills_gaps_with_zero(self):
        result = fill_missing_dates({"2025-01-01": 5.0, "2025-01-03": 7.0}, "2025-01-01", "2025-01-04")
        assert result == {
            "2025-01-01": 5.0,
            "2025-01-02": 0,
            "2025-01-03": 7.0,
            "2025-01-04": 0,
        }
        assert list(result) == sorted(result)

    def test_entry_count(self):
        result = fill_missing_dates({}, "2024-02-01", "2024-03-31")
        assert len(result) == days_between("2024-02-01", "2024-03-31") + 1

    def test_custom_fill_value(self):
        result = fill_missing_dates({}, "2025-01-01", "2025-01-02", fill_value=None)
        assert result == {"2025-01-01": None, "2025-01-02": None}

    def test_values_outside_range_kept(self):
        result = fill_missing_dates({"2024-12-25": 1.0}, "2025-01-01", "2025-01-01")
        assert result == {"2024-12-25": 1.0, "2025-01-01": 0}

    def test_start_after_end_raises(self):
        with pytest.raises(TimeSeriesError):
            fill_missing_dates({}, "2025-01-05", "2025-01-01")

    def test_invalid_date_raises(self):
        with pytest.raises(TimeSeriesError):
            fill_missing_dates({}, "2025-02-30", "2025-03-01")


class TestMovingAverage:
    """Tests for moving_average."""

    def test_trailing_window(self):
        series = {"2025-01-01": 1.0, "2025-01-02": 2.0, "2025-01-03": 3.0, "2025-01-04": 4.0}
        assert moving_average(series, 2) == {
            "2025-01-02": 1.5,
            "2025-01-03": 2.5,
            "2025-01-04": 3.5,
        }

    @pytest.mark.parametrize("window", [1, 3, 7, 10])
    def test_length(self, window):
        series = {f"2025-01-{day:02d}": float(day) for day in range(1, 11)}
        assert len(moving_average(series, window)) == 10 - window + 1

    def test_window_longer_than_series(self):
        assert moving_average({"2025-01-01": 1.0}, 7) == {}

    def test_window_one_is_identity(self):
        series = {"2025-01-02": 2.0, "2025-01-01": 1.0}
        assert moving_average(series, 1) == sorted_series(series)

    @pytest.mark.parametrize("window", [0, -1, 2.5])
    def test_invalid_window_raises(self, window):
        with pytest.raises(TimeSeriesError):
            moving_average({"2025-01-01": 1.0}, window)


class TestValidate:
    """Tests for time series quality warnings."""

    def _metric(self, current):
        merchant = EntityPeriodData(current=current) if current is not None else None
        return NormalizedMetric('revenue_per_day', Category.TIME_SERIES, merchant=merchant)

    def test_clean_series(self):
        assert validate(self._metric({"2025-01-01": 1.0, "2025-01-31": 2.0})) == []

    def test_missing_merchant(self):
        assert validate(self._metric(None)) == ['Missing merchant current data']

    def test_empty_series(self):
        assert validate(self._metric({})) == ['No data points in time series']

    def test_long_span(self):
        warnings = validate(self._metric({"2020-01-01": 1.0, "2025-01-01": 2.0}), max_span_days=730)
        assert warnings == ['Time series spans 1827 days (more than 730), may indicate data issues']
