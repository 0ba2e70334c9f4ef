"""
Time series normalization - date keyed metric values.
Pure functions over {YYYY-MM-DD: value} maps. Insertion order of a date map
carries no meaning; every operation sorts by date before reading.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from ingestion.config import settings
from ingestion.contracts import DateMap, EntityPeriodData, NormalizedMetric, SeriesInput
from ingestion.transforms.value_parser import days_between, parse_date, parse_number, to_date

logger = logging.getLogger(__name__)


class TimeSeriesError(ValueError):
    """Raised when a time series operation gets invalid arguments."""
    pass


class Period(str, Enum):
    """Aggregation granularity."""
    DAILY = 'daily'
    WEEKLY = 'weekly'
    MONTHLY = 'monthly'
    QUARTERLY = 'quarterly'
    YEARLY = 'yearly'


def normalize_entity(series_input: SeriesInput) -> Tuple[EntityPeriodData, List[str]]:
    """
    Flatten an entity's series points into a date map.

    A point whose date or value does not parse is dropped, not zeroed.
    Duplicate dates keep the last value seen. Payloads that carry only a
    scalar value cannot be placed on a date and are dropped as well.

    Args:
        series_input: Narrowed series points for one entity

    Returns:
        Tuple of (EntityPeriodData with the date map as current, warnings)
    """
    warnings: List[str] = []
    series: DateMap = {}
    dropped = 0

    for point in series_input.points:
        point_date = parse_date(point.secondary)
        value = parse_number(point.primary)
        if point_date is None or value is None:
            dropped += 1
            continue
        series[point_date] = value

    if dropped:
        logger.debug("Dropped %d unparsable time series points", dropped)
        warnings.append(f"Dropped {dropped} time series point(s) with unparsable date or value")

    if series_input.scalar_only_payloads:
        warnings.append(
            f"Dropped {series_input.scalar_only_payloads} scalar value(s) on a time series "
            f"metric: no date to attach them to"
        )

    return EntityPeriodData(current=series), warnings


def sorted_series(series: DateMap) -> DateMap:
    """Return a copy of the series ordered by date."""
    return {d: series[d] for d in sorted(series)}


def _to_frame(series: DateMap) -> pd.Series:
    index = pd.to_datetime(sorted(series), format='%Y-%m-%d')
    return pd.Series([series[d] for d in sorted(series)], index=index, dtype='float64')


def _bucket_keys(index: pd.DatetimeIndex, period: Period) -> List[str]:
    if period == Period.WEEKLY:
        week_starts = index - pd.to_timedelta(index.dayofweek, unit='D')
        return [ts.strftime('%Y-%m-%d') for ts in week_starts]
    if period == Period.MONTHLY:
        return [ts.strftime('%Y-%m') for ts in index]
    if period == Period.QUARTERLY:
        return [f"{ts.year}-Q{(ts.month - 1) // 3 + 1}" for ts in index]
    return [str(ts.year) for ts in index]


def aggregate_by_period(series: DateMap, period: Union[Period, str] = Period.DAILY) -> Dict[str, float]:
    """
    Aggregate a daily series into coarser buckets by summation.

    Bucket keys:
    - weekly: ISO date of the Monday starting the week
    - monthly: YYYY-MM
    - quarterly: YYYY-Qn
    - yearly: YYYY

    Metrics are additive counts and amounts, so buckets are summed,
    never averaged.

    Args:
        series: Date map
        period: Target granularity; daily returns a copy of the input

    Returns:
        Bucket key -> summed value, ordered by bucket

    Raises:
        TimeSeriesError: If the period is unknown
    """
    try:
        period = Period(period)
    except ValueError:
        raise TimeSeriesError(f"Unknown aggregation period: {period!r}")

    if period == Period.DAILY:
        return dict(series)

    if not series:
        return {}

    values = _to_frame(series)
    keys = np.array(_bucket_keys(values.index, period))
    grouped = values.groupby(keys, sort=True).sum()

    return {str(key): float(total) for key, total in grouped.items()}


def fill_missing_dates(
    series: DateMap,
    start: str,
    end: str,
    fill_value: float = 0
) -> DateMap:
    """
    Return a series with one entry per calendar day in [start, end].

    Existing values are kept (including any outside the range); missing
    days get fill_value. The result is ordered by date.

    Raises:
        TimeSeriesError: If start is after end or either date is invalid
    """
    try:
        start_date = to_date(start)
        end_date = to_date(end)
    except (TypeError, ValueError) as e:
        raise TimeSeriesError(f"Invalid fill range {start!r}..{end!r}: {e}")

    if start_date > end_date:
        raise TimeSeriesError(f"start ({start_date}) must be <= end ({end_date})")

    filled = dict(series)
    for day in pd.date_range(start_date, end_date, freq='D'):
        key = day.strftime('%Y-%m-%d')
        if key not in filled:
            filled[key] = fill_value

    return sorted_series(filled)


def moving_average(series: DateMap, window_size: int = 7) -> DateMap:
    """
    Trailing moving average over the date-sorted series.

    Output starts at the window_size-th date; there are no partial windows.

    Args:
        series: Date map
        window_size: Number of consecutive points per average

    Returns:
        Date -> mean of that date and the window_size-1 points before it;
        empty when the series is shorter than the window

    Raises:
        TimeSeriesError: If window_size < 1
    """
    if not isinstance(window_size, int) or window_size < 1:
        raise TimeSeriesError(f"window_size must be a positive integer, got {window_size!r}")

    dates = sorted(series)
    if window_size > len(dates):
        return {}

    values = np.array([series[d] for d in dates], dtype=float)
    kernel = np.ones(window_size) / window_size
    averages = np.convolve(values, kernel, mode='valid')

    return {d: float(avg) for d, avg in zip(dates[window_size - 1:], averages)}


def validate(metric: NormalizedMetric, max_span_days: Optional[int] = None) -> List[str]:
    """
    Data quality warnings for a normalized time series metric.

    Checks missing merchant current data, an empty series and a date span
    longer than max_span_days (two years by default).
    """
    max_span = settings.max_series_span_days if max_span_days is None else max_span_days
    warnings: List[str] = []

    merchant = metric.merchant
    if merchant is None or merchant.current is None:
        warnings.append('Missing merchant current data')
        return warnings

    dates = sorted(merchant.current)
    if not dates:
        warnings.append('No data points in time series')
        return warnings

    span = days_between(dates[0], dates[-1])
    if span > max_span:
        warnings.append(
            f"Time series spans {span} days (more than {max_span}), may indicate data issues"
        )

    return warnings
