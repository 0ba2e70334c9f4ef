"""
Year-over-year alignment.

The analytics API is called twice, once for the selected range and once for
the same range a calendar year earlier. The two normalization passes are then
merged so each entity carries both a current and a previous value.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, List, Optional, Union

from dateutil.relativedelta import relativedelta

from ingestion.contracts import EntityPeriodData, NormalizationResult, NormalizedMetric
from ingestion.transforms.value_parser import to_date
from analysis.response_normalizer import normalize

logger = logging.getLogger(__name__)


class DateRangeError(ValueError):
    """Raised when a date range is malformed."""
    pass


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar date range."""
    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise DateRangeError(f"start ({self.start}) must be <= end ({self.end})")

    @classmethod
    def from_iso(cls, start: Union[str, date], end: Union[str, date]) -> 'DateRange':
        try:
            start_date, end_date = to_date(start), to_date(end)
        except (TypeError, ValueError) as e:
            raise DateRangeError(f"Invalid date range {start!r}..{end!r}: {e}")
        return cls(start_date, end_date)

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def to_dict(self):
        return {'start': self.start.isoformat(), 'end': self.end.isoformat()}


def previous_year_range(date_range: DateRange) -> DateRange:
    """
    The same range one calendar year earlier.

    Month and day are kept; Feb 29 becomes Feb 28 in a non-leap year.

    Example:
        previous_year_range(DateRange(date(2025, 2, 28), date(2025, 3, 1)))
        -> DateRange(date(2024, 2, 28), date(2024, 3, 1))
    """
    one_year = relativedelta(years=1)
    return DateRange(date_range.start - one_year, date_range.end - one_year)


def _metrics_of(normalization_pass: Union[NormalizationResult, Iterable[NormalizedMetric]]) -> List[NormalizedMetric]:
    if isinstance(normalization_pass, NormalizationResult):
        return list(normalization_pass.metrics)
    return list(normalization_pass)


def _merge_entity(
    current: Optional[EntityPeriodData],
    previous: Optional[EntityPeriodData]
) -> Optional[EntityPeriodData]:
    if current is None and previous is None:
        return None
    return EntityPeriodData(
        current=current.current if current is not None else None,
        previous=previous.current if previous is not None else None,
    )


def merge(
    current_pass: Union[NormalizationResult, Iterable[NormalizedMetric]],
    previous_pass: Union[NormalizationResult, Iterable[NormalizedMetric]]
) -> List[NormalizedMetric]:
    """
    Merge a current-period pass and a previous-period pass.

    Metrics keep the current pass order, followed by metrics found only in
    the previous pass. For each entity present in either pass the result
    holds current = the current pass value and previous = the previous pass
    value. A side missing from its pass stays None; it is never zero-filled.

    Args:
        current_pass: Normalized metrics for the selected range
        previous_pass: Normalized metrics for the year-earlier range

    Returns:
        Merged NormalizedMetric list
    """
    current_metrics = _metrics_of(current_pass)
    previous_by_id = {m.metric_id: m for m in _metrics_of(previous_pass)}
    current_ids = {m.metric_id for m in current_metrics}

    merged = []
    for metric in current_metrics:
        previous = previous_by_id.get(metric.metric_id)
        merged.append(NormalizedMetric(
            metric_id=metric.metric_id,
            category=metric.category,
            merchant=_merge_entity(metric.merchant, previous.merchant if previous else None),
            competitor=_merge_entity(metric.competitor, previous.competitor if previous else None),
        ))

    for metric_id, previous in previous_by_id.items():
        if metric_id in current_ids:
            continue
        merged.append(NormalizedMetric(
            metric_id=metric_id,
            category=previous.category,
            merchant=_merge_entity(None, previous.merchant),
            competitor=_merge_entity(None, previous.competitor),
        ))

    return merged


def normalize_year_over_year(
    current_response: Any,
    previous_response: Any,
    requested_metric_ids: Optional[Iterable[str]] = None
) -> NormalizationResult:
    """
    Normalize both responses and merge them into one result.

    Errors from both passes are kept; previous-pass warnings are tagged so
    they can be told apart.

    Args:
        current_response: Raw response for the selected range
        previous_response: Raw response for the year-earlier range
        requested_metric_ids: Metrics to produce (all when omitted)

    Returns:
        NormalizationResult whose entities carry current and previous values
    """
    if requested_metric_ids is not None:
        requested_metric_ids = list(requested_metric_ids)

    current = normalize(current_response, requested_metric_ids)
    previous = normalize(previous_response, requested_metric_ids)

    logger.debug("Merging %d current and %d previous metrics",
                 len(current.metrics), len(previous.metrics))

    return NormalizationResult(
        metrics=merge(current, previous),
        errors=current.errors + previous.errors,
        warnings=current.warnings + [f"[previous period] {w}" for w in previous.warnings],
    )


def year_over_year_change(current: Optional[float], previous: Optional[float]) -> Optional[float]:
    """
    Percent change from the previous period to the current one.

    Returns:
        Percentage, 100 when growing from zero, or None when there is
        nothing to compare
    """
    if current is None or previous is None:
        return None
    if previous == 0:
        return 100.0 if current > 0 else None
    return (current - previous) / previous * 100
