"""
Scalar normalization - one number per entity (totals, averages, points).
"""

import logging
from typing import List, Optional, Tuple

from ingestion.contracts import EntityPeriodData, NormalizedMetric, ScalarInput
from ingestion.metric_schema import COUNT_METRICS, CURRENCY_METRICS
from ingestion.transforms.value_parser import parse_number

logger = logging.getLogger(__name__)

# Values above these limits almost always mean a unit or parsing problem
MAX_REASONABLE_VALUES = {
    'total_revenue': 1_000_000_000,
    'total_transactions': 10_000_000,
    'avg_ticket_per_user': 100_000,
}


def normalize_entity(scalar_input: ScalarInput) -> Tuple[EntityPeriodData, List[str]]:
    """
    Extract the entity's scalar value.

    When several payloads carry a value, the last parseable one wins. If no
    payload has a scalar value, the sum of the series points is used instead.

    Args:
        scalar_input: Narrowed scalar values for one entity

    Returns:
        Tuple of (EntityPeriodData with a float or None as current, warnings)
    """
    warnings: List[str] = []
    value: Optional[float] = None
    unparsable = 0

    for raw in scalar_input.values:
        parsed = parse_number(raw)
        if parsed is None:
            unparsable += 1
            continue
        value = parsed

    if unparsable:
        warnings.append(f"Dropped {unparsable} unparsable scalar value(s)")

    if value is None and scalar_input.fallback_series:
        for points in scalar_input.fallback_series:
            extracted = _sum_points(points)
            if extracted is not None:
                value = extracted
        if value is not None:
            logger.debug("Scalar value extracted from series points")
            warnings.append('Scalar metric delivered as series; using the sum of its points')

    return EntityPeriodData(current=value), warnings


def _sum_points(points) -> Optional[float]:
    values = [v for v in (parse_number(p.primary) for p in points) if v is not None]
    return sum(values) if values else None


def validate(metric: NormalizedMetric) -> List[str]:
    """
    Data quality warnings for a normalized scalar metric.

    Checks for a missing merchant value, negative currency amounts, negative
    or fractional counts, and implausibly large values.
    """
    warnings: List[str] = []
    metric_id = metric.metric_id

    merchant = metric.merchant
    if merchant is None or merchant.current is None:
        warnings.append('Missing merchant current data')
        return warnings

    value = merchant.current

    if metric_id in CURRENCY_METRICS and value < 0:
        warnings.append(f"Revenue metric {metric_id} has negative value: {value}")

    if metric_id in COUNT_METRICS:
        if value < 0:
            warnings.append(f"Count metric {metric_id} has negative value: {value}")
        if not float(value).is_integer():
            warnings.append(f"Count metric {metric_id} should be integer: {value}")

    limit = MAX_REASONABLE_VALUES.get(metric_id)
    if limit is not None and value > limit:
        warnings.append(f"Metric {metric_id} has unreasonably large value: {value}")

    return warnings
