"""
Structural validators for normalized metrics.
Pure functions - no IO, network, or side effects.
"""

import math
from typing import Any, List

from ingestion.contracts import NormalizedMetric
from ingestion.metric_schema import COMPETITOR_EXPECTED_METRICS, Category
from ingestion.transforms import categorical_normalizer, scalar_normalizer, time_series_normalizer


class ValidationError(ValueError):
    """Raised when a normalized metric violates its category's shape."""
    pass


def _check_container(category: Category, container: Any, where: str) -> None:
    if container is None:
        return

    if category == Category.SCALAR:
        if isinstance(container, bool) or not isinstance(container, (int, float)):
            raise ValidationError(f"{where} must be numeric for scalar metric, got {type(container).__name__}")
        if not math.isfinite(container):
            raise ValidationError(f"{where} must be finite, got {container}")
        return

    if not isinstance(container, dict):
        raise ValidationError(f"{where} must be dict for {category.value} metric, got {type(container).__name__}")

    for key, value in container.items():
        if not isinstance(key, str):
            raise ValidationError(f"{where} key {key!r} must be string")
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ValidationError(f"{where}[{key}] must be a finite number, got {value!r}")


def check_metric_shape(metric: NormalizedMetric) -> None:
    """
    Check every entity container matches the metric's category.

    Args:
        metric: Normalized metric

    Raises:
        ValidationError: If any container has the wrong shape
    """
    if not isinstance(metric.category, Category):
        raise ValidationError(f"category must be Category, got {metric.category!r}")

    for entity_name, entity in metric.entities().items():
        _check_container(metric.category, entity.current, f"{entity_name}.current")
        _check_container(metric.category, entity.previous, f"{entity_name}.previous")


def validate_normalized_metric(metric: NormalizedMetric) -> List[str]:
    """
    Collect data quality warnings for a normalized metric.

    Runs the category-specific checks and notes missing competitor data for
    metrics that are normally benchmarked. A metric with no entities at all
    (absent from the response) produces no warnings.

    Args:
        metric: Normalized metric

    Returns:
        List of human-readable warnings
    """
    if not metric.has_data:
        return []

    if metric.category == Category.TIME_SERIES:
        warnings = time_series_normalizer.validate(metric)
    elif metric.category == Category.CATEGORICAL:
        warnings = categorical_normalizer.validate(metric)
    else:
        warnings = scalar_normalizer.validate(metric)

    if metric.metric_id in COMPETITOR_EXPECTED_METRICS and metric.competitor is None:
        warnings.append('Missing competitor data (may be expected)')

    return warnings
