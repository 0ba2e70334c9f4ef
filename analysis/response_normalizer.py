"""
Response normalizer - turns one raw analytics response into normalized metrics.

Flow per metric id:
1. Classify the id (unknown ids become a classification failure)
2. Split its payloads into merchant and competitor entities
3. Narrow each entity's payloads to the category's input shape
4. Dispatch to the category normalizer
5. Check the assembled metric's structure and collect quality warnings

A failure in one metric is recorded and the remaining metrics still
normalize; nothing raised inside a metric reaches the caller.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ingestion.contracts import (
    EntityPeriodData,
    MetricFailure,
    NormalizationResult,
    NormalizedMetric,
    RawMetricPayload,
    narrow_payloads,
    parse_raw_response,
)
from ingestion.metric_schema import (
    Category,
    ClassificationError,
    EntityType,
    classify,
    entity_type_for,
    is_merchant_only,
)
from ingestion.transforms import categorical_normalizer, scalar_normalizer, time_series_normalizer
from ingestion.transforms.validators import check_metric_shape, validate_normalized_metric

logger = logging.getLogger(__name__)


def _unique_ids(metric_ids: Iterable[Any]) -> List[Any]:
    # Non-string ids may be unhashable; they are compared by repr and left
    # for classification to reject.
    seen = set()
    ordered = []
    for metric_id in metric_ids:
        key = metric_id if isinstance(metric_id, str) else (type(metric_id).__name__, repr(metric_id))
        if key not in seen:
            seen.add(key)
            ordered.append(metric_id)
    return ordered


def _group_payloads(payloads: List[RawMetricPayload]) -> Dict[str, List[RawMetricPayload]]:
    grouped: Dict[str, List[RawMetricPayload]] = {}
    for payload in payloads:
        grouped.setdefault(payload.metric_id, []).append(payload)
    return grouped


def _normalize_entity(
    metric_id: str,
    category: Category,
    payloads: List[RawMetricPayload]
) -> Tuple[EntityPeriodData, List[str]]:
    narrowed = narrow_payloads(category, payloads)

    if category == Category.TIME_SERIES:
        return time_series_normalizer.normalize_entity(narrowed)
    if category == Category.CATEGORICAL:
        return categorical_normalizer.normalize_entity(metric_id, narrowed)
    return scalar_normalizer.normalize_entity(narrowed)


def normalize_metric(
    metric_id: str,
    payloads: List[RawMetricPayload]
) -> Tuple[NormalizedMetric, List[str]]:
    """
    Normalize all payloads of one metric.

    Args:
        metric_id: Metric identifier
        payloads: Every payload of the response carrying this metric id

    Returns:
        Tuple of (NormalizedMetric, warnings prefixed with the metric id)

    Raises:
        ClassificationError: If the metric id is unknown
    """
    category = classify(metric_id)
    warnings: List[str] = []

    by_entity: Dict[EntityType, List[RawMetricPayload]] = {}
    for payload in payloads:
        by_entity.setdefault(entity_type_for(payload.entity_id), []).append(payload)

    if is_merchant_only(metric_id) and EntityType.COMPETITOR in by_entity:
        dropped = by_entity.pop(EntityType.COMPETITOR)
        warnings.append(
            f"{metric_id}: discarded {len(dropped)} competitor payload(s) for a merchant-only metric"
        )

    entities: Dict[EntityType, EntityPeriodData] = {}
    for entity_type in (EntityType.MERCHANT, EntityType.COMPETITOR):
        entity_payloads = by_entity.get(entity_type)
        if not entity_payloads:
            continue
        data, entity_warnings = _normalize_entity(metric_id, category, entity_payloads)
        entities[entity_type] = data
        warnings.extend(f"{metric_id} ({entity_type.value}): {w}" for w in entity_warnings)

    metric = NormalizedMetric(
        metric_id=metric_id,
        category=category,
        merchant=entities.get(EntityType.MERCHANT),
        competitor=entities.get(EntityType.COMPETITOR),
    )

    check_metric_shape(metric)
    warnings.extend(f"{metric_id}: {w}" for w in validate_normalized_metric(metric))

    return metric, warnings


def normalize(
    raw_response: Any,
    requested_metric_ids: Optional[Iterable[str]] = None
) -> NormalizationResult:
    """
    Normalize a deserialized analytics response.

    Args:
        raw_response: {"payload": {"metrics": [...]}} or a list of metric
            dictionaries
        requested_metric_ids: Metrics to produce, in output order. Duplicates
            are collapsed. When omitted, every metric in the response is
            produced in first-seen order.

    Returns:
        NormalizationResult with metrics, per-metric failures and warnings.
        A requested metric missing from the response is returned with no
        entities.

    Example:
        result = normalize(response, ['total_revenue', 'revenue_per_day'])
        result.get('revenue_per_day').merchant.current
        -> {'2025-01-15': 100.5, ...}
    """
    result = NormalizationResult()

    payloads, parse_warnings = parse_raw_response(raw_response)
    result.warnings.extend(parse_warnings)
    grouped = _group_payloads(payloads)

    if requested_metric_ids is None:
        metric_ids = list(grouped)
    else:
        metric_ids = _unique_ids(requested_metric_ids)

    logger.debug("Normalizing %d metrics from %d payloads", len(metric_ids), len(payloads))

    for metric_id in metric_ids:
        try:
            metric_payloads = grouped.get(metric_id, []) if isinstance(metric_id, str) else []
            metric, warnings = normalize_metric(metric_id, metric_payloads)
        except ClassificationError as e:
            logger.warning("Classification failed for %s: %s", metric_id, e)
            result.errors.append(MetricFailure(str(metric_id), 'classification', str(e)))
            continue
        except Exception as e:
            logger.warning("Failed to normalize %s: %s", metric_id, e)
            result.errors.append(MetricFailure(str(metric_id), 'structure', str(e)))
            continue

        result.metrics.append(metric)
        result.warnings.extend(warnings)
        logger.debug("Normalized %s (%s): %s", metric_id, metric.category.value,
                     ', '.join(metric.entities()) or 'no data')

    if result.errors:
        logger.warning("Normalization finished with %d failed metric(s)", len(result.errors))

    return result
