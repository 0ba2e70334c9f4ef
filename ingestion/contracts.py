"""
Data contracts for the normalization pipeline.

Raw side: RawMetricPayload / SeriesGroup / SeriesPoint, built from the
analytics API's wire dictionaries.
Normalized side: EntityPeriodData / NormalizedMetric, consumed by charts and
metric cards.
Between them: ScalarInput / SeriesInput, the category-narrowed shape a
normalizer receives.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from ingestion.metric_schema import Category

logger = logging.getLogger(__name__)

DateMap = Dict[str, float]
CategoryMap = Dict[str, float]
ValueContainer = Union[float, DateMap, CategoryMap, None]


class ContractError(ValueError):
    """Raised when a raw metric entry cannot be read."""
    pass


@dataclass(frozen=True)
class SeriesPoint:
    """One point of a series: primary is the value, secondary the key."""
    primary: Any
    secondary: Any


@dataclass(frozen=True)
class SeriesGroup:
    group_id: Optional[str]
    points: Tuple[SeriesPoint, ...] = ()


@dataclass(frozen=True)
class RawMetricPayload:
    """As-received payload for one metric and one entity."""
    metric_id: str
    scalar_value: Any = None
    series_values: Optional[Tuple[SeriesGroup, ...]] = None
    entity_id: Optional[str] = None

    @property
    def has_series(self) -> bool:
        return bool(self.series_values) and any(g.points for g in self.series_values)

    @property
    def has_scalar(self) -> bool:
        return self.scalar_value is not None and self.scalar_value != ''

    def iter_points(self):
        for group in self.series_values or ():
            yield from group.points

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> 'RawMetricPayload':
        """
        Build a payload from an API metric dictionary.

        Wire keys (metricID, scalarValue, seriesValues[].seriesID,
        seriesValues[].seriesPoints[].value1/value2, merchantId) and
        the descriptive keys (entityId, groupId, points, primary,
        secondary) are both accepted.

        Raises:
            ContractError: If the entry is not a dict or has no metric id
        """
        if not isinstance(raw, dict):
            raise ContractError(f"metric entry must be dict, got {type(raw).__name__}")

        metric_id = raw.get('metricID', raw.get('metricId'))
        if not isinstance(metric_id, str) or not metric_id:
            raise ContractError("metric entry has no metricID")

        series_raw = raw.get('seriesValues')
        series_values = None
        if isinstance(series_raw, list):
            series_values = tuple(_group_from_dict(g) for g in series_raw if isinstance(g, dict))

        entity_id = raw.get('merchantId', raw.get('entityId'))

        return cls(
            metric_id=metric_id,
            scalar_value=raw.get('scalarValue'),
            series_values=series_values,
            entity_id=None if entity_id is None else str(entity_id),
        )


def _group_from_dict(raw: Dict[str, Any]) -> SeriesGroup:
    points_raw = raw.get('seriesPoints', raw.get('points'))
    if points_raw is None:
        points_raw = []
    if not isinstance(points_raw, list):
        raise ContractError(f"seriesPoints must be list, got {type(points_raw).__name__}")

    points = []
    for point in points_raw:
        if not isinstance(point, dict):
            continue
        points.append(SeriesPoint(
            primary=point.get('value1', point.get('primary')),
            secondary=point.get('value2', point.get('secondary')),
        ))
    return SeriesGroup(group_id=raw.get('seriesID', raw.get('groupId')), points=tuple(points))


def parse_raw_response(raw_response: Any) -> Tuple[List[RawMetricPayload], List[str]]:
    """
    Extract metric payloads from a deserialized API response.

    Args:
        raw_response: {"payload": {"metrics": [...]}} or a bare list of
            metric dictionaries

    Returns:
        Tuple of (payloads in response order, warnings for skipped entries)
    """
    warnings: List[str] = []

    if isinstance(raw_response, list):
        entries = raw_response
    elif isinstance(raw_response, dict):
        payload = raw_response.get('payload')
        entries = payload.get('metrics') if isinstance(payload, dict) else None
    else:
        entries = None

    if not isinstance(entries, list):
        warnings.append('No metrics data in response')
        return [], warnings

    payloads = []
    for index, entry in enumerate(entries):
        try:
            payloads.append(RawMetricPayload.from_dict(entry))
        except ContractError as e:
            logger.warning("Skipping metric entry %d: %s", index, e)
            warnings.append(f"Skipped metric entry {index}: {e}")

    return payloads, warnings


# Category-narrowed inputs

@dataclass(frozen=True)
class ScalarInput:
    """Scalar payload values, plus series points for the series fallback."""
    values: Tuple[Any, ...] = ()
    fallback_series: Tuple[Tuple[SeriesPoint, ...], ...] = ()


@dataclass(frozen=True)
class SeriesInput:
    """Flattened series points for time-series and categorical metrics."""
    points: Tuple[SeriesPoint, ...] = ()
    scalar_only_payloads: int = 0


NarrowedInput = Union[ScalarInput, SeriesInput]


def narrow_payloads(category: Category, payloads: List[RawMetricPayload]) -> NarrowedInput:
    """
    Narrow an entity's payloads to the shape its category needs.

    Scalar metrics take scalarValue; a payload without one contributes its
    series points as a fallback. Series metrics take the flattened points of
    every group; payloads carrying only a scalar are counted so the caller
    can warn about them.
    """
    if category == Category.SCALAR:
        values = []
        fallback = []
        for payload in payloads:
            if payload.has_scalar:
                values.append(payload.scalar_value)
            elif payload.has_series:
                fallback.append(tuple(payload.iter_points()))
        return ScalarInput(values=tuple(values), fallback_series=tuple(fallback))

    points: List[SeriesPoint] = []
    scalar_only = 0
    for payload in payloads:
        if payload.has_series:
            points.extend(payload.iter_points())
        elif payload.has_scalar:
            scalar_only += 1
    return SeriesInput(points=tuple(points), scalar_only_payloads=scalar_only)


# Normalized output

@dataclass(frozen=True)
class EntityPeriodData:
    """Normalized values for one entity: current period and optional previous."""
    current: ValueContainer = None
    previous: ValueContainer = None

    def to_dict(self) -> Dict[str, Any]:
        result = {'current': _container_to_json(self.current)}
        if self.previous is not None:
            result['previous'] = _container_to_json(self.previous)
        return result


def _container_to_json(container: ValueContainer) -> Any:
    if isinstance(container, dict):
        return dict(container)
    return container


@dataclass(frozen=True)
class NormalizedMetric:
    """
    Uniform view of one metric.

    category fixes the ValueContainer variant of every entity: float for
    scalar, date map for time series, ordered label map for categorical.
    A metric requested but absent from the response has no entities.
    """
    metric_id: str
    category: Category
    merchant: Optional[EntityPeriodData] = None
    competitor: Optional[EntityPeriodData] = None

    @property
    def has_data(self) -> bool:
        return self.merchant is not None or self.competitor is not None

    def entities(self) -> Dict[str, EntityPeriodData]:
        """Present entities keyed by entity type value."""
        present = {}
        if self.merchant is not None:
            present['merchant'] = self.merchant
        if self.competitor is not None:
            present['competitor'] = self.competitor
        return present

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            'metric_id': self.metric_id,
            'category': self.category.value,
        }
        for name, entity in self.entities().items():
            result[name] = entity.to_dict()
        return result


@dataclass
class MetricFailure:
    """Fatal problem with a single metric."""
    metric_id: str
    error_type: str
    message: str

    def __str__(self) -> str:
        return f"{self.metric_id} ({self.error_type}): {self.message}"


@dataclass
class NormalizationResult:
    """Output of one normalization pass."""
    metrics: List[NormalizedMetric] = field(default_factory=list)
    errors: List[MetricFailure] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def get(self, metric_id: str) -> Optional[NormalizedMetric]:
        for metric in self.metrics:
            if metric.metric_id == metric_id:
                return metric
        return None

    @property
    def metric_ids(self) -> List[str]:
        return [m.metric_id for m in self.metrics]

    def stats(self) -> Dict[str, int]:
        """Counts by entity presence and category."""
        stats = {
            'total_metrics': len(self.metrics),
            'merchant_metrics': 0,
            'competitor_metrics': 0,
            'empty_metrics': 0,
            'scalar_metrics': 0,
            'time_series_metrics': 0,
            'categorical_metrics': 0,
            'error_count': len(self.errors),
            'warning_count': len(self.warnings),
        }
        category_keys = {
            Category.SCALAR: 'scalar_metrics',
            Category.TIME_SERIES: 'time_series_metrics',
            Category.CATEGORICAL: 'categorical_metrics',
        }
        for metric in self.metrics:
            if metric.merchant is not None:
                stats['merchant_metrics'] += 1
            if metric.competitor is not None:
                stats['competitor_metrics'] += 1
            if not metric.has_data:
                stats['empty_metrics'] += 1
            stats[category_keys[metric.category]] += 1
        return stats

    def to_dict(self) -> Dict[str, Any]:
        return {
            'metrics': {m.metric_id: m.to_dict() for m in self.metrics},
            'errors': [str(e) for e in self.errors],
            'warnings': list(self.warnings),
            'stats': self.stats(),
        }
