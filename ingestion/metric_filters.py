"""
Metric-specific request filters.

Some metrics need extra filters on the outgoing analytics request. These
filters decide what the payload contains (e.g. interest_type makes
converted_customers_by_interest return revenue amounts or customer counts),
so they are resolved from the requesting view (context) before the fetch.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from ingestion.metric_schema import is_valid_filter_identifier


class FilterValidationError(ValueError):
    """Raised when a supplied filter value is outside the allowed set."""
    pass


@dataclass(frozen=True)
class FilterSpec:
    """One required filter of a metric."""
    default: str
    allowed_values: Tuple[str, ...]
    per_context_override: Mapping[str, str] = field(default_factory=dict)
    description: str = ''

    def value_for(self, context: Optional[str]) -> str:
        if context is not None and context in self.per_context_override:
            return self.per_context_override[context]
        return self.default


METRIC_FILTER_SPECS: Mapping[str, Mapping[str, FilterSpec]] = MappingProxyType({
    'converted_customers_by_interest': MappingProxyType({
        'interest_type': FilterSpec(
            default='revenue',
            allowed_values=('revenue', 'customers'),
            per_context_override=MappingProxyType({
                'revenue': 'revenue',
                'demographics': 'customers',
            }),
            description='Determines if the API returns revenue amounts or customer counts',
        ),
    }),
    'converted_customers_by_age': MappingProxyType({
        'age_group_type': FilterSpec(
            default='customers',
            allowed_values=('customers',),
            per_context_override=MappingProxyType({
                'demographics': 'customers',
            }),
            description='Age groups focused on customer demographics',
        ),
    }),
    'converted_customers_by_gender': MappingProxyType({}),
})


def _check_table() -> None:
    for metric_id, specs in METRIC_FILTER_SPECS.items():
        for filter_id, spec in specs.items():
            if not is_valid_filter_identifier(filter_id):
                raise ValueError(f"{metric_id}: unknown filter id {filter_id}")
            if spec.default not in spec.allowed_values:
                raise ValueError(f"{metric_id}.{filter_id}: default {spec.default!r} not allowed")
            for context, value in spec.per_context_override.items():
                if value not in spec.allowed_values:
                    raise ValueError(f"{metric_id}.{filter_id}: override for {context} not allowed")


_check_table()


@dataclass(frozen=True)
class FilterValidation:
    """Outcome of validating caller-supplied filter values."""
    valid: bool
    error: Optional[str] = None


def resolve_for_context(metric_id: str, context: Optional[str]) -> Dict[str, str]:
    """
    Resolve the filters a metric needs when requested from a context.

    Args:
        metric_id: Metric identifier
        context: Requesting view (e.g. 'revenue', 'demographics')

    Returns:
        Filter id -> value; empty for metrics without required filters

    Example:
        resolve_for_context('converted_customers_by_interest', 'demographics')
        -> {'interest_type': 'customers'}
    """
    specs = METRIC_FILTER_SPECS.get(metric_id)
    if not specs:
        return {}
    return {filter_id: spec.value_for(context) for filter_id, spec in specs.items()}


def resolve_for_metrics(metric_ids: Iterable[str], context: Optional[str]) -> Dict[str, Dict[str, str]]:
    """Resolve filters for several metrics, omitting those that need none."""
    resolved = {}
    for metric_id in metric_ids:
        filters = resolve_for_context(metric_id, context)
        if filters:
            resolved[metric_id] = filters
    return resolved


def validate_metric_filters(metric_id: str, supplied: Mapping[str, str]) -> FilterValidation:
    """
    Check supplied filter values against the metric's allowed sets.

    Filters the metric does not declare are ignored. The first violation
    is reported.

    Args:
        metric_id: Metric identifier
        supplied: Filter id -> value

    Returns:
        FilterValidation(valid=True) or FilterValidation(valid=False, error=...)
    """
    specs = METRIC_FILTER_SPECS.get(metric_id)
    if not specs:
        return FilterValidation(valid=True)

    for filter_id, value in supplied.items():
        spec = specs.get(filter_id)
        if spec is not None and value not in spec.allowed_values:
            return FilterValidation(
                valid=False,
                error=(
                    f"Invalid value '{value}' for {filter_id}. "
                    f"Valid options: {', '.join(spec.allowed_values)}"
                ),
            )

    return FilterValidation(valid=True)


def to_api_filters(metric_filters: Mapping[str, Mapping[str, str]], provider_id: str) -> List[Dict[str, str]]:
    """
    Flatten resolved filters into the request's filter list.

    Args:
        metric_filters: metric id -> {filter id: value}
        provider_id: Analytics provider the filters are routed to

    Returns:
        Ordered list of {'providerId', 'filterId', 'value'} dictionaries
    """
    api_filters = []
    for filters in metric_filters.values():
        for filter_id, value in filters.items():
            api_filters.append({
                'providerId': provider_id,
                'filterId': filter_id,
                'value': str(value),
            })
    return api_filters


def build_request_filters(
    metric_ids: Iterable[str],
    context: Optional[str],
    provider_id: str,
    overrides: Optional[Mapping[str, Mapping[str, str]]] = None
) -> List[Dict[str, str]]:
    """
    Resolve, override and flatten filters for an outgoing request.

    Caller overrides replace resolved values but must be allowed; an invalid
    override blocks the request instead of falling back to a default.

    Args:
        metric_ids: Metrics in the request
        context: Requesting view
        provider_id: Analytics provider id
        overrides: metric id -> {filter id: value} supplied by the caller

    Returns:
        API filter list (see to_api_filters)

    Raises:
        FilterValidationError: If any override is not an allowed value
    """
    metric_ids = list(metric_ids)
    resolved = resolve_for_metrics(metric_ids, context)

    for metric_id, supplied in (overrides or {}).items():
        result = validate_metric_filters(metric_id, supplied)
        if not result.valid:
            raise FilterValidationError(f"{metric_id}: {result.error}")
        declared = METRIC_FILTER_SPECS.get(metric_id, {})
        applicable = {k: v for k, v in supplied.items() if k in declared}
        if applicable and metric_id in metric_ids:
            resolved.setdefault(metric_id, {}).update(applicable)

    return to_api_filters(resolved, provider_id)


def metric_requires_filters(metric_id: str) -> bool:
    return bool(METRIC_FILTER_SPECS.get(metric_id))


def contexts_for_metric(metric_id: str) -> List[str]:
    """Contexts that override at least one of the metric's filters."""
    contexts: List[str] = []
    for spec in METRIC_FILTER_SPECS.get(metric_id, {}).values():
        for context in spec.per_context_override:
            if context not in contexts:
                contexts.append(context)
    return contexts


def metric_store_key(metric_id: str, context: Optional[str] = None) -> str:
    """
    Key under which a metric's data is stored for a context.

    A metric with context-dependent filters gets a compound key, so the same
    metric fetched for two views does not overwrite itself.

    Example:
        metric_store_key('converted_customers_by_interest', 'demographics')
        -> 'converted_customers_by_interest_interest_type_customers'
    """
    if not context:
        return metric_id

    filters = resolve_for_context(metric_id, context)
    if not filters:
        return metric_id

    suffix = '_'.join(f"{k}_{v}" for k, v in sorted(filters.items()))
    return f"{metric_id}_{suffix}"
