"""
Categorical normalization - label keyed metric values (gender, age, interest,
channel, region breakdowns).
First-seen label order is kept; charts use it as their default display order.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from ingestion.contracts import CategoryMap, EntityPeriodData, NormalizedMetric, SeriesInput
from ingestion.metric_schema import AGE_GROUPS, GREEK_REGIONS, SHOPPING_INTERESTS
from ingestion.transforms.value_parser import parse_number

logger = logging.getLogger(__name__)

GENDER_LABELS = {
    'm': 'male',
    'f': 'female',
    'male': 'male',
    'female': 'female',
}

AGE_LABELS = {
    'generation_z': '18-24',
    'millennials': '25-40',
    'generation_x': '41-56',
    'baby_boomers': '57-75',
    'silent_generation': '76-96',
}

# Channel flags arrive as booleans: true is e-commerce, false is a
# physical store.
CHANNEL_LABELS = {
    'physical': 'physical',
    'store': 'physical',
    'retail': 'physical',
    'false': 'physical',
    'ecommerce': 'ecommerce',
    'e-commerce': 'ecommerce',
    'online': 'ecommerce',
    'true': 'ecommerce',
}

CHANNEL_ORDER = ('ecommerce', 'physical')

_DIGITS = re.compile(r'^\d+$')


def label_from_secondary(secondary: Any) -> Optional[str]:
    """
    Turn a point's secondary value into a map key.

    Booleans become 'true' / 'false'; empty labels yield None.
    """
    if secondary is None:
        return None
    if isinstance(secondary, bool):
        return 'true' if secondary else 'false'
    label = str(secondary).strip()
    return label or None


def map_category_label(metric_id: str, label: str) -> str:
    """
    Standardize a raw label for the metric it belongs to.

    Args:
        metric_id: Categorical metric identifier
        label: Raw label (already coerced to string)

    Returns:
        Display label; unknown labels pass through unchanged
    """
    if metric_id == 'converted_customers_by_gender':
        return GENDER_LABELS.get(label.lower(), label)

    if metric_id == 'converted_customers_by_age':
        return AGE_LABELS.get(label.lower(), label)

    if metric_id == 'converted_customers_by_interest':
        if label.upper().startswith('SHOPINT'):
            return label.upper()
        if _DIGITS.match(label):
            return f"SHOPINT{int(label)}"
        return label

    if metric_id == 'revenue_by_channel':
        return CHANNEL_LABELS.get(label.lower(), label)

    return label


def normalize_entity(metric_id: str, series_input: SeriesInput) -> Tuple[EntityPeriodData, List[str]]:
    """
    Build the ordered label map for one entity.

    Points with an empty label or an unparsable value are dropped. A label
    seen twice keeps its first position and its last value.

    Args:
        metric_id: Categorical metric identifier (selects label mapping)
        series_input: Narrowed series points for one entity

    Returns:
        Tuple of (EntityPeriodData with the label map as current, warnings)
    """
    warnings: List[str] = []
    categories: CategoryMap = {}
    dropped = 0

    for point in series_input.points:
        label = label_from_secondary(point.secondary)
        value = parse_number(point.primary)
        if label is None or value is None:
            dropped += 1
            continue
        categories[map_category_label(metric_id, label)] = value

    if dropped:
        logger.debug("Dropped %d unparsable points for %s", dropped, metric_id)
        warnings.append(f"Dropped {dropped} categorical point(s) with empty label or unparsable value")

    if series_input.scalar_only_payloads:
        warnings.append(
            f"Dropped {series_input.scalar_only_payloads} scalar value(s) on a categorical "
            f"metric: no category to attach them to"
        )

    return EntityPeriodData(current=categories), warnings


def expected_categories(metric_id: str) -> List[str]:
    """Full label set a chart expects for a metric (empty if open-ended)."""
    if metric_id == 'converted_customers_by_gender':
        return ['male', 'female']
    if metric_id == 'converted_customers_by_age':
        return list(AGE_GROUPS)
    if metric_id == 'converted_customers_by_interest':
        return list(SHOPPING_INTERESTS)
    if metric_id == 'revenue_by_channel':
        return list(CHANNEL_ORDER)
    if metric_id == 'transactions_by_geo':
        return list(GREEK_REGIONS)
    return []


def fill_missing_categories(
    categories: CategoryMap,
    metric_id: str,
    fill_value: float = 0
) -> CategoryMap:
    """Append expected labels that are missing, after the existing ones."""
    filled = dict(categories)
    for label in expected_categories(metric_id):
        if label not in filled:
            filled[label] = fill_value
    return filled


def _interest_number(label: str) -> int:
    suffix = label.upper().replace('SHOPINT', '')
    return int(suffix) if _DIGITS.match(suffix) else 0


def sort_categories(categories: CategoryMap, metric_id: str) -> List[str]:
    """
    Labels in the metric's logical order.

    Age brackets ascending, shopping interests by number, e-commerce before
    physical; anything else alphabetical. Labels outside a fixed order go last.
    """
    labels = list(categories)

    if metric_id == 'converted_customers_by_age':
        return sorted(labels, key=lambda l: _position(AGE_GROUPS, l))
    if metric_id == 'converted_customers_by_interest':
        return sorted(labels, key=_interest_number)
    if metric_id == 'revenue_by_channel':
        return sorted(labels, key=lambda l: _position(CHANNEL_ORDER, l))
    return sorted(labels)


def _position(order: Tuple[str, ...], label: str) -> int:
    return order.index(label) if label in order else len(order)


def summarize(categories: CategoryMap) -> Dict[str, Any]:
    """
    Summary statistics for a label map.

    Returns:
        Dictionary with category_count, total_value, average_value,
        top_category and top_category_value
    """
    if not categories:
        return {
            'category_count': 0,
            'total_value': 0.0,
            'average_value': 0.0,
            'top_category': None,
            'top_category_value': 0.0,
        }

    total = sum(categories.values())
    top_category = max(categories, key=categories.get)

    return {
        'category_count': len(categories),
        'total_value': total,
        'average_value': total / len(categories),
        'top_category': top_category,
        'top_category_value': categories[top_category],
    }


def validate(metric: NormalizedMetric) -> List[str]:
    """Data quality warnings for a normalized categorical metric."""
    warnings: List[str] = []

    merchant = metric.merchant
    if merchant is None or merchant.current is None:
        warnings.append('Missing merchant current data')
        return warnings

    if not merchant.current:
        warnings.append('No categories found in data')
        return warnings

    for label, value in merchant.current.items():
        if value < 0:
            warnings.append(f"Negative value for category {label}: {value}")

    return warnings
