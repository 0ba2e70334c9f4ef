"""
Metric schema - static classification of analytics metric identifiers.
Pure lookups over closed tables. Adding a metric means adding it here.
"""

from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, List, Mapping, Optional, Tuple

from ingestion.config import POST_PROMOTION_ANALYTICS_PROVIDER, settings


class ClassificationError(Exception):
    """Raised when a metric identifier does not map to any known category."""
    pass


class Category(str, Enum):
    """Shape of a metric's value container."""
    SCALAR = 'scalar'
    TIME_SERIES = 'timeSeries'
    CATEGORICAL = 'categorical'


class EntityType(str, Enum):
    """Subject a metric payload describes."""
    MERCHANT = 'merchant'
    COMPETITOR = 'competitor'


SCALAR_METRICS: Tuple[str, ...] = (
    'total_revenue',
    'total_transactions',
    'avg_ticket_per_user',
    'avg_daily_revenue',
    'total_customers',
    'goformore_amount',
    'rewarded_amount',
    'redeemed_amount',
    'rewarded_points',
    'redeemed_points',
)

TIME_SERIES_METRICS: Tuple[str, ...] = (
    'revenue_per_day',
    'transactions_per_day',
    'customers_per_day',
)

CATEGORICAL_METRICS: Tuple[str, ...] = (
    'converted_customers_by_gender',
    'converted_customers_by_age',
    'converted_customers_by_interest',
    'converted_customers_by_activity',
    'revenue_by_channel',
    'transactions_by_geo',
)


def _build_category_table() -> Mapping[str, Category]:
    table = {}
    for category, metric_ids in (
        (Category.SCALAR, SCALAR_METRICS),
        (Category.TIME_SERIES, TIME_SERIES_METRICS),
        (Category.CATEGORICAL, CATEGORICAL_METRICS),
    ):
        for metric_id in metric_ids:
            if metric_id in table:
                raise ValueError(f"Metric {metric_id} listed in more than one category")
            table[metric_id] = category
    return MappingProxyType(table)


METRIC_CATEGORIES: Mapping[str, Category] = _build_category_table()

FILTER_IDS: FrozenSet[str] = frozenset({
    'interest_type',
    'age_group_type',
    'customer_region_type',
    'transactions_type',
    'data_origin',
    'store',
    'profession',
    'channel',
    'channel_type',
    'gender',
    'age',
    'age_group',
    'shopping_interests',
    'home_location',
    'work_location',
    'customer_activity_promotion',
    'nbg_customer_segmentation',
    'spending_profile',
    'customers_activity',
})

ANALYTICS_PROVIDER_IDS: Mapping[str, str] = MappingProxyType({
    'post_promotion_analytics': POST_PROMOTION_ANALYTICS_PROVIDER,
    'audience_filtering': '79706006-ed8a-426d-88a8-c574acb92f26',
})

# Loyalty (Go For More) and customer metrics are never benchmarked
# against competitors.
MERCHANT_ONLY_METRICS: FrozenSet[str] = frozenset({
    'goformore_amount',
    'rewarded_amount',
    'rewarded_points',
    'redeemed_amount',
    'redeemed_points',
    'customers_per_day',
    'total_customers',
})

# Metrics for which competitor data is normally returned
COMPETITOR_EXPECTED_METRICS: FrozenSet[str] = frozenset({
    'total_revenue',
    'total_transactions',
    'avg_ticket_per_user',
    'revenue_per_day',
    'transactions_per_day',
    'converted_customers_by_gender',
    'converted_customers_by_age',
    'converted_customers_by_interest',
    'revenue_by_channel',
})

CURRENCY_METRICS: FrozenSet[str] = frozenset({
    'total_revenue',
    'avg_daily_revenue',
    'avg_ticket_per_user',
    'goformore_amount',
    'rewarded_amount',
    'redeemed_amount',
})

COUNT_METRICS: FrozenSet[str] = frozenset({
    'total_transactions',
    'total_customers',
    'rewarded_points',
    'redeemed_points',
})

AGE_GROUPS: Tuple[str, ...] = ('18-24', '25-40', '41-56', '57-75', '76-96')

SHOPPING_INTERESTS: Tuple[str, ...] = tuple(f'SHOPINT{i}' for i in range(1, 16))

GREEK_REGIONS: Tuple[str, ...] = (
    'ΑΤΤΙΚΗ', 'ΚΕΝΤΡΙΚΗ ΜΑΚΕΔΟΝΙΑ', 'ΘΕΣΣΑΛΙΑ', 'ΚΕΝΤΡΙΚΗ ΕΛΛΑΔΑ',
    'ΔΥΤΙΚΗ ΕΛΛΑΔΑ', 'ΠΕΛΟΠΟΝΝΗΣΟΣ', 'ΑΝΑΤΟΛΙΚΗ ΜΑΚΕΔΟΝΙΑ ΚΑΙ ΘΡΑΚΗ',
    'ΚΡΗΤΗ', 'ΗΠΕΙΡΟΣ', 'ΔΥΤΙΚΗ ΜΑΚΕΔΟΝΙΑ', 'ΝΟΤΙΟ ΑΙΓΑΙΟ',
    'ΒΟΡΕΙΟ ΑΙΓΑΙΟ', 'ΝΗΣΙΑ ΙΟΝΙΟΥ',
)


def classify(metric_id: str) -> Category:
    """
    Resolve the category of a metric identifier.

    Args:
        metric_id: Analytics metric identifier (e.g. 'revenue_per_day')

    Returns:
        The metric's Category

    Raises:
        ClassificationError: If the identifier is not in the schema
    """
    category = METRIC_CATEGORIES.get(metric_id) if isinstance(metric_id, str) else None
    if category is None:
        raise ClassificationError(f"unknown metric identifier: {metric_id!r}")
    return category


def is_valid_metric_identifier(metric_id: str) -> bool:
    """Check whether a metric identifier is in the schema."""
    return isinstance(metric_id, str) and metric_id in METRIC_CATEGORIES


def is_valid_filter_identifier(filter_id: str) -> bool:
    """Check whether a filter identifier is known to the analytics API."""
    return isinstance(filter_id, str) and filter_id in FILTER_IDS


def metrics_by_category(category: Category) -> List[str]:
    """Return all metric identifiers of a category, in table order."""
    return [m for m, c in METRIC_CATEGORIES.items() if c == Category(category)]


def is_merchant_only(metric_id: str) -> bool:
    return metric_id in MERCHANT_ONLY_METRICS


def entity_type_for(
    entity_id: Optional[str],
    competitor_ids: Optional[Tuple[str, ...]] = None
) -> EntityType:
    """
    Map a payload's entity id to merchant or competitor.

    Competition data arrives under a reserved id; every other id is the
    merchant's own data.

    Args:
        entity_id: Raw entity id (merchantId on the wire)
        competitor_ids: Lowercase reserved ids (defaults to settings)

    Returns:
        EntityType.COMPETITOR or EntityType.MERCHANT
    """
    reserved = competitor_ids if competitor_ids is not None else settings.competitor_entity_ids
    if entity_id is not None and str(entity_id).strip().lower() in reserved:
        return EntityType.COMPETITOR
    return EntityType.MERCHANT
