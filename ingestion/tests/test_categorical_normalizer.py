"""
Tests for categorical normalization - label maps, label mapping, ordering
and summaries.
"""

import pytest

from ingestion.contracts import EntityPeriodData, NormalizedMetric, SeriesInput, SeriesPoint
from ingestion.metric_schema import AGE_GROUPS, Category
from ingestion.transforms.categorical_normalizer import (
    expected_categories,
    fill_missing_categories,
    label_from_secondary,
    map_category_label,
    normalize_entity,
    sort_categories,
    summarize,
    validate,
)


def points(*pairs):
    return SeriesInput(points=tuple(SeriesPoint(v, label) for v, label in pairs))


class TestLabels:
    """Tests for label coercion and mapping."""

    def test_label_from_secondary(self):
        assert label_from_secondary(True) == 'true'
        assert label_from_secondary(False) == 'false'
        assert label_from_secondary(' 25-40 ') == '25-40'
        assert label_from_secondary(3) == '3'
        assert label_from_secondary('') is None
        assert label_from_secondary('   ') is None
        assert label_from_secondary(None) is None

    @pytest.mark.parametrize("metric_id,raw,expected", [
        ('converted_customers_by_gender', 'M', 'male'),
        ('converted_customers_by_gender', 'f', 'female'),
        ('converted_customers_by_gender', 'other', 'other'),
        ('converted_customers_by_age', 'millennials', '25-40'),
        ('converted_customers_by_age', '41-56', '41-56'),
        ('converted_customers_by_interest', 'shopint3', 'SHOPINT3'),
        ('converted_customers_by_interest', '07', 'SHOPINT7'),
        ('revenue_by_channel', 'true', 'ecommerce'),
        ('revenue_by_channel', 'false', 'physical'),
        ('revenue_by_channel', 'Online', 'ecommerce'),
        ('transactions_by_geo', 'ΑΤΤΙΚΗ', 'ΑΤΤΙΚΗ'),
    ])
    def test_map_category_label(self, metric_id, raw, expected):
        assert map_category_label(metric_id, raw) == expected

    def test_boolean_labels_only_mapped_for_channel(self):
        assert map_category_label('converted_customers_by_activity', 'true') == 'true'


class TestNormalizeEntity:
    """Tests for normalize_entity."""

    def test_first_seen_order_kept(self):
        data, warnings = normalize_entity('converted_customers_by_age', points(
            ('30', '41-56'), ('50', '18-24'), ('20', '25-40'),
        ))

        assert list(data.current) == ['41-56', '18-24', '25-40']
        assert data.current == {'41-56': 30.0, '18-24': 50.0, '25-40': 20.0}
        assert warnings == []

    def test_channel_booleans(self):
        data, _ = normalize_entity('revenue_by_channel', points(('7000', True), ('3000', False)))
        assert data.current == {'ecommerce': 7000.0, 'physical': 3000.0}

    def test_repeated_label_keeps_position_and_last_value(self):
        data, _ = normalize_entity('converted_customers_by_gender', points(
            ('1', 'm'), ('2', 'f'), ('3', 'male'),
        ))
        assert list(data.current.items()) == [('male', 3.0), ('female', 2.0)]

    def test_empty_labels_and_bad_values_dropped(self):
        data, warnings = normalize_entity('transactions_by_geo', points(
            ('5', 'ΚΡΗΤΗ'), ('6', ''), ('n/a', 'ΗΠΕΙΡΟΣ'), ('7', None),
        ))

        assert data.current == {'ΚΡΗΤΗ': 5.0}
        assert warnings == ['Dropped 3 categorical point(s) with empty label or unparsable value']

    def test_scalar_only_payloads_warned(self):
        _, warnings = normalize_entity('revenue_by_channel', SeriesInput(scalar_only_payloads=1))
        assert warnings == [
            'Dropped 1 scalar value(s) on a categorical metric: no category to attach them to'
        ]


class TestCategoryHelpers:
    """Tests for expected categories, filling, sorting and summaries."""

    def test_expected_categories(self):
        assert expected_categories('converted_customers_by_gender') == ['male', 'female']
        assert expected_categories('converted_customers_by_age') == list(AGE_GROUPS)
        assert len(expected_categories('converted_customers_by_interest')) == 15
        assert len(expected_categories('transactions_by_geo')) == 13
        assert expected_categories('converted_customers_by_activity') == []

    def test_fill_missing_categories(self):
        filled = fill_missing_categories({'physical': 3.0}, 'revenue_by_channel')
        assert list(filled.items()) == [('physical', 3.0), ('ecommerce', 0)]

    def test_sort_age(self):
        categories = {'57-75': 1, '18-24': 1, 'unknown': 1, '25-40': 1}
        assert sort_categories(categories, 'converted_customers_by_age') == [
            '18-24', '25-40', '57-75', 'unknown',
        ]

    def test_sort_interest_numeric(self):
        categories = {'SHOPINT10': 1, 'SHOPINT2': 1, 'SHOPINT1': 1}
        assert sort_categories(categories, 'converted_customers_by_interest') == [
            'SHOPINT1', 'SHOPINT2', 'SHOPINT10',
        ]

    def test_sort_channel(self):
        assert sort_categories({'physical': 1, 'ecommerce': 2}, 'revenue_by_channel') == [
            'ecommerce', 'physical',
        ]

    def test_sort_default_alphabetical(self):
        assert sort_categories({'b': 1, 'a': 2}, 'converted_customers_by_activity') == ['a', 'b']

    def test_summarize(self):
        summary = summarize({'male': 120.0, 'female': 80.0})
        assert summary == {
            'category_count': 2,
            'total_value': 200.0,
            'average_value': 100.0,
            'top_category': 'male',
            'top_category_value': 120.0,
        }

    def test_summarize_empty(self):
        assert summarize({})['top_category'] is None
        assert summarize({})['category_count'] == 0


class TestValidate:
    """Tests for categorical quality warnings."""

    def _metric(self, current):
        merchant = EntityPeriodData(current=current) if current is not None else None
        return NormalizedMetric('converted_customers_by_age', Category.CATEGORICAL, merchant=merchant)

    def test_clean(self):
        assert validate(self._metric({'18-24': 5.0})) == []

    def test_missing_merchant(self):
        assert validate(self._metric(None)) == ['Missing merchant current data']

    def test_no_categories(self):
        assert validate(self._metric({})) == ['No categories found in data']

    def test_negative_values_reported_not_clamped(self):
        metric = self._metric({'18-24': -2.0, '25-40': 4.0})
        assert validate(metric) == ['Negative value for category 18-24: -2.0']
        assert metric.merchant.current['18-24'] == -2.0
