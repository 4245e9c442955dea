"""
Tests for revenue metrics generators.

Tests cover:
- Generator selection based on configuration
- Generator registration
- Synthetic revenue model formulas and determinism
"""

import pytest
from decimal import Decimal
from unittest.mock import Mock, patch
from django.conf import settings

from billing.generators.factory import (
    get_revenue_metrics_generator,
    register_generator,
    list_available_generators,
    GENERATOR_REGISTRY,
)
from billing.generators.base import (
    BaseRevenueMetricsGenerator,
    RevenueGeneratorException,
    RevenueMetrics,
)
from billing.generators.synthetic import SyntheticRevenueMetricsGenerator


def make_tier(price):
    return Mock(monthly_price=Decimal(price))


class TestGetRevenueMetricsGenerator:

    def test_get_synthetic_generator_explicit(self):
        generator = get_revenue_metrics_generator('synthetic', seed='org-1')

        assert isinstance(generator, SyntheticRevenueMetricsGenerator)
        assert generator.seed == 'org-1'

    def test_generator_name_normalized(self):
        """Generator name is case-insensitive and stripped"""
        generator = get_revenue_metrics_generator('  Synthetic ')

        assert isinstance(generator, SyntheticRevenueMetricsGenerator)

    @patch.object(settings, 'REVENUE_METRICS_GENERATOR', 'synthetic')
    def test_uses_settings_default(self):
        generator = get_revenue_metrics_generator()

        assert isinstance(generator, SyntheticRevenueMetricsGenerator)

    def test_unsupported_generator(self):
        with pytest.raises(RevenueGeneratorException) as exc_info:
            get_revenue_metrics_generator('ledger')

        assert 'Unsupported revenue metrics generator' in str(exc_info.value)
        assert exc_info.value.error_code == 'unsupported_generator'
        assert 'synthetic' in str(exc_info.value)


class TestRegisterGenerator:

    def test_register_custom_generator(self):
        class FlatGenerator(BaseRevenueMetricsGenerator):
            def generate(self, tiers, previous=None):
                return None

        try:
            register_generator('Flat', FlatGenerator)

            assert 'flat' in list_available_generators()
            assert isinstance(get_revenue_metrics_generator('flat'), FlatGenerator)
        finally:
            GENERATOR_REGISTRY.pop('flat', None)

    def test_register_rejects_non_generator(self):
        class NotAGenerator:
            pass

        with pytest.raises(RevenueGeneratorException) as exc_info:
            register_generator('bogus', NotAGenerator)

        assert exc_info.value.error_code == 'invalid_generator_class'
        assert 'bogus' not in GENERATOR_REGISTRY


class TestSyntheticRevenueMetricsGenerator:

    def setup_method(self):
        self.tiers = [make_tier('29.00'), make_tier('79.00')]

    def test_first_period_starts_from_base_customers(self):
        metrics = SyntheticRevenueMetricsGenerator(seed='org-1').generate(self.tiers)

        assert isinstance(metrics, RevenueMetrics)
        assert 105 <= metrics.total_customers <= 115
        assert metrics.new_customers == metrics.total_customers - 100
        assert metrics.churned_customers == 2
        assert metrics.upgraded_customers == 3
        assert metrics.downgraded_customers == 1
        assert metrics.churn_rate == Decimal('0.0200')

    def test_money_formulas(self):
        metrics = SyntheticRevenueMetricsGenerator(seed='org-1').generate(self.tiers)

        assert metrics.mrr == Decimal(metrics.total_customers) * Decimal('54.00')
        assert metrics.arr == metrics.mrr * 12
        assert metrics.arpu == Decimal('54.00')
        assert metrics.ltv == Decimal('2700.00')
        assert metrics.cac == Decimal('16.20')

    def test_grows_from_previous_period(self):
        previous = Mock(total_customers=200)

        metrics = SyntheticRevenueMetricsGenerator(seed='org-1').generate(self.tiers, previous=previous)

        assert 210 <= metrics.total_customers <= 230
        assert metrics.churned_customers == 4

    def test_deterministic_for_same_seed(self):
        first = SyntheticRevenueMetricsGenerator(seed='org-1').generate(self.tiers)
        second = SyntheticRevenueMetricsGenerator(seed='org-1').generate(self.tiers)

        assert first == second

    def test_to_dict_has_model_fields(self):
        data = SyntheticRevenueMetricsGenerator(seed='org-1').generate(self.tiers).to_dict()

        assert set(data) == {
            'mrr', 'arr', 'new_customers', 'churned_customers', 'upgraded_customers',
            'downgraded_customers', 'total_customers', 'churn_rate', 'ltv', 'cac', 'arpu',
        }
