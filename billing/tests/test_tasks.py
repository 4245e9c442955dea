"""
Tests for billing Celery tasks.

Tests cover:
- Monthly revenue analytics generation
- Organizations without tiers are skipped
- Task retry behavior on failures
"""
import pytest
from decimal import Decimal
from unittest.mock import patch
from django.utils import timezone

from accounts.models import User
from organizations.models import Organization
from analytics.services import month_bounds, previous_month
from billing.models import SubscriptionTier, RevenueAnalytics
from billing.tasks import generate_monthly_revenue_analytics


@pytest.mark.django_db
class TestGenerateMonthlyRevenueAnalytics:

    def setup_method(self):
        self.user1 = User.objects.create_user(email='user1@example.com', password='pass123')
        self.user2 = User.objects.create_user(email='user2@example.com', password='pass123')
        self.with_tiers = Organization.objects.create(name='Org1', owner=self.user1)
        self.without_tiers = Organization.objects.create(name='Org2', owner=self.user2)
        SubscriptionTier.objects.create(
            organization=self.with_tiers, tier_name='Starter', tier_level=1, monthly_price=Decimal('29.00')
        )

    def test_generates_last_month_for_organizations_with_tiers(self):
        result = generate_monthly_revenue_analytics()

        assert result['status'] == 'success'
        assert result['generated'] == 1
        row = RevenueAnalytics.objects.get()
        assert row.organization == self.with_tiers
        assert (row.period_start, row.period_end) == month_bounds(previous_month(timezone.localdate()))

    def test_retries_on_failure(self):
        with patch('billing.tasks.Organization.objects.all', side_effect=Exception('db down')):
            with patch.object(generate_monthly_revenue_analytics, 'retry') as mock_retry:
                mock_retry.side_effect = Exception('Retry triggered')

                with pytest.raises(Exception, match='Retry triggered'):
                    generate_monthly_revenue_analytics()

                assert mock_retry.called
