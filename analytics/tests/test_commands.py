"""
Tests for the seed_analytics management command.

Tests cover:
- Seeding tiers, usage events and revenue analytics
- Purging one organization's analytics data
- Unknown organizations
"""

import pytest
from io import StringIO
from django.core.management import call_command
from django.core.management.base import CommandError

from accounts.models import User
from organizations.models import Organization
from analytics.models import UsageEvent, UsageAggregation
from billing.models import SubscriptionTier, TierAssignment, TierPerformance, RevenueAnalytics
from alerts.models import Alert


@pytest.mark.django_db
class TestSeedAnalyticsCommand:

    def setup_method(self):
        self.owner = User.objects.create_user(email="owner@example.com", password="pass")
        self.org = Organization.objects.create(name="Seed Org", owner=self.owner)

    def test_seed(self):
        out = StringIO()

        call_command("seed_analytics", self.org.slug, days=2, seed=7, stdout=out)

        assert list(
            SubscriptionTier.objects.filter(organization=self.org).values_list("tier_name", flat=True)
        ) == ["Starter", "Professional", "Enterprise"]
        assert 100 <= UsageEvent.objects.filter(organization=self.org).count() <= 400
        assert RevenueAnalytics.objects.filter(organization=self.org).count() == 6
        assert "Seeded 3 tiers" in out.getvalue()

    def test_seed_by_id_is_repeatable_for_tiers(self):
        call_command("seed_analytics", str(self.org.id), days=1, seed=1, stdout=StringIO())
        call_command("seed_analytics", str(self.org.id), days=1, seed=1, stdout=StringIO())

        assert SubscriptionTier.objects.filter(organization=self.org).count() == 3

    def test_unknown_organization(self):
        with pytest.raises(CommandError):
            call_command("seed_analytics", "missing-org", stdout=StringIO())


@pytest.mark.django_db
class TestPurgeAnalyticsData:

    def setup_method(self):
        self.owner = User.objects.create_user(email="owner@example.com", password="pass")
        self.org = Organization.objects.create(name="Purge Org", owner=self.owner)
        call_command("seed_analytics", self.org.slug, days=1, seed=3, stdout=StringIO())

        starter = SubscriptionTier.objects.get(organization=self.org, tier_name="Starter")
        TierAssignment.objects.create(organization=self.org, user=self.owner, tier=starter)
        TierPerformance.objects.create(tier=starter, period_start="2025-01-01", period_end="2025-01-31")
        UsageAggregation.objects.create(
            organization=self.org, user=self.owner, aggregation_period="daily",
            period_start="2025-01-01", period_end="2025-01-01"
        )
        Alert.objects.create(
            organization=self.org, alert_type="churn_risk", severity="high",
            title="High Churn Risk Detected", message="...",
        )

        other_owner = User.objects.create_user(email="other@example.com", password="pass")
        self.other = Organization.objects.create(name="Other Org", owner=other_owner)
        UsageEvent.objects.create(organization=self.other, event_type="api_call")
        Alert.objects.create(
            organization=self.other, alert_type="churn_risk", severity="high",
            title="High Churn Risk Detected", message="...",
        )

    def test_purge_removes_organization_data(self):
        out = StringIO()

        call_command("seed_analytics", self.org.slug, purge=True, stdout=out)

        assert not UsageEvent.objects.filter(organization=self.org).exists()
        assert not UsageAggregation.objects.filter(organization=self.org).exists()
        assert not Alert.objects.filter(organization=self.org).exists()
        assert not RevenueAnalytics.objects.filter(organization=self.org).exists()
        assert not TierPerformance.objects.filter(tier__organization=self.org).exists()
        assert not TierAssignment.objects.filter(organization=self.org).exists()
        assert not SubscriptionTier.objects.filter(organization=self.org).exists()
        assert "Purged" in out.getvalue()

    def test_purge_keeps_organization_and_other_tenants(self):
        call_command("seed_analytics", self.org.slug, purge=True, stdout=StringIO())

        assert Organization.objects.filter(pk=self.org.pk).exists()
        assert self.org.get_members().count() == 1
        assert UsageEvent.objects.filter(organization=self.other).count() == 1
        assert Alert.objects.filter(organization=self.other).count() == 1
