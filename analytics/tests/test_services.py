"""
Tests for usage tracking services.

Tests cover:
- Event tracking by UsageTracker.track_event() and its helpers
- Event queries by UsageTracker.get_usage_events()
- Window statistics by UsageTracker.get_usage_stats()
- Daily and monthly rollups
- Event and active user counts
"""

import pytest
from datetime import date, datetime, timedelta
from unittest.mock import patch
from django.utils import timezone

from accounts.models import User
from organizations.models import Organization, Membership
from analytics.models import UsageEvent, UsageAggregation
from analytics.services import UsageTracker, UsageStats, month_bounds, previous_month


@pytest.mark.django_db
class TestTrackEvent:

    def setup_method(self):
        self.user = User.objects.create_user(email="u1@example.com", password="pass")
        self.org = Organization.objects.create(name="TestOrg", owner=self.user)

    def test_track_event_persists_fields(self):
        """Tracked events should round-trip through the store"""
        event = UsageTracker.track_event(
            self.org,
            'export',
            user=self.user,
            feature_name='csv_export',
            usage_amount=3,
            metadata={'rows': 120},
        )

        assert event is not None
        stored = UsageEvent.objects.get(id=event.id)
        assert stored.organization == self.org
        assert stored.user == self.user
        assert stored.event_type == 'export'
        assert stored.feature_name == 'csv_export'
        assert stored.usage_amount == 3
        assert stored.metadata == {'rows': 120}

    def test_track_event_defaults(self):
        """Events without metadata or timestamp get {} and now"""
        before = timezone.now()
        event = UsageTracker.track_event(self.org, 'login')

        assert event.metadata == {}
        assert event.user is None
        assert event.timestamp >= before

    @pytest.mark.parametrize('amount', [0, -5, None])
    def test_track_event_non_positive_amount_recorded_as_one(self, amount):
        """usage_amount below 1 is stored as 1"""
        event = UsageTracker.track_event(self.org, 'api_call', usage_amount=amount)
        assert event.usage_amount == 1

    def test_track_api_call_uses_endpoint_as_feature(self):
        """API calls record the endpoint as feature name and in metadata"""
        event = UsageTracker.track_api_call(self.org, user=self.user, endpoint='/api/search', metadata={'method': 'GET'})

        assert event.event_type == 'api_call'
        assert event.feature_name == '/api/search'
        assert event.metadata == {'method': 'GET', 'endpoint': '/api/search'}

    def test_track_feature_usage(self):
        event = UsageTracker.track_feature_usage(self.org, 'reports', user=self.user, usage_amount=2)

        assert event.event_type == 'feature_usage'
        assert event.feature_name == 'reports'
        assert event.usage_amount == 2

    def test_track_event_returns_none_on_store_failure(self):
        """Store failures are swallowed so tracking never breaks the caller"""
        with patch('analytics.services.UsageEvent.objects.create', side_effect=Exception("db down")):
            event = UsageTracker.track_event(self.org, 'api_call')

        assert event is None


@pytest.mark.django_db
class TestUsageQueries:

    def setup_method(self):
        self.user1 = User.objects.create_user(email="u1@example.com", password="pass")
        self.user2 = User.objects.create_user(email="u2@example.com", password="pass")
        self.org = Organization.objects.create(name="TestOrg", owner=self.user1)
        Membership.objects.create(user=self.user2, organization=self.org, role='member')
        self.other_owner = User.objects.create_user(email="other@example.com", password="pass")
        self.other_org = Organization.objects.create(name="OtherOrg", owner=self.other_owner)
        self.now = timezone.now()

    def _event(self, event_type, user=None, feature=None, amount=1, days_ago=0, org=None):
        return UsageEvent.objects.create(
            organization=org or self.org,
            user=user,
            event_type=event_type,
            feature_name=feature,
            usage_amount=amount,
            timestamp=self.now - timedelta(days=days_ago),
        )

    def test_get_usage_events_window_and_order(self):
        """Events come back newest first and only inside the window"""
        old = self._event('api_call', days_ago=3)
        new = self._event('api_call', days_ago=1)
        self._event('api_call', days_ago=10)
        self._event('api_call', days_ago=1, org=self.other_org)

        events = UsageTracker.get_usage_events(self.org, self.now - timedelta(days=5), self.now)

        assert [e.id for e in events] == [new.id, old.id]

    def test_get_usage_events_window_is_inclusive(self):
        event = self._event('api_call', days_ago=2)

        events = UsageTracker.get_usage_events(self.org, event.timestamp, event.timestamp)

        assert [e.id for e in events] == [event.id]

    def test_get_usage_events_filters_and_limit(self):
        self._event('api_call', user=self.user1, feature='/a')
        self._event('api_call', user=self.user2, feature='/b')
        self._event('feature_usage', user=self.user1, feature='/a')
        start = self.now - timedelta(days=1)

        assert len(UsageTracker.get_usage_events(self.org, start, self.now, event_type='api_call')) == 2
        assert len(UsageTracker.get_usage_events(self.org, start, self.now, feature_name='/a')) == 2
        assert len(UsageTracker.get_usage_events(self.org, start, self.now, user_id=self.user2.id)) == 1
        assert len(UsageTracker.get_usage_events(self.org, start, self.now, limit=1)) == 1

    def test_get_usage_stats(self):
        """api_calls sums amounts, feature_usage only counts feature_usage events"""
        self._event('api_call', user=self.user1, feature='/a', amount=3)
        self._event('api_call', user=self.user1, feature='/b', amount=2)
        self._event('feature_usage', user=self.user1, feature='reports', amount=4)
        self._event('feature_usage', user=self.user2, feature='reports', amount=1)
        self._event('feature_usage', user=self.user2, feature='export', amount=5)
        self._event('login')

        stats = UsageTracker.get_usage_stats(self.org, 'daily', self.now - timedelta(days=1), self.now)

        assert isinstance(stats, UsageStats)
        assert stats.total_events == 6
        assert stats.api_calls == 5
        assert stats.feature_usage == {'reports': 5, 'export': 5}
        assert stats.top_users == [
            {'user_id': self.user1.id, 'event_count': 3},
            {'user_id': self.user2.id, 'event_count': 2},
        ]

    def test_get_usage_stats_empty_window(self):
        stats = UsageTracker.get_usage_stats(self.org, 'monthly', self.now - timedelta(days=1), self.now)

        assert stats.to_dict() == {'total_events': 0, 'api_calls': 0, 'feature_usage': {}, 'top_users': []}

    def test_get_usage_stats_unknown_period_uses_whole_window(self):
        self._event('api_call', amount=2)

        stats = UsageTracker.get_usage_stats(self.org, 'hourly', self.now - timedelta(days=1), self.now)

        assert stats.api_calls == 2

    def test_get_usage_stats_top_users_limited_to_ten(self):
        for i in range(12):
            user = User.objects.create_user(email=f"bulk{i}@example.com", password="pass")
            for _ in range(i + 1):
                self._event('api_call', user=user)

        stats = UsageTracker.get_usage_stats(self.org, 'daily', self.now - timedelta(days=1), self.now)

        assert len(stats.top_users) == 10
        assert stats.top_users[0]['event_count'] == 12

    def test_count_events_is_half_open(self):
        event = self._event('api_call', days_ago=1)

        assert UsageTracker.count_events(self.org, event.timestamp, self.now) == 1
        assert UsageTracker.count_events(self.org, self.now - timedelta(days=5), event.timestamp) == 0

    def test_count_active_users(self):
        self._event('api_call', user=self.user1)
        self._event('api_call', user=self.user1)
        self._event('api_call', user=self.user2)
        self._event('api_call')

        assert UsageTracker.count_active_users(self.org, self.now - timedelta(days=1), self.now) == 2


@pytest.mark.django_db
class TestUsageAggregations:

    def setup_method(self):
        self.user1 = User.objects.create_user(email="u1@example.com", password="pass")
        self.user2 = User.objects.create_user(email="u2@example.com", password="pass")
        self.org = Organization.objects.create(name="TestOrg", owner=self.user1)
        self.day = date(2025, 3, 14)
        self.noon = timezone.make_aware(datetime(2025, 3, 14, 12, 0))

    def _event(self, event_type, user, feature=None, amount=1, when=None):
        return UsageEvent.objects.create(
            organization=self.org,
            user=user,
            event_type=event_type,
            feature_name=feature,
            usage_amount=amount,
            timestamp=when or self.noon,
        )

    def test_daily_aggregation_per_user(self):
        self._event('api_call', self.user1, '/search', amount=2)
        self._event('feature_usage', self.user1, 'reports', amount=3)
        self._event('api_call', self.user2, '/search')
        self._event('api_call', None, '/anonymous')
        self._event('api_call', self.user1, '/search', when=self.noon + timedelta(days=1))

        written = UsageTracker.generate_daily_aggregations(self.org, self.day)

        assert written == 2
        row = UsageAggregation.objects.get(user=self.user1, aggregation_period='daily')
        assert row.period_start == self.day
        assert row.period_end == self.day
        assert row.api_calls == 2
        assert row.feature_usage == {'/search': 2, 'reports': 3}
        assert row.unique_features_used == 2

    def test_daily_aggregation_is_idempotent(self):
        """Re-running a day overwrites rather than duplicates"""
        self._event('api_call', self.user1, '/search')
        UsageTracker.generate_daily_aggregations(self.org, self.day)

        self._event('api_call', self.user1, '/search')
        UsageTracker.generate_daily_aggregations(self.org, self.day)

        rows = UsageAggregation.objects.filter(user=self.user1, aggregation_period='daily')
        assert rows.count() == 1
        assert rows.get().api_calls == 2

    def test_daily_aggregation_with_no_events(self):
        assert UsageTracker.generate_daily_aggregations(self.org, self.day) == 0
        assert UsageAggregation.objects.count() == 0

    def test_monthly_aggregation(self):
        self._event('api_call', self.user1, '/search', when=timezone.make_aware(datetime(2025, 3, 1, 9, 0)))
        self._event('api_call', self.user1, '/search', when=timezone.make_aware(datetime(2025, 3, 31, 18, 0)))
        self._event('api_call', self.user1, '/search', when=timezone.make_aware(datetime(2025, 4, 1, 9, 0)))

        written = UsageTracker.generate_monthly_aggregations(self.org, 2025, 3)

        assert written == 1
        row = UsageAggregation.objects.get(aggregation_period='monthly')
        assert row.period_start == date(2025, 3, 1)
        assert row.period_end == date(2025, 3, 31)
        assert row.api_calls == 2


class TestMonthHelpers:

    def test_month_bounds(self):
        assert month_bounds(date(2024, 2, 10)) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_previous_month_wraps_year(self):
        assert previous_month(date(2025, 1, 15)) == date(2024, 12, 1)
