"""
Tests for analytics views.

Tests cover:
- Usage event tracking
- Usage and metrics retrieval
- JSON and CSV reports
- Filtered event listing
- Organization scoping
"""

import pytest
from datetime import timedelta
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import User
from organizations.models import Organization
from analytics.models import UsageEvent


@pytest.mark.django_db
class TestTrackEventView:

    def setup_method(self):
        self.client = APIClient()
        self.user = User.objects.create_user(email="testuser@example.com", password="pass")
        self.org = Organization.objects.create(name="TestOrg", owner=self.user)
        self.client.force_authenticate(user=self.user)

    def test_track_event(self):
        """POST /api/analytics/track/ should create a usage event"""
        url = reverse("track-event")
        data = {
            "org": str(self.org.id),
            "event_type": "feature_usage",
            "feature_name": "reports",
            "user": self.user.id,
            "usage_amount": 2,
            "metadata": {"source": "dashboard"},
        }

        response = self.client.post(url, data, format="json")

        assert response.status_code == 201
        assert response.data["event_type"] == "feature_usage"
        event = UsageEvent.objects.get()
        assert event.usage_amount == 2
        assert event.metadata == {"source": "dashboard"}

    def test_track_event_requires_event_type(self):
        response = self.client.post(reverse("track-event"), {"org": str(self.org.id)}, format="json")

        assert response.status_code == 400

    def test_track_event_rejects_non_member_user(self):
        outsider = User.objects.create_user(email="outsider@example.com", password="pass")
        data = {"org": str(self.org.id), "event_type": "api_call", "user": outsider.id}

        response = self.client.post(reverse("track-event"), data, format="json")

        assert response.status_code == 400
        assert "user" in response.data

    def test_track_event_other_organization_forbidden(self):
        other_owner = User.objects.create_user(email="other@example.com", password="pass")
        other_org = Organization.objects.create(name="OtherOrg", owner=other_owner)

        response = self.client.post(
            reverse("track-event"),
            {"org": str(other_org.id), "event_type": "api_call"},
            format="json"
        )

        assert response.status_code == 403

    def test_unauthenticated(self):
        self.client.force_authenticate(user=None)

        response = self.client.post(reverse("track-event"), {"org": str(self.org.id), "event_type": "x"}, format="json")

        assert response.status_code == 401


@pytest.mark.django_db
class TestUsageView:

    def setup_method(self):
        self.client = APIClient()
        self.user = User.objects.create_user(email="testuser@example.com", password="pass")
        self.org = Organization.objects.create(name="TestOrg", owner=self.user)
        self.client.force_authenticate(user=self.user)

    def test_usage(self):
        now = timezone.now()
        UsageEvent.objects.create(organization=self.org, user=self.user, event_type="api_call",
                                  feature_name="/search", usage_amount=2, timestamp=now - timedelta(days=1))
        UsageEvent.objects.create(organization=self.org, user=self.user, event_type="feature_usage",
                                  feature_name="reports", usage_amount=3, timestamp=now - timedelta(days=1))

        response = self.client.get(reverse("usage"), {"org": str(self.org.id)})

        assert response.status_code == 200
        assert len(response.data["events"]) == 2
        assert response.data["stats"]["api_calls"] == 2
        assert response.data["stats"]["feature_usage"] == {"reports": 3}
        assert response.data["daily_usage"][0]["total_events"] == 5
        assert response.data["summary"]["total_events"] == 2
        assert response.data["summary"]["top_features"] == [{"name": "reports", "count": 3}]

    def test_usage_requires_org(self):
        response = self.client.get(reverse("usage"))

        assert response.status_code == 400

    def test_usage_invalid_window(self):
        response = self.client.get(reverse("usage"), {
            "org": str(self.org.id),
            "start_date": "2025-03-10T00:00:00Z",
            "end_date": "2025-03-01T00:00:00Z",
        })

        assert response.status_code == 400


@pytest.mark.django_db
class TestMetricsView:

    def setup_method(self):
        self.client = APIClient()
        self.user = User.objects.create_user(email="testuser@example.com", password="pass")
        self.org = Organization.objects.create(name="TestOrg", owner=self.user)
        self.client.force_authenticate(user=self.user)

    def test_metrics(self):
        UsageEvent.objects.create(organization=self.org, user=self.user, event_type="api_call", usage_amount=3)

        response = self.client.get(reverse("metrics"), {"org": str(self.org.id)})

        assert response.status_code == 200
        assert set(response.data) == {"saas", "usage", "summary"}
        assert response.data["usage"]["total_api_calls"] == 3
        assert response.data["summary"]["active_users"] == 1
        assert response.data["summary"]["mrr"] == 0.0

    def test_metrics_requires_org(self):
        response = self.client.get(reverse("metrics"))

        assert response.status_code == 400


@pytest.mark.django_db
class TestReportView:

    def setup_method(self):
        self.client = APIClient()
        self.user = User.objects.create_user(email="testuser@example.com", password="pass")
        self.org = Organization.objects.create(name="TestOrg", owner=self.user)
        self.client.force_authenticate(user=self.user)
        UsageEvent.objects.create(organization=self.org, user=self.user, event_type="api_call",
                                  timestamp=timezone.now() - timedelta(hours=1))

    def test_json_report(self):
        response = self.client.post(
            reverse("reports"),
            {"org": str(self.org.id), "report_type": "usage_summary"},
            format="json"
        )

        assert response.status_code == 200
        assert response.data["success"] is True
        assert response.data["report_type"] == "usage_summary"
        assert response.data["data"]["summary"]["total_events"] == 1

    def test_csv_report(self):
        response = self.client.post(
            reverse("reports"),
            {"org": str(self.org.id), "report_type": "usage_summary", "format": "csv"},
            format="json"
        )

        assert response.status_code == 200
        assert response["Content-Type"] == "text/csv"
        assert response["Content-Disposition"].startswith('attachment; filename="usage_summary_')
        lines = response.content.decode().splitlines()
        assert lines[0] == "Date,Total Events,API Calls,Feature Usage,Unique Users"
        assert len(lines) == 2

    def test_invalid_report_type(self):
        response = self.client.post(
            reverse("reports"),
            {"org": str(self.org.id), "report_type": "nope"},
            format="json"
        )

        assert response.status_code == 400


@pytest.mark.django_db
class TestUsageEventViewSet:

    def setup_method(self):
        self.client = APIClient()
        self.user = User.objects.create_user(email="testuser@example.com", password="pass")
        self.org = Organization.objects.create(name="TestOrg", owner=self.user)
        self.client.force_authenticate(user=self.user)
        now = timezone.now()
        self.old = UsageEvent.objects.create(organization=self.org, user=self.user, event_type="api_call",
                                             feature_name="/search", timestamp=now - timedelta(days=3))
        self.new = UsageEvent.objects.create(organization=self.org, event_type="feature_usage",
                                             feature_name="reports", usage_amount=5, timestamp=now)
        other_owner = User.objects.create_user(email="other@example.com", password="pass")
        other_org = Organization.objects.create(name="OtherOrg", owner=other_owner)
        UsageEvent.objects.create(organization=other_org, event_type="api_call")

    def test_event_list(self):
        """GET /api/analytics/events/ should list the org's events, newest first"""
        response = self.client.get(reverse("usage-event-list"), {"org": str(self.org.id)})

        assert response.status_code == 200
        assert [e["id"] for e in response.data] == [str(self.new.id), str(self.old.id)]

    def test_event_list_filters(self):
        url = reverse("usage-event-list")

        by_type = self.client.get(url, {"org": str(self.org.id), "event_type": "api_call"})
        by_user = self.client.get(url, {"org": str(self.org.id), "user": self.user.id})
        by_date = self.client.get(url, {"org": str(self.org.id), "start_date": timezone.localdate().isoformat()})

        assert [e["id"] for e in by_type.data] == [str(self.old.id)]
        assert [e["id"] for e in by_user.data] == [str(self.old.id)]
        assert [e["id"] for e in by_date.data] == [str(self.new.id)]

    def test_event_list_ordering(self):
        response = self.client.get(reverse("usage-event-list"), {"org": str(self.org.id), "ordering": "usage_amount"})

        assert [e["usage_amount"] for e in response.data] == [1, 5]

    def test_event_list_without_org_is_empty(self):
        response = self.client.get(reverse("usage-event-list"))

        assert response.status_code == 200
        assert response.data == []
