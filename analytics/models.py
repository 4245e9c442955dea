import uuid
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from organizations.models import Organization


class UsageEvent(models.Model):
    """
    A single tracked usage fact for an organization.
    Append-only: rows are never updated, and are only removed when the organization is purged.
    """
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the event"
    )
    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name='usage_events',
        help_text="Organization this event belongs to"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='usage_events',
        help_text="User who triggered this event (optional)"
    )
    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Kind of usage, e.g. 'api_call' or 'feature_usage'"
    )
    feature_name = models.CharField(max_length=255, null=True, blank=True)
    usage_amount = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)]
    )
    metadata = models.JSONField(default=dict, blank=True)
    timestamp = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        indexes = [
            models.Index(fields=["organization", "timestamp"], name="analytics_u_organiz_5c1e2b_idx"),
            models.Index(fields=["organization", "event_type", "timestamp"], name="analytics_u_organiz_8d4f0a_idx"),
        ]
        ordering = ["-timestamp"]

    def __str__(self):
        return f"{self.organization.name} - {self.event_type} - {self.timestamp}"


class UsageAggregation(models.Model):
    """
    Per-user usage rollup for one period (day, week or month).
    Regenerated by replaying the period's events; safe to overwrite.
    """
    PERIOD_CHOICES = [
        ('daily', 'Daily'),
        ('weekly', 'Weekly'),
        ('monthly', 'Monthly'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name='usage_aggregations',
        help_text="Organization this aggregation belongs to"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='usage_aggregations'
    )
    aggregation_period = models.CharField(max_length=20, choices=PERIOD_CHOICES)
    period_start = models.DateField(db_index=True)
    period_end = models.DateField()

    # Metrics
    api_calls = models.IntegerField(default=0)
    feature_usage = models.JSONField(default=dict, blank=True, help_text="Feature name to usage count")
    session_duration_minutes = models.IntegerField(
        default=0,
        help_text="Not populated: there is no session tracking yet"
    )
    unique_features_used = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ("organization", "user", "aggregation_period", "period_start")
        indexes = [
            models.Index(fields=["organization", "aggregation_period", "period_start"], name="analytics_u_organiz_3a9b7e_idx"),
        ]
        ordering = ["-period_start"]

    def __str__(self):
        return f"{self.organization.name} - {self.aggregation_period} {self.period_start} ({self.user_id})"
