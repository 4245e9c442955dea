import uuid
from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone
from organizations.models import Organization


class AlertQuerySet(models.QuerySet):

    def active(self):
        """Alerts that are neither dismissed nor past their expiry."""
        return self.filter(is_dismissed=False).filter(
            Q(expires_at__isnull=True) | Q(expires_at__gte=timezone.now())
        )

    def expired(self):
        return self.filter(expires_at__isnull=False, expires_at__lt=timezone.now())


class Alert(models.Model):
    """
    Operator-facing notice about one of an organization's users.

    Created by the alert detectors, then only marked read or dismissed.
    Expired alerts are hidden immediately and deleted by the cleanup job.
    """
    TYPE_CHOICES = [
        ('usage_threshold', 'Usage Threshold'),
        ('churn_risk', 'Churn Risk'),
        ('upsell_opportunity', 'Upsell Opportunity'),
        ('tier_optimization', 'Tier Optimization'),
    ]

    SEVERITY_CHOICES = [
        ('low', 'Low'),
        ('medium', 'Medium'),
        ('high', 'High'),
        ('critical', 'Critical'),
    ]

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the alert"
    )
    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name='alerts',
        help_text="Organization this alert is for"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name='alerts',
        help_text="User the alert is about (optional)"
    )
    alert_type = models.CharField(max_length=50, choices=TYPE_CHOICES)
    severity = models.CharField(max_length=20, choices=SEVERITY_CHOICES, default='medium')
    title = models.CharField(max_length=255)
    message = models.TextField()
    metadata = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    is_dismissed = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="After this time the alert is hidden and eligible for cleanup"
    )

    objects = AlertQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['organization', 'is_dismissed', 'created_at'], name='alerts_aler_organiz_7b2e4c_idx'),
            models.Index(fields=['expires_at'], name='alerts_aler_expires_0d9a61_idx'),
        ]

    def __str__(self):
        return f"[{self.severity}] {self.title}"

    def is_expired(self):
        return self.expires_at is not None and self.expires_at < timezone.now()
