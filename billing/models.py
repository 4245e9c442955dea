import uuid
from django.conf import settings
from django.db import models
from organizations.models import Organization


class SubscriptionTier(models.Model):
    """
    A pricing tier offered by an organization to its own customers.
    Tiers are ordered by level; an empty api_limit means unlimited.
    """
    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the tier"
    )
    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name='subscription_tiers',
        help_text="Organization offering this tier"
    )
    tier_name = models.CharField(
        max_length=100,
        help_text="Display name of the tier (e.g., 'Starter', 'Professional')"
    )
    tier_level = models.PositiveIntegerField(
        help_text="Ordinal position of the tier, 1 being the most basic"
    )
    monthly_price = models.DecimalField(max_digits=10, decimal_places=2)
    annual_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    api_limit = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Monthly API call allowance; empty means unlimited"
    )
    feature_limits = models.JSONField(default=dict, blank=True)
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this tier is currently offered"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['tier_level']
        unique_together = ('organization', 'tier_name')
        indexes = [
            models.Index(fields=['organization', 'is_active'], name='billing_sub_organiz_1f0c2d_idx'),
        ]

    def __str__(self):
        return f"{self.tier_name} (${self.monthly_price}/month)"

    @property
    def is_unlimited(self):
        return self.api_limit is None


class TierAssignment(models.Model):
    """
    The tier a user of an organization is currently on.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name='tier_assignments'
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='tier_assignments'
    )
    tier = models.ForeignKey(
        SubscriptionTier,
        on_delete=models.CASCADE,
        related_name='assignments'
    )
    assigned_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('organization', 'user')
        ordering = ['-assigned_at']

    def __str__(self):
        return f"{self.user.email} - {self.tier.tier_name}"


class TierPerformance(models.Model):
    """
    How a tier performed over one period: subscription movement, usage and revenue.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tier = models.ForeignKey(
        SubscriptionTier,
        on_delete=models.CASCADE,
        related_name='performance'
    )
    period_start = models.DateField()
    period_end = models.DateField()

    active_subscriptions = models.IntegerField(default=0)
    new_subscriptions = models.IntegerField(default=0)
    churned_subscriptions = models.IntegerField(default=0)
    upgrade_from_count = models.IntegerField(default=0, help_text="Customers who left this tier for a higher one")
    upgrade_to_count = models.IntegerField(default=0, help_text="Customers who moved into this tier from a lower one")
    avg_usage_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=0,
        help_text="Average share of the tier's API allowance used, in percent"
    )
    overage_events = models.IntegerField(default=0)
    revenue = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-period_start']
        unique_together = ('tier', 'period_start', 'period_end')

    def __str__(self):
        return f"{self.tier.tier_name} {self.period_start} - {self.period_end}"


class RevenueAnalytics(models.Model):
    """
    SaaS financial snapshot of an organization for one period.
    Upserted on (organization, period_start, period_end).
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name='revenue_analytics'
    )
    period_start = models.DateField()
    period_end = models.DateField()

    mrr = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    arr = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    new_customers = models.IntegerField(default=0)
    churned_customers = models.IntegerField(default=0)
    upgraded_customers = models.IntegerField(default=0)
    downgraded_customers = models.IntegerField(default=0)
    total_customers = models.IntegerField(default=0)
    churn_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        default=0,
        help_text="Churned customers over the starting customer base, as a fraction"
    )
    ltv = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    cac = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    arpu = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['period_start']
        unique_together = ('organization', 'period_start', 'period_end')
        verbose_name_plural = 'Revenue analytics'

    def __str__(self):
        return f"{self.organization.name} {self.period_start} - {self.period_end}: MRR {self.mrr}"
