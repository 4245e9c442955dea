"""
Django Admin configuration for Billing app.

Provides admin interfaces for:
- Subscription tiers (with inline performance history)
- Tier assignments
- Revenue analytics snapshots (read-only)
"""

from django.contrib import admin
from .models import SubscriptionTier, TierAssignment, TierPerformance, RevenueAnalytics


class TierPerformanceInline(admin.TabularInline):
    """
    Inline admin for displaying performance periods within SubscriptionTier admin.
    """
    model = TierPerformance
    extra = 0
    fields = ['period_start', 'period_end', 'active_subscriptions', 'avg_usage_percentage', 'revenue']
    ordering = ['-period_start']


@admin.register(SubscriptionTier)
class SubscriptionTierAdmin(admin.ModelAdmin):
    list_display = [
        'tier_name',
        'organization',
        'tier_level',
        'monthly_price',
        'api_limit_display',
        'assignment_count',
        'is_active',
    ]
    list_filter = ['is_active', 'tier_level']
    search_fields = ['tier_name', 'organization__name']
    readonly_fields = ['id', 'created_at', 'updated_at']
    inlines = [TierPerformanceInline]

    @admin.display(description='API limit')
    def api_limit_display(self, obj):
        return 'Unlimited' if obj.is_unlimited else obj.api_limit

    @admin.display(description='Users')
    def assignment_count(self, obj):
        return obj.assignments.count()


@admin.register(TierAssignment)
class TierAssignmentAdmin(admin.ModelAdmin):
    list_display = ['user', 'organization', 'tier', 'assigned_at']
    list_filter = ['tier__tier_name']
    search_fields = ['user__email', 'organization__name']
    autocomplete_fields = ['tier']


@admin.register(RevenueAnalytics)
class RevenueAnalyticsAdmin(admin.ModelAdmin):
    """
    Snapshots are produced by the monthly revenue job and are read-only here.
    """
    list_display = ['organization', 'period_start', 'period_end', 'mrr', 'total_customers', 'churn_rate']
    list_filter = ['period_start']
    search_fields = ['organization__name']
    ordering = ['-period_start']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
