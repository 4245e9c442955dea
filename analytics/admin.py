from django.contrib import admin

from .models import UsageEvent, UsageAggregation


class ReadOnlyAdmin(admin.ModelAdmin):
    """
    Usage data is written by the tracker and aggregation jobs only.
    """

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(UsageEvent)
class UsageEventAdmin(ReadOnlyAdmin):
    """
    Read-only admin view of tracked usage events.
    """
    list_display = (
        "id",
        "organization",
        "user",
        "event_type",
        "feature_name",
        "usage_amount",
        "timestamp",
    )
    list_filter = ("event_type", "timestamp")
    search_fields = (
        "event_type",
        "feature_name",
        "user__email",
        "organization__name",
    )
    ordering = ("-timestamp",)
    readonly_fields = (
        "organization",
        "user",
        "event_type",
        "feature_name",
        "usage_amount",
        "metadata",
        "timestamp",
    )


@admin.register(UsageAggregation)
class UsageAggregationAdmin(ReadOnlyAdmin):
    list_display = (
        "organization",
        "user",
        "aggregation_period",
        "period_start",
        "api_calls",
        "unique_features_used",
    )
    list_filter = ("aggregation_period", "period_start")
    search_fields = ("organization__name", "user__email")
    ordering = ("-period_start",)
