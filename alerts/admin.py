from django.contrib import admin
from .models import Alert


@admin.register(Alert)
class AlertAdmin(admin.ModelAdmin):
    list_display = [
        'title',
        'organization',
        'user',
        'alert_type',
        'severity',
        'is_read',
        'is_dismissed',
        'created_at',
        'expires_at',
    ]
    list_filter = ['alert_type', 'severity', 'is_read', 'is_dismissed']
    search_fields = ['title', 'message', 'organization__name', 'user__email']
    readonly_fields = ['id', 'created_at', 'metadata']
    actions = ['mark_read', 'dismiss']

    @admin.action(description='Mark selected alerts as read')
    def mark_read(self, request, queryset):
        queryset.update(is_read=True)

    @admin.action(description='Dismiss selected alerts')
    def dismiss(self, request, queryset):
        queryset.update(is_dismissed=True)
