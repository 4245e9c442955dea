"""
Django Admin configuration for Organizations app.
"""

from django.contrib import admin
from .models import Organization, Membership


class MembershipInline(admin.TabularInline):
    """
    Inline admin for displaying memberships within Organization admin.
    """
    model = Membership
    extra = 0
    fields = ['user', 'role', 'joined_at']
    readonly_fields = ['joined_at']

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('user')


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    """
    Admin interface for tenant organizations.
    """

    list_display = ['name', 'slug', 'owner', 'member_count_display', 'created_at']
    list_filter = ['created_at']
    search_fields = ['name', 'slug', 'owner__email']
    readonly_fields = ['id', 'slug', 'created_at', 'updated_at']
    inlines = [MembershipInline]

    @admin.display(description='Members')
    def member_count_display(self, obj):
        return obj.memberships.count()


@admin.register(Membership)
class MembershipAdmin(admin.ModelAdmin):
    list_display = ['user', 'organization', 'role', 'joined_at']
    list_filter = ['role', 'joined_at']
    search_fields = ['user__email', 'organization__name']
