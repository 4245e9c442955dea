"""
Organization-level permission classes for the analytics API.

Analytics endpoints are tenant scoped: the organization is identified by an
`org` query parameter (or request body field for POST requests) and the
requesting user must belong to it.
"""

from django.core.exceptions import ValidationError
from django.shortcuts import get_object_or_404
from rest_framework import permissions
from .models import Organization, Membership


def get_request_organization_id(request, view=None):
    """
    Resolve the organization id a request is scoped to.

    Looks at nested route kwargs first, then the `org` query parameter,
    then the `org` field of the request body.
    """
    if view is not None:
        organization_pk = getattr(view, 'kwargs', {}).get('organization_pk')
        if organization_pk:
            return organization_pk

    org_id = request.query_params.get('org')
    if org_id:
        return org_id

    data = getattr(request, 'data', None)
    if hasattr(data, 'get'):
        return data.get('org')
    return None


def get_request_organization(request, view=None):
    """Return the request's organization, or None when no org was given."""
    org_id = get_request_organization_id(request, view)
    if not org_id:
        return None
    return get_object_or_404(Organization, id=org_id)


class IsOrganizationMember(permissions.BasePermission):
    """
    Allows any member of the request's organization.

    Requests that do not name an organization are let through here and are
    rejected by the view with a 400.
    """

    message = "You must be a member of this organization to perform this action."

    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False

        org_id = get_request_organization_id(request, view)
        if not org_id:
            return True

        try:
            return Membership.objects.filter(
                user=request.user,
                organization_id=org_id
            ).exists()
        except ValidationError:
            return False

    def has_object_permission(self, request, view, obj):
        if not (request.user and request.user.is_authenticated):
            return False

        organization = getattr(obj, 'organization', None)
        if organization is None:
            return False

        return Membership.objects.filter(
            user=request.user,
            organization=organization
        ).exists()


class IsOrganizationAdminOrOwner(permissions.BasePermission):
    """
    Allows organization admins and owners.

    Used for operations that change tenant-wide state, such as generating
    alerts or purging expired ones.
    """

    message = "Only organization admins and owners can perform this action."

    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False

        org_id = get_request_organization_id(request, view)
        if not org_id:
            return True

        try:
            membership = Membership.objects.get(
                user=request.user,
                organization_id=org_id
            )
        except (Membership.DoesNotExist, ValidationError):
            return False
        return membership.is_admin_or_owner()
