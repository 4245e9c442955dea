"""
Records an api_call usage event for every tenant-scoped request.
"""

import logging
import re

from django.conf import settings
from django.core.exceptions import ValidationError
from django.utils.deprecation import MiddlewareMixin

from organizations.models import Organization
from .services import UsageTracker

logger = logging.getLogger(__name__)

TENANT_PATH = re.compile(r'/tenant/([0-9a-fA-F-]{32,36})(?:/|$)')
TENANT_HEADER = 'HTTP_X_TENANT_ID'


def extract_tenant_id(request):
    """
    Tenant id from the `tenantId` query parameter, the X-Tenant-ID header
    or a /tenant/<id>/ path segment, in that order.
    """
    tenant_id = request.GET.get('tenantId') or request.META.get(TENANT_HEADER)
    if tenant_id:
        return tenant_id

    match = TENANT_PATH.search(request.path)
    return match.group(1) if match else None


class UsageTrackingMiddleware(MiddlewareMixin):
    """
    Tracks API usage after the response has been produced.

    Tracking failures are logged and never affect the response.
    """

    def should_skip(self, path):
        skip_paths = getattr(settings, 'ANALYTICS_TRACKING_SKIP_PATHS', [])
        return any(path.startswith(prefix) for prefix in skip_paths)

    def process_response(self, request, response):
        if self.should_skip(request.path):
            return response

        tenant_id = extract_tenant_id(request)
        if not tenant_id:
            return response

        try:
            organization = Organization.objects.filter(pk=tenant_id).first()
        except ValidationError:
            return response
        except Exception as e:
            logger.error(f"Usage tracking failed: {e}", extra={'tenant_id': tenant_id}, exc_info=True)
            return response

        if organization is None:
            return response

        user = getattr(request, 'user', None)
        if not (user and user.is_authenticated):
            user = None

        UsageTracker.track_api_call(
            organization,
            user=user,
            endpoint=request.path,
            metadata={
                'method': request.method,
                'user_agent': request.META.get('HTTP_USER_AGENT', ''),
                'status_code': response.status_code,
            },
        )
        return response
