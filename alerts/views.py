from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from organizations.models import Organization
from organizations.permissions import (
    IsOrganizationMember,
    IsOrganizationAdminOrOwner,
    get_request_organization,
)
from .serializers import AlertSerializer, AlertActionSerializer
from .services import AlertsManager

ADMIN_ACTIONS = ('generate', 'cleanup')


class AlertsView(APIView):
    """
    Lists alerts and alert statistics, and applies alert actions.

    GET  ?org=<id>&action=list|stats
    POST {"org": <id>, "action": "mark_read"|"dismiss"|"generate"|"cleanup", "alert_id": <id>}
    """

    permission_classes = [IsAuthenticated, IsOrganizationMember]

    def get(self, request):
        organization = get_request_organization(request, self)
        if organization is None:
            return Response({'error': 'Organization ID required.'}, status=status.HTTP_400_BAD_REQUEST)

        action = request.query_params.get('action', 'list')

        if action == 'stats':
            return Response(AlertsManager.get_alert_stats(organization))

        if action == 'list':
            alerts = AlertsManager.get_active_alerts(organization)
            stats = AlertsManager.get_alert_stats(organization)
            return Response({
                'alerts': AlertSerializer(alerts, many=True).data,
                'stats': stats,
                'summary': {
                    'total': stats['total'],
                    'unread': stats['unread'],
                    'critical': stats['by_severity'].get('critical', 0),
                    'high': stats['by_severity'].get('high', 0),
                },
            })

        return Response({'error': 'Invalid action.'}, status=status.HTTP_400_BAD_REQUEST)

    def post(self, request):
        serializer = AlertActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        action = data['action']

        if action in ADMIN_ACTIONS and not IsOrganizationAdminOrOwner().has_permission(request, self):
            self.permission_denied(request, message=IsOrganizationAdminOrOwner.message)

        organization = get_object_or_404(Organization, id=data['org'])

        if action == 'mark_read':
            return Response({'success': AlertsManager.mark_as_read(data['alert_id'], organization)})

        if action == 'dismiss':
            return Response({'success': AlertsManager.dismiss_alert(data['alert_id'], organization)})

        if action == 'generate':
            alerts = AlertsManager.generate_alerts(organization)
            return Response({
                'success': True,
                'generated': len(alerts),
                'alerts': AlertSerializer(alerts, many=True).data,
            })

        deleted = AlertsManager.cleanup_expired_alerts()
        return Response({'success': True, 'deleted': deleted})
