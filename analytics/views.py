import math
from collections import OrderedDict
from datetime import timedelta

from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status, viewsets, filters
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from billing.services import RevenueAnalyticsService
from organizations.models import Organization
from organizations.permissions import IsOrganizationMember, get_request_organization
from .reports import generate_report, convert_to_csv
from .serializers import (
    TrackEventSerializer,
    UsageEventSerializer,
    UsageQuerySerializer,
    ReportRequestSerializer,
)
from .models import UsageEvent
from .services import UsageTracker, API_CALL, FEATURE_USAGE

USAGE_EVENTS_LIMIT = 1000
USAGE_EVENTS_RETURNED = 100
SECONDS_PER_DAY = 24 * 60 * 60


class TrackEventView(APIView):
    """
    Track a usage event for an organization.
    """

    permission_classes = [IsAuthenticated, IsOrganizationMember]

    def post(self, request):
        serializer = TrackEventSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        event = UsageTracker.track_event(
            data['org'],
            data['event_type'],
            user=data.get('user'),
            feature_name=data.get('feature_name') or None,
            usage_amount=data.get('usage_amount', 1),
            metadata=data.get('metadata'),
            timestamp=data.get('timestamp'),
        )
        if event is None:
            return Response(
                {'error': 'Failed to track usage event.'},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        return Response(UsageEventSerializer(event).data, status=status.HTTP_201_CREATED)


class UsageView(APIView):
    """
    Returns recent usage events, usage statistics and a daily breakdown.
    """

    permission_classes = [IsAuthenticated, IsOrganizationMember]

    def get(self, request):
        organization = get_request_organization(request, self)
        if organization is None:
            return Response({'error': 'Organization ID required.'}, status=status.HTTP_400_BAD_REQUEST)

        query = UsageQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        start, end = params['start_date'], params['end_date']

        events = UsageTracker.get_usage_events(
            organization,
            start,
            end,
            event_type=params.get('event_type'),
            feature_name=params.get('feature_name'),
            user_id=params.get('user_id'),
            limit=USAGE_EVENTS_LIMIT,
        )
        stats = UsageTracker.get_usage_stats(organization, 'daily', start, end)

        daily_usage = OrderedDict()
        for event in sorted(events, key=lambda e: e.timestamp):
            day = timezone.localdate(event.timestamp).isoformat()
            entry = daily_usage.setdefault(day, {'date': day, 'api_calls': 0, 'feature_usage': 0, 'total_events': 0})
            entry['total_events'] += event.usage_amount
            if event.event_type == API_CALL:
                entry['api_calls'] += event.usage_amount
            elif event.event_type == FEATURE_USAGE:
                entry['feature_usage'] += event.usage_amount

        days = max(1, math.ceil((end - start).total_seconds() / SECONDS_PER_DAY))
        top_features = sorted(stats.feature_usage.items(), key=lambda item: item[1], reverse=True)[:10]

        return Response({
            'events': UsageEventSerializer(events[:USAGE_EVENTS_RETURNED], many=True).data,
            'stats': stats.to_dict(),
            'daily_usage': list(daily_usage.values()),
            'summary': {
                'total_events': stats.total_events,
                'avg_daily_usage': round(stats.total_events / days),
                'top_features': [{'name': name, 'count': count} for name, count in top_features],
            },
        })


class MetricsView(APIView):
    """
    Returns the current SaaS metrics and a 30-day usage summary.
    """

    permission_classes = [IsAuthenticated, IsOrganizationMember]

    def get(self, request):
        organization = get_request_organization(request, self)
        if organization is None:
            return Response({'error': 'Organization ID required.'}, status=status.HTTP_400_BAD_REQUEST)

        now = timezone.now()
        saas = RevenueAnalyticsService.get_current_saas_metrics(organization)
        usage = UsageTracker.get_usage_stats(organization, 'monthly', now - timedelta(days=30), now)

        top_features = sorted(usage.feature_usage.items(), key=lambda item: item[1], reverse=True)[:5]

        return Response({
            'saas': saas.to_dict(),
            'usage': {
                'total_api_calls': usage.api_calls,
                'total_events': usage.total_events,
                'top_features': [{'name': name, 'usage': count} for name, count in top_features],
                'top_users': usage.top_users,
            },
            'summary': {
                'mrr': saas.mrr,
                'total_customers': saas.total_customers,
                'active_users': saas.active_users,
                'churn_rate': saas.churn_rate,
                'revenue_growth': saas.revenue_growth,
                'usage_growth': saas.usage_growth,
            },
        })


class ReportView(APIView):
    """
    Generates a usage, revenue, customer or comprehensive report as JSON or CSV.
    """

    permission_classes = [IsAuthenticated, IsOrganizationMember]

    def post(self, request):
        serializer = ReportRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        organization = get_object_or_404(Organization, id=data['org'])
        start, end = data['start_date'], data['end_date']
        report_type = data['report_type']

        try:
            report = generate_report(report_type, organization, start, end, data.get('filters'))
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        if data['format'] == 'csv':
            filename = f"{report_type}_{organization.pk}_{timezone.localdate().isoformat()}.csv"
            response = HttpResponse(convert_to_csv(report), content_type='text/csv')
            response['Content-Disposition'] = f'attachment; filename="{filename}"'
            return response

        return Response({
            'success': True,
            'report_type': report_type,
            'generated_at': timezone.now().isoformat(),
            'date_range': {
                'start': start.isoformat(),
                'end': end.isoformat(),
            },
            'data': report,
        })


class UsageEventViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Lists an organization's usage events.
    Supports filtering by user, event type, feature or date range.
    """
    serializer_class = UsageEventSerializer
    permission_classes = [IsAuthenticated, IsOrganizationMember]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ["user", "event_type", "feature_name"]
    ordering_fields = ["timestamp", "usage_amount"]
    ordering = ["-timestamp"]

    def get_queryset(self):
        org_id = self.request.query_params.get("org")
        if not org_id:
            return UsageEvent.objects.none()

        queryset = UsageEvent.objects.filter(organization_id=org_id)
        start_date = self.request.query_params.get("start_date")
        end_date = self.request.query_params.get("end_date")

        if start_date:
            queryset = queryset.filter(timestamp__date__gte=start_date)
        if end_date:
            queryset = queryset.filter(timestamp__date__lte=end_date)

        return queryset
