# analytics/urls.py
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import (
    TrackEventView,
    UsageView,
    MetricsView,
    ReportView,
    UsageEventViewSet,
)

router = DefaultRouter()
router.register(r'events', UsageEventViewSet, basename='usage-event')

urlpatterns = [
    # Usage event ingestion
    path('track/', TrackEventView.as_view(), name='track-event'),

    # Usage and SaaS metrics
    path('usage/', UsageView.as_view(), name='usage'),
    path('metrics/', MetricsView.as_view(), name='metrics'),

    # JSON / CSV reports
    path('reports/', ReportView.as_view(), name='reports'),

    # Read-only event listing (/events/)
    path('', include(router.urls)),
]
