"""
Usage tracking and aggregation services.

Everything in this module is best-effort: store failures are logged with the
tenant and operation and turned into empty or zero results, so that usage
tracking can never break the caller's primary operation.
"""
import calendar
import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from django.db import transaction
from django.db.models import Count, Sum
from django.utils import timezone

from .models import UsageEvent, UsageAggregation

logger = logging.getLogger(__name__)

API_CALL = 'api_call'
FEATURE_USAGE = 'feature_usage'

STATS_PERIODS = ('daily', 'weekly', 'monthly')
TOP_USERS_LIMIT = 10


@dataclass
class UsageStats:
    """Aggregate usage of one organization over a time window."""
    total_events: int = 0
    api_calls: int = 0
    feature_usage: Dict[str, int] = field(default_factory=dict)
    top_users: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class UsageTracker:
    """
    Records usage events and computes aggregate statistics for an organization.
    """

    @staticmethod
    def track_event(
        organization,
        event_type: str,
        user=None,
        feature_name: Optional[str] = None,
        usage_amount: int = 1,
        metadata: Optional[Dict] = None,
        timestamp: Optional[datetime] = None
    ) -> Optional[UsageEvent]:
        """
        Append a usage event.

        Args:
            organization: Organization instance the usage belongs to
            event_type: Free-form event type ('api_call', 'feature_usage', 'login', ...)
            user: Optional User instance
            feature_name: Optional feature the event relates to
            usage_amount: Units consumed; values below 1 are recorded as 1
            metadata: Arbitrary event metadata
            timestamp: Event time (defaults to now)

        Returns:
            The created UsageEvent, or None if it could not be stored
        """
        if not usage_amount or usage_amount < 1:
            usage_amount = 1

        try:
            with transaction.atomic():
                event = UsageEvent.objects.create(
                    organization=organization,
                    user=user,
                    event_type=event_type,
                    feature_name=feature_name,
                    usage_amount=usage_amount,
                    metadata=metadata or {},
                    timestamp=timestamp or timezone.now(),
                )

            logger.info(
                f"Usage event tracked: {event_type} for organization {organization.pk}",
                extra={
                    'tenant_id': str(organization.pk),
                    'event_type': event_type,
                    'feature_name': feature_name,
                    'usage_amount': usage_amount,
                }
            )
            return event

        except Exception as e:
            logger.error(
                f"Failed to track usage event: {e}",
                extra={
                    'tenant_id': str(getattr(organization, 'pk', organization)),
                    'operation': 'track_event',
                    'event_type': event_type,
                },
                exc_info=True
            )
            return None

    @staticmethod
    def track_api_call(organization, user=None, endpoint: Optional[str] = None, metadata: Optional[Dict] = None):
        """Track one API call; the endpoint doubles as the feature name."""
        return UsageTracker.track_event(
            organization,
            API_CALL,
            user=user,
            feature_name=endpoint,
            metadata={**(metadata or {}), 'endpoint': endpoint},
        )

    @staticmethod
    def track_feature_usage(
        organization,
        feature_name: str,
        user=None,
        usage_amount: int = 1,
        metadata: Optional[Dict] = None
    ):
        """Track usage of a named feature."""
        return UsageTracker.track_event(
            organization,
            FEATURE_USAGE,
            user=user,
            feature_name=feature_name,
            usage_amount=usage_amount,
            metadata=metadata,
        )

    @staticmethod
    def get_usage_events(
        organization,
        start: datetime,
        end: datetime,
        event_type: Optional[str] = None,
        feature_name: Optional[str] = None,
        user_id=None,
        limit: Optional[int] = None
    ) -> List[UsageEvent]:
        """
        Get usage events with a timestamp in [start, end], newest first.

        Args:
            organization: Organization instance
            start: Window start (inclusive)
            end: Window end (inclusive)
            event_type: Optional event type filter
            feature_name: Optional feature name filter
            user_id: Optional user id filter
            limit: Optional maximum number of rows

        Returns:
            List of UsageEvent instances
        """
        try:
            query = UsageEvent.objects.filter(
                organization=organization,
                timestamp__gte=start,
                timestamp__lte=end,
            )

            if event_type:
                query = query.filter(event_type=event_type)
            if feature_name:
                query = query.filter(feature_name=feature_name)
            if user_id:
                query = query.filter(user_id=user_id)

            query = query.order_by('-timestamp')
            if limit:
                query = query[:limit]

            return list(query)

        except Exception as e:
            logger.error(
                f"Failed to get usage events: {e}",
                extra={'tenant_id': str(getattr(organization, 'pk', organization)), 'operation': 'get_usage_events'},
                exc_info=True
            )
            return []

    @staticmethod
    def get_usage_stats(organization, period: str, start: datetime, end: datetime) -> UsageStats:
        """
        Aggregate usage over the whole [start, end] window.

        `period` is validated but not used for bucketing: the statistics
        always cover the full window.

        Returns:
            UsageStats where api_calls is the summed usage of api_call events,
            feature_usage maps feature name to summed usage of feature_usage
            events and top_users holds up to 10 {"user_id", "event_count"}
            dicts, busiest first
        """
        if period not in STATS_PERIODS:
            logger.warning(f"Unknown usage stats period '{period}', using whole window")

        try:
            events = UsageEvent.objects.filter(
                organization=organization,
                timestamp__gte=start,
                timestamp__lte=end,
            )

            total_events = events.count()

            api_calls = (
                events.filter(event_type=API_CALL)
                .aggregate(total=Sum('usage_amount'))['total'] or 0
            )

            feature_rows = (
                events.filter(event_type=FEATURE_USAGE, feature_name__isnull=False)
                .exclude(feature_name='')
                .values('feature_name')
                .annotate(total=Sum('usage_amount'))
            )
            feature_usage = {row['feature_name']: row['total'] for row in feature_rows}

            top_users = (
                events.filter(user__isnull=False)
                .values('user_id')
                .annotate(event_count=Count('id'))
                .order_by('-event_count')[:TOP_USERS_LIMIT]
            )

            return UsageStats(
                total_events=total_events,
                api_calls=api_calls,
                feature_usage=feature_usage,
                top_users=[
                    {"user_id": row["user_id"], "event_count": row["event_count"]}
                    for row in top_users
                ],
            )

        except Exception as e:
            logger.error(
                f"Failed to get usage stats: {e}",
                extra={'tenant_id': str(getattr(organization, 'pk', organization)), 'operation': 'get_usage_stats'},
                exc_info=True
            )
            return UsageStats()

    @staticmethod
    def generate_daily_aggregations(organization, day) -> int:
        """
        Roll up one calendar day of events into per-user daily aggregations.

        Re-running for the same day overwrites the existing rows.

        Args:
            organization: Organization instance
            day: datetime.date or datetime

        Returns:
            Number of aggregation rows written
        """
        if isinstance(day, datetime):
            day = timezone.localdate(day) if timezone.is_aware(day) else day.date()

        try:
            events = UsageEvent.objects.filter(
                organization=organization,
                timestamp__date=day,
                user__isnull=False,
            )
            written = UsageTracker._write_aggregations(organization, events, 'daily', day, day)

            logger.info(
                f"Daily usage aggregations generated for {day}: {written} users",
                extra={'tenant_id': str(organization.pk), 'date': str(day), 'user_count': written}
            )
            return written

        except Exception as e:
            logger.error(
                f"Failed to generate daily aggregations: {e}",
                extra={
                    'tenant_id': str(getattr(organization, 'pk', organization)),
                    'operation': 'generate_daily_aggregations',
                    'date': str(day),
                },
                exc_info=True
            )
            return 0

    @staticmethod
    def generate_monthly_aggregations(organization, year: int, month: int) -> int:
        """
        Roll up one calendar month of events into per-user monthly aggregations.

        Returns:
            Number of aggregation rows written
        """
        period_start = date(year, month, 1)
        period_end = date(year, month, calendar.monthrange(year, month)[1])

        try:
            events = UsageEvent.objects.filter(
                organization=organization,
                timestamp__date__gte=period_start,
                timestamp__date__lte=period_end,
                user__isnull=False,
            )
            written = UsageTracker._write_aggregations(organization, events, 'monthly', period_start, period_end)

            logger.info(
                f"Monthly usage aggregations generated for {year}-{month:02d}: {written} users",
                extra={'tenant_id': str(organization.pk), 'user_count': written}
            )
            return written

        except Exception as e:
            logger.error(
                f"Failed to generate monthly aggregations: {e}",
                extra={
                    'tenant_id': str(getattr(organization, 'pk', organization)),
                    'operation': 'generate_monthly_aggregations',
                },
                exc_info=True
            )
            return 0

    @staticmethod
    def count_events(organization, start: datetime, end: datetime) -> int:
        """Count events with start <= timestamp < end."""
        try:
            return UsageEvent.objects.filter(
                organization=organization,
                timestamp__gte=start,
                timestamp__lt=end,
            ).count()
        except Exception as e:
            logger.error(
                f"Failed to count usage events: {e}",
                extra={'tenant_id': str(getattr(organization, 'pk', organization)), 'operation': 'count_events'},
                exc_info=True
            )
            return 0

    @staticmethod
    def count_active_users(organization, start: datetime, end: datetime) -> int:
        """Count distinct users with at least one event in [start, end]."""
        try:
            return (
                UsageEvent.objects.filter(
                    organization=organization,
                    timestamp__gte=start,
                    timestamp__lte=end,
                    user__isnull=False,
                )
                .values('user')
                .distinct()
                .count()
            )
        except Exception as e:
            logger.error(
                f"Failed to count active users: {e}",
                extra={'tenant_id': str(getattr(organization, 'pk', organization)), 'operation': 'count_active_users'},
                exc_info=True
            )
            return 0

    @staticmethod
    def _write_aggregations(organization, events, aggregation_period: str, period_start: date, period_end: date) -> int:
        user_stats = defaultdict(lambda: {'api_calls': 0, 'feature_usage': defaultdict(int)})

        for event in events.values('user_id', 'event_type', 'feature_name', 'usage_amount'):
            stats = user_stats[event['user_id']]
            if event['event_type'] == API_CALL:
                stats['api_calls'] += event['usage_amount']
            if event['feature_name']:
                stats['feature_usage'][event['feature_name']] += event['usage_amount']

        with transaction.atomic():
            for user_id, stats in user_stats.items():
                UsageAggregation.objects.update_or_create(
                    organization=organization,
                    user_id=user_id,
                    aggregation_period=aggregation_period,
                    period_start=period_start,
                    defaults={
                        'period_end': period_end,
                        'api_calls': stats['api_calls'],
                        'feature_usage': dict(stats['feature_usage']),
                        'session_duration_minutes': 0,
                        'unique_features_used': len(stats['feature_usage']),
                    },
                )

        return len(user_stats)


def month_bounds(day: date):
    """Return (first_day, last_day) of the month containing `day`."""
    first_day = day.replace(day=1)
    last_day = day.replace(day=calendar.monthrange(day.year, day.month)[1])
    return first_day, last_day


def previous_month(day: date) -> date:
    """Return the first day of the month before the one containing `day`."""
    return (day.replace(day=1) - timedelta(days=1)).replace(day=1)
