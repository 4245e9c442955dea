"""
Alert generation and lifecycle management.

generate_alerts runs the usage threshold, churn risk and upsell detectors
concurrently and stores what they find in one bulk insert, skipping any
condition that already has an active alert for the same user. Each detector
handles its own failures, so one broken detector never hides the others.
"""

import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any

from asgiref.sync import async_to_sync, sync_to_async
from django.core.exceptions import ValidationError
from django.db.models import Count
from django.utils import timezone

from analytics.services import UsageTracker, API_CALL
from billing.models import SubscriptionTier, TierAssignment
from optimization.services import TierOptimizer, HIGH_RISK_THRESHOLD
from organizations.models import Organization
from .models import Alert

logger = logging.getLogger(__name__)

DETECTOR_EVENT_LIMIT = 50000
DEFAULT_TIER_NAME = 'starter'


def _short_id(user_id) -> str:
    return str(user_id)[:8]


def _month_start(now: datetime) -> datetime:
    local_now = timezone.localtime(now)
    return local_now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def default_tier(tiers: List[SubscriptionTier]) -> Optional[SubscriptionTier]:
    """
    Tier assumed for users without an explicit assignment: the tier named
    'Starter' when there is one, otherwise the lowest limited tier.
    """
    for tier in tiers:
        if tier.tier_name.lower() == DEFAULT_TIER_NAME:
            return tier
    limited = [t for t in tiers if t.api_limit]
    return min(limited, key=lambda t: t.tier_level) if limited else None


def next_tier(tier: SubscriptionTier, tiers: List[SubscriptionTier]) -> Optional[SubscriptionTier]:
    """The cheapest-level active tier above `tier`, or None for the top tier."""
    higher = [t for t in tiers if t.tier_level > tier.tier_level]
    return min(higher, key=lambda t: t.tier_level) if higher else None


def resolve_user_tiers(organization: Organization, tiers: List[SubscriptionTier]):
    """
    Map user ids to their assigned tier, restricted to the given active tiers.

    Returns:
        (assignments dict, fallback tier for unassigned users)
    """
    active = {t.pk: t for t in tiers}
    assignments = {
        a.user_id: active[a.tier_id]
        for a in TierAssignment.objects.filter(organization=organization)
        if a.tier_id in active
    }
    return assignments, default_tier(tiers)


class AlertsManager:
    """
    Detects alert-worthy conditions and manages stored alerts.
    """

    @staticmethod
    def generate_alerts(organization: Organization) -> List[Alert]:
        """
        Run all detectors for an organization and store the resulting alerts.

        Returns:
            The created Alert instances, empty when nothing new was detected
            or the insert failed
        """
        try:
            candidates = async_to_sync(AlertsManager._run_detectors)(organization)

            # Skip conditions that already have an active alert for the same user
            open_alerts = set(
                Alert.objects.filter(organization=organization).active()
                .values_list('user_id', 'alert_type', 'title')
            )
            candidates = [
                a for a in candidates
                if (a.user_id, a.alert_type, a.title) not in open_alerts
            ]

            if not candidates:
                return []

            created = Alert.objects.bulk_create(candidates)

            logger.info(
                f"Alerts generated for organization {organization.pk}: {len(created)}",
                extra={
                    'tenant_id': str(organization.pk),
                    'alerts_generated': len(created),
                    'types': [a.alert_type for a in created],
                }
            )
            return created

        except Exception as e:
            logger.error(
                f"Failed to generate alerts: {e}",
                extra={'tenant_id': str(organization.pk), 'operation': 'generate_alerts'},
                exc_info=True
            )
            return []

    @staticmethod
    async def _run_detectors(organization: Organization) -> List[Alert]:
        results = await asyncio.gather(
            sync_to_async(AlertsManager.check_usage_thresholds)(organization),
            sync_to_async(AlertsManager.check_churn_risks)(organization),
            sync_to_async(AlertsManager.check_upsell_opportunities)(organization),
        )
        return [alert for detector_alerts in results for alert in detector_alerts]

    @staticmethod
    def check_usage_thresholds(organization: Organization) -> List[Alert]:
        """
        Alert on users at 80% or more of their tier's monthly API allowance.
        """
        alerts = []

        try:
            tiers = list(SubscriptionTier.objects.filter(organization=organization, is_active=True))
            if not tiers:
                return alerts

            now = timezone.now()
            events = UsageTracker.get_usage_events(
                organization,
                _month_start(now),
                now,
                event_type=API_CALL,
                limit=DETECTOR_EVENT_LIMIT,
            )

            user_usage = defaultdict(int)
            for event in events:
                if event.user_id:
                    user_usage[event.user_id] += event.usage_amount

            assignments, fallback = resolve_user_tiers(organization, tiers)

            for user_id, usage in user_usage.items():
                tier = assignments.get(user_id, fallback)
                if tier is None or not tier.api_limit:
                    continue

                usage_percentage = usage / tier.api_limit * 100
                if usage_percentage < 80:
                    continue

                critical = usage_percentage >= 95
                alerts.append(Alert(
                    organization=organization,
                    user_id=user_id,
                    alert_type='usage_threshold',
                    severity='high' if critical else 'medium',
                    title=f"API Usage {'Critical' if critical else 'Warning'}",
                    message=(
                        f"User {_short_id(user_id)}... has used {round(usage_percentage)}% of their "
                        f"monthly API quota ({usage}/{tier.api_limit} calls)."
                    ),
                    metadata={
                        'user_id': user_id,
                        'usage_amount': usage,
                        'usage_limit': tier.api_limit,
                        'usage_percentage': round(usage_percentage),
                        'tier': tier.tier_name,
                    },
                ))

        except Exception as e:
            logger.error(
                f"Failed to check usage thresholds: {e}",
                extra={'tenant_id': str(organization.pk), 'operation': 'check_usage_thresholds'},
                exc_info=True
            )
            return []

        return alerts

    @staticmethod
    def check_churn_risks(organization: Organization) -> List[Alert]:
        """
        Alert on users whose churn risk score is above 70.
        """
        alerts = []

        try:
            expires_at = timezone.now() + timedelta(days=7)

            for score in TierOptimizer.calculate_churn_risk_scores(organization):
                if score.risk_score <= HIGH_RISK_THRESHOLD:
                    continue

                alerts.append(Alert(
                    organization=organization,
                    user_id=score.user_id,
                    alert_type='churn_risk',
                    severity='critical' if score.risk_score > 90 else 'high',
                    title='High Churn Risk Detected',
                    message=(
                        f"User {_short_id(score.user_id)}... has a {score.risk_score}% churn risk. "
                        f"{', '.join(score.risk_factors)}."
                    ),
                    metadata={
                        'user_id': score.user_id,
                        'risk_score': score.risk_score,
                        'risk_factors': score.risk_factors,
                        'recommended_actions': score.recommended_actions,
                        'usage_trend': score.usage_trend,
                        'last_activity': score.last_activity.isoformat() if score.last_activity else None,
                    },
                    expires_at=expires_at,
                ))

        except Exception as e:
            logger.error(
                f"Failed to check churn risks: {e}",
                extra={'tenant_id': str(organization.pk), 'operation': 'check_churn_risks'},
                exc_info=True
            )
            return []

        return alerts

    @staticmethod
    def check_upsell_opportunities(organization: Organization) -> List[Alert]:
        """
        Alert on users who outgrow their tier.

        A user at 90% or more of their API allowance gets an upsell alert; a
        user of 4 or more features at 70% or more is flagged as a power user.
        Both can fire for the same user.
        """
        alerts = []

        try:
            tiers = list(
                SubscriptionTier.objects.filter(organization=organization, is_active=True).order_by('tier_level')
            )
            if len(tiers) < 2:
                return alerts

            now = timezone.now()
            events = UsageTracker.get_usage_events(
                organization,
                _month_start(now),
                now,
                limit=DETECTOR_EVENT_LIMIT,
            )

            user_metrics = defaultdict(lambda: {'api_calls': 0, 'features': set(), 'total_events': 0})
            for event in events:
                if not event.user_id:
                    continue
                metrics = user_metrics[event.user_id]
                metrics['total_events'] += event.usage_amount
                if event.event_type == API_CALL:
                    metrics['api_calls'] += event.usage_amount
                if event.feature_name:
                    metrics['features'].add(event.feature_name)

            assignments, fallback = resolve_user_tiers(organization, tiers)
            upsell_expiry = now + timedelta(days=14)
            power_user_expiry = now + timedelta(days=30)

            for user_id, metrics in user_metrics.items():
                current = assignments.get(user_id, fallback)
                if current is None or not current.api_limit:
                    continue
                suggested = next_tier(current, tiers)
                if suggested is None:
                    continue

                usage_percentage = metrics['api_calls'] / current.api_limit * 100
                feature_count = len(metrics['features'])

                if usage_percentage >= 90:
                    alerts.append(Alert(
                        organization=organization,
                        user_id=user_id,
                        alert_type='upsell_opportunity',
                        severity='medium',
                        title='Upsell Opportunity Identified',
                        message=(
                            f"User {_short_id(user_id)}... consistently uses {round(usage_percentage)}% of their "
                            f"{current.tier_name} plan limits. Consider upgrading to {suggested.tier_name}."
                        ),
                        metadata={
                            'user_id': user_id,
                            'current_tier': current.tier_name,
                            'suggested_tier': suggested.tier_name,
                            'usage_percentage': round(usage_percentage),
                            'api_calls': metrics['api_calls'],
                            'unique_features': feature_count,
                            'potential_revenue_increase': float(suggested.monthly_price - current.monthly_price),
                        },
                        expires_at=upsell_expiry,
                    ))

                if feature_count >= 4 and usage_percentage >= 70:
                    alerts.append(Alert(
                        organization=organization,
                        user_id=user_id,
                        alert_type='upsell_opportunity',
                        severity='low',
                        title='Power User Detected',
                        message=(
                            f"User {_short_id(user_id)}... uses {feature_count} different features and "
                            f"{round(usage_percentage)}% of API limits. "
                            f"They might benefit from {suggested.tier_name} features."
                        ),
                        metadata={
                            'user_id': user_id,
                            'current_tier': current.tier_name,
                            'suggested_tier': suggested.tier_name,
                            'unique_features': feature_count,
                            'features_used': sorted(metrics['features']),
                            'usage_percentage': round(usage_percentage),
                        },
                        expires_at=power_user_expiry,
                    ))

        except Exception as e:
            logger.error(
                f"Failed to check upsell opportunities: {e}",
                extra={'tenant_id': str(organization.pk), 'operation': 'check_upsell_opportunities'},
                exc_info=True
            )
            return []

        return alerts

    @staticmethod
    def get_active_alerts(organization: Organization) -> List[Alert]:
        """Non-dismissed, unexpired alerts, newest first."""
        try:
            return list(Alert.objects.filter(organization=organization).active().order_by('-created_at'))
        except Exception as e:
            logger.error(
                f"Failed to get active alerts: {e}",
                extra={'tenant_id': str(organization.pk), 'operation': 'get_active_alerts'},
                exc_info=True
            )
            return []

    @staticmethod
    def mark_as_read(alert_id, organization: Optional[Organization] = None) -> bool:
        """
        Mark an alert as read.

        Returns:
            True if an alert was updated, False if it does not exist (within
            `organization`, when given) or the update failed
        """
        return AlertsManager._update_alert(alert_id, organization, 'mark_as_read', is_read=True)

    @staticmethod
    def dismiss_alert(alert_id, organization: Optional[Organization] = None) -> bool:
        """Dismiss an alert. Same return contract as mark_as_read."""
        return AlertsManager._update_alert(alert_id, organization, 'dismiss_alert', is_dismissed=True)

    @staticmethod
    def _update_alert(alert_id, organization: Optional[Organization], operation: str, **fields) -> bool:
        try:
            query = Alert.objects.filter(pk=alert_id)
            if organization is not None:
                query = query.filter(organization=organization)
            return query.update(**fields) > 0
        except ValidationError:
            return False
        except Exception as e:
            logger.error(
                f"Failed to update alert {alert_id}: {e}",
                extra={'alert_id': str(alert_id), 'operation': operation},
                exc_info=True
            )
            return False

    @staticmethod
    def cleanup_expired_alerts() -> int:
        """
        Delete alerts past their expiry across all organizations.

        Returns:
            Number of alerts deleted
        """
        try:
            deleted, _ = Alert.objects.expired().delete()
            logger.info(f"Expired alerts cleaned up: {deleted}", extra={'deleted': deleted})
            return deleted
        except Exception as e:
            logger.error(
                f"Failed to cleanup expired alerts: {e}",
                extra={'operation': 'cleanup_expired_alerts'},
                exc_info=True
            )
            return 0

    @staticmethod
    def get_alert_stats(organization: Organization) -> Dict[str, Any]:
        """
        Counts over the organization's non-dismissed alerts.

        Returns:
            Dict with 'total', 'unread', 'by_type' and 'by_severity'
        """
        stats = {'total': 0, 'unread': 0, 'by_type': {}, 'by_severity': {}}

        try:
            alerts = Alert.objects.filter(organization=organization, is_dismissed=False)

            stats['total'] = alerts.count()
            stats['unread'] = alerts.filter(is_read=False).count()
            stats['by_type'] = {
                row['alert_type']: row['count']
                for row in alerts.order_by().values('alert_type').annotate(count=Count('id'))
            }
            stats['by_severity'] = {
                row['severity']: row['count']
                for row in alerts.order_by().values('severity').annotate(count=Count('id'))
            }
            return stats

        except Exception as e:
            logger.error(
                f"Failed to get alert stats: {e}",
                extra={'tenant_id': str(organization.pk), 'operation': 'get_alert_stats'},
                exc_info=True
            )
            return {'total': 0, 'unread': 0, 'by_type': {}, 'by_severity': {}}
