import calendar
import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from django.utils import timezone

from analytics.services import UsageTracker, month_bounds, previous_month
from organizations.models import Organization
from .generators.base import SaaSMetrics
from .generators.factory import get_revenue_metrics_generator
from .models import SubscriptionTier, RevenueAnalytics

logger = logging.getLogger(__name__)


def shift_month_back(day: date) -> date:
    """
    Move a date back one calendar month, keeping month ends on month ends.
    """
    first_of_previous = previous_month(day)
    days_in_previous = calendar.monthrange(first_of_previous.year, first_of_previous.month)[1]
    if day.day == calendar.monthrange(day.year, day.month)[1]:
        return first_of_previous.replace(day=days_in_previous)
    return first_of_previous.replace(day=min(day.day, days_in_previous))


def start_of_day(day: date) -> datetime:
    return timezone.make_aware(datetime.combine(day, time.min))


def percentage_change(current, previous) -> float:
    if not previous:
        return 0.0
    return float((current - previous) / previous * 100)


class RevenueAnalyticsService:
    """
    Service layer for SaaS revenue metrics.
    Derives period snapshots through the configured revenue metrics generator
    and serves the current metrics bundle.
    """

    @staticmethod
    def generate_revenue_analytics(
        organization: Organization,
        period_start: date,
        period_end: date
    ) -> Optional[RevenueAnalytics]:
        """
        Compute and store the revenue snapshot for a period.

        Args:
            organization: Organization to compute metrics for
            period_start: First day of the period
            period_end: Last day of the period

        Returns:
            The upserted RevenueAnalytics row, or None when the organization
            has no active tiers or the computation failed
        """
        try:
            tiers = list(SubscriptionTier.objects.filter(organization=organization, is_active=True))
            if not tiers:
                logger.info(
                    f"No active tiers for organization {organization.pk}, skipping revenue analytics",
                    extra={'tenant_id': str(organization.pk)}
                )
                return None

            previous = RevenueAnalytics.objects.filter(
                organization=organization,
                period_start=shift_month_back(period_start),
                period_end=shift_month_back(period_end),
            ).first()

            generator = get_revenue_metrics_generator(seed=str(organization.pk))
            metrics = generator.generate(tiers, previous=previous)

            analytics, created = RevenueAnalytics.objects.update_or_create(
                organization=organization,
                period_start=period_start,
                period_end=period_end,
                defaults=metrics.to_dict(),
            )

            logger.info(
                f"Revenue analytics {'created' if created else 'updated'} for {period_start} - {period_end}",
                extra={
                    'tenant_id': str(organization.pk),
                    'mrr': str(analytics.mrr),
                    'total_customers': analytics.total_customers,
                }
            )
            return analytics

        except Exception as e:
            logger.error(
                f"Failed to generate revenue analytics: {e}",
                extra={'tenant_id': str(organization.pk), 'operation': 'generate_revenue_analytics'},
                exc_info=True
            )
            return None

    @staticmethod
    def get_revenue_analytics(organization: Organization, start: date, end: date) -> List[RevenueAnalytics]:
        """
        Get stored snapshots whose period lies inside [start, end], oldest first.
        """
        try:
            return list(
                RevenueAnalytics.objects.filter(
                    organization=organization,
                    period_start__gte=start,
                    period_end__lte=end,
                ).order_by('period_start')
            )
        except Exception as e:
            logger.error(
                f"Failed to get revenue analytics: {e}",
                extra={'tenant_id': str(organization.pk), 'operation': 'get_revenue_analytics'},
                exc_info=True
            )
            return []

    @staticmethod
    def get_current_saas_metrics(organization: Organization) -> SaaSMetrics:
        """
        Build the current-month SaaS metrics bundle.

        Uses the stored snapshot for the current month when there is one,
        otherwise an unsaved snapshot from the revenue metrics generator.
        Growth figures compare against the previous calendar month.
        """
        try:
            today = timezone.localdate()
            current_start, current_end = month_bounds(today)
            previous_start, previous_end = month_bounds(previous_month(today))

            previous = RevenueAnalytics.objects.filter(
                organization=organization,
                period_start=previous_start,
                period_end=previous_end,
            ).first()

            current = RevenueAnalytics.objects.filter(
                organization=organization,
                period_start=current_start,
                period_end=current_end,
            ).first()

            if current is None:
                tiers = list(SubscriptionTier.objects.filter(organization=organization, is_active=True))
                if tiers:
                    generator = get_revenue_metrics_generator(seed=str(organization.pk))
                    current = generator.generate(tiers, previous=previous)

            revenue_growth = 0.0
            if current is not None and previous is not None:
                revenue_growth = percentage_change(current.mrr, previous.mrr)

            current_window_start = start_of_day(current_start)
            next_month_start = start_of_day(current_end) + timedelta(days=1)
            previous_window_start = start_of_day(previous_start)

            current_events = UsageTracker.count_events(organization, current_window_start, next_month_start)
            previous_events = UsageTracker.count_events(organization, previous_window_start, current_window_start)
            if previous_events:
                usage_growth = percentage_change(current_events, previous_events)
            else:
                usage_growth = float(current_events)

            active_users = UsageTracker.count_active_users(organization, current_window_start, timezone.now())

            if current is None:
                return SaaSMetrics(active_users=active_users, usage_growth=usage_growth)

            return SaaSMetrics(
                mrr=float(current.mrr),
                arr=float(current.arr),
                churn_rate=float(current.churn_rate),
                ltv=float(current.ltv),
                cac=float(current.cac),
                arpu=float(current.arpu),
                total_customers=current.total_customers,
                active_users=active_users,
                usage_growth=usage_growth,
                revenue_growth=revenue_growth,
            )

        except Exception as e:
            logger.error(
                f"Failed to get current SaaS metrics: {e}",
                extra={'tenant_id': str(organization.pk), 'operation': 'get_current_saas_metrics'},
                exc_info=True
            )
            return SaaSMetrics()
