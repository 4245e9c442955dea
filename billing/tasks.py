import logging
from celery import shared_task
from django.utils import timezone
from analytics.services import month_bounds, previous_month
from organizations.models import Organization
from .services import RevenueAnalyticsService

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=300)
def generate_monthly_revenue_analytics(self):
    """
    Compute last month's revenue snapshot for every organization.
    Organizations without active tiers are skipped.

    Returns:
        dict: Status and number of snapshots written
    """
    try:
        period_start, period_end = month_bounds(previous_month(timezone.localdate()))

        generated = 0
        for org in Organization.objects.all():
            if RevenueAnalyticsService.generate_revenue_analytics(org, period_start, period_end):
                generated += 1

        logger.info(
            f"Monthly revenue analytics generated for {period_start} - {period_end}",
            extra={'generated': generated}
        )
        return {
            'status': 'success',
            'message': f'Revenue analytics generated for {generated} organizations.',
            'generated': generated,
        }

    except Exception as exc:
        logger.error(f"Monthly revenue analytics failed: {exc}", exc_info=True)
        raise self.retry(exc=exc)
