# analytics/tasks.py
import datetime
import logging
from celery import shared_task
from django.utils import timezone
from organizations.models import Organization
from .services import UsageTracker, previous_month

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def generate_daily_usage_aggregations(self, date=None):
    """
    Roll up one day of usage events for all organizations.
    Runs once per day (scheduled via Celery Beat) for the previous day.

    args:
        self: The task instance
        date: Optional ISO date to aggregate instead of yesterday

    Returns:
        dict: Status of the task
    """
    try:
        if date:
            day = datetime.date.fromisoformat(date)
        else:
            day = timezone.localdate() - datetime.timedelta(days=1)

        rows = 0
        organizations = 0
        for org in Organization.objects.all():
            rows += UsageTracker.generate_daily_aggregations(org, day)
            organizations += 1

        logger.info(
            f"Daily usage aggregations completed for {day}",
            extra={'organizations': organizations, 'rows': rows}
        )
        return {
            'status': 'success',
            'message': f'Daily usage aggregation completed for {day}.',
            'rows': rows,
        }

    except Exception as exc:
        logger.error(f"Daily usage aggregation failed: {exc}", exc_info=True)
        raise self.retry(exc=exc)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def generate_monthly_usage_aggregations(self):
    """
    Roll up last month's usage events for all organizations.
    Runs once per month via Celery Beat.

    args:
        self: The task instance

    Returns:
        dict: Status of the task
    """
    try:
        last_month = previous_month(timezone.localdate())

        rows = 0
        for org in Organization.objects.all():
            rows += UsageTracker.generate_monthly_aggregations(org, last_month.year, last_month.month)

        logger.info(
            f"Monthly usage aggregations completed for {last_month.year}-{last_month.month:02d}",
            extra={'rows': rows}
        )
        return {
            'status': 'success',
            'message': f'Monthly usage aggregation completed for {last_month.year}-{last_month.month:02d}.',
            'rows': rows,
        }

    except Exception as exc:
        logger.error(f"Monthly usage aggregation failed: {exc}", exc_info=True)
        raise self.retry(exc=exc)
