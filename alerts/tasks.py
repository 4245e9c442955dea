import logging
from celery import shared_task
from organizations.models import Organization
from .services import AlertsManager

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def generate_alerts_for_all_organizations(self):
    """
    Run the alert detectors for every organization.

    Returns:
        dict: Status and number of alerts created
    """
    try:
        generated = 0
        for org in Organization.objects.all():
            generated += len(AlertsManager.generate_alerts(org))

        logger.info(f"Alert generation completed: {generated} alerts", extra={'generated': generated})
        return {
            'status': 'success',
            'message': f'{generated} alerts generated.',
            'generated': generated,
        }

    except Exception as exc:
        logger.error(f"Alert generation failed: {exc}", exc_info=True)
        raise self.retry(exc=exc)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def cleanup_expired_alerts(self):
    """
    Delete alerts past their expiry.

    Returns:
        dict: Status and number of alerts deleted
    """
    try:
        deleted = AlertsManager.cleanup_expired_alerts()
        return {
            'status': 'success',
            'message': f'{deleted} expired alerts deleted.',
            'deleted': deleted,
        }

    except Exception as exc:
        logger.error(f"Expired alert cleanup failed: {exc}", exc_info=True)
        raise self.retry(exc=exc)
