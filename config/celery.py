"""
Celery configuration for the usage analytics engine.

This module initializes the Celery application, wires it to Django settings and
declares the periodic schedule for aggregation, revenue and alert jobs.
"""
import os
from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('config')

# All celery-related configuration keys use the `CELERY_` prefix in settings.
app.config_from_object('django.conf:settings', namespace='CELERY')

# Look for tasks.py in each installed app
app.autodiscover_tasks()

app.conf.beat_schedule = {
    'generate-daily-usage-aggregations': {
        'task': 'analytics.tasks.generate_daily_usage_aggregations',
        'schedule': crontab(hour=0, minute=15),
    },
    'generate-monthly-usage-aggregations': {
        'task': 'analytics.tasks.generate_monthly_usage_aggregations',
        'schedule': crontab(day_of_month=1, hour=0, minute=30),
    },
    'generate-monthly-revenue-analytics': {
        'task': 'billing.tasks.generate_monthly_revenue_analytics',
        'schedule': crontab(day_of_month=1, hour=1, minute=0),
    },
    'generate-alerts': {
        'task': 'alerts.tasks.generate_alerts_for_all_organizations',
        'schedule': crontab(minute=0, hour='*/6'),
    },
    'cleanup-expired-alerts': {
        'task': 'alerts.tasks.cleanup_expired_alerts',
        'schedule': crontab(hour=3, minute=0),
    },
}

