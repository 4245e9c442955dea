"""
Usage, revenue and customer reports, plus CSV rendering.
"""

import csv
import io
import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, Optional

from django.utils import timezone

from billing.services import RevenueAnalyticsService
from .services import UsageTracker, API_CALL, FEATURE_USAGE

logger = logging.getLogger(__name__)

USAGE_REPORT_EVENT_LIMIT = 10000
CUSTOMER_REPORT_EVENT_LIMIT = 50000
RAW_EVENTS_LIMIT = 1000
TOP_CUSTOMERS_LIMIT = 20

USAGE_CSV_HEADER = ['Date', 'Total Events', 'API Calls', 'Feature Usage', 'Unique Users']


def _event_day(event) -> str:
    return timezone.localdate(event.timestamp).isoformat()


def _event_to_dict(event) -> Dict[str, Any]:
    return {
        'id': str(event.id),
        'user_id': event.user_id,
        'event_type': event.event_type,
        'feature_name': event.feature_name,
        'usage_amount': event.usage_amount,
        'metadata': event.metadata,
        'timestamp': event.timestamp.isoformat(),
    }


def _date_range(start: datetime, end: datetime) -> Dict[str, str]:
    return {
        'start': timezone.localdate(start).isoformat(),
        'end': timezone.localdate(end).isoformat(),
    }


def generate_usage_report(organization, start: datetime, end: datetime, filters: Optional[Dict] = None) -> Dict[str, Any]:
    filters = filters or {}

    stats = UsageTracker.get_usage_stats(organization, 'daily', start, end)
    events = UsageTracker.get_usage_events(
        organization,
        start,
        end,
        event_type=filters.get('event_type'),
        feature_name=filters.get('feature_name'),
        user_id=filters.get('user_id'),
        limit=USAGE_REPORT_EVENT_LIMIT,
    )

    daily = {}
    daily_users = defaultdict(set)
    for event in events:
        day = _event_day(event)
        if day not in daily:
            daily[day] = {'date': day, 'total_events': 0, 'api_calls': 0, 'feature_usage': 0}

        daily[day]['total_events'] += event.usage_amount
        if event.event_type == API_CALL:
            daily[day]['api_calls'] += event.usage_amount
        elif event.event_type == FEATURE_USAGE:
            daily[day]['feature_usage'] += event.usage_amount

        if event.user_id:
            daily_users[day].add(event.user_id)

    daily_trends = [
        {**daily[day], 'unique_users': len(daily_users[day])}
        for day in sorted(daily)
    ]

    top_features = sorted(
        ({'feature': name, 'usage': count} for name, count in stats.feature_usage.items()),
        key=lambda f: f['usage'],
        reverse=True,
    )

    return {
        'summary': {
            'total_events': stats.total_events,
            'total_api_calls': stats.api_calls,
            'total_records': len(events),
            'date_range': _date_range(start, end),
        },
        'daily_trends': daily_trends,
        'top_features': top_features,
        'top_users': stats.top_users,
        'raw_events': [_event_to_dict(e) for e in events[:RAW_EVENTS_LIMIT]] if filters.get('include_raw_data') else [],
    }


def generate_revenue_report(organization, start: datetime, end: datetime, filters: Optional[Dict] = None) -> Dict[str, Any]:
    rows = RevenueAnalyticsService.get_revenue_analytics(
        organization,
        timezone.localdate(start),
        timezone.localdate(end),
    )
    current = RevenueAnalyticsService.get_current_saas_metrics(organization)

    customer_growth = 0.0
    if len(rows) > 1 and rows[0].total_customers:
        customer_growth = (rows[1].total_customers - rows[0].total_customers) / rows[0].total_customers * 100

    return {
        'summary': {
            'current_mrr': current.mrr,
            'current_arr': current.arr,
            'total_customers': current.total_customers,
            'churn_rate': current.churn_rate,
            'ltv': current.ltv,
            'cac': current.cac,
            'arpu': current.arpu,
            'total_records': len(rows),
        },
        'monthly_trends': [
            {
                'period': f"{row.period_start} to {row.period_end}",
                'mrr': float(row.mrr),
                'arr': float(row.arr),
                'new_customers': row.new_customers,
                'churned_customers': row.churned_customers,
                'net_growth': row.new_customers - row.churned_customers,
                'churn_rate': float(row.churn_rate),
            }
            for row in rows
        ],
        'growth_metrics': {
            'revenue_growth': current.revenue_growth,
            'customer_growth': customer_growth,
        },
    }


def generate_customer_report(organization, start: datetime, end: datetime, filters: Optional[Dict] = None) -> Dict[str, Any]:
    filters = filters or {}

    events = UsageTracker.get_usage_events(organization, start, end, limit=CUSTOMER_REPORT_EVENT_LIMIT)

    analysis = {}
    for event in events:
        if not event.user_id:
            continue

        customer = analysis.get(event.user_id)
        if customer is None:
            customer = analysis[event.user_id] = {
                'user_id': event.user_id,
                'total_events': 0,
                'api_calls': 0,
                'feature_usage': 0,
                'features': set(),
                'first_activity': event.timestamp,
                'last_activity': event.timestamp,
                'daily_activity': defaultdict(int),
            }

        customer['total_events'] += event.usage_amount
        if event.event_type == API_CALL:
            customer['api_calls'] += event.usage_amount
        elif event.event_type == FEATURE_USAGE:
            customer['feature_usage'] += event.usage_amount

        if event.feature_name:
            customer['features'].add(event.feature_name)

        customer['daily_activity'][_event_day(event)] += event.usage_amount
        customer['first_activity'] = min(customer['first_activity'], event.timestamp)
        customer['last_activity'] = max(customer['last_activity'], event.timestamp)

    customers = []
    for customer in analysis.values():
        active_days = len(customer['daily_activity'])
        span = customer['last_activity'] - customer['first_activity']
        total_days = span.days + (1 if span.seconds or span.microseconds else 0) + 1
        customers.append({
            'user_id': customer['user_id'],
            'total_events': customer['total_events'],
            'api_calls': customer['api_calls'],
            'feature_usage': customer['feature_usage'],
            'features': sorted(customer['features']),
            'unique_features': len(customer['features']),
            'first_activity': customer['first_activity'].isoformat(),
            'last_activity': customer['last_activity'].isoformat(),
            'active_days': active_days,
            'total_days': total_days,
            'engagement_score': active_days / max(total_days, 1),
            'avg_daily_usage': customer['total_events'] / max(active_days, 1),
        })

    customers.sort(key=lambda c: c['total_events'], reverse=True)
    count = len(customers)

    return {
        'summary': {
            'total_customers': count,
            'total_records': len(events),
            'avg_events_per_customer': sum(c['total_events'] for c in customers) / count if count else 0,
            'avg_engagement_score': sum(c['engagement_score'] for c in customers) / count if count else 0,
        },
        'top_customers': customers[:TOP_CUSTOMERS_LIMIT],
        'engagement_distribution': {
            'high': len([c for c in customers if c['engagement_score'] > 0.7]),
            'medium': len([c for c in customers if 0.3 < c['engagement_score'] <= 0.7]),
            'low': len([c for c in customers if c['engagement_score'] <= 0.3]),
        },
        'all_customers': customers if filters.get('include_all_customers') else [],
    }


def generate_comprehensive_report(organization, start: datetime, end: datetime, filters: Optional[Dict] = None) -> Dict[str, Any]:
    usage = generate_usage_report(organization, start, end, filters)
    revenue = generate_revenue_report(organization, start, end, filters)
    customers = generate_customer_report(organization, start, end, filters)

    return {
        'summary': {
            'report_type': 'comprehensive',
            'date_range': _date_range(start, end),
            'metrics': {
                'total_events': usage['summary']['total_events'],
                'total_customers': customers['summary']['total_customers'],
                'mrr': revenue['summary']['current_mrr'],
                'churn_rate': revenue['summary']['churn_rate'],
            },
        },
        'usage': usage,
        'revenue': revenue,
        'customers': customers,
    }


REPORT_GENERATORS = {
    'usage_summary': generate_usage_report,
    'revenue_summary': generate_revenue_report,
    'customer_analytics': generate_customer_report,
    'comprehensive': generate_comprehensive_report,
}


def generate_report(report_type: str, organization, start: datetime, end: datetime, filters: Optional[Dict] = None) -> Dict[str, Any]:
    """
    Build a report by type name.

    Raises:
        ValueError: If report_type is not one of REPORT_GENERATORS
    """
    generator = REPORT_GENERATORS.get(report_type)
    if generator is None:
        raise ValueError(f"Invalid report type: {report_type}")

    report = generator(organization, start, end, filters)

    logger.info(
        f"Report generated: {report_type}",
        extra={
            'tenant_id': str(organization.pk),
            'report_type': report_type,
            'record_count': report.get('summary', {}).get('total_records', 0),
        }
    )
    return report


def _flatten(data: Dict[str, Any], prefix: str = ''):
    for key, value in data.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict):
            yield from _flatten(value, full_key)
        else:
            yield full_key, value


def convert_to_csv(data: Dict[str, Any]) -> str:
    """
    Render a report as CSV.

    Usage reports become one row per day; any other report is flattened to
    Key,Value rows with dotted keys.
    """
    output = io.StringIO()
    writer = csv.writer(output, lineterminator='\n')

    if 'summary' in data and 'daily_trends' in data:
        writer.writerow(USAGE_CSV_HEADER)
        for day in data['daily_trends']:
            writer.writerow([
                day['date'],
                day['total_events'],
                day['api_calls'],
                day['feature_usage'],
                day['unique_users'],
            ])
    else:
        writer.writerow(['Key', 'Value'])
        for key, value in _flatten(data):
            writer.writerow([key, value])

    return output.getvalue()
