import random
from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from alerts.models import Alert
from billing.models import SubscriptionTier, TierAssignment, TierPerformance, RevenueAnalytics
from billing.services import RevenueAnalyticsService
from organizations.models import Organization
from analytics.models import UsageEvent, UsageAggregation
from analytics.services import month_bounds, previous_month

SAMPLE_TIERS = [
    {
        'tier_name': 'Starter',
        'tier_level': 1,
        'monthly_price': Decimal('29.00'),
        'annual_price': Decimal('290.00'),
        'api_limit': 1000,
        'feature_limits': {'max_users': 5, 'max_projects': 3, 'support_level': 'email'},
    },
    {
        'tier_name': 'Professional',
        'tier_level': 2,
        'monthly_price': Decimal('79.00'),
        'annual_price': Decimal('790.00'),
        'api_limit': 5000,
        'feature_limits': {'max_users': 25, 'max_projects': 10, 'support_level': 'priority', 'advanced_analytics': True},
    },
    {
        'tier_name': 'Enterprise',
        'tier_level': 3,
        'monthly_price': Decimal('199.00'),
        'annual_price': Decimal('1990.00'),
        'api_limit': None,
        'feature_limits': {'support_level': 'dedicated', 'advanced_analytics': True, 'sso': True},
    },
]

SAMPLE_FEATURES = [
    'chat_completion',
    'document_analysis',
    'workflow_automation',
    'data_export',
    'team_collaboration',
    'api_integration',
]


class Command(BaseCommand):
    help = (
        "Seed sample tiers, 30 days of usage events and 6 months of revenue analytics for an organization. "
        "With --purge, delete the organization's analytics data instead."
    )

    def add_arguments(self, parser):
        parser.add_argument("organization", help="Organization id or slug")
        parser.add_argument("--days", type=int, default=30)
        parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible data")
        parser.add_argument(
            "--purge",
            action="store_true",
            help="Delete events, aggregations, tiers, revenue analytics and alerts for the organization",
        )

    @transaction.atomic
    def handle(self, *args, **opts):
        organization = Organization.objects.resolve(opts["organization"])
        if organization is None:
            raise CommandError(f"Organization not found: {opts['organization']}")

        if opts["purge"]:
            self._purge(organization)
            return

        for tier in SAMPLE_TIERS:
            SubscriptionTier.objects.update_or_create(
                organization=organization,
                tier_name=tier['tier_name'],
                defaults={**tier, 'is_active': True},
            )

        users = list(organization.get_members())
        if not users:
            raise CommandError("Organization has no members to attribute usage to.")

        rng = random.Random(opts["seed"])
        start = timezone.now() - timedelta(days=opts["days"])
        events = []
        for day in range(opts["days"]):
            day_start = start + timedelta(days=day)
            for _ in range(rng.randint(50, 200)):
                feature = rng.choice(SAMPLE_FEATURES)
                event_type = 'api_call' if rng.random() > 0.3 else 'feature_usage'
                events.append(UsageEvent(
                    organization=organization,
                    user=rng.choice(users),
                    event_type=event_type,
                    feature_name=feature,
                    usage_amount=rng.randint(1, 5),
                    metadata={'endpoint': f"/api/{feature}"} if event_type == 'api_call' else {},
                    timestamp=day_start + timedelta(seconds=rng.randint(0, 86399)),
                ))
        UsageEvent.objects.bulk_create(events, batch_size=1000)

        months = []
        month = previous_month(timezone.localdate())
        for _ in range(6):
            months.append(month)
            month = previous_month(month)
        for first_day in reversed(months):
            RevenueAnalyticsService.generate_revenue_analytics(organization, *month_bounds(first_day))

        self.stdout.write(self.style.SUCCESS(
            f"Seeded {len(SAMPLE_TIERS)} tiers, {len(events)} usage events and 6 revenue periods for {organization.name}"
        ))

    def _purge(self, organization):
        """Remove every analytics row for the organization, keeping the organization itself."""
        deleted = {
            'usage events': UsageEvent.objects.filter(organization=organization).delete()[0],
            'usage aggregations': UsageAggregation.objects.filter(organization=organization).delete()[0],
            'alerts': Alert.objects.filter(organization=organization).delete()[0],
            'revenue analytics': RevenueAnalytics.objects.filter(organization=organization).delete()[0],
            'tier performance': TierPerformance.objects.filter(tier__organization=organization).delete()[0],
            'tier assignments': TierAssignment.objects.filter(organization=organization).delete()[0],
            'subscription tiers': SubscriptionTier.objects.filter(organization=organization).delete()[0],
        }
        summary = ", ".join(f"{count} {label}" for label, count in deleted.items())
        self.stdout.write(self.style.SUCCESS(f"Purged {summary} for {organization.name}"))
