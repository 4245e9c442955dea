"""
Tier optimization: per-user churn risk scoring and pricing recommendations.
"""

import json
import logging
import re
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional, List, Dict, Any, Sequence

from django.db.models import Sum
from django.utils import timezone

from analytics.models import UsageEvent, UsageAggregation
from billing.models import SubscriptionTier, TierPerformance
from organizations.models import Organization
from .advisors.factory import get_pricing_advisor
from .types import ChurnRiskScore, TierOptimizationRecommendation

logger = logging.getLogger(__name__)

HIGH_RISK_THRESHOLD = 70

PRICING_SYSTEM_PROMPT = (
    "You are a SaaS pricing expert. Analyze the provided tier structure and usage data "
    "to provide actionable pricing recommendations."
)

NUMBERED_LINE = re.compile(r'^\d+\.')
NUMBER_PREFIX = re.compile(r'^\d+\.\s*')


class TierOptimizer:
    """
    Scores churn risk of an organization's users and suggests tier changes.
    """

    @staticmethod
    def calculate_churn_risk_scores(organization: Organization) -> List[ChurnRiskScore]:
        """
        Score every member of the organization, highest risk first.

        Users whose score cannot be computed are skipped.
        """
        now = timezone.now()
        thirty_days_ago = now - timedelta(days=30)
        seven_days_ago = now - timedelta(days=7)

        try:
            users = list(organization.get_members())
        except Exception as e:
            logger.error(
                f"Failed to load members for churn scoring: {e}",
                extra={'tenant_id': str(organization.pk), 'operation': 'calculate_churn_risk_scores'},
                exc_info=True
            )
            return []

        scores = []
        for user in users:
            score = TierOptimizer.calculate_user_churn_risk(
                user, organization, thirty_days_ago, seven_days_ago, now=now
            )
            if score is not None:
                scores.append(score)

        scores.sort(key=lambda s: s.risk_score, reverse=True)

        logger.info(
            f"Churn risk scores calculated for {len(users)} users",
            extra={
                'tenant_id': str(organization.pk),
                'users_analyzed': len(users),
                'high_risk_users': len([s for s in scores if s.risk_score > HIGH_RISK_THRESHOLD]),
            }
        )
        return scores

    @staticmethod
    def calculate_user_churn_risk(
        user,
        organization: Organization,
        thirty_days_ago: datetime,
        seven_days_ago: datetime,
        now: Optional[datetime] = None
    ) -> Optional[ChurnRiskScore]:
        """
        Score one user's churn risk from their last 30 days of activity.

        Scoring:
            - 95 with no activity in 30 days, 80 with none in the last 7 days,
              60 when the older half of the window holds more than twice the
              events of the recent half, 20 otherwise
            - +15 when API calls are under 30% of the user's events
            - trend: a last week above 40% of the month is 'increasing' (-10),
              below 15% is 'decreasing' (+20)
            - clamped to 0..100

        Returns:
            ChurnRiskScore, or None if the user's activity could not be read
        """
        now = now or timezone.now()

        try:
            recent_activity = list(
                UsageEvent.objects.filter(
                    organization=organization,
                    user=user,
                    timestamp__gte=thirty_days_ago,
                )
                .order_by('-timestamp')
                .values('event_type', 'timestamp')
            )
            weekly_count = UsageEvent.objects.filter(
                organization=organization,
                user=user,
                timestamp__gte=seven_days_ago,
            ).count()
        except Exception as e:
            logger.error(
                f"Failed to calculate user churn risk: {e}",
                extra={
                    'tenant_id': str(organization.pk),
                    'user_id': str(user.pk),
                    'operation': 'calculate_user_churn_risk',
                },
                exc_info=True
            )
            return None

        total_count = len(recent_activity)
        risk_factors = []

        if total_count == 0:
            risk_score = 95
            risk_factors.append('No activity in 30 days')
        elif weekly_count == 0:
            risk_score = 80
            risk_factors.append('No activity in 7 days')
        else:
            midpoint = now - timedelta(days=15)
            first_half = len([a for a in recent_activity if a['timestamp'] < midpoint])
            second_half = total_count - first_half
            if first_half > second_half * 2:
                risk_score = 60
                risk_factors.append('Declining usage pattern')
            else:
                risk_score = 20

        api_calls = len([a for a in recent_activity if a['event_type'] == 'api_call'])
        if api_calls < total_count * 0.3:
            risk_score += 15
            risk_factors.append('Low API usage')

        usage_trend = 'stable'
        if weekly_count > total_count * 0.4:
            usage_trend = 'increasing'
            risk_score = max(0, risk_score - 10)
        elif weekly_count < total_count * 0.15:
            usage_trend = 'decreasing'
            risk_score += 20

        risk_score = max(0, min(100, risk_score))

        return ChurnRiskScore(
            user_id=user.pk,
            tenant_id=organization.pk,
            risk_score=risk_score,
            risk_factors=risk_factors,
            recommended_actions=TierOptimizer._churn_prevention_actions(risk_score, risk_factors, usage_trend),
            last_activity=recent_activity[0]['timestamp'] if recent_activity else None,
            usage_trend=usage_trend,
        )

    @staticmethod
    def _churn_prevention_actions(risk_score: int, risk_factors: List[str], usage_trend: str) -> List[str]:
        actions = []

        if risk_score > 80:
            actions.extend([
                'Send personalized re-engagement email',
                'Offer extended trial or discount',
                'Schedule customer success call',
            ])
        elif risk_score > 60:
            actions.extend([
                'Provide feature tutorials',
                'Send usage tips and best practices',
                'Invite to user community or webinar',
            ])
        elif risk_score > 40:
            actions.extend([
                'Send value-focused newsletter',
                'Highlight unused features',
            ])

        if 'Low API usage' in risk_factors:
            actions.append('Provide API integration tutorials')
            actions.append('Offer technical support session')

        if usage_trend == 'decreasing':
            actions.append('Investigate usage barriers')
            actions.append('Provide alternative solutions')

        return actions

    @staticmethod
    def generate_optimization_recommendations(
        organization: Organization,
        analysis_depth: str = 'detailed',
        include_competitive: bool = False
    ) -> List[TierOptimizationRecommendation]:
        """
        Suggest pricing and packaging changes for the organization's tiers.

        Args:
            organization: Organization whose tiers are analysed
            analysis_depth: 'basic' runs the per-tier checks only,
                            'detailed' adds the tier-structure checks
            include_competitive: Accepted for API compatibility; market
                                 insights come from get_ai_pricing_recommendations

        Returns:
            List of TierOptimizationRecommendation, empty without active tiers
        """
        try:
            tiers = list(
                SubscriptionTier.objects.filter(organization=organization, is_active=True).order_by('tier_level')
            )
            if not tiers:
                return []

            performance = list(
                TierPerformance.objects.filter(tier__organization=organization).order_by('-period_start')[:10]
            )
            usage_patterns = list(
                UsageAggregation.objects.filter(
                    organization=organization,
                    aggregation_period='monthly',
                ).values('period_start')
                .annotate(api_calls=Sum('api_calls'))
                .order_by('-period_start')[:6]
            )

            recommendations = []
            for tier in tiers:
                tier_performance = next((p for p in performance if p.tier_id == tier.pk), None)
                recommendations.extend(TierOptimizer._analyze_tier(tier, tier_performance))

            if analysis_depth != 'basic':
                recommendations.extend(TierOptimizer._strategic_recommendations(tiers, performance, usage_patterns))

            logger.info(
                f"Tier optimization recommendations generated: {len(recommendations)}",
                extra={
                    'tenant_id': str(organization.pk),
                    'recommendations_count': len(recommendations),
                    'usage_periods': len(usage_patterns),
                    'analysis_depth': analysis_depth,
                }
            )
            return recommendations

        except Exception as e:
            logger.error(
                f"Failed to generate tier optimization recommendations: {e}",
                extra={'tenant_id': str(organization.pk), 'operation': 'generate_optimization_recommendations'},
                exc_info=True
            )
            return []

    @staticmethod
    def _analyze_tier(tier: SubscriptionTier, performance: Optional[TierPerformance]) -> List[TierOptimizationRecommendation]:
        if performance is None:
            return []

        recommendations = []
        price = float(tier.monthly_price)
        usage = float(performance.avg_usage_percentage)

        if usage > 90:
            recommendations.append(TierOptimizationRecommendation(
                id=f"underpriced-{tier.pk}",
                type='underpriced',
                confidence=85,
                title=f"{tier.tier_name} Tier May Be Underpriced",
                description=(
                    f"Users are utilizing {usage:g}% of their limits on average, "
                    f"indicating strong value perception."
                ),
                impact={
                    'revenue_change': round(price * 0.15, 2),
                    'customer_retention': -2,
                    'adoption_likelihood': 0.8,
                },
                recommendations=[
                    'Consider increasing API limits by 20% and price by 15%',
                    'Add premium features to justify higher pricing',
                    'Implement usage-based pricing tiers',
                ],
                data_points={
                    'current_price': price,
                    'usage_percentage': usage,
                    'tier_level': tier.tier_level,
                },
            ))

        if usage < 30 and performance.churned_subscriptions > performance.new_subscriptions:
            recommendations.append(TierOptimizationRecommendation(
                id=f"overpriced-{tier.pk}",
                type='overpriced',
                confidence=75,
                title=f"{tier.tier_name} Tier May Be Overpriced",
                description=f"Low usage ({usage:g}%) and negative net growth suggest pricing misalignment.",
                impact={
                    'revenue_change': round(-price * 0.1, 2),
                    'customer_retention': 15,
                    'adoption_likelihood': 0.9,
                },
                recommendations=[
                    'Reduce price by 10-15% to improve adoption',
                    'Add more value at current price point',
                    'Create a lower-tier option',
                ],
                data_points={
                    'current_price': price,
                    'usage_percentage': usage,
                    'net_growth': performance.new_subscriptions - performance.churned_subscriptions,
                },
            ))

        return recommendations

    @staticmethod
    def _strategic_recommendations(
        tiers: List[SubscriptionTier],
        performance: List[TierPerformance],
        usage_patterns: Sequence[Dict[str, Any]] = ()
    ) -> List[TierOptimizationRecommendation]:
        recommendations = []
        # Organization-wide API calls per month, oldest first
        monthly_api_calls = [p['api_calls'] or 0 for p in reversed(usage_patterns)]
        prices = [float(t.monthly_price) for t in tiers]

        if len(tiers) < 3:
            suggested_price = round(sum(prices) / len(prices) * 0.4, 2)
            recommendations.append(TierOptimizationRecommendation(
                id='new-entry-tier',
                type='new_tier',
                confidence=70,
                title='Consider Adding Entry-Level Tier',
                description=(
                    'Gap analysis suggests potential for a lower-priced tier '
                    'to capture price-sensitive customers.'
                ),
                impact={
                    'revenue_change': round(suggested_price * 50, 2),
                    'customer_retention': 5,
                    'adoption_likelihood': 0.7,
                },
                recommendations=[
                    f"Create entry tier at ${suggested_price:.2f}/month",
                    'Limit features but maintain core value proposition',
                    'Use as conversion funnel to higher tiers',
                ],
                data_points={
                    'suggested_price': suggested_price,
                    'current_tier_count': len(tiers),
                    'price_gap': max(prices) - min(prices),
                },
            ))

        high_usage = [p for p in performance if p.avg_usage_percentage > 80]
        if high_usage:
            recommendations.append(TierOptimizationRecommendation(
                id='tier-limits-optimization',
                type='tier_limits',
                confidence=80,
                title='Optimize Tier Limits Based on Usage Patterns',
                description='Multiple tiers showing high usage suggest limits may need adjustment.',
                impact={
                    'revenue_change': 0,
                    'customer_retention': 10,
                    'adoption_likelihood': 0.9,
                },
                recommendations=[
                    'Increase limits for high-usage tiers by 25%',
                    'Implement soft limits with overage charges',
                    'Add usage analytics dashboard for customers',
                ],
                data_points={
                    'high_usage_tiers': len(high_usage),
                    'avg_usage': round(
                        sum(float(p.avg_usage_percentage) for p in high_usage) / len(high_usage), 2
                    ),
                    'monthly_api_calls': monthly_api_calls,
                    'peak_monthly_api_calls': max(monthly_api_calls, default=0),
                },
            ))

        return recommendations

    @staticmethod
    def get_ai_pricing_recommendations(
        organization: Organization,
        tiers: Sequence[SubscriptionTier],
        market_data: Optional[Dict[str, Any]] = None
    ) -> List[str]:
        """
        Ask the configured pricing advisor for pricing suggestions.

        Falls back to get_fallback_pricing_recommendations when no advisor is
        configured, the answer is empty or unparseable, or the call fails.
        """
        advisor = get_pricing_advisor()
        if advisor is None:
            return TierOptimizer.get_fallback_pricing_recommendations(tiers)

        try:
            content = advisor.advise(
                TierOptimizer.build_pricing_prompt(tiers, market_data),
                system_prompt=PRICING_SYSTEM_PROMPT,
                max_tokens=1000,
                temperature=0.3,
            )
            recommendations = TierOptimizer.parse_advisor_recommendations(content)
            if not recommendations:
                logger.warning(
                    "Pricing advisor returned no usable recommendations, using fallback",
                    extra={'tenant_id': str(organization.pk)}
                )
                return TierOptimizer.get_fallback_pricing_recommendations(tiers)
            return recommendations

        except Exception as e:
            logger.error(
                f"Failed to get AI pricing recommendations: {e}",
                extra={'tenant_id': str(organization.pk), 'operation': 'get_ai_pricing_recommendations'},
                exc_info=True
            )
            return TierOptimizer.get_fallback_pricing_recommendations(tiers)

    @staticmethod
    def build_pricing_prompt(tiers: Sequence[SubscriptionTier], market_data: Optional[Dict[str, Any]] = None) -> str:
        tier_summary = '\n'.join(
            f"{t.tier_name}: ${t.monthly_price}/month, Level {t.tier_level}, "
            f"API Limit: {t.api_limit or 'Unlimited'}"
            for t in tiers
        )
        market_context = json.dumps(market_data, indent=2, default=str) if market_data else 'Limited market data available'

        return (
            "Analyze this SaaS pricing structure and provide optimization recommendations:\n\n"
            f"Current Tiers:\n{tier_summary}\n\n"
            f"Market Context:\n{market_context}\n\n"
            "Please provide specific, actionable recommendations for:\n"
            "1. Price adjustments\n"
            "2. Tier structure optimization\n"
            "3. Feature distribution\n"
            "4. Competitive positioning\n\n"
            "Format as numbered list with reasoning for each recommendation."
        )

    @staticmethod
    def parse_advisor_recommendations(content: str) -> List[str]:
        """Keep numbered lines longer than 10 characters once the number is stripped."""
        items = []
        for line in (content or '').split('\n'):
            if not NUMBERED_LINE.match(line):
                continue
            item = NUMBER_PREFIX.sub('', line).strip()
            if len(item) > 10:
                items.append(item)
        return items

    @staticmethod
    def get_fallback_pricing_recommendations(tiers: Sequence[SubscriptionTier]) -> List[str]:
        recommendations = []

        if len(tiers) < 3:
            recommendations.append('Consider adding more tier options to capture different customer segments')

        prices = [Decimal(t.monthly_price) for t in tiers]
        price_gaps = [later - earlier for earlier, later in zip(prices, prices[1:])]
        if price_gaps:
            avg_gap = sum(price_gaps) / len(price_gaps)
            if any(gap > avg_gap * 2 for gap in price_gaps):
                recommendations.append('Large price gaps between tiers may indicate need for intermediate options')

        recommendations.append('Regularly review usage patterns to optimize tier limits')
        recommendations.append('Consider implementing usage-based pricing components')

        return recommendations
