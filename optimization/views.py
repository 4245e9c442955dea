from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from billing.models import SubscriptionTier
from organizations.permissions import IsOrganizationMember, get_request_organization
from .services import TierOptimizer, HIGH_RISK_THRESHOLD

PRICING_TYPES = ('underpriced', 'overpriced')
STRUCTURE_TYPES = ('new_tier', 'tier_limits')
ANALYSIS_DEPTHS = ('basic', 'detailed')


class OptimizationView(APIView):
    """
    Tier optimization recommendations (default) or churn risk scores
    (`?type=churn-risk`) for an organization.
    """

    permission_classes = [IsAuthenticated, IsOrganizationMember]

    def get(self, request):
        organization = get_request_organization(request, self)
        if organization is None:
            return Response({'error': 'Organization ID required.'}, status=status.HTTP_400_BAD_REQUEST)

        if request.query_params.get('type') == 'churn-risk':
            return self.churn_risk(organization)
        return self.recommendations(request, organization)

    def churn_risk(self, organization):
        scores = TierOptimizer.calculate_churn_risk_scores(organization)

        return Response({
            'churn_risk_scores': [s.to_dict() for s in scores],
            'summary': {
                'total_users': len(scores),
                'high_risk': len([s for s in scores if s.risk_score > HIGH_RISK_THRESHOLD]),
                'medium_risk': len([s for s in scores if 40 < s.risk_score <= HIGH_RISK_THRESHOLD]),
                'low_risk': len([s for s in scores if s.risk_score <= 40]),
            },
        })

    def recommendations(self, request, organization):
        analysis_depth = request.query_params.get('analysis_depth', 'detailed')
        if analysis_depth not in ANALYSIS_DEPTHS:
            return Response(
                {'error': f"analysis_depth must be one of: {', '.join(ANALYSIS_DEPTHS)}"},
                status=status.HTTP_400_BAD_REQUEST
            )
        include_competitive = request.query_params.get('include_competitive', '').lower() in ('1', 'true', 'yes')

        recommendations = TierOptimizer.generate_optimization_recommendations(
            organization,
            analysis_depth=analysis_depth,
            include_competitive=include_competitive,
        )
        data = [r.to_dict() for r in recommendations]

        response = {
            'recommendations': data,
            'categorized': {
                'pricing': [r for r in data if r['type'] in PRICING_TYPES],
                'structure': [r for r in data if r['type'] in STRUCTURE_TYPES],
                'strategic': [r for r in data if r['type'] not in PRICING_TYPES + STRUCTURE_TYPES],
            },
            'summary': {
                'total': len(recommendations),
                'high_confidence': len([r for r in recommendations if r.confidence > 80]),
                'potential_revenue': round(sum(r.impact['revenue_change'] for r in recommendations), 2),
            },
        }

        if include_competitive:
            tiers = list(
                SubscriptionTier.objects.filter(organization=organization, is_active=True).order_by('tier_level')
            )
            response['pricing_insights'] = TierOptimizer.get_ai_pricing_recommendations(organization, tiers)

        return Response(response)
