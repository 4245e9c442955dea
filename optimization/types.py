"""
Result types produced by the tier optimizer. Neither is persisted.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional, List, Dict, Any


@dataclass
class ChurnRiskScore:
    """
    Churn risk of one user of an organization.

    Attributes:
        user_id: Scored user
        tenant_id: Organization the user belongs to
        risk_score: 0 (safe) to 100 (almost certainly churning)
        risk_factors: Human-readable reasons behind the score
        recommended_actions: Retention actions for the account team
        last_activity: Timestamp of the user's most recent event, if any
        usage_trend: 'increasing', 'stable' or 'decreasing'
    """
    user_id: Any
    tenant_id: Any
    risk_score: int
    risk_factors: List[str] = field(default_factory=list)
    recommended_actions: List[str] = field(default_factory=list)
    last_activity: Optional[datetime] = None
    usage_trend: str = 'stable'

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['user_id'] = str(self.user_id)
        data['tenant_id'] = str(self.tenant_id)
        data['last_activity'] = self.last_activity.isoformat() if self.last_activity else None
        return data


@dataclass
class TierOptimizationRecommendation:
    """
    A pricing or packaging change suggested for an organization's tiers.

    `type` is one of 'underpriced', 'overpriced', 'new_tier' or 'tier_limits'.
    `impact` holds 'revenue_change', 'customer_retention' and
    'adoption_likelihood' (0 to 1).
    """
    id: str
    type: str
    confidence: int
    title: str
    description: str
    impact: Dict[str, float]
    recommendations: List[str] = field(default_factory=list)
    data_points: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
