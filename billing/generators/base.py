"""
Base classes for revenue metrics generation.

A revenue metrics generator turns an organization's pricing tiers (and the
previous period's snapshot, if any) into the figures stored in a
RevenueAnalytics row. Real billing data and synthetic models both plug in
behind the same interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Optional, Dict, Any, Sequence


@dataclass
class RevenueMetrics:
    """
    Period-level SaaS financial figures produced by a generator.

    Attributes:
        mrr: Monthly recurring revenue
        arr: Annual recurring revenue
        new_customers: Customers gained in the period
        churned_customers: Customers lost in the period
        upgraded_customers: Customers who moved to a higher tier
        downgraded_customers: Customers who moved to a lower tier
        total_customers: Customers at the end of the period
        churn_rate: churned / starting customers, as a fraction
        ltv: Customer lifetime value
        cac: Customer acquisition cost
        arpu: Average revenue per user
    """
    mrr: Decimal
    arr: Decimal
    new_customers: int
    churned_customers: int
    upgraded_customers: int
    downgraded_customers: int
    total_customers: int
    churn_rate: Decimal
    ltv: Decimal
    cac: Decimal
    arpu: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SaaSMetrics:
    """
    Current-month metrics bundle served to dashboards and reports.
    """
    mrr: float = 0.0
    arr: float = 0.0
    churn_rate: float = 0.0
    ltv: float = 0.0
    cac: float = 0.0
    arpu: float = 0.0
    total_customers: int = 0
    active_users: int = 0
    usage_growth: float = 0.0
    revenue_growth: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class RevenueGeneratorException(Exception):
    """
    Raised when a revenue metrics generator cannot be resolved or configured.
    """
    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class BaseRevenueMetricsGenerator(ABC):
    """
    Abstract base class for revenue metrics generators.
    """

    def __init__(self, seed: Optional[str] = None):
        """
        Args:
            seed: Optional value that makes generation reproducible
                  (the organization id when called from the service)
        """
        self.seed = seed

    @abstractmethod
    def generate(self, tiers: Sequence, previous=None) -> RevenueMetrics:
        """
        Produce metrics for a period.

        Args:
            tiers: Active SubscriptionTier instances of the organization
            previous: The previous period's RevenueAnalytics row, or None

        Returns:
            RevenueMetrics for the period
        """
        pass
