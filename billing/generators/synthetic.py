"""
Synthetic revenue model.

Stands in for real billing data: grows the previous period's customer base
by a seeded random rate and applies fixed churn, upgrade and downgrade rates.
"""

import logging
import random
from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence

from .base import BaseRevenueMetricsGenerator, RevenueMetrics

logger = logging.getLogger(__name__)

BASE_CUSTOMERS = 100
MIN_GROWTH_RATE = 0.05
MAX_GROWTH_RATE = 0.15
CHURN_RATE = 0.02
UPGRADE_RATE = 0.03
DOWNGRADE_RATE = 0.01
LIFETIME_MONTHS_WITHOUT_CHURN = 36
CAC_TO_ARPU_RATIO = Decimal('0.3')

CENTS = Decimal('0.01')
CHURN_PLACES = Decimal('0.0001')


def _money(value) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


class SyntheticRevenueMetricsGenerator(BaseRevenueMetricsGenerator):
    """
    Deterministic synthetic revenue model.

    The growth rate is drawn from a random.Random seeded with the generator
    seed and the starting customer count, so the same organization and the
    same prior period always yield the same metrics.
    """

    def _growth_rate(self, base_customers: int) -> float:
        rng = random.Random(f"{self.seed}:{base_customers}")
        return MIN_GROWTH_RATE + rng.random() * (MAX_GROWTH_RATE - MIN_GROWTH_RATE)

    def generate(self, tiers: Sequence, previous=None) -> RevenueMetrics:
        base_customers = previous.total_customers if previous and previous.total_customers else BASE_CUSTOMERS

        growth_rate = self._growth_rate(base_customers)
        total_customers = round(base_customers * (1 + growth_rate))
        new_customers = total_customers - base_customers
        churned_customers = round(base_customers * CHURN_RATE)
        upgraded_customers = round(base_customers * UPGRADE_RATE)
        downgraded_customers = round(base_customers * DOWNGRADE_RATE)

        prices = [Decimal(tier.monthly_price) for tier in tiers]
        avg_price = sum(prices, Decimal('0')) / len(prices) if prices else Decimal('0')

        mrr = Decimal(total_customers) * avg_price
        arr = mrr * 12
        churn_rate = Decimal(churned_customers) / Decimal(base_customers)
        arpu = mrr / total_customers if total_customers else Decimal('0')
        if churn_rate > 0:
            ltv = arpu / churn_rate
        else:
            ltv = arpu * LIFETIME_MONTHS_WITHOUT_CHURN
        cac = arpu * CAC_TO_ARPU_RATIO

        logger.debug(
            f"Synthetic revenue generated: {total_customers} customers, growth {growth_rate:.4f}",
            extra={'seed': self.seed, 'base_customers': base_customers}
        )

        return RevenueMetrics(
            mrr=_money(mrr),
            arr=_money(arr),
            new_customers=new_customers,
            churned_customers=churned_customers,
            upgraded_customers=upgraded_customers,
            downgraded_customers=downgraded_customers,
            total_customers=total_customers,
            churn_rate=churn_rate.quantize(CHURN_PLACES, rounding=ROUND_HALF_UP),
            ltv=_money(ltv),
            cac=_money(cac),
            arpu=_money(arpu),
        )
