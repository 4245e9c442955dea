"""
Language-model pricing advisors.
"""

from .base import BasePricingAdvisor, PricingAdvisorException
from .factory import get_pricing_advisor, register_advisor

__all__ = [
    'BasePricingAdvisor',
    'PricingAdvisorException',
    'get_pricing_advisor',
    'register_advisor',
]
