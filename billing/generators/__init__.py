"""
Revenue metrics generators.
"""

from .base import BaseRevenueMetricsGenerator, RevenueMetrics, SaaSMetrics, RevenueGeneratorException
from .factory import get_revenue_metrics_generator, register_generator, list_available_generators

__all__ = [
    'BaseRevenueMetricsGenerator',
    'RevenueMetrics',
    'SaaSMetrics',
    'RevenueGeneratorException',
    'get_revenue_metrics_generator',
    'register_generator',
    'list_available_generators',
]
