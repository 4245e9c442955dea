"""
Revenue metrics generator factory.

Resolves the generator named in settings so the revenue service never
depends on a concrete metric model.
"""

from typing import Optional
from django.conf import settings
from .base import BaseRevenueMetricsGenerator, RevenueGeneratorException
from .synthetic import SyntheticRevenueMetricsGenerator


GENERATOR_REGISTRY = {
    'synthetic': SyntheticRevenueMetricsGenerator,
}


def get_revenue_metrics_generator(generator_name: Optional[str] = None, seed: Optional[str] = None) -> BaseRevenueMetricsGenerator:
    """
    Get a revenue metrics generator instance.

    Args:
        generator_name: Registered generator name. If None, uses
                        REVENUE_METRICS_GENERATOR from settings
        seed: Value passed to the generator for reproducible output

    Returns:
        Revenue metrics generator instance

    Raises:
        RevenueGeneratorException: If the generator is not registered

    Example:
        >>> generator = get_revenue_metrics_generator('synthetic', seed=str(org.id))
        >>> metrics = generator.generate(tiers)
    """
    if generator_name is None:
        generator_name = getattr(settings, 'REVENUE_METRICS_GENERATOR', 'synthetic')

    generator_name = generator_name.lower().strip()

    if generator_name not in GENERATOR_REGISTRY:
        supported = ', '.join(GENERATOR_REGISTRY.keys())
        raise RevenueGeneratorException(
            message=f"Unsupported revenue metrics generator: {generator_name}. Supported generators: {supported}",
            error_code='unsupported_generator'
        )

    return GENERATOR_REGISTRY[generator_name](seed=seed)


def register_generator(name: str, generator_class: type):
    """
    Register a revenue metrics generator, e.g. one backed by real billing data.

    Example:
        >>> register_generator('ledger', LedgerRevenueMetricsGenerator)
    """
    if not isinstance(generator_class, type) or not issubclass(generator_class, BaseRevenueMetricsGenerator):
        raise RevenueGeneratorException(
            message="Generator class must extend BaseRevenueMetricsGenerator",
            error_code='invalid_generator_class'
        )

    GENERATOR_REGISTRY[name.lower()] = generator_class


def list_available_generators():
    return list(GENERATOR_REGISTRY.keys())
