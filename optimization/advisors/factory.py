"""
Pricing advisor factory.

Returns None instead of raising when no advisor is configured, since the
optimizer treats a missing advisor as a normal condition.
"""

import logging
from typing import Optional
from django.conf import settings
from .base import BasePricingAdvisor, PricingAdvisorException
from .gemini_advisor import GeminiPricingAdvisor

logger = logging.getLogger(__name__)


ADVISOR_REGISTRY = {
    'gemini': GeminiPricingAdvisor,
}


def get_pricing_advisor(advisor_name: Optional[str] = None) -> Optional[BasePricingAdvisor]:
    """
    Get the configured pricing advisor.

    Args:
        advisor_name: Registered advisor name. If None, uses PRICING_ADVISOR from settings

    Returns:
        Advisor instance, or None when no advisor or API key is configured
    """
    if advisor_name is None:
        advisor_name = getattr(settings, 'PRICING_ADVISOR', '')

    if not advisor_name:
        return None

    advisor_name = advisor_name.lower().strip()
    if advisor_name not in ADVISOR_REGISTRY:
        logger.warning(f"Unknown pricing advisor '{advisor_name}', advisor disabled")
        return None

    if advisor_name == 'gemini':
        api_key = getattr(settings, 'GEMINI_API_KEY', '')
        model = getattr(settings, 'GEMINI_MODEL', 'gemini-2.0-flash')
    else:
        api_key = getattr(settings, f'{advisor_name.upper()}_API_KEY', '')
        model = getattr(settings, f'{advisor_name.upper()}_MODEL', '')

    if not api_key:
        return None

    return ADVISOR_REGISTRY[advisor_name](api_key=api_key, model=model)


def register_advisor(name: str, advisor_class: type):
    """
    Register a pricing advisor. Its API key and model are read from
    <NAME>_API_KEY and <NAME>_MODEL settings.
    """
    if not isinstance(advisor_class, type) or not issubclass(advisor_class, BasePricingAdvisor):
        raise PricingAdvisorException(
            message="Advisor class must extend BasePricingAdvisor",
            error_code='invalid_advisor_class'
        )

    ADVISOR_REGISTRY[name.lower()] = advisor_class
