"""
Base classes for language-model pricing advisors.

An advisor answers a free-text pricing prompt. The tier optimizer never
depends on one being configured: every advisor failure falls back to
deterministic heuristics.
"""

from abc import ABC, abstractmethod
from typing import Optional


class PricingAdvisorException(Exception):
    """
    Raised when an advisor cannot be configured or its provider call fails.
    """
    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class BasePricingAdvisor(ABC):
    """
    Abstract base class for pricing advisors.
    """

    def __init__(self, api_key: str, model: str):
        self.api_key = api_key
        self.model = model

    @abstractmethod
    def advise(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = 1000,
        temperature: float = 0.3
    ) -> str:
        """
        Send a prompt to the model and return its text answer.

        Raises:
            PricingAdvisorException: If the provider call fails
        """
        pass
