"""
Google Gemini pricing advisor.
"""

import logging
from typing import Optional

from google import genai
from google.genai import types

from .base import BasePricingAdvisor, PricingAdvisorException

logger = logging.getLogger(__name__)


class GeminiPricingAdvisor(BasePricingAdvisor):
    """Pricing advisor backed by the google-genai client."""

    def __init__(self, api_key: str, model: str):
        super().__init__(api_key, model)
        self.client = genai.Client(api_key=api_key)

    def advise(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = 1000,
        temperature: float = 0.3
    ) -> str:
        try:
            config = types.GenerateContentConfig(
                max_output_tokens=max_tokens,
                temperature=temperature,
                system_instruction=system_prompt,
            )
            response = self.client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=config,
            )
            return response.text or ""

        except Exception as e:
            logger.error(
                f"Gemini pricing advice failed: {e}",
                extra={'model': self.model},
                exc_info=True
            )
            raise PricingAdvisorException(
                message=f"Gemini request failed: {e}",
                error_code='advisor_request_failed'
            )
