"""
Tests for pricing advisors.

Tests cover:
- Advisor selection based on configuration
- Advisor registration
- Gemini request construction and error wrapping
"""

import pytest
from unittest.mock import MagicMock, patch
from django.test import override_settings

from optimization.advisors.base import BasePricingAdvisor, PricingAdvisorException
from optimization.advisors.factory import get_pricing_advisor, register_advisor, ADVISOR_REGISTRY
from optimization.advisors.gemini_advisor import GeminiPricingAdvisor


class TestGetPricingAdvisor:

    @override_settings(PRICING_ADVISOR='gemini', GEMINI_API_KEY='')
    def test_no_api_key_disables_advisor(self):
        assert get_pricing_advisor() is None

    @override_settings(PRICING_ADVISOR='')
    def test_no_advisor_configured(self):
        assert get_pricing_advisor() is None

    @override_settings(PRICING_ADVISOR='oracle', GEMINI_API_KEY='key')
    def test_unknown_advisor_disabled(self):
        assert get_pricing_advisor() is None

    @override_settings(PRICING_ADVISOR='Gemini', GEMINI_API_KEY='test-key', GEMINI_MODEL='gemini-test')
    @patch('optimization.advisors.gemini_advisor.genai.Client')
    def test_gemini_advisor(self, mock_client):
        advisor = get_pricing_advisor()

        assert isinstance(advisor, GeminiPricingAdvisor)
        assert advisor.api_key == 'test-key'
        assert advisor.model == 'gemini-test'
        mock_client.assert_called_once_with(api_key='test-key')


class TestRegisterAdvisor:

    def test_register_custom_advisor(self):
        class EchoAdvisor(BasePricingAdvisor):
            def advise(self, prompt, system_prompt=None, max_tokens=1000, temperature=0.3):
                return prompt

        try:
            register_advisor('Echo', EchoAdvisor)

            with override_settings(PRICING_ADVISOR='echo', ECHO_API_KEY='k', ECHO_MODEL='m'):
                advisor = get_pricing_advisor()

            assert isinstance(advisor, EchoAdvisor)
            assert advisor.model == 'm'
        finally:
            ADVISOR_REGISTRY.pop('echo', None)

    def test_register_rejects_non_advisor(self):
        with pytest.raises(PricingAdvisorException) as exc_info:
            register_advisor('bogus', dict)

        assert exc_info.value.error_code == 'invalid_advisor_class'


class TestGeminiPricingAdvisor:

    @patch('optimization.advisors.gemini_advisor.genai.Client')
    def test_advise_returns_text(self, mock_client):
        client = MagicMock()
        client.models.generate_content.return_value = MagicMock(text="1. Raise prices")
        mock_client.return_value = client

        advisor = GeminiPricingAdvisor(api_key='key', model='gemini-test')
        answer = advisor.advise("prompt", system_prompt="system", max_tokens=500, temperature=0.2)

        assert answer == "1. Raise prices"
        kwargs = client.models.generate_content.call_args[1]
        assert kwargs['model'] == 'gemini-test'
        assert kwargs['contents'] == 'prompt'
        assert kwargs['config'].max_output_tokens == 500
        assert kwargs['config'].temperature == 0.2
        assert kwargs['config'].system_instruction == 'system'

    @patch('optimization.advisors.gemini_advisor.genai.Client')
    def test_advise_wraps_provider_errors(self, mock_client):
        mock_client.return_value.models.generate_content.side_effect = RuntimeError("quota exceeded")

        advisor = GeminiPricingAdvisor(api_key='key', model='gemini-test')

        with pytest.raises(PricingAdvisorException) as exc_info:
            advisor.advise("prompt")

        assert exc_info.value.error_code == 'advisor_request_failed'
        assert 'quota exceeded' in str(exc_info.value)
