"""ProviderRegistry and AI settings tests."""

import asyncio
import os
import unittest
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from conftest import make_settings
from newsdesk.core.config import Settings
from newsdesk.services.ai.common.providers import Base44Provider, GeminiProvider, ProviderKind, build_provider
from newsdesk.services.ai.common.registry import ProviderRegistry


class ProviderRegistryTests(unittest.TestCase):
    def test_get_returns_same_instance(self):
        registry = ProviderRegistry(make_settings())
        self.assertIs(registry.get(ProviderKind.GEMINI), registry.get("gemini"))
        self.assertIsInstance(registry.get(ProviderKind.BASE44), Base44Provider)

    def test_active_provider_follows_settings(self):
        self.assertIsInstance(ProviderRegistry(make_settings()).get_active(), GeminiProvider)
        registry = ProviderRegistry(make_settings(ai_provider="base44"))
        self.assertEqual(registry.active_kind, ProviderKind.BASE44)
        self.assertIsInstance(registry.get_active(), Base44Provider)

    def test_active_provider_is_not_inferred_from_availability(self):
        registry = ProviderRegistry(make_settings(gemini_api_key=""))
        asyncio.run(registry.initialize_all())
        self.assertFalse(registry.get_active().is_available())
        self.assertEqual(registry.get_active().name, "gemini")

    def test_status_before_initialize_is_all_unavailable(self):
        registry = ProviderRegistry(make_settings())
        self.assertEqual(registry.status(), {ProviderKind.GEMINI: False, ProviderKind.BASE44: False})

    def test_initialize_all_reports_availability(self):
        registry = ProviderRegistry(make_settings(base44_api_key=""))
        asyncio.run(registry.initialize_all())
        self.assertEqual(registry.status(), {ProviderKind.GEMINI: True, ProviderKind.BASE44: False})

    def test_one_failing_initialize_does_not_block_others(self):
        settings = make_settings()
        broken = GeminiProvider(settings)
        registry = ProviderRegistry(settings, providers={ProviderKind.GEMINI: broken})

        with patch.object(broken, "initialize", side_effect=RuntimeError("boom")):
            with self.assertLogs("newsdesk.services.ai.common.registry", level="WARNING") as logs:
                asyncio.run(registry.initialize_all())

        self.assertIn("boom", logs.output[0])
        self.assertFalse(registry.get(ProviderKind.GEMINI).is_available())
        self.assertTrue(registry.get(ProviderKind.BASE44).is_available())

    def test_build_provider_returns_fresh_instances(self):
        settings = make_settings()
        self.assertIsNot(
            build_provider(ProviderKind.GEMINI, settings),
            build_provider(ProviderKind.GEMINI, settings),
        )


class AISettingsTests(unittest.TestCase):
    @patch.dict(os.environ, {"AI_PROVIDER": "BASE44"}, clear=False)
    def test_provider_selector_from_env_is_normalized(self):
        self.assertEqual(Settings().ai_provider, "base44")

    @patch.dict(os.environ, {"NEXT_PUBLIC_AI_PROVIDER": "base44"}, clear=False)
    def test_public_provider_alias(self):
        os.environ.pop("AI_PROVIDER", None)
        self.assertEqual(Settings().ai_provider, "base44")

    def test_default_provider_is_gemini(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("AI_PROVIDER", None)
            os.environ.pop("NEXT_PUBLIC_AI_PROVIDER", None)
            self.assertEqual(Settings().ai_provider, "gemini")

    def test_unknown_provider_is_rejected(self):
        with self.assertRaises(ValidationError):
            Settings(ai_provider="openai")

    @patch.dict(os.environ, {"CORS_ALLOW_ORIGINS": "https://a.example, https://b.example"}, clear=False)
    def test_csv_list_settings(self):
        self.assertEqual(Settings().cors_allow_origins, ["https://a.example", "https://b.example"])

    @patch.dict(os.environ, {"TRUSTED_PROXY_CIDRS": '["10.0.0.0/8"]'}, clear=False)
    def test_json_list_settings(self):
        self.assertEqual(Settings().trusted_proxy_cidrs, ["10.0.0.0/8"])


@pytest.mark.parametrize("value", [-0.1, 1.5])
def test_temperature_out_of_range_is_rejected(value):
    with pytest.raises(ValidationError):
        Settings(ai_temperature=value)
