import pytest

from persona_core.providers import PROVIDER_CLIENTS, create_provider
from persona_core.providers.gemini_client import GeminiClient
from persona_core.providers.registry import GEMINI_CONFIG, PROVIDER_REGISTRY, get_model_config


class DummySettings:
    gemini_api_key = "g"
    http_timeout = 1.0
    gemini_base_url = "https://generativelanguage.googleapis.com/v1beta"


def test_create_provider_default():
    provider = create_provider(DummySettings())
    assert isinstance(provider, GeminiClient)


def test_create_provider_name_is_case_insensitive():
    assert isinstance(create_provider(DummySettings(), "Gemini"), GeminiClient)


def test_create_provider_unknown():
    with pytest.raises(KeyError) as info:
        create_provider(DummySettings(), "kimi")
    assert "Unknown provider" in str(info.value)


def test_every_registered_provider_has_a_client():
    assert set(PROVIDER_REGISTRY) == set(PROVIDER_CLIENTS)


def test_model_config_lookup():
    assert get_model_config(GEMINI_CONFIG, "gemini-pro").provider_model == "gemini-pro"
    custom = get_model_config(GEMINI_CONFIG, "gemini-2.0-flash")
    assert custom.provider_model == "gemini-2.0-flash"
