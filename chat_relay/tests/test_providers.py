import pytest

from chat_relay.domain.exceptions import ConfigurationError
from chat_relay.providers import create_provider
from chat_relay.providers.deepseek_client import DeepSeekClient
from chat_relay.providers.registry import get_model_config, get_provider_config


def test_create_provider_default(monkeypatch):
    class DummySettings:
        deepseek_api_key = "sk"
        http_timeout = 1.0
        deepseek_base_url = "https://api.deepseek.com/v1"

    monkeypatch.setattr("chat_relay.providers.settings", DummySettings())
    provider = create_provider()
    assert isinstance(provider, DeepSeekClient)


def test_create_provider_unknown():
    with pytest.raises(KeyError):
        create_provider("openai")


def test_registry_maps_logical_model():
    cfg = get_model_config("DeepSeek", "chat")
    assert cfg.provider_model == "deepseek-chat"
    assert cfg.max_tokens == 2000
    assert cfg.default_temperature == 0.7
    assert get_provider_config("deepseek").base_url == "https://api.deepseek.com/v1"
    with pytest.raises(ConfigurationError) as exc_info:
        get_model_config("deepseek", "reasoner")
    assert exc_info.value.code == "UNKNOWN_MODEL"
