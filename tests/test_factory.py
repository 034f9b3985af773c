# tests/test_factory.py
import pytest

from chatbridge.providers.adapters import LocalChatProvider, OpenAIChatProvider
from chatbridge.providers.errors import ConfigurationError, InvalidInput
from chatbridge.providers.factory import ChatProviderConfig, create_chat_provider
from chatbridge.providers.types import Message, ProviderType


def test_unknown_provider_names_supported_set():
    with pytest.raises(ConfigurationError) as exc:
        create_chat_provider(ChatProviderConfig(provider="anthropic"))
    msg = str(exc.value)
    assert "anthropic" in msg
    assert "'openai'" in msg
    assert "'local'" in msg


def test_missing_config():
    with pytest.raises(ConfigurationError):
        create_chat_provider(None)


@pytest.mark.parametrize("key", ["", "   "])
def test_openai_requires_api_key(key):
    with pytest.raises(ConfigurationError, match="API key"):
        create_chat_provider(ChatProviderConfig(provider="openai", openai_api_key=key))


def test_openai_defaults():
    provider = create_chat_provider(ChatProviderConfig(provider=" OpenAI ", openai_api_key="sk-test"))
    assert isinstance(provider, OpenAIChatProvider)
    assert provider.provider_type is ProviderType.OPENAI
    assert provider.get_model() == "gpt-4o-mini"
    assert provider.is_enabled() is True


def test_enum_tag_and_explicit_model():
    provider = create_chat_provider(
        ChatProviderConfig(provider=ProviderType.LOCAL, local_model="mistral:7b")
    )
    assert isinstance(provider, LocalChatProvider)
    assert provider.get_model() == "mistral:7b"


def test_local_rejects_host_without_scheme():
    with pytest.raises(ConfigurationError, match="http"):
        create_chat_provider(ChatProviderConfig(provider="local", local_host="localhost:11434"))


@pytest.mark.asyncio
async def test_closed_local_provider_refuses_calls():
    provider = create_chat_provider(ChatProviderConfig(provider="local"))
    await provider.aclose()
    assert provider.is_enabled() is False
    with pytest.raises(InvalidInput, match="not enabled"):
        await provider.completion([Message(role="user", content="hi")])
    with pytest.raises(InvalidInput):
        await provider.health()
