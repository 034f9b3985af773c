import logging
from typing import Optional

import httpx
from pydantic import BaseModel

from chatbridge.providers.adapters import LocalChatProvider, OpenAIChatProvider
from chatbridge.providers.base import ChatProvider
from chatbridge.providers.errors import ConfigurationError
from chatbridge.providers.ollama import OllamaChatClient
from chatbridge.providers.openai import OpenAIChatClient
from chatbridge.providers.types import ProviderType

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ", ".join(repr(p.value) for p in ProviderType)


class ChatProviderConfig(BaseModel):
    provider: str = ProviderType.LOCAL.value

    # openai
    openai_api_key: str = ""
    openai_model: str = ""
    openai_base_url: str = ""

    # local (ollama)
    local_host: str = ""
    local_model: str = ""


def parse_provider_type(tag: str) -> ProviderType:
    try:
        return ProviderType((tag or "").strip().lower())
    except ValueError:
        raise ConfigurationError(
            f"unsupported chat provider: {tag!r} (supported: {SUPPORTED_PROVIDERS})"
        ) from None


def create_chat_provider(
    cfg: Optional[ChatProviderConfig],
    *,
    http_client: Optional[httpx.AsyncClient] = None,
) -> ChatProvider:
    """
    Build the adapter named by cfg.provider. Raises ConfigurationError for an
    unknown provider or missing settings; never returns a half-built adapter.
    http_client lets the caller share (or mock) the connection pool.
    """
    if cfg is None:
        raise ConfigurationError("chat provider config is required")

    kind = parse_provider_type(cfg.provider)
    provider: ChatProvider
    match kind:
        case ProviderType.OPENAI:
            provider = OpenAIChatProvider(
                OpenAIChatClient(
                    api_key=cfg.openai_api_key,
                    model=cfg.openai_model or None,
                    base_url=cfg.openai_base_url or None,
                    http_client=http_client,
                )
            )
        case ProviderType.LOCAL:
            provider = LocalChatProvider(
                OllamaChatClient(
                    host=cfg.local_host or None,
                    model=cfg.local_model or None,
                    http_client=http_client,
                )
            )

    logger.info("Chat provider ready provider=%s model=%s", kind.value, provider.get_model())
    return provider
