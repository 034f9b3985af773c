# centralized configuration loader
# runs load_dotenv() to read .env
# decouples code from environment so we can swap providers/models/hosts without code change

import os
from dotenv import load_dotenv

from chatbridge.providers.factory import ChatProviderConfig

load_dotenv()

# Provider: "openai" or "local"
PROVIDER = os.getenv("PROVIDER", "local")

# OpenAI
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "")

# Local (Ollama); empty means the client default
LOCAL_HOST = os.getenv("LOCAL_HOST", "")
LOCAL_MODEL = os.getenv("LOCAL_MODEL", "")

# Server
ORIGINS = [o.strip() for o in os.getenv("ORIGINS", "*").split(",") if o.strip()] or ["*"]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def chat_provider_config() -> ChatProviderConfig:
    return ChatProviderConfig(
        provider=PROVIDER,
        openai_api_key=OPENAI_API_KEY,
        openai_model=OPENAI_MODEL,
        openai_base_url=OPENAI_BASE_URL,
        local_host=LOCAL_HOST,
        local_model=LOCAL_MODEL,
    )
