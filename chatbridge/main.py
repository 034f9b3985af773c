# chatbridge/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatbridge.core import config
from chatbridge.api.routers.health import router as health_router
from chatbridge.api.routers.chat import router as chat_router
from chatbridge.providers.base import ChatProvider
from chatbridge.providers.factory import create_chat_provider

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    logger.info("shutting down, closing chat provider")
    await app.state.chat_provider.aclose()


def create_app(provider: Optional[ChatProvider] = None) -> FastAPI:
    """
    The provider is built once here and shared through app.state;
    routers reach it with Depends(get_chat_provider). Pass one in to use a fake.
    A ConfigurationError from the factory aborts startup.
    """
    logging.basicConfig(level=config.LOG_LEVEL)

    app = FastAPI(title="chatbridge", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.ORIGINS,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Origin", "Content-Type", "Accept", "Authorization"],
        max_age=300,
    )

    if provider is None:
        provider = create_chat_provider(config.chat_provider_config())
    app.state.chat_provider = provider

    # Routers
    app.include_router(health_router)
    app.include_router(chat_router)

    return app
