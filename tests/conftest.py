# tests/conftest.py
import os
import logging
from typing import AsyncIterator, List, Optional, Sequence, Union

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Ensure test-friendly env
os.environ.setdefault("PROVIDER", "local")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

# IMPORTANT: import the app after envs are set
from chatbridge.main import create_app
from chatbridge.providers.base import ChatProvider
from chatbridge.providers.errors import ProviderError, TransportError
from chatbridge.providers.types import (
    ChatOptions,
    ChatResponse,
    ChatStreamDelta,
    ChatUsage,
    Message,
    ProviderType,
)


class FakeProvider(ChatProvider):
    """In-memory provider so api tests never touch the network."""
    provider_type = ProviderType.LOCAL

    def __init__(self) -> None:
        self.reply = "hello"
        self.error: Optional[ProviderError] = None
        self.deltas: List[Union[ChatStreamDelta, ProviderError]] = []
        self.healthy = True
        self.closed = False
        self.calls: List[Sequence[Message]] = []

    async def completion(self, messages: Sequence[Message], options: Optional[ChatOptions] = None) -> ChatResponse:
        self.calls.append(messages)
        if self.error:
            raise self.error
        return ChatResponse(
            model="fake-model",
            content=self.reply,
            usage=ChatUsage(prompt_tokens=3, completion_tokens=1, total_tokens=4),
        )

    async def _deltas(self, messages: Sequence[Message], options: Optional[ChatOptions]) -> AsyncIterator[ChatStreamDelta]:
        self.calls.append(messages)
        for d in self.deltas:
            if isinstance(d, ProviderError):
                raise d
            yield d

    async def health(self) -> None:
        if not self.healthy:
            raise TransportError("connection refused", provider="local", operation="health")

    def is_enabled(self) -> bool:
        return not self.closed

    def get_model(self) -> str:
        return "fake-model"

    async def aclose(self) -> None:
        self.closed = True


class TrackingStream(httpx.AsyncByteStream):
    """Response body that counts the chunks handed out and records being closed."""

    def __init__(self, *chunks: bytes, fail_with: Optional[Exception] = None) -> None:
        self.chunks = chunks
        self.fail_with = fail_with
        self.sent = 0
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            self.sent += 1
            yield chunk
        if self.fail_with is not None:
            raise self.fail_with

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def tracking_stream():
    return TrackingStream

@pytest.fixture
def fake_provider():
    return FakeProvider()

@pytest.fixture
def app(fake_provider):
    return create_app(fake_provider)

@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

@pytest.fixture
def caplog_info(caplog):
    caplog.set_level(logging.INFO)
    return caplog
