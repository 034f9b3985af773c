from contextlib import aclosing
from typing import AsyncIterator, List, Optional, Sequence

from chatbridge.providers import ollama, openai
from chatbridge.providers.base import ChatProvider
from chatbridge.providers.types import (
    ChatOptions,
    ChatResponse,
    ChatStreamDelta,
    ChatUsage,
    Message,
    ProviderType,
)


# ---- OpenAI ----

def to_openai_messages(messages: Sequence[Message]) -> List[openai.Message]:
    return [openai.Message(role=m.role, content=m.content) for m in messages]


def to_openai_options(options: Optional[ChatOptions]) -> Optional[openai.Options]:
    if options is None:
        return None
    return openai.Options(
        temperature=options.temperature,
        top_p=options.top_p,
        max_tokens=options.max_tokens,
        stop=options.stop,
    )


def openai_delta(chunk: openai.StreamChunk) -> ChatStreamDelta:
    if not chunk.choices:
        return ChatStreamDelta()
    choice = chunk.choices[0]
    return ChatStreamDelta(
        content=choice.delta.content or "",
        done=choice.finish_reason == "stop",
        finish_reason=choice.finish_reason,
    )


class OpenAIChatProvider(ChatProvider):
    provider_type = ProviderType.OPENAI

    def __init__(self, client: openai.OpenAIChatClient) -> None:
        self._client = client

    async def completion(self, messages: Sequence[Message], options: Optional[ChatOptions] = None) -> ChatResponse:
        resp = await self._client.completion(to_openai_messages(messages), to_openai_options(options))
        content = resp.choices[0].message.content if resp.choices else ""
        return ChatResponse(
            model=resp.model or self._client.get_model(),
            content=content or "",
            usage=ChatUsage(
                prompt_tokens=resp.usage.prompt_tokens,
                completion_tokens=resp.usage.completion_tokens,
                total_tokens=resp.usage.total_tokens,
            ),
        )

    async def _deltas(self, messages: Sequence[Message], options: Optional[ChatOptions]) -> AsyncIterator[ChatStreamDelta]:
        chunks = self._client.stream_chunks(to_openai_messages(messages), to_openai_options(options))
        async with aclosing(chunks):
            async for chunk in chunks:
                yield openai_delta(chunk)

    async def health(self) -> None:
        await self._client.health()

    def is_enabled(self) -> bool:
        return self._client.is_enabled()

    def get_model(self) -> str:
        return self._client.get_model()

    async def aclose(self) -> None:
        await self._client.aclose()


# ---- Local (Ollama) ----

def to_local_messages(messages: Sequence[Message]) -> List[ollama.Message]:
    return [ollama.Message(role=m.role, content=m.content) for m in messages]


def to_local_options(options: Optional[ChatOptions]) -> Optional[ollama.Options]:
    if options is None:
        return None
    return ollama.Options(
        temperature=options.temperature,
        top_p=options.top_p,
        top_k=options.top_k,
        num_predict=options.max_tokens,
        stop=options.stop,
    )


def local_usage(resp: ollama.CompletionResponse) -> ChatUsage:
    # Ollama has no token usage block; eval counts are the closest thing
    return ChatUsage(
        prompt_tokens=resp.prompt_eval_count,
        completion_tokens=resp.eval_count,
        total_tokens=resp.prompt_eval_count + resp.eval_count,
    )


def local_delta(chunk: ollama.StreamChunk) -> ChatStreamDelta:
    if chunk.done:
        return ChatStreamDelta(
            content=chunk.message.content,
            done=True,
            finish_reason=chunk.done_reason,
            usage=local_usage(chunk),
        )
    return ChatStreamDelta(content=chunk.message.content)


class LocalChatProvider(ChatProvider):
    provider_type = ProviderType.LOCAL

    def __init__(self, client: ollama.OllamaChatClient) -> None:
        self._client = client

    async def completion(self, messages: Sequence[Message], options: Optional[ChatOptions] = None) -> ChatResponse:
        resp = await self._client.completion(to_local_messages(messages), to_local_options(options))
        return ChatResponse(
            model=resp.model or self._client.get_model(),
            content=resp.message.content,
            usage=local_usage(resp),
        )

    async def _deltas(self, messages: Sequence[Message], options: Optional[ChatOptions]) -> AsyncIterator[ChatStreamDelta]:
        chunks = self._client.stream_chunks(to_local_messages(messages), to_local_options(options))
        async with aclosing(chunks):
            async for chunk in chunks:
                yield local_delta(chunk)

    async def health(self) -> None:
        await self._client.health()

    def is_enabled(self) -> bool:
        return self._client.is_enabled()

    def get_model(self) -> str:
        return self._client.get_model()

    async def aclose(self) -> None:
        await self._client.aclose()
