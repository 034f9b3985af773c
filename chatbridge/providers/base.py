# lets us swap/add providers without touching endpoint logic (openai/local/...)
# declares the provider contract every adapter implements

import inspect
import logging
from abc import ABC, abstractmethod
from contextlib import aclosing
from typing import Any, AsyncIterator, Callable, Optional, Sequence

from chatbridge.providers.errors import InvalidInput
from chatbridge.providers.types import ChatOptions, ChatResponse, ChatStreamDelta, Message, ProviderType

logger = logging.getLogger(__name__)

# called once per delta; may be a coroutine function.
# returning None keeps the stream going, anything else stops it and becomes the call's result
DeltaCallback = Callable[[ChatStreamDelta], Any]


class ChatProvider(ABC):
    provider_type: ProviderType

    @abstractmethod
    async def completion(self, messages: Sequence[Message], options: Optional[ChatOptions] = None) -> ChatResponse:
        ...

    @abstractmethod
    def _deltas(self, messages: Sequence[Message], options: Optional[ChatOptions]) -> AsyncIterator[ChatStreamDelta]:
        ...

    @abstractmethod
    async def health(self) -> None:
        """Cheap reachability check; raises ProviderError when the backend is not usable."""

    @abstractmethod
    def is_enabled(self) -> bool:
        ...

    @abstractmethod
    def get_model(self) -> str:
        ...

    @abstractmethod
    async def aclose(self) -> None:
        ...

    async def stream(
        self, messages: Sequence[Message], options: Optional[ChatOptions] = None
    ) -> AsyncIterator[ChatStreamDelta]:
        """
        Deltas in transport order. Nothing is read after a delta with done=True.
        The response is only released when the iterator is closed, so callers
        that may stop early wrap it: async with aclosing(provider.stream(...)).
        """
        async with aclosing(self._deltas(messages, options)) as deltas:
            async for delta in deltas:
                yield delta
                if delta.done:
                    return

    async def completion_stream(
        self,
        messages: Sequence[Message],
        options: Optional[ChatOptions],
        on_delta: Optional[DeltaCallback],
    ) -> Any:
        """
        Push form of stream(): calls on_delta for each delta on the caller's task.
        Returns None when the stream ends, or whatever non-None value on_delta
        returned to stop it (e.g. a CallbackAbort).
        """
        if on_delta is None:
            raise InvalidInput(
                "on_delta callback is required", provider=self.provider_type.value, operation="stream"
            )
        async with aclosing(self.stream(messages, options)) as deltas:
            async for delta in deltas:
                outcome = on_delta(delta)
                if inspect.isawaitable(outcome):
                    outcome = await outcome
                if outcome is not None:
                    logger.debug("Streaming stopped by callback provider=%s outcome=%r", self.provider_type.value, outcome)
                    return outcome
        return None
