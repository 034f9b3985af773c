# OpenAI chat completions client (or anything speaking the same API)
# POST {base_url}/chat/completions, bearer auth, SSE framed streaming ending in "data: [DONE]"

import logging
from typing import Any, AsyncIterator, List, Optional, Sequence, Tuple

import httpx
from pydantic import BaseModel, Field, ValidationError

from chatbridge.providers.errors import ConfigurationError, InvalidInput
from chatbridge.providers.transport import CONNECT_TIMEOUT, decode, iter_lines, open_stream, post_json, check_health

logger = logging.getLogger(__name__)

PROVIDER = "openai"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_TIMEOUT = httpx.Timeout(120.0, connect=CONNECT_TIMEOUT)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


# ---- wire models ----

class Message(BaseModel):
    role: str = "assistant"
    content: Optional[str] = ""


class Options(BaseModel):
    """Model parameters; flattened into the top level of the request body."""
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_tokens: Optional[int] = None
    stop: Optional[List[str]] = None


class Choice(BaseModel):
    index: int = 0
    message: Message = Field(default_factory=Message)
    finish_reason: Optional[str] = None


class Usage(BaseModel):
    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)


class CompletionResponse(BaseModel):
    id: str = ""
    object: str = ""
    created: int = 0
    model: str = ""
    choices: List[Choice] = Field(default_factory=list)
    usage: Usage = Field(default_factory=Usage)


class Delta(BaseModel):
    role: Optional[str] = None
    content: Optional[str] = None


class StreamChoice(BaseModel):
    index: int = 0
    delta: Delta = Field(default_factory=Delta)
    finish_reason: Optional[str] = None


class StreamChunk(BaseModel):
    id: str = ""
    object: str = ""
    created: int = 0
    model: str = ""
    choices: List[StreamChoice] = Field(default_factory=list)
    usage: Optional[Usage] = None  # only when the caller asked for usage in the stream


class APIErrorDetail(BaseModel):
    message: str = ""
    type: Optional[str] = None
    code: Any = None


class APIError(BaseModel):
    error: APIErrorDetail


def parse_api_error(body: str) -> Optional[Tuple[str, Optional[str]]]:
    try:
        envelope = APIError.model_validate_json(body)
    except ValidationError:
        return None
    if not envelope.error.message:
        return None
    return envelope.error.message, envelope.error.type


# ---- client ----

class OpenAIChatClient:
    def __init__(
        self,
        *,
        api_key: str,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: httpx.Timeout = DEFAULT_TIMEOUT,
    ) -> None:
        if not api_key or not api_key.strip():
            raise ConfigurationError(
                "invalid OpenAI configuration: API key is required", provider=PROVIDER, operation="init"
            )
        self._api_key = api_key.strip()
        self._model = model or DEFAULT_MODEL
        self._base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self._timeout = timeout
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient()
        self._enabled = True
        logger.info("OpenAI chat client initialized model=%s", self._model)

    @property
    def chat_url(self) -> str:
        return f"{self._base_url}/chat/completions"

    def is_enabled(self) -> bool:
        return self._enabled

    def get_model(self) -> str:
        return self._model

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def _check(self, messages: Sequence[Message], operation: str) -> None:
        if not self._enabled:
            raise InvalidInput("OpenAI chat client is not enabled", provider=PROVIDER, operation=operation)
        if not messages:
            raise InvalidInput("at least one message is required", provider=PROVIDER, operation=operation)

    def build_request(self, messages: Sequence[Message], stream: bool, options: Optional[Options] = None) -> dict:
        body: dict = {
            "model": self._model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "stream": stream,
        }
        if options is not None:
            if options.temperature is not None:
                body["temperature"] = options.temperature
            if options.top_p is not None:
                body["top_p"] = options.top_p
            if options.max_tokens is not None:
                body["max_tokens"] = options.max_tokens
            if options.stop:
                body["stop"] = list(options.stop)
        return body

    async def completion(self, messages: Sequence[Message], options: Optional[Options] = None) -> CompletionResponse:
        self._check(messages, "completion")
        payload = self.build_request(messages, False, options)
        logger.debug("Sending completion request model=%s message_count=%d", self._model, len(messages))

        response = await post_json(
            self._http,
            self.chat_url,
            payload,
            timeout=self._timeout,
            provider=PROVIDER,
            operation="completion",
            headers=self._headers(),
            parse_error=parse_api_error,
        )
        resp = decode(CompletionResponse, response.content, provider=PROVIDER, operation="completion")
        logger.debug(
            "Completion response received model=%s prompt_tokens=%d completion_tokens=%d total_tokens=%d",
            resp.model, resp.usage.prompt_tokens, resp.usage.completion_tokens, resp.usage.total_tokens,
        )
        return resp

    async def stream_chunks(
        self, messages: Sequence[Message], options: Optional[Options] = None
    ) -> AsyncIterator[StreamChunk]:
        """
        Yields one StreamChunk per "data: {...}" line.
        Lines without the data prefix are skipped; "data: [DONE]" ends the stream.
        """
        self._check(messages, "stream")
        payload = self.build_request(messages, True, options)
        logger.debug("Sending streaming completion request model=%s message_count=%d", self._model, len(messages))

        async with open_stream(
            self._http,
            self.chat_url,
            payload,
            provider=PROVIDER,
            operation="stream",
            headers=self._headers(),
            parse_error=parse_api_error,
        ) as response:
            async for line in iter_lines(response, provider=PROVIDER, operation="stream"):
                if not line.startswith(DATA_PREFIX):
                    continue
                data = line[len(DATA_PREFIX):]
                if data == DONE_SENTINEL:
                    logger.debug("Stream completed")
                    return
                yield decode(StreamChunk, data, provider=PROVIDER, operation="stream")

    async def health(self) -> None:
        if not self._enabled:
            raise InvalidInput("OpenAI chat client is not enabled", provider=PROVIDER, operation="health")
        await check_health(self._http, f"{self._base_url}/models", provider=PROVIDER, headers=self._headers())
        logger.info("OpenAI health check passed")

    async def aclose(self) -> None:
        self._enabled = False
        if self._owns_http:
            await self._http.aclose()
