# Ollama /api/chat client for locally hosted models
# no credential; streaming is NDJSON: one full JSON object per line, the last one has "done": true plus eval counts

import logging
from typing import AsyncIterator, List, Optional, Sequence, Tuple

import httpx
from pydantic import BaseModel, Field, ValidationError

from chatbridge.providers.errors import ConfigurationError, InvalidInput, ProtocolError, UpstreamError
from chatbridge.providers.transport import CONNECT_TIMEOUT, decode, iter_lines, open_stream, post_json, check_health

logger = logging.getLogger(__name__)

PROVIDER = "local"
DEFAULT_HOST = "http://localhost:11434"
DEFAULT_MODEL = "llama3:8b"
DEFAULT_TIMEOUT = httpx.Timeout(300.0, connect=CONNECT_TIMEOUT)
CHAT_ENDPOINT = "/api/chat"


# ---- wire models ----

class Message(BaseModel):
    role: str = "assistant"
    content: str = ""


class Options(BaseModel):
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    num_predict: Optional[int] = None  # Ollama's name for max tokens
    stop: Optional[List[str]] = None


class CompletionResponse(BaseModel):
    model: str = ""
    created_at: str = ""
    message: Message = Field(default_factory=Message)
    done: bool = False
    done_reason: Optional[str] = None
    error: Optional[str] = None

    # filled in once done is true
    total_duration: int = 0
    load_duration: int = 0
    prompt_eval_count: int = Field(default=0, ge=0)
    prompt_eval_duration: int = 0
    eval_count: int = Field(default=0, ge=0)
    eval_duration: int = 0


class StreamChunk(CompletionResponse):
    # required on every stream line; None means the line was malformed
    done: Optional[bool] = None


class ErrorEnvelope(BaseModel):
    error: str


def parse_api_error(body: str) -> Optional[Tuple[str, Optional[str]]]:
    try:
        envelope = ErrorEnvelope.model_validate_json(body)
    except ValidationError:
        return None
    return (envelope.error, None) if envelope.error else None


# ---- client ----

class OllamaChatClient:
    def __init__(
        self,
        *,
        host: Optional[str] = None,
        model: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: httpx.Timeout = DEFAULT_TIMEOUT,
    ) -> None:
        host = (host or "").strip().rstrip("/") or DEFAULT_HOST
        if not host.startswith(("http://", "https://")):
            raise ConfigurationError(
                f"invalid local LLM configuration: host must be an http(s) URL, got {host!r}",
                provider=PROVIDER,
                operation="init",
            )
        self._host = host
        self._model = model or DEFAULT_MODEL
        self._timeout = timeout
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient()
        self._enabled = True
        logger.info("Local LLM chat client initialized host=%s model=%s", self._host, self._model)

    def is_enabled(self) -> bool:
        return self._enabled

    def get_model(self) -> str:
        return self._model

    def _check(self, messages: Sequence[Message], operation: str) -> None:
        if not self._enabled:
            raise InvalidInput("local LLM client is not enabled", provider=PROVIDER, operation=operation)
        if not messages:
            raise InvalidInput("at least one message is required", provider=PROVIDER, operation=operation)

    def build_request(self, messages: Sequence[Message], stream: bool, options: Optional[Options] = None) -> dict:
        body: dict = {
            "model": self._model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "stream": stream,
        }
        if options is not None:
            opts = options.model_dump(exclude_none=True)
            if not opts.get("stop"):
                opts.pop("stop", None)
            if opts:
                body["options"] = opts
        return body

    async def completion(self, messages: Sequence[Message], options: Optional[Options] = None) -> CompletionResponse:
        self._check(messages, "completion")
        payload = self.build_request(messages, False, options)
        logger.debug("Sending completion request model=%s message_count=%d", self._model, len(messages))

        response = await post_json(
            self._http,
            self._host + CHAT_ENDPOINT,
            payload,
            timeout=self._timeout,
            provider=PROVIDER,
            operation="completion",
            parse_error=parse_api_error,
        )
        resp = decode(CompletionResponse, response.content, provider=PROVIDER, operation="completion")
        if resp.error:
            logger.error("Ollama error: %s", resp.error)
            raise UpstreamError(
                f"Ollama error: {resp.error}",
                status_code=response.status_code,
                body=response.text,
                provider=PROVIDER,
                operation="completion",
            )
        logger.debug("Completion response received model=%s eval_count=%d", resp.model, resp.eval_count)
        return resp

    async def stream_chunks(
        self, messages: Sequence[Message], options: Optional[Options] = None
    ) -> AsyncIterator[StreamChunk]:
        self._check(messages, "stream")
        payload = self.build_request(messages, True, options)
        logger.debug("Sending streaming completion request model=%s message_count=%d", self._model, len(messages))

        async with open_stream(
            self._http,
            self._host + CHAT_ENDPOINT,
            payload,
            provider=PROVIDER,
            operation="stream",
            parse_error=parse_api_error,
        ) as response:
            async for line in iter_lines(response, provider=PROVIDER, operation="stream"):
                chunk = decode(StreamChunk, line, provider=PROVIDER, operation="stream")
                # the server reports failures mid-stream as {"error": "..."}
                if chunk.error:
                    logger.error("Ollama error mid-stream: %s", chunk.error)
                    raise UpstreamError(
                        f"Ollama error: {chunk.error}",
                        status_code=response.status_code,
                        body=line,
                        provider=PROVIDER,
                        operation="stream",
                    )
                if chunk.done is None:
                    logger.error("Stream chunk without done flag raw=%r", line)
                    raise ProtocolError("stream chunk is missing 'done'", provider=PROVIDER, operation="stream")
                yield chunk
                if chunk.done:
                    logger.debug("Stream completed model=%s eval_count=%d", chunk.model, chunk.eval_count)
                    return

    async def health(self) -> None:
        if not self._enabled:
            raise InvalidInput("local LLM client is not enabled", provider=PROVIDER, operation="health")
        await check_health(self._http, f"{self._host}/", provider=PROVIDER)
        logger.info("Local LLM health check passed host=%s", self._host)

    async def aclose(self) -> None:
        self._enabled = False
        if self._owns_http:
            await self._http.aclose()
