# http plumbing shared by the provider clients
# every httpx failure is turned into a ProviderError here so httpx never leaks past the providers package

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, Optional, Tuple, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from chatbridge.providers.errors import ProtocolError, TransportError, UpstreamError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# returns (message, error_type) when the body is the provider's error envelope, else None
ErrorParser = Callable[[str], Optional[Tuple[str, Optional[str]]]]

CONNECT_TIMEOUT = 10.0
# generation time is open-ended; the caller bounds a stream by cancelling it
STREAM_TIMEOUT = httpx.Timeout(None, connect=CONNECT_TIMEOUT)
HEALTH_TIMEOUT = httpx.Timeout(10.0)


def upstream_error(
    status_code: int,
    body: str,
    *,
    provider: str,
    operation: str,
    parse_error: Optional[ErrorParser] = None,
) -> UpstreamError:
    parsed = parse_error(body) if parse_error else None
    if parsed:
        message, error_type = parsed
    else:
        message, error_type = body, None
    logger.error("%s API error status=%s type=%s message=%s", provider, status_code, error_type, message)
    return UpstreamError(
        f"API error (status {status_code}): {message}",
        status_code=status_code,
        body=body,
        error_type=error_type,
        provider=provider,
        operation=operation,
    )


async def post_json(
    http: httpx.AsyncClient,
    url: str,
    payload: Dict[str, Any],
    *,
    timeout: httpx.Timeout,
    provider: str,
    operation: str,
    headers: Optional[Dict[str, str]] = None,
    parse_error: Optional[ErrorParser] = None,
) -> httpx.Response:
    try:
        response = await http.post(url, json=payload, headers=headers, timeout=timeout)
    except httpx.HTTPError as e:
        logger.error("%s request to %s failed: %s", provider, url, e)
        raise TransportError(f"HTTP request failed: {e}", provider=provider, operation=operation) from e
    if not response.is_success:
        raise upstream_error(
            response.status_code, response.text, provider=provider, operation=operation, parse_error=parse_error
        )
    return response


@asynccontextmanager
async def open_stream(
    http: httpx.AsyncClient,
    url: str,
    payload: Dict[str, Any],
    *,
    provider: str,
    operation: str,
    headers: Optional[Dict[str, str]] = None,
    parse_error: Optional[ErrorParser] = None,
) -> AsyncIterator[httpx.Response]:
    """
    POST and hand back the open response. The body is released when the
    block exits, whether it finished, raised or was closed early.
    """
    try:
        async with http.stream("POST", url, json=payload, headers=headers, timeout=STREAM_TIMEOUT) as response:
            if not response.is_success:
                await response.aread()
                raise upstream_error(
                    response.status_code, response.text, provider=provider, operation=operation, parse_error=parse_error
                )
            yield response
    except httpx.HTTPError as e:
        logger.error("%s streaming request to %s failed: %s", provider, url, e)
        raise TransportError(f"HTTP request failed: {e}", provider=provider, operation=operation) from e


async def iter_lines(response: httpx.Response, *, provider: str, operation: str) -> AsyncIterator[str]:
    """Non-empty, stripped lines of a streamed body."""
    try:
        async for line in response.aiter_lines():
            line = line.strip()
            if line:
                yield line
    except httpx.HTTPError as e:
        logger.error("Error reading %s stream: %s", provider, e)
        raise TransportError(f"error reading stream: {e}", provider=provider, operation=operation) from e


def decode(model: Type[ModelT], raw: str | bytes, *, provider: str, operation: str) -> ModelT:
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        logger.error("Failed to decode %s from %s: %s raw=%r", model.__name__, provider, e, raw)
        raise ProtocolError(f"malformed {model.__name__}: {e}", provider=provider, operation=operation) from e


async def check_health(
    http: httpx.AsyncClient,
    url: str,
    *,
    provider: str,
    headers: Optional[Dict[str, str]] = None,
) -> None:
    try:
        response = await http.get(url, headers=headers, timeout=HEALTH_TIMEOUT)
    except httpx.HTTPError as e:
        raise TransportError(f"health check failed: {e}", provider=provider, operation="health") from e
    if not response.is_success:
        raise UpstreamError(
            f"health check returned status {response.status_code}",
            status_code=response.status_code,
            body=response.text,
            provider=provider,
            operation="health",
        )
