import json
import logging
from typing import AsyncIterator
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from chatbridge.api.deps import get_chat_provider
from chatbridge.providers.base import ChatProvider
from chatbridge.providers.errors import InvalidInput, ProviderError
from chatbridge.providers.types import ChatResponse, ChatStreamDelta
from chatbridge.schemas.chat import ChatRequest

router = APIRouter(prefix="/api", tags=["chat"])
logger = logging.getLogger(__name__)


def _status_for(e: ProviderError) -> int:
    return 400 if isinstance(e, InvalidInput) else 502


def _sse(delta: ChatStreamDelta) -> bytes:
    return f"data: {delta.model_dump_json(exclude_none=True)}\n\n".encode("utf-8")


def _sse_error(e: ProviderError) -> bytes:
    return f"event: error\ndata: {json.dumps({'error': str(e)})}\n\n".encode("utf-8")


@router.post("/chats", response_model=ChatResponse)
async def chat(req: ChatRequest, request: Request, provider: ChatProvider = Depends(get_chat_provider)):
    # Non-stream path
    if not req.stream:
        try:
            return await provider.completion(req.messages, req.options)
        except ProviderError as e:
            logger.error("completion failed: %s", e)
            raise HTTPException(status_code=_status_for(e), detail=str(e))

    # Stream path: pull the first delta up front so request/upstream errors still map to a status code
    deltas = provider.stream(req.messages, req.options)
    try:
        first = await anext(deltas)
    except StopAsyncIteration:
        first = None
    except ProviderError as e:
        await deltas.aclose()
        logger.error("stream failed before first delta: %s", e)
        raise HTTPException(status_code=_status_for(e), detail=str(e))

    async def streamer() -> AsyncIterator[bytes]:
        try:
            if first is not None:
                yield _sse(first)
            async for delta in deltas:
                # stop if client disconnected
                if await request.is_disconnected():
                    logger.info("client disconnected, stopping stream")
                    return
                yield _sse(delta)
            yield b"data: [DONE]\n\n"
        except ProviderError as e:
            logger.exception("streaming error occurred: %s", e)
            yield _sse_error(e)
        finally:
            await deltas.aclose()

    headers = {"Cache-Control": "no-cache", "X-Provider": provider.provider_type.value}
    return StreamingResponse(streamer(), media_type="text/event-stream", headers=headers)
