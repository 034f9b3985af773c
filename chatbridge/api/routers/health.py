import logging
from fastapi import APIRouter, Depends, HTTPException

from chatbridge.api.deps import get_chat_provider
from chatbridge.providers.base import ChatProvider
from chatbridge.providers.errors import ProviderError
from chatbridge.schemas.chat import HealthResponse

router = APIRouter(tags=["meta"])
logger = logging.getLogger(__name__)

@router.get("/health", response_model=HealthResponse)
async def health(provider: ChatProvider = Depends(get_chat_provider)):
    try:
        await provider.health()
    except ProviderError as e:
        logger.warning("health check failed: %s", e)
        raise HTTPException(status_code=503, detail=str(e))
    return HealthResponse(status="ok", provider=provider.provider_type.value, model=provider.get_model())
