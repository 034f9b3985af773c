# shared vocabulary for every provider: messages, options, responses and stream deltas
# adapters translate to/from these so callers never see a provider's wire format

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Role = Literal["system", "user", "assistant"]


class ProviderType(str, Enum):
    OPENAI = "openai"
    LOCAL = "local"


class Message(BaseModel):
    role: Role
    content: str


class ChatOptions(BaseModel):
    """
    Generation controls. None means the provider default applies; any other
    value, including 0, is forwarded as given.
    top_k is only understood by the local provider.
    """
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_tokens: Optional[int] = None
    stop: Optional[List[str]] = None
    top_k: Optional[int] = None


class ChatUsage(BaseModel):
    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)


class ChatResponse(BaseModel):
    model: str
    content: str
    usage: ChatUsage = Field(default_factory=ChatUsage)


class ChatStreamDelta(BaseModel):
    content: str = ""
    done: bool = False
    finish_reason: Optional[str] = None
    # only set on a terminal delta when the protocol reports counts
    usage: Optional[ChatUsage] = None
