from pydantic import BaseModel, Field
from typing import List, Optional

from chatbridge.providers.types import ChatOptions, Message

class ChatRequest(BaseModel):
    messages: List[Message] = Field(min_length=1)
    options: Optional[ChatOptions] = None
    stream: bool = Field(default=False)

class HealthResponse(BaseModel):
    status: str
    provider: str
    model: str
