from fastapi import Request
from chatbridge.providers.base import ChatProvider

def get_chat_provider(request: Request) -> ChatProvider:
    return request.app.state.chat_provider
