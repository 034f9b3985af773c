# tests/test_api_stream_mid_error.py
import pytest

from chatbridge.providers.errors import ProtocolError
from chatbridge.providers.types import ChatStreamDelta

@pytest.mark.asyncio
async def test_stream_mid_exception_is_logged_and_partial_returned(client, fake_provider, caplog_info):
    # Tests what happens if the provider fails mid-stream:
    # - The first delta is sent successfully
    # - The error is logged using logger.exception()
    # - The browser gets an SSE error event instead of [DONE]; status stays 200.
    fake_provider.deltas = [
        ChatStreamDelta(content="partial "),
        ProtocolError("malformed StreamChunk", provider="local", operation="stream"),
    ]

    r = await client.post("/api/chats", json={"messages": [{"role": "user", "content": "stream please"}], "stream": True})
    assert r.status_code == 200
    assert "partial " in r.text
    assert "event: error" in r.text
    assert "malformed StreamChunk" in r.text
    assert "data: [DONE]" not in r.text

    log_text = "\n".join(rec.getMessage() for rec in caplog_info.records)
    assert "streaming error occurred" in log_text
