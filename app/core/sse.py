"""
Server-sent events helpers for the streaming AI endpoints.

Each event is a single `data:` line carrying a JSON object:
    {"content": "..."}  incremental text
    {"done": true}      stream completed and was persisted
    {"error": "..."}    application-level failure after the stream started
"""

import json
from typing import AsyncIterator

from fastapi.responses import StreamingResponse

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def sse_event(payload: dict) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def sse_response(events: AsyncIterator[str]) -> StreamingResponse:
    return StreamingResponse(events, media_type="text/event-stream", headers=SSE_HEADERS)
