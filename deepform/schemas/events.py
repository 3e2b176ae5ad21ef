"""Server-sent event framing.

Dialogue streams send unnamed events whose JSON carries a ``type``
(meta, delta, done, error). Pipeline streams use named events (stage,
done, error).
"""

import json

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def sse_data(payload: dict) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def sse_event(event: str, payload: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(payload, ensure_ascii=False)}\n\n"


def wants_event_stream(accept: str | None) -> bool:
    return bool(accept) and "text/event-stream" in accept
