# -*- coding: utf-8 -*-
"""
Companion chat API
------------------
- POST /chat : streaming reply as Server-Sent-Events

Each event is ``data: {"delta": "<text>"}``; the stream ends with
``data: [DONE]``. The upstream call is started before the response begins,
so rate limiting (429) and exhausted credits (402) still reach the client as
HTTP status codes with their own messages.
"""

from __future__ import annotations

import json
import logging
from typing import AsyncIterator, List, Literal

import httpx
from fastapi import Depends, FastAPI
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from mood_engine.errors import ExternalCapabilityUnavailable, UpstreamError

from .auth import current_user_id
from .capabilities import Capabilities, get_capabilities
from .http_errors import to_http_exception
from .observability import log_event
from .prompt_templates import render_prompt_template

logger = logging.getLogger("mood_chat")

MAX_MESSAGES = 50


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(..., max_length=8000)


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(..., min_length=1, max_length=MAX_MESSAGES)
    language: Literal["en", "hi", "te"] = "en"


def _sse(data: str) -> str:
    return f"data: {data}\n\n"


async def _relay(first: str, rest: AsyncIterator[str], user_id: str) -> AsyncIterator[str]:
    chunks = 0
    try:
        if first:
            chunks += 1
            yield _sse(json.dumps({"delta": first}, ensure_ascii=False))
        async for delta in rest:
            chunks += 1
            yield _sse(json.dumps({"delta": delta}, ensure_ascii=False))
    except (UpstreamError, ExternalCapabilityUnavailable, httpx.HTTPError) as exc:
        # headers are already sent; report in-band
        logger.error("Chat stream interrupted for user_id=%s: %s", user_id, exc)
        yield _sse(json.dumps({"error": "stream_interrupted"}))
    yield _sse("[DONE]")
    log_event(logger, "chat_stream_complete", user_id=user_id, chunks=chunks)


def register_chat_routes(app: FastAPI) -> None:

    @app.post("/chat")
    async def chat(
        payload: ChatRequest,
        user_id: str = Depends(current_user_id),
        caps: Capabilities = Depends(get_capabilities),
    ) -> StreamingResponse:
        system, _ = render_prompt_template("companion_chat_v1", {"language": payload.language})
        stream = caps.llm.stream_chat([m.model_dump() for m in payload.messages], system=system)
        try:
            first = await stream.__anext__()
        except StopAsyncIteration:
            first = ""
        except (UpstreamError, ExternalCapabilityUnavailable, httpx.HTTPError) as exc:
            raise to_http_exception(exc, what="chat")

        return StreamingResponse(
            _relay(first, stream, user_id),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache"},
        )
