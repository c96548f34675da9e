# -*- coding: utf-8 -*-
"""llm_client.py

OpenAI-compatible chat-completions gateway client
-------------------------------------------------

- ``generate_json`` sends a system + user prompt with
  ``response_format=json_object`` and returns the parsed object. Models
  sometimes wrap JSON in markdown fences; those are stripped first.
- ``stream_chat`` posts ``stream=true`` and yields the text deltas parsed from
  the Server-Sent-Events body.

Status mapping
- 429 -> UpstreamRateLimitedError
- 402 -> UpstreamPaymentRequiredError
- other non-2xx -> UpstreamError
- unreadable body -> MalformedResponseError

Environment
- MOOD_LLM_API_URL (base URL, default https://ai.gateway.lovable.dev/v1)
- MOOD_LLM_API_KEY
- MOOD_LLM_MODEL (default google/gemini-2.5-flash)
- MOOD_LLM_TIMEOUT_SECONDS (default 30)
"""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from mood_engine.errors import (
    ExternalCapabilityUnavailable,
    MalformedResponseError,
    UpstreamError,
    UpstreamPaymentRequiredError,
    UpstreamRateLimitedError,
)

logger = logging.getLogger("llm_client")

MOOD_LLM_API_URL = (os.getenv("MOOD_LLM_API_URL", "https://ai.gateway.lovable.dev/v1") or "").rstrip("/")
MOOD_LLM_API_KEY = os.getenv("MOOD_LLM_API_KEY", "")
MOOD_LLM_MODEL = os.getenv("MOOD_LLM_MODEL", "google/gemini-2.5-flash")
try:
    MOOD_LLM_TIMEOUT_SECONDS = float(os.getenv("MOOD_LLM_TIMEOUT_SECONDS", "30") or "30")
except ValueError:
    MOOD_LLM_TIMEOUT_SECONDS = 30.0

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{[\s\S]*\})\s*```")


def extract_json(content: str) -> str:
    m = _FENCED_JSON.search(content or "")
    if m:
        return m.group(1)
    return (content or "").strip()


def _raise_for_status(status: int, body: str) -> None:
    if 200 <= status < 300:
        return
    logger.error("LLM gateway error: status=%s body=%s", status, body[:500])
    if status == 429:
        raise UpstreamRateLimitedError()
    if status == 402:
        raise UpstreamPaymentRequiredError()
    raise UpstreamError(f"LLM gateway error: {status}", status_code=status)


def parse_sse_line(line: str) -> Optional[Any]:
    """One SSE line -> parsed ``data:`` payload.

    Returns None for blanks, comments and non-data fields, and the string
    ``"[DONE]"`` for the terminator.
    """
    line = line.rstrip("\r")
    if not line or line.startswith(":") or not line.startswith("data:"):
        return None
    data = line[5:].strip()
    if data == "[DONE]":
        return data
    try:
        return json.loads(data)
    except ValueError:
        logger.warning("Skipping unparsable SSE data line (%d chars)", len(data))
        return None


def delta_text(chunk: Any) -> str:
    try:
        return chunk["choices"][0]["delta"].get("content") or ""
    except (KeyError, IndexError, TypeError, AttributeError):
        return ""


class LLMClient:
    """Thin async client; one pooled ``httpx.AsyncClient`` per instance."""

    def __init__(
        self,
        *,
        api_url: str = MOOD_LLM_API_URL,
        api_key: str = MOOD_LLM_API_KEY,
        model: str = MOOD_LLM_MODEL,
        timeout: float = MOOD_LLM_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    def configured(self) -> bool:
        return bool(self.api_url and self.api_key)

    def _headers(self) -> Dict[str, str]:
        if not self.configured:
            raise ExternalCapabilityUnavailable("MOOD_LLM_API_KEY is not configured")
        return {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}

    async def aclose(self) -> None:
        await self._http.aclose()

    async def generate_json(self, system: str, user: str, *, temperature: float = 0.7) -> Dict[str, Any]:
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": temperature,
            "response_format": {"type": "json_object"},
        }
        headers = self._headers()
        try:
            resp = await self._http.post(f"{self.api_url}/chat/completions", headers=headers, json=body)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"LLM gateway unreachable: {exc}") from exc
        _raise_for_status(resp.status_code, resp.text)
        try:
            content = resp.json()["choices"][0]["message"]["content"]
            parsed = json.loads(extract_json(content))
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise MalformedResponseError(f"LLM returned unreadable content: {exc}")
        if not isinstance(parsed, dict):
            raise MalformedResponseError("LLM returned JSON that is not an object")
        return parsed

    async def stream_chat(self, messages: List[Dict[str, str]], *, system: str) -> AsyncIterator[str]:
        body = {
            "model": self.model,
            "messages": [{"role": "system", "content": system}, *messages],
            "stream": True,
        }
        headers = self._headers()
        try:
            async with self._http.stream(
                "POST", f"{self.api_url}/chat/completions", headers=headers, json=body,
            ) as resp:
                if not (200 <= resp.status_code < 300):
                    raw = await resp.aread()
                    _raise_for_status(resp.status_code, raw.decode("utf-8", "replace"))
                # aiter_lines also yields a final line that lacks a newline
                async for line in resp.aiter_lines():
                    chunk = parse_sse_line(line)
                    if chunk is None:
                        continue
                    if chunk == "[DONE]":
                        return
                    text = delta_text(chunk)
                    if text:
                        yield text
        except httpx.HTTPError as exc:
            raise UpstreamError(f"LLM gateway stream failed: {exc}") from exc
