# -*- coding: utf-8 -*-
"""supabase_client.py

Shared Supabase HTTP client
---------------------------

- One lazily-initialized ``httpx.AsyncClient`` (connection pooled) for all
  PostgREST calls made with the service_role key.
- Small helpers for GET / POST against ``/rest/v1/<table>``.
- The app lifespan calls ``aclose_async_client`` on shutdown.

Environment
- SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY
- SUPABASE_HTTP_MAX_CONNECTIONS (100), SUPABASE_HTTP_MAX_KEEPALIVE_CONNECTIONS (20)
- SUPABASE_HTTP_TIMEOUT_SECONDS (8.0)
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger("supabase_client")


SUPABASE_URL = os.getenv("SUPABASE_URL", "").rstrip("/")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")


def ensure_supabase_config() -> None:
    if not SUPABASE_URL or not SUPABASE_SERVICE_ROLE_KEY:
        raise RuntimeError(
            "Supabase configuration missing: SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY"
        )


_client: Optional[httpx.AsyncClient] = None
_client_lock = asyncio.Lock()


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)) or default)
    except ValueError:
        return default


def _build_limits() -> httpx.Limits:
    return httpx.Limits(
        max_connections=max(1, _env_int("SUPABASE_HTTP_MAX_CONNECTIONS", 100)),
        max_keepalive_connections=max(1, _env_int("SUPABASE_HTTP_MAX_KEEPALIVE_CONNECTIONS", 20)),
    )


def _build_timeout() -> httpx.Timeout:
    try:
        t = float(os.getenv("SUPABASE_HTTP_TIMEOUT_SECONDS", "8.0") or "8.0")
    except ValueError:
        t = 8.0
    if t <= 0:
        t = 8.0
    return httpx.Timeout(t)


async def get_async_client() -> httpx.AsyncClient:
    """Return the shared AsyncClient (connection pooled)."""
    global _client
    if _client is not None:
        return _client

    async with _client_lock:
        if _client is None:
            _client = httpx.AsyncClient(timeout=_build_timeout(), limits=_build_limits())
        return _client


async def aclose_async_client() -> None:
    global _client
    if _client is None:
        return
    try:
        await _client.aclose()
    finally:
        _client = None


def sb_service_role_headers(*, prefer: Optional[str] = None) -> Dict[str, str]:
    ensure_supabase_config()
    h = {
        "apikey": SUPABASE_SERVICE_ROLE_KEY,
        "Authorization": f"Bearer {SUPABASE_SERVICE_ROLE_KEY}",
        "Content-Type": "application/json",
    }
    if prefer:
        h["Prefer"] = prefer
    return h


def sb_auth_headers(access_token: str) -> Dict[str, str]:
    """Headers for Supabase Auth endpoints that need the user's access token."""
    ensure_supabase_config()
    return {
        "Authorization": f"Bearer {str(access_token or '').strip()}",
        "apikey": SUPABASE_SERVICE_ROLE_KEY,
    }


async def sb_request(
    method: str,
    path: str,
    *,
    params: Optional[Dict[str, str]] = None,
    json: Any = None,
    headers: Optional[Dict[str, str]] = None,
    prefer: Optional[str] = None,
    timeout: Optional[float] = None,
) -> httpx.Response:
    """Send a request to ``SUPABASE_URL + path``.

    Service-role JSON headers are used unless ``headers`` is given.
    """
    ensure_supabase_config()
    p = str(path or "").strip()
    if not p.startswith("/"):
        p = "/" + p

    h = dict(headers) if headers else sb_service_role_headers(prefer=prefer)
    client = await get_async_client()
    kwargs: Dict[str, Any] = {"headers": h, "params": params, "json": json}
    if timeout is not None:
        kwargs["timeout"] = timeout
    return await client.request(str(method or "GET").upper(), f"{SUPABASE_URL}{p}", **kwargs)


async def sb_get(path: str, *, params: Optional[Dict[str, str]] = None, **kwargs: Any) -> httpx.Response:
    return await sb_request("GET", path, params=params, **kwargs)


async def sb_post(path: str, *, json: Any, **kwargs: Any) -> httpx.Response:
    return await sb_request("POST", path, json=json, **kwargs)
