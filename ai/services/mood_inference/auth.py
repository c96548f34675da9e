# -*- coding: utf-8 -*-
"""Bearer-token authentication against Supabase Auth.

Every user-scoped route resolves ``user_id`` from ``Authorization: Bearer
<access_token>`` by calling ``/auth/v1/user``. Anything but a 200 with an
``id`` is a 401.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import Header, HTTPException

from .supabase_client import sb_auth_headers, sb_get

logger = logging.getLogger("mood_auth")

AUTH_TIMEOUT_SECONDS = 5.0


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer" and parts[1]:
        return parts[1]
    return None


async def resolve_user_id_from_token(access_token: str) -> str:
    try:
        resp = await sb_get(
            "/auth/v1/user",
            headers=sb_auth_headers(access_token),
            timeout=AUTH_TIMEOUT_SECONDS,
        )
    except RuntimeError as exc:
        logger.error("Auth unavailable: %s", exc)
        raise HTTPException(status_code=500, detail="Supabase configuration is missing")
    except httpx.HTTPError as exc:
        logger.warning("Supabase /auth/v1/user unreachable: %s", exc)
        raise HTTPException(status_code=502, detail="Authentication service unavailable")

    if resp.status_code != 200:
        logger.warning("Supabase /auth/v1/user failed: status=%s", resp.status_code)
        raise HTTPException(status_code=401, detail="Invalid or expired access token")

    user_id = (resp.json() or {}).get("id")
    if not user_id:
        logger.error("Supabase /auth/v1/user returned no id field")
        raise HTTPException(status_code=401, detail="Failed to resolve user from token")
    return str(user_id)


async def require_user_id(authorization: Optional[str]) -> str:
    """Resolve the caller or raise 401."""
    token = extract_bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Authorization header with Bearer token is required")
    return await resolve_user_id_from_token(token)


async def current_user_id(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> str:
    """FastAPI dependency form of ``require_user_id``."""
    return await require_user_id(authorization)
