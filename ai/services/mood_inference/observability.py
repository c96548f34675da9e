# -*- coding: utf-8 -*-
"""observability.py

Structured logs and operator notifications for the mood service
---------------------------------------------------------------

- Every noteworthy step (entry stored, alert dispatched, upstream failure) is
  written as a single JSON line so it can be filtered in the hosting log view.
- Alerts additionally emit a plain ``ALERT::KEY k=v`` marker line that simple
  log-based alert rules can match without JSON parsing.
- Slack notification is best-effort and rate limited per key. It is used when
  an emergency SMS could not be delivered, so a human can follow up.
- Phone numbers are masked and bearer tokens are never passed in.

Environment
- OBS_LOG_JSON=true/false (default true)
- OBS_ALERT_MARKERS_ENABLED=true/false (default true)
- OBS_ALERT_PREFIX (default ``ALERT::``)
- SLACK_WEBHOOK_URL, SLACK_NOTIFY_ENABLED, SLACK_TIMEOUT_SECONDS,
  SLACK_RATE_LIMIT_SECONDS
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import os
import re
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx


OBS_LOG_JSON = (os.getenv("OBS_LOG_JSON", "true").strip().lower() != "false")
OBS_ALERT_MARKERS_ENABLED = (os.getenv("OBS_ALERT_MARKERS_ENABLED", "true").strip().lower() != "false")
OBS_ALERT_PREFIX = (os.getenv("OBS_ALERT_PREFIX", "ALERT::") or "ALERT::").strip() or "ALERT::"
try:
    OBS_ALERT_KV_MAX_LEN = int(os.getenv("OBS_ALERT_KV_MAX_LEN", "200") or "200")
except ValueError:
    OBS_ALERT_KV_MAX_LEN = 200


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _dumps(obj: Dict[str, Any]) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"), default=str)


_NON_DIGIT = re.compile(r"\D")


def mask_phone(number: Optional[str]) -> str:
    """'+919876543210' -> '***3210'."""
    digits = _NON_DIGIT.sub("", str(number or ""))
    if not digits:
        return ""
    return "***" + digits[-4:]


def log_event(logger: logging.Logger, event: str, *, level: str = "info", **fields: Any) -> None:
    """Write one structured event line.

    ``event`` is a stable identifier such as ``mood_entry_stored``.
    """
    payload: Dict[str, Any] = {"ts": _iso_now(), "event": event, **fields}
    msg = _dumps(payload) if OBS_LOG_JSON else f"{event} {payload}"
    getattr(logger, level, logger.info)(msg)


def _compact_kv(fields: Dict[str, Any]) -> str:
    parts = []
    for k, v in fields.items():
        if v is None:
            continue
        s = str(v).replace("\n", " ").replace("\r", " ").strip()
        if OBS_ALERT_KV_MAX_LEN > 0 and len(s) > OBS_ALERT_KV_MAX_LEN:
            s = s[: max(0, OBS_ALERT_KV_MAX_LEN - 3)] + "..."
        parts.append(f"{k}={s}")
    return " ".join(parts)


def log_alert(
    logger: logging.Logger,
    alert_key: str,
    *,
    level: str = "warning",
    message: Optional[str] = None,
    **fields: Any,
) -> None:
    """JSON ``alert`` event plus an ``ALERT::KEY k=v`` marker line."""
    safe_fields: Dict[str, Any] = dict(fields)
    safe_fields["alert_key"] = alert_key
    if message:
        safe_fields["message"] = message
    log_event(logger, "alert", level=level, **safe_fields)

    if OBS_ALERT_MARKERS_ENABLED:
        kv = _compact_kv({k: v for k, v in safe_fields.items() if k not in ("message", "alert_key")})
        line = f"{OBS_ALERT_PREFIX}{alert_key}"
        if kv:
            line = f"{line} {kv}"
        getattr(logger, level, logger.warning)(line)


# ----------------------------
# Slack notifier (incoming webhook)
# ----------------------------

SLACK_WEBHOOK_URL = (os.getenv("SLACK_WEBHOOK_URL") or "").strip()
SLACK_NOTIFY_ENABLED = (
    (os.getenv("SLACK_NOTIFY_ENABLED") or "").strip().lower() in ("1", "true", "yes")
) or bool(SLACK_WEBHOOK_URL)

try:
    SLACK_TIMEOUT_SECONDS = float(os.getenv("SLACK_TIMEOUT_SECONDS", "3.0") or "3.0")
except ValueError:
    SLACK_TIMEOUT_SECONDS = 3.0

try:
    SLACK_RATE_LIMIT_SECONDS = float(os.getenv("SLACK_RATE_LIMIT_SECONDS", "60") or "60")
except ValueError:
    SLACK_RATE_LIMIT_SECONDS = 60.0


@dataclass
class SlackSendResult:
    sent: bool
    skipped: bool
    reason: str = ""


_last_sent_at: Dict[str, float] = {}
_last_sent_lock = asyncio.Lock()


def _hash_key(s: str) -> str:
    return hashlib.sha256((s or "").encode("utf-8")).hexdigest()[:16]


async def _rate_limit_allow(key: str) -> bool:
    if SLACK_RATE_LIMIT_SECONDS <= 0:
        return True
    now = time.monotonic()
    async with _last_sent_lock:
        last = _last_sent_at.get(key)
        if last is not None and (now - last) < SLACK_RATE_LIMIT_SECONDS:
            return False
        _last_sent_at[key] = now
        return True


async def send_slack_webhook(
    *,
    text: str,
    title: Optional[str] = None,
    key: Optional[str] = None,
) -> SlackSendResult:
    """Post to the incoming webhook. Never raises."""
    if not SLACK_NOTIFY_ENABLED or not SLACK_WEBHOOK_URL:
        return SlackSendResult(sent=False, skipped=True, reason="disabled")

    if not await _rate_limit_allow(_hash_key(key or title or text[:80])):
        return SlackSendResult(sent=False, skipped=True, reason="rate_limited")

    body = f"*{title}*\n{text}" if title else text
    if len(body) > 3500:
        body = body[:3497] + "..."

    try:
        async with httpx.AsyncClient(timeout=SLACK_TIMEOUT_SECONDS) as client:
            resp = await client.post(SLACK_WEBHOOK_URL, json={"text": body})
        if 200 <= resp.status_code < 300:
            return SlackSendResult(sent=True, skipped=False, reason="ok")
        return SlackSendResult(sent=False, skipped=False, reason=f"http_{resp.status_code}")
    except httpx.HTTPError as exc:
        return SlackSendResult(sent=False, skipped=False, reason=f"exception:{type(exc).__name__}")


async def notify_alert_delivery_failed(*, user_id: str, to: str, error: str) -> SlackSendResult:
    return await send_slack_webhook(
        title="Emergency SMS not delivered",
        text=f"user_id={user_id} to={mask_phone(to)} error={error}\nPlease follow up manually.",
        key=f"sms_failed:{user_id}",
    )


# ----------------------------
# Run context helpers
# ----------------------------

def new_run_id(prefix: str = "run") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


def elapsed_ms(start_ms: float) -> int:
    return int(max(0.0, monotonic_ms() - float(start_ms)))
