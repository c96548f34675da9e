# -*- coding: utf-8 -*-
"""SMS dispatch through the Twilio Messages API.

- POST ``/2010-04-01/Accounts/{sid}/Messages.json`` with a form body
  (From, To, Body) and HTTP basic auth.
- Failures come back as ``SmsResult(success=False, error=...)``; callers
  decide whether that is fatal.

Environment
- TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_PHONE_NUMBER
- SMS_DEFAULT_COUNTRY_CODE (default +91)
- TWILIO_API_BASE (default https://api.twilio.com)
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Sequence

import httpx

from .observability import mask_phone, log_event

logger = logging.getLogger("sms_client")

TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID", "")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN", "")
TWILIO_PHONE_NUMBER = os.getenv("TWILIO_PHONE_NUMBER", "")
TWILIO_API_BASE = (os.getenv("TWILIO_API_BASE", "https://api.twilio.com") or "").rstrip("/")
SMS_DEFAULT_COUNTRY_CODE = (os.getenv("SMS_DEFAULT_COUNTRY_CODE", "+91") or "+91").strip()
try:
    SMS_TIMEOUT_SECONDS = float(os.getenv("SMS_TIMEOUT_SECONDS", "10") or "10")
except ValueError:
    SMS_TIMEOUT_SECONDS = 10.0

APP_BRAND = "MindCare AI"

_PHONE_JUNK = re.compile(r"[^\d+]")


@dataclass
class SmsResult:
    success: bool
    message_sid: Optional[str] = None
    status: Optional[str] = None
    to: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["to"] = mask_phone(self.to) if self.to else None
        return d


def normalize_phone(raw: str, default_country_code: str = SMS_DEFAULT_COUNTRY_CODE) -> str:
    number = _PHONE_JUNK.sub("", str(raw or ""))
    if number and not number.startswith("+"):
        number = default_country_code + number
    return number


def format_alert_message(
    user_name: str,
    mood_score: int,
    emotion_tags: Sequence[str],
    text_note: Optional[str] = None,
) -> str:
    note = f"\nNote: {text_note}" if text_note else ""
    return (
        f"\U0001F6A8 Emergency Alert from {APP_BRAND}\n\n"
        f"{user_name} may need your support.\n\n"
        f"Mood Score: {mood_score}/10\n"
        f"Emotions: {', '.join(emotion_tags)}\n"
        f"{note}\n\n"
        "Please reach out to them soon. They might be going through a difficult time.\n\n"
        f"This is an automated alert from {APP_BRAND} mental health app."
    )


class TwilioSmsClient:
    def __init__(
        self,
        *,
        account_sid: str = TWILIO_ACCOUNT_SID,
        auth_token: str = TWILIO_AUTH_TOKEN,
        from_number: str = TWILIO_PHONE_NUMBER,
        api_base: str = TWILIO_API_BASE,
        timeout: float = SMS_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.api_base = api_base.rstrip("/")
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def send(self, to: str, body: str) -> SmsResult:
        number = normalize_phone(to)
        if not self.configured:
            logger.error("Twilio credentials not configured")
            return SmsResult(success=False, to=number, error="Twilio credentials not configured")
        if not number.lstrip("+"):
            return SmsResult(success=False, to=number, error="Invalid phone number")

        url = f"{self.api_base}/2010-04-01/Accounts/{self.account_sid}/Messages.json"
        try:
            resp = await self._http.post(
                url,
                auth=(self.account_sid, self.auth_token),
                data={"From": self.from_number, "To": number, "Body": body},
            )
        except httpx.HTTPError as exc:
            log_event(logger, "sms_send_failed", level="error", to=mask_phone(number), error=type(exc).__name__)
            return SmsResult(success=False, to=number, error=f"Failed to send SMS: {type(exc).__name__}")

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not (200 <= resp.status_code < 300):
            detail = (data or {}).get("message") or resp.reason_phrase
            log_event(logger, "sms_send_failed", level="error", to=mask_phone(number), status=resp.status_code)
            return SmsResult(success=False, to=number, error=f"Twilio API error: {detail}")

        log_event(logger, "sms_sent", to=mask_phone(number), sid=data.get("sid"), status=data.get("status"))
        return SmsResult(success=True, message_sid=data.get("sid"), status=data.get("status"), to=number)
