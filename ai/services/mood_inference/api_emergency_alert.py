# -*- coding: utf-8 -*-
"""
Emergency alert API
-------------------
- POST /alerts/emergency

Sends an SMS to the emergency contact stored on the caller's profile. The
same dispatch is used by /mood/entries when an entry looks high risk.

- The contact number comes from ``profiles.emergency_contact``; the client
  never supplies it.
- A failed SMS is logged as an alert and forwarded to Slack so an operator
  can follow up.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import httpx
from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from mood_engine.errors import UpstreamError

from .auth import current_user_id
from .capabilities import Capabilities, get_capabilities
from .http_errors import to_http_exception
from .mood_store import fetch_emergency_profile
from .observability import log_alert, log_event, mask_phone, notify_alert_delivery_failed
from .sms_client import format_alert_message

logger = logging.getLogger("emergency_alert")

DEFAULT_USER_NAME = "Someone you care about"


class EmergencyAlertRequest(BaseModel):
    mood_score: int = Field(..., ge=1, le=10)
    emotion_tags: List[str] = Field(default_factory=list)
    text_note: Optional[str] = None


class EmergencyAlertResponse(BaseModel):
    sent: bool
    reason: str = ""
    message_sid: Optional[str] = None
    status: Optional[str] = None
    to: Optional[str] = None


async def dispatch_emergency_alert(
    caps: Capabilities,
    *,
    user_id: str,
    mood_score: int,
    emotion_tags: Sequence[str],
    text_note: Optional[str] = None,
) -> EmergencyAlertResponse:
    """Look up the contact and send the SMS.

    Store failures propagate; SMS failures are reported in the result.
    """
    profile = await fetch_emergency_profile(user_id) or {}
    contact = str(profile.get("emergency_contact") or "").strip()
    if not contact:
        log_event(logger, "emergency_alert_skipped", level="warning", user_id=user_id, reason="no_emergency_contact")
        return EmergencyAlertResponse(sent=False, reason="no_emergency_contact")

    name = str(profile.get("full_name") or "").strip() or DEFAULT_USER_NAME
    message = format_alert_message(name, mood_score, list(emotion_tags), text_note)
    result = await caps.sms.send(contact, message)

    if not result.success:
        log_alert(
            logger,
            "EMERGENCY_SMS_FAILED",
            level="error",
            user_id=user_id,
            to=mask_phone(result.to),
            error=result.error,
        )
        await notify_alert_delivery_failed(user_id=user_id, to=result.to or contact, error=result.error or "")
        return EmergencyAlertResponse(sent=False, reason=result.error or "sms_failed", to=mask_phone(result.to))

    log_event(logger, "emergency_alert_sent", user_id=user_id, to=mask_phone(result.to), sid=result.message_sid)
    return EmergencyAlertResponse(
        sent=True,
        reason="ok",
        message_sid=result.message_sid,
        status=result.status,
        to=mask_phone(result.to),
    )


def register_emergency_alert_routes(app: FastAPI) -> None:

    @app.post("/alerts/emergency", response_model=EmergencyAlertResponse)
    async def emergency_alert(
        payload: EmergencyAlertRequest,
        user_id: str = Depends(current_user_id),
        caps: Capabilities = Depends(get_capabilities),
    ) -> EmergencyAlertResponse:
        try:
            outcome = await dispatch_emergency_alert(
                caps,
                user_id=user_id,
                mood_score=payload.mood_score,
                emotion_tags=payload.emotion_tags,
                text_note=payload.text_note,
            )
        except (UpstreamError, httpx.HTTPError, RuntimeError) as exc:
            raise to_http_exception(exc, what="load emergency contact")

        if outcome.reason == "no_emergency_contact":
            raise HTTPException(status_code=400, detail="No emergency contact configured")
        if not outcome.sent:
            raise HTTPException(status_code=502, detail="Failed to send SMS")
        return outcome
