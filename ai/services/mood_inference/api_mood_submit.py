# -*- coding: utf-8 -*-
"""
Mood entry API
--------------
- POST /mood/entries : store one entry, assess crisis risk, alert if needed
- GET  /mood/entries : the caller's history, most recent first

Flow of POST:
1. resolve user_id from the Bearer token
2. insert into ``mood_entries``
3. crisis assessment of the note (+ zero-shot model when enabled)
4. high risk or a low score with distress tags -> SMS to the emergency
   contact; high risk is also recorded in ``crisis_events``

Steps 3-4 never fail the request: the entry is already stored.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from fastapi import Depends, FastAPI, Query
from pydantic import BaseModel, Field

from mood_engine.crisis import assess_crisis_level, should_trigger_emergency_alert
from mood_engine.errors import UpstreamError
from mood_engine.models import CrisisAssessment, normalize_tags

from .api_emergency_alert import dispatch_emergency_alert
from .auth import current_user_id
from .capabilities import Capabilities, get_capabilities
from .http_errors import to_http_exception
from .mood_store import fetch_mood_history, insert_crisis_event, insert_mood_entry
from .observability import elapsed_ms, log_event, monotonic_ms

logger = logging.getLogger("mood_submit")


class MoodEntryCreate(BaseModel):
    mood_score: int = Field(..., ge=1, le=10, description="Self-reported mood, 1..10")
    emotion_tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = Field(default=None, max_length=5000)
    voice_transcription: Optional[str] = Field(default=None, max_length=10000)
    audio_url: Optional[str] = None
    created_at: Optional[str] = Field(default=None, description="ISO-8601; server time when omitted")


class MoodEntryCreateResponse(BaseModel):
    entry: Dict[str, Any]
    crisis: Dict[str, Any]
    alert: Optional[Dict[str, Any]] = None
    crisis_event_recorded: bool = False


class MoodHistoryResponse(BaseModel):
    entries: List[Dict[str, Any]]
    count: int


def register_mood_submit_routes(app: FastAPI) -> None:

    @app.post("/mood/entries", response_model=MoodEntryCreateResponse)
    async def create_mood_entry(
        payload: MoodEntryCreate,
        user_id: str = Depends(current_user_id),
        caps: Capabilities = Depends(get_capabilities),
    ) -> MoodEntryCreateResponse:
        started = monotonic_ms()
        tags = list(normalize_tags(payload.emotion_tags))

        try:
            entry = await insert_mood_entry(
                user_id=user_id,
                mood_score=payload.mood_score,
                emotion_tags=tags,
                notes=payload.notes,
                voice_transcription=payload.voice_transcription,
                audio_url=payload.audio_url,
                created_at=payload.created_at,
            )
        except (UpstreamError, httpx.HTTPError, RuntimeError) as exc:
            raise to_http_exception(exc, what="save mood entry")

        try:
            crisis = await assess_crisis_level(
                entry.text,
                entry.emotion_tags,
                caps.classifiers.zero_shot,
                timeout=caps.classifiers.timeout,
            )
        except Exception as exc:
            logger.error("Crisis assessment failed for entry %s: %s", entry.id, exc)
            crisis = CrisisAssessment()

        alert: Optional[Dict[str, Any]] = None
        if crisis.risk_level == "high" or should_trigger_emergency_alert(entry.mood_score, entry.emotion_tags):
            try:
                outcome = await dispatch_emergency_alert(
                    caps,
                    user_id=user_id,
                    mood_score=entry.mood_score,
                    emotion_tags=entry.emotion_tags,
                    text_note=entry.text_note,
                )
                alert = outcome.model_dump()
            except Exception as exc:
                logger.error("Emergency alert dispatch failed for user_id=%s: %s", user_id, exc)
                alert = {"sent": False, "reason": "dispatch_error"}

        recorded = False
        if crisis.risk_level == "high":
            recorded = await insert_crisis_event(
                user_id,
                crisis,
                intervention_taken="Emergency contact alerted" if alert and alert.get("sent") else None,
            )

        log_event(
            logger,
            "mood_entry_stored",
            user_id=user_id,
            entry_id=entry.id,
            risk_level=crisis.risk_level,
            alert_sent=bool(alert and alert.get("sent")),
            elapsed_ms=elapsed_ms(started),
        )
        return MoodEntryCreateResponse(
            entry=entry.to_dict(),
            crisis=crisis.to_dict(),
            alert=alert,
            crisis_event_recorded=recorded,
        )

    @app.get("/mood/entries", response_model=MoodHistoryResponse)
    async def list_mood_entries(
        limit: int = Query(default=50, ge=1, le=500),
        user_id: str = Depends(current_user_id),
    ) -> MoodHistoryResponse:
        try:
            entries = await fetch_mood_history(user_id, limit=limit)
        except (UpstreamError, httpx.HTTPError, RuntimeError) as exc:
            raise to_http_exception(exc, what="load mood history")
        return MoodHistoryResponse(entries=[e.to_dict() for e in entries], count=len(entries))
