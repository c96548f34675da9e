# -*- coding: utf-8 -*-
"""Record store access for mood entries, profiles and crisis events.

Tables (PostgREST, service_role):
- mood_entries: id, user_id, mood_score, emotion_tags, notes,
  voice_transcription, audio_url, created_at
- profiles: id, full_name, emergency_contact
- crisis_events: id, user_id, severity, trigger_type, intervention_taken,
  notes, resolved, follow_up_required, created_at
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import httpx

from mood_engine.errors import InvalidInputError, UpstreamError
from mood_engine.models import MoodEntry, CrisisAssessment

from .supabase_client import sb_get, sb_post

logger = logging.getLogger("mood_store")

MOOD_TABLE = "/rest/v1/mood_entries"
PROFILES_TABLE = "/rest/v1/profiles"
CRISIS_TABLE = "/rest/v1/crisis_events"

MOOD_COLUMNS = "id,user_id,mood_score,emotion_tags,notes,voice_transcription,audio_url,created_at"
DEFAULT_HISTORY_LIMIT = 100


def _check(resp: httpx.Response, what: str) -> Any:
    if resp.status_code >= 300:
        logger.error("Supabase %s failed: %s %s", what, resp.status_code, resp.text[:800])
        raise UpstreamError(f"Failed to {what}", status_code=resp.status_code)
    try:
        return resp.json()
    except ValueError:
        raise UpstreamError(f"Failed to {what}: response is not JSON", status_code=resp.status_code)


def entries_from_rows(rows: Sequence[Dict[str, Any]]) -> List[MoodEntry]:
    """Parse rows, skipping (and logging) the ones that do not validate."""
    out: List[MoodEntry] = []
    for row in rows or ():
        try:
            out.append(MoodEntry.from_record(row))
        except InvalidInputError as exc:
            rid = row.get("id") if isinstance(row, dict) else None
            logger.warning("Skipping invalid mood record id=%s: %s", rid, exc)
    return out


async def fetch_mood_history(user_id: str, *, limit: int = DEFAULT_HISTORY_LIMIT) -> List[MoodEntry]:
    """Most recent first."""
    resp = await sb_get(
        MOOD_TABLE,
        params={
            "select": MOOD_COLUMNS,
            "user_id": f"eq.{user_id}",
            "order": "created_at.desc",
            "limit": str(max(1, int(limit))),
        },
    )
    rows = _check(resp, "fetch mood history")
    return entries_from_rows(rows if isinstance(rows, list) else [])


async def insert_mood_entry(
    *,
    user_id: str,
    mood_score: int,
    emotion_tags: Sequence[str],
    notes: Optional[str] = None,
    voice_transcription: Optional[str] = None,
    audio_url: Optional[str] = None,
    created_at: Optional[str] = None,
) -> MoodEntry:
    payload: Dict[str, Any] = {
        "user_id": user_id,
        "mood_score": mood_score,
        "emotion_tags": list(emotion_tags),
        "notes": notes,
        "voice_transcription": voice_transcription,
        "audio_url": audio_url,
        "created_at": created_at or datetime.now(timezone.utc).isoformat(),
    }
    resp = await sb_post(MOOD_TABLE, json=payload, prefer="return=representation")
    rows = _check(resp, "save mood entry")
    row = rows[0] if isinstance(rows, list) and rows else rows
    try:
        return MoodEntry.from_record(row)
    except InvalidInputError as exc:
        raise UpstreamError(f"Stored mood entry is not readable: {exc}", status_code=resp.status_code)


async def fetch_emergency_profile(user_id: str) -> Optional[Dict[str, Any]]:
    """``{"full_name", "emergency_contact"}`` or None when the profile is missing."""
    resp = await sb_get(
        PROFILES_TABLE,
        params={"select": "full_name,emergency_contact", "id": f"eq.{user_id}", "limit": "1"},
    )
    rows = _check(resp, "fetch profile")
    if not isinstance(rows, list) or not rows:
        return None
    return rows[0]


async def fetch_crisis_events(user_id: str) -> List[Dict[str, Any]]:
    resp = await sb_get(
        CRISIS_TABLE,
        params={
            "select": "id,severity,trigger_type,resolved,created_at",
            "user_id": f"eq.{user_id}",
            "order": "created_at.desc",
        },
    )
    rows = _check(resp, "fetch crisis events")
    return rows if isinstance(rows, list) else []


async def insert_crisis_event(
    user_id: str,
    assessment: CrisisAssessment,
    *,
    trigger_type: str = "mood_entry",
    intervention_taken: Optional[str] = None,
) -> bool:
    """Best effort: returns False instead of raising."""
    payload = {
        "user_id": user_id,
        "severity": assessment.risk_level,
        "trigger_type": trigger_type,
        "intervention_taken": intervention_taken,
        "notes": "; ".join(assessment.indicators) or None,
        "follow_up_required": assessment.risk_level == "high",
    }
    try:
        resp = await sb_post(CRISIS_TABLE, json=payload)
        _check(resp, "record crisis event")
        return True
    except (UpstreamError, httpx.HTTPError, RuntimeError) as exc:
        logger.warning("Crisis event not recorded for user_id=%s: %s", user_id, exc)
        return False
