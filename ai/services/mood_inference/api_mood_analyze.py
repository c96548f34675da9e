# -*- coding: utf-8 -*-
"""
Single-entry analysis API
-------------------------
- POST /mood/analyze    : local classifiers (sentiment, tone, crisis)
- POST /mood/analyze/ai : text-generation analysis via the LLM gateway

Nothing is stored. Either a text or at least one emotion tag is required.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Literal, Optional

import httpx
from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field, ValidationError

from mood_engine.errors import ExternalCapabilityUnavailable, MalformedResponseError, UpstreamError
from mood_engine.models import normalize_tags
from mood_engine.pipeline import perform_entry_analysis

from .auth import current_user_id
from .capabilities import Capabilities, get_capabilities
from .http_errors import to_http_exception
from .observability import log_event
from .prompt_templates import render_prompt_template

logger = logging.getLogger("mood_analyze")

ANALYZE_TEMPERATURE = 0.7


class MoodAnalyzeRequest(BaseModel):
    text: Optional[str] = Field(default=None, max_length=10000)
    emotion_tags: List[str] = Field(default_factory=list)
    current_score: Optional[int] = Field(default=None, ge=1, le=10)


class AiMoodAnalysis(BaseModel):
    analysis: str
    concernLevel: Literal["low", "moderate", "high", "crisis"]
    suggestedMoodScore: int = Field(..., ge=1, le=10)
    keywords: List[str] = Field(default_factory=list)
    isCrisis: bool = False
    recommendations: List[str] = Field(default_factory=list)


def _require_content(payload: MoodAnalyzeRequest) -> List[str]:
    tags = list(normalize_tags(payload.emotion_tags))
    if not (payload.text or "").strip() and not tags:
        raise HTTPException(status_code=400, detail="Either text or emotion tags required")
    return tags


def register_mood_analyze_routes(app: FastAPI) -> None:

    @app.post("/mood/analyze")
    async def analyze_mood(
        payload: MoodAnalyzeRequest,
        user_id: str = Depends(current_user_id),
        caps: Capabilities = Depends(get_capabilities),
    ) -> Dict[str, Any]:
        tags = _require_content(payload)
        result = await perform_entry_analysis(
            payload.text,
            tags,
            payload.current_score or 5,
            caps.classifiers,
        )
        log_event(
            logger,
            "mood_analyzed_local",
            user_id=user_id,
            ml_enabled=caps.classifiers.enabled,
            risk_level=result.crisis.risk_level,
            suggested=result.suggested_mood_score,
        )
        return result.to_dict()

    @app.post("/mood/analyze/ai", response_model=AiMoodAnalysis)
    async def analyze_mood_ai(
        payload: MoodAnalyzeRequest,
        user_id: str = Depends(current_user_id),
        caps: Capabilities = Depends(get_capabilities),
    ) -> AiMoodAnalysis:
        tags = _require_content(payload)
        system, user = render_prompt_template(
            "mood_analysis_v1",
            {"text": payload.text, "emotion_tags": tags, "current_score": payload.current_score},
        )
        try:
            raw = await caps.llm.generate_json(system, user, temperature=ANALYZE_TEMPERATURE)
            result = AiMoodAnalysis.model_validate(raw)
        except ValidationError as exc:
            logger.error("AI mood analysis did not match the contract: %s", exc)
            raise to_http_exception(MalformedResponseError(str(exc)), what="mood analysis")
        except (UpstreamError, ExternalCapabilityUnavailable, httpx.HTTPError) as exc:
            raise to_http_exception(exc, what="analyze mood")

        log_event(logger, "mood_analyzed_ai", user_id=user_id, concern=result.concernLevel, crisis=result.isCrisis)
        return result
