# -*- coding: utf-8 -*-
"""
Wellness generation API
-----------------------
- POST /ai/goals           : 3-5 daily goals for the current mood
- POST /ai/recommendations : activity recommendations

Generated JSON is validated before it reaches the client; items outside the
documented categories are rejected as a malformed upstream answer.
"""

from __future__ import annotations

import logging
from typing import List, Literal, Optional

import httpx
from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field, ValidationError

from mood_engine.errors import ExternalCapabilityUnavailable, MalformedResponseError, UpstreamError

from .auth import current_user_id
from .capabilities import Capabilities, get_capabilities
from .http_errors import to_http_exception
from .observability import log_event
from .prompt_templates import render_prompt_template

logger = logging.getLogger("wellness_ai")

GENERATION_TEMPERATURE = 0.8


class GoalsRequest(BaseModel):
    mood_score: Optional[int] = Field(default=None, ge=1, le=10)
    recent_moods: List[int] = Field(default_factory=list)
    health_conditions: List[str] = Field(default_factory=list)


class Goal(BaseModel):
    title: str
    description: str
    category: Literal["social", "exercise", "mindfulness", "self-care"]
    difficulty: Literal["easy", "medium", "hard"]
    rationale: str = ""


class GoalsResponse(BaseModel):
    goals: List[Goal]


class RecommendationsRequest(BaseModel):
    mood_score: int = Field(..., ge=1, le=10)
    emotion_tags: List[str] = Field(default_factory=list)
    context: Optional[str] = Field(default=None, max_length=2000)


class Recommendation(BaseModel):
    type: Literal["social", "exercise", "mindfulness", "content", "self-care"]
    title: str
    description: str
    duration: str = ""
    benefit: str = ""
    priority: Literal["high", "medium", "low"] = "medium"


class RecommendationsResponse(BaseModel):
    recommendations: List[Recommendation]


async def _generate(caps: Capabilities, template_id: str, vars_: dict, model: type, what: str):
    system, user = render_prompt_template(template_id, vars_)
    try:
        raw = await caps.llm.generate_json(system, user, temperature=GENERATION_TEMPERATURE)
        return model.model_validate(raw)
    except ValidationError as exc:
        logger.error("%s did not match the contract: %s", template_id, exc)
        raise to_http_exception(MalformedResponseError(str(exc)), what=what)
    except (UpstreamError, ExternalCapabilityUnavailable, httpx.HTTPError) as exc:
        raise to_http_exception(exc, what=what)


def register_wellness_ai_routes(app: FastAPI) -> None:

    @app.post("/ai/goals", response_model=GoalsResponse)
    async def generate_goals(
        payload: GoalsRequest,
        user_id: str = Depends(current_user_id),
        caps: Capabilities = Depends(get_capabilities),
    ) -> GoalsResponse:
        if payload.mood_score is None and not payload.recent_moods:
            raise HTTPException(status_code=400, detail="mood_score or recent_moods required")
        result = await _generate(caps, "daily_goals_v1", payload.model_dump(), GoalsResponse, "generate goals")
        log_event(logger, "goals_generated", user_id=user_id, count=len(result.goals))
        return result

    @app.post("/ai/recommendations", response_model=RecommendationsResponse)
    async def generate_recommendations(
        payload: RecommendationsRequest,
        user_id: str = Depends(current_user_id),
        caps: Capabilities = Depends(get_capabilities),
    ) -> RecommendationsResponse:
        result = await _generate(
            caps, "recommendations_v1", payload.model_dump(), RecommendationsResponse, "generate recommendations",
        )
        log_event(logger, "recommendations_generated", user_id=user_id, count=len(result.recommendations))
        return result
