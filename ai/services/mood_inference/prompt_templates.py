# -*- coding: utf-8 -*-
"""Server-side prompt templates registry

- Each text-generation route renders its prompts here, so wording can be tuned
  without touching the route code.
- ``render_prompt_template(template_id, vars)`` returns ``(system, user)``.
- The JSON shapes described in the system prompts are the contracts the
  routes validate against.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple


class TemplateError(ValueError):
    """Template rendering error (bad vars / unknown template)."""


@dataclass(frozen=True)
class TemplateInfo:
    template_id: str
    description: str
    required_vars: List[str]
    optional_vars: List[str]


_TEMPLATES: Dict[str, TemplateInfo] = {
    "mood_analysis_v1": TemplateInfo(
        template_id="mood_analysis_v1",
        description="Analyze one mood entry (text and/or emotion tags)",
        required_vars=[],
        optional_vars=["text", "emotion_tags", "current_score"],
    ),
    "daily_goals_v1": TemplateInfo(
        template_id="daily_goals_v1",
        description="3-5 personalized daily wellness goals",
        required_vars=[],
        optional_vars=["mood_score", "recent_moods", "health_conditions"],
    ),
    "recommendations_v1": TemplateInfo(
        template_id="recommendations_v1",
        description="Personalized activity recommendations",
        required_vars=["mood_score"],
        optional_vars=["emotion_tags", "context"],
    ),
    "companion_chat_v1": TemplateInfo(
        template_id="companion_chat_v1",
        description="System prompt for the supportive chat companion",
        required_vars=[],
        optional_vars=["language"],
    ),
}

CHAT_LANGUAGES = {"en": "English", "hi": "Hindi", "te": "Telugu"}


def render_prompt_template(template_id: str, template_vars: Optional[Dict[str, Any]] = None) -> Tuple[str, str]:
    """Render a template into ``(system_prompt, user_prompt)``.

    Missing required vars and unknown ids raise TemplateError.
    """
    tid = str(template_id or "").strip()
    if not tid:
        raise TemplateError("template_id is required")
    info = _TEMPLATES.get(tid)
    if info is None:
        raise TemplateError(f"Unknown template_id: {tid}")

    vars_ = template_vars or {}
    for name in info.required_vars:
        if vars_.get(name) in (None, ""):
            raise TemplateError(f"template_vars.{name} is required")

    if tid == "mood_analysis_v1":
        return _tpl_mood_analysis_v1(vars_)
    if tid == "daily_goals_v1":
        return _tpl_daily_goals_v1(vars_)
    if tid == "recommendations_v1":
        return _tpl_recommendations_v1(vars_)
    return _tpl_companion_chat_v1(vars_), ""


def _joined(values: Any) -> str:
    return ", ".join(str(v) for v in (values or []) if str(v).strip())


def _tpl_mood_analysis_v1(vars_: Dict[str, Any]) -> Tuple[str, str]:
    system = "\n".join([
        "You are a compassionate mental health AI assistant analyzing mood entries. Your goal is to:",
        "1. Analyze the emotional state from the text and selected emotions",
        "2. Identify any concerning patterns (depression, anxiety, crisis indicators)",
        "3. Provide supportive, actionable insights",
        "4. Detect if immediate crisis intervention is needed",
        "",
        "Respond in JSON format with:",
        "{",
        '  "analysis": "Brief compassionate analysis of the mood entry",',
        '  "concernLevel": "low" | "moderate" | "high" | "crisis",',
        '  "suggestedMoodScore": number (1-10),',
        '  "keywords": ["keyword1", "keyword2"],',
        '  "isCrisis": boolean,',
        '  "recommendations": ["action1", "action2"]',
        "}",
    ])
    parts = []
    if vars_.get("current_score"):
        parts.append(f"Current mood score: {vars_['current_score']}/10.")
    tags = _joined(vars_.get("emotion_tags"))
    if tags:
        parts.append(f"Selected emotions: {tags}.")
    text = str(vars_.get("text") or "").strip() or "No text provided"
    user = f'{" ".join(parts)}\n\nMood entry: "{text}"'
    return system, user


def _tpl_daily_goals_v1(vars_: Dict[str, Any]) -> Tuple[str, str]:
    system = "\n".join([
        "You are a supportive mental health AI creating personalized daily goals. "
        "Generate 3-5 achievable goals based on the user's current mental state and health conditions.",
        "",
        "Goals should be:",
        "- Specific and actionable",
        "- Appropriate for their current mood level",
        "- Evidence-based for mental health improvement",
        "- Varied (social, exercise, mindfulness, self-care)",
        "",
        "Respond in JSON format with:",
        '{"goals": [{"title": "Goal title", "description": "Brief description", '
        '"category": "social" | "exercise" | "mindfulness" | "self-care", '
        '"difficulty": "easy" | "medium" | "hard", "rationale": "Why this goal helps"}]}',
    ])
    recent = _joined(vars_.get("recent_moods"))
    mood = f"Recent mood pattern: {recent}/10" if recent else f"Current mood: {vars_.get('mood_score')}/10"
    health = _joined(vars_.get("health_conditions"))
    health_line = f"Health conditions: {health}" if health else ""
    user = f"{mood}. {health_line}\n\nGenerate personalized daily goals for mental wellness."
    return system, user


def _tpl_recommendations_v1(vars_: Dict[str, Any]) -> Tuple[str, str]:
    system = "\n".join([
        "You are a mental health wellness AI providing personalized activity recommendations. "
        "Based on the user's mood and emotions, suggest activities that can improve their mental well-being.",
        "",
        "Provide recommendations for:",
        "- Social connection activities",
        "- Physical exercises",
        "- Mindfulness practices",
        "- Content (music, videos, podcasts)",
        "- Self-care activities",
        "",
        "Respond in JSON format with:",
        '{"recommendations": [{"type": "social" | "exercise" | "mindfulness" | "content" | "self-care", '
        '"title": "Activity title", "description": "Brief description", "duration": "Estimated time", '
        '"benefit": "How it helps", "priority": "high" | "medium" | "low"}]}',
    ])
    tags = _joined(vars_.get("emotion_tags"))
    emotions = f"Emotions: {tags}" if tags else ""
    context = str(vars_.get("context") or "").strip()
    user = (
        f"Mood score: {vars_['mood_score']}/10. {emotions}. {context}\n\n"
        "Generate personalized wellness recommendations."
    )
    return system, user


def _tpl_companion_chat_v1(vars_: Dict[str, Any]) -> str:
    lang = CHAT_LANGUAGES.get(str(vars_.get("language") or "en"), "English")
    return "\n".join([
        "You are a warm, supportive mental wellness companion.",
        f"Always reply in {lang}.",
        "Listen first, reflect feelings back, and offer small, practical coping steps.",
        "Do not diagnose or prescribe medication.",
        "If the user mentions self-harm or suicide, respond with care and urge them to contact "
        "local emergency services or a crisis helpline right away.",
    ])
