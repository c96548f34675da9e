
from __future__ import annotations
from typing import List, Optional, Sequence, Tuple, Protocol
import asyncio
import logging

from .models import CrisisAssessment, RiskLevel, ZeroShotResult
from .errors import MalformedResponseError

logger = logging.getLogger("crisis_scorer")

# Literal substrings of the lower-cased note. Known to over-match (e.g. "no point"
# inside a longer phrase); tune here rather than in the scorer.
CRISIS_KEYWORDS = (
    "suicide",
    "self-harm",
    "hopeless",
    "worthless",
    "end it all",
    "give up",
    "no point",
    "cant go on",
)
CRISIS_EMOTIONS = frozenset(["hopeless", "desperate", "overwhelmed", "anxious"])

CRISIS_LABELS = (
    "mental health crisis",
    "suicidal thoughts",
    "self-harm ideation",
    "severe depression",
)
BENIGN_LABEL = "normal emotional expression"
CANDIDATE_LABELS = CRISIS_LABELS + (BENIGN_LABEL,)

KEYWORD_WEIGHT = 0.3
EMOTION_WEIGHT = 0.2
MODEL_WEIGHT = 0.5
MODEL_THRESHOLD = 0.5
MIN_MODEL_TEXT_LEN = 10
DEFAULT_CLASSIFIER_TIMEOUT = 10.0

HIGH_RISK = 0.7
MEDIUM_RISK = 0.4

# Local alert rule used by the submit flow alongside the scorer.
ALERT_MOOD_CRITICAL = 3
ALERT_MOOD_LOW = 5
ALERT_EMOTIONS = ("anxious", "sad", "angry", "stressed")


class ZeroShotClassifier(Protocol):
    async def classify(self, text: str, candidate_labels: Sequence[str]) -> ZeroShotResult: ...


def score_local_signals(text: Optional[str], emotion_tags: Sequence[str]) -> Tuple[float, List[str]]:
    indicators: List[str] = []
    risk = 0.0
    lower = (text or "").lower()
    for kw in CRISIS_KEYWORDS:
        if kw in lower:
            indicators.append(f'Crisis keyword detected: "{kw}"')
            risk += KEYWORD_WEIGHT
    for tag in emotion_tags or ():
        if str(tag).lower() in CRISIS_EMOTIONS:
            indicators.append(f"High-risk emotion: {tag}")
            risk += EMOTION_WEIGHT
    return risk, indicators


def risk_level_for(score: float) -> RiskLevel:
    if score > HIGH_RISK:
        return "high"
    if score > MEDIUM_RISK:
        return "medium"
    return "low"


def max_crisis_score(result: ZeroShotResult) -> float:
    # zero-shot pipelines return labels sorted by score, so look them up by name
    found = [result.score_for(label) for label in CRISIS_LABELS]
    found = [s for s in found if s is not None]
    if not found:
        raise MalformedResponseError("zero-shot result carries none of the crisis labels")
    return max(found)


async def _model_signal(text: str, classifier: ZeroShotClassifier, timeout: float) -> Optional[float]:
    try:
        result = await asyncio.wait_for(classifier.classify(text, CANDIDATE_LABELS), timeout=timeout)
        return max_crisis_score(result)
    except asyncio.TimeoutError:
        logger.warning("Zero-shot classification timed out after %.1fs; using local signals only", timeout)
    except Exception as exc:
        logger.error("Zero-shot classification failed: %s", exc)
    return None


def build_assessment(risk: float, indicators: List[str]) -> CrisisAssessment:
    score = round(min(risk, 1.0), 4)
    return CrisisAssessment(
        is_crisis=score > MEDIUM_RISK,
        risk_level=risk_level_for(score),
        score=score,
        indicators=indicators,
    )


async def assess_crisis_level(
    text: Optional[str],
    emotion_tags: Sequence[str],
    classifier: Optional[ZeroShotClassifier] = None,
    *,
    timeout: float = DEFAULT_CLASSIFIER_TIMEOUT,
) -> CrisisAssessment:
    """Blend keyword, emotion-tag and (optional) model signals into a bounded risk.

    A failing or slow classifier never aborts the assessment; the result then
    reflects local signals only.
    """
    risk, indicators = score_local_signals(text, emotion_tags)
    body = (text or "").strip()
    if classifier is not None and len(body) > MIN_MODEL_TEXT_LEN:
        top = await _model_signal(text or "", classifier, timeout)
        if top is not None and top > MODEL_THRESHOLD:
            indicators.append("ML model detected crisis indicators")
            risk += top * MODEL_WEIGHT
    return build_assessment(risk, indicators)


def should_trigger_emergency_alert(mood_score: int, emotion_tags: Sequence[str]) -> bool:
    if mood_score <= ALERT_MOOD_CRITICAL:
        return True
    has_critical = any(
        critical in str(tag).lower()
        for tag in emotion_tags or ()
        for critical in ALERT_EMOTIONS
    )
    return mood_score <= ALERT_MOOD_LOW and has_critical
