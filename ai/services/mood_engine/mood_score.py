
from __future__ import annotations
from typing import Dict, Optional, Sequence
import math
from .models import SentimentResult, EmotionResult, MOOD_MIN, MOOD_MAX
from .stats import clamp

# Offsets keyed by the labels of the star-rating sentiment model used as the
# "emotion" classifier.
EMOTION_ADJUSTMENTS: Dict[str, float] = {
    "1 star": -2,
    "2 stars": -1,
    "3 stars": 0,
    "4 stars": 1,
    "5 stars": 2,
}

ML_WEIGHT = 0.7
USER_WEIGHT = 0.3


def to_sentiment(label: str, score: float) -> SentimentResult:
    norm = score if str(label).upper() == "POSITIVE" else -score
    return SentimentResult(label=label, score=score, normalized_score=norm)


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def calculate_mood_score(
    sentiment: SentimentResult,
    emotions: Sequence[EmotionResult],
    user_score: int,
    adjustments: Optional[Dict[str, float]] = None,
) -> int:
    """Suggest a 1..10 mood from model output, blended with the user's own score."""
    table = EMOTION_ADJUSTMENTS if adjustments is None else adjustments
    ml = ((sentiment.normalized_score + 1) / 2) * 9 + 1
    if emotions:
        ml += table.get(emotions[0].label, 0)
    ml = clamp(ml, MOOD_MIN, MOOD_MAX)
    return _round_half_up(ml * ML_WEIGHT + user_score * USER_WEIGHT)


def analysis_confidence(text: Optional[str], sentiment_score: float) -> float:
    # longer notes and surer models both raise confidence
    text_conf = min(len((text or "").strip()) / 100, 1.0)
    return round(text_conf * 0.4 + sentiment_score * 0.6, 4)
