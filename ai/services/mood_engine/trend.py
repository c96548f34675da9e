
from __future__ import annotations
from typing import List, Sequence
from .models import MoodEntry, MoodTrend, TrendDirection, MOOD_MIN, MOOD_MAX
from .stats import moving_average, volatility, slope, clamp

MIN_ENTRIES = 5
MA_WINDOW = 3
SLOPE_SPAN = 3
RECENT_SPAN = 7
SLOPE_THRESHOLD = 0.3
VOLATILITY_SCALE = 5.0
PREDICTION_STEPS = 3


def chronological(entries: Sequence[MoodEntry]) -> List[MoodEntry]:
    # storage order is newest-first; analysis runs oldest-first
    return sorted(entries, key=lambda e: e.timestamp)


def classify_direction(s: float) -> TrendDirection:
    if s > SLOPE_THRESHOLD:
        return "improving"
    if s < -SLOPE_THRESHOLD:
        return "declining"
    return "stable"


def analyze_mood_trend(entries: Sequence[MoodEntry]) -> MoodTrend:
    if len(entries) < MIN_ENTRIES:
        return MoodTrend(direction="stable", confidence=0.0, prediction=[], volatility=0.0)

    scores = [e.mood_score for e in chronological(entries)]
    ma3 = moving_average(scores, MA_WINDOW)
    s = slope(ma3[-SLOPE_SPAN:])

    vol = volatility(scores[-RECENT_SPAN:])
    confidence = clamp(1 - vol / VOLATILITY_SCALE, 0.0, 1.0)

    last = scores[-1]
    prediction = [
        round(clamp(last + s * i, MOOD_MIN, MOOD_MAX), 2)
        for i in range(1, PREDICTION_STEPS + 1)
    ]
    return MoodTrend(
        direction=classify_direction(s),
        confidence=round(confidence, 2),
        prediction=prediction,
        volatility=round(vol, 2),
    )
