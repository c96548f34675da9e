
from __future__ import annotations
from typing import List, Sequence
from .models import MoodEntry, EmotionPattern, TriggerWord, MoodTrend, PatternInsight

MAX_INSIGHTS = 4
TREND_MIN_CONFIDENCE = 0.5
HIGH_VOLATILITY = 2.5


def _mood_level(avg: float) -> str:
    if avg >= 7:
        return "positive"
    if avg <= 4:
        return "challenging"
    return "neutral"


def _ratio(freq: int, total: int, cap: float) -> float:
    if total <= 0:
        return 0.0
    return min(cap, freq / total)


def _pattern_insight(top: EmotionPattern, total: int) -> PatternInsight:
    level = _mood_level(top.average_mood)
    if level == "challenging":
        actionable = "Try mindfulness exercises when you notice this pattern emerging."
    else:
        actionable = "This combination seems to work well for you - consider activities that foster these feelings."
    return PatternInsight(
        title="Recurring Emotional Pattern",
        description=(
            f"When you experience {' and '.join(top.combination)}, your mood tends to be {level} "
            f"({top.average_mood:.1f}/10). This combination appears {top.frequency} times in your history."
        ),
        confidence=_ratio(top.frequency, total, 0.9),
        actionable=actionable,
    )


def generate_insights(
    entries: Sequence[MoodEntry],
    patterns: Sequence[EmotionPattern],
    triggers: Sequence[TriggerWord],
    trend: MoodTrend,
) -> List[PatternInsight]:
    total = len(entries)
    out: List[PatternInsight] = []

    if patterns:
        out.append(_pattern_insight(patterns[0], total))

    negative = [w for w in triggers if w.impact == "negative"]
    positive = [w for w in triggers if w.impact == "positive"]

    if negative:
        w = negative[0]
        out.append(PatternInsight(
            title="Identified Challenge Area",
            description=(
                f'The word "{w.word}" appears frequently ({w.frequency}x) in lower mood entries '
                f"(avg {w.average_mood:.1f}/10)."
            ),
            confidence=_ratio(w.frequency, total, 0.85),
            actionable=f'Consider discussing concerns related to "{w.word}" with a trusted friend or counselor.',
        ))

    if positive:
        w = positive[0]
        out.append(PatternInsight(
            title="Mood Booster Identified",
            description=(
                f'Activities or thoughts related to "{w.word}" appear to lift your mood '
                f"(avg {w.average_mood:.1f}/10)."
            ),
            confidence=_ratio(w.frequency, total, 0.85),
            actionable=f'Try to incorporate more "{w.word}"-related activities into your routine.',
        ))

    if trend.confidence > TREND_MIN_CONFIDENCE:
        if trend.direction == "improving":
            out.append(PatternInsight(
                title="Positive Trend Detected",
                description="Your mood has been steadily improving over recent entries. Keep up the good work!",
                confidence=trend.confidence,
                actionable="Continue your current wellness practices and consider what's been helping.",
            ))
        elif trend.direction == "declining":
            out.append(PatternInsight(
                title="Declining Trend Noticed",
                description="Your mood has been trending downward recently. This is a good time to reach out for support.",
                confidence=trend.confidence,
                actionable="Consider connecting with your support network or a mental health professional.",
            ))

    if trend.volatility > HIGH_VOLATILITY:
        out.append(PatternInsight(
            title="High Mood Variability",
            description=(
                f"Your mood has been fluctuating significantly (volatility: {trend.volatility:.1f}). "
                "This is normal, but consistency can help."
            ),
            confidence=0.7,
            actionable="Try establishing a regular sleep schedule and daily routine to help stabilize your mood.",
        ))

    return out[:MAX_INSIGHTS]
