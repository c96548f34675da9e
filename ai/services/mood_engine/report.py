
from __future__ import annotations
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence
import statistics
from .models import MoodEntry, ClinicalSummary, ReportRecommendation

# Data behind the downloadable clinical report. Rendering (HTML/PDF) lives
# with the client; this module only computes what the report shows.

RECENT_WINDOW = 7
TREND_DELTA = 1.0
COMMON_EMOTIONS_TOP_K = 8
ENGAGEMENT_DAYS = 7
LOW_ENGAGEMENT = 3

GENERAL_CARE_PLAN = (
    "Continue regular mental health monitoring through this platform. "
    "Ensure emergency contact is aware and available for crisis situations. "
    "Encourage completion of daily goals for routine and structure. "
    "Monitor for signs of substance abuse or self-harm. "
    "Consider family therapy or caregiver support groups. "
    "Regular physical health check-ups (depression often correlates with physical health)."
)


def half_split_trend(entries: Sequence[MoodEntry]) -> str:
    """Compare the newer and older halves of the most recent entries."""
    recent = sorted(entries, key=lambda e: e.timestamp, reverse=True)[:RECENT_WINDOW]
    if len(recent) < 2:
        return "insufficient"
    cut = (len(recent) + 1) // 2
    newer = recent[:cut]
    older = recent[cut:]
    diff = statistics.mean(e.mood_score for e in newer) - statistics.mean(e.mood_score for e in older)
    if diff > TREND_DELTA:
        return "improving"
    if diff < -TREND_DELTA:
        return "declining"
    return "stable"


def common_emotions(entries: Sequence[MoodEntry], top_k: int = COMMON_EMOTIONS_TOP_K) -> List[str]:
    bag = Counter()
    for e in entries:
        bag.update(e.emotion_tags)
    return [tag for tag, _ in bag.most_common(top_k)]


def _recommendations(
    average: Optional[float],
    trend_label: str,
    unresolved: int,
    recent_count: int,
) -> List[ReportRecommendation]:
    recs: List[ReportRecommendation] = []
    if unresolved > 0:
        recs.append(ReportRecommendation(
            key="unresolved_crisis", severity="critical",
            text=(f"Patient has {unresolved} unresolved crisis event(s). Immediate psychiatric evaluation "
                  "recommended. Consider hospitalization if patient poses danger to self or others."),
        ))
    if average is not None:
        if average <= 3:
            recs.append(ReportRecommendation(
                key="severe_depression", severity="critical",
                text=(f"Average mood score of {average}/10 suggests severe depressive symptoms. Recommend "
                      "immediate referral to psychiatrist for medication evaluation and intensive therapy."),
            ))
        elif average <= 5:
            recs.append(ReportRecommendation(
                key="moderate_depression", severity="warning",
                text=(f"Patient showing signs of moderate depression (score: {average}/10). Consider cognitive "
                      "behavioral therapy (CBT) and regular psychiatric follow-ups every 2-4 weeks."),
            ))
        elif average <= 7:
            recs.append(ReportRecommendation(
                key="mild_mood_concerns", severity="info",
                text=("Patient experiencing mild mood fluctuations. Regular counseling sessions and lifestyle "
                      "modifications (exercise, sleep hygiene) recommended."),
            ))
    if trend_label == "declining":
        recs.append(ReportRecommendation(
            key="declining_trend", severity="warning",
            text=("Patient's mood has been declining recently. Increase monitoring frequency and consider "
                  "adjusting treatment plan. Schedule follow-up within 1 week."),
        ))
    elif trend_label == "improving":
        recs.append(ReportRecommendation(
            key="positive_progress", severity="info",
            text=("Patient showing improvement in mood patterns. Continue current treatment approach and "
                  "reinforce positive behaviors. Monthly follow-ups appropriate."),
        ))
    if recent_count < LOW_ENGAGEMENT:
        recs.append(ReportRecommendation(
            key="low_engagement", severity="warning",
            text=(f"Patient has recorded only {recent_count} mood entries in the past week. Low engagement may "
                  "indicate worsening symptoms or disinterest. Caregiver check-in recommended."),
        ))
    recs.append(ReportRecommendation(key="general_care_plan", severity="info", text=GENERAL_CARE_PLAN))
    return recs


def summarize_for_report(
    entries: Sequence[MoodEntry],
    *,
    crisis_events: Sequence[Dict[str, Any]] = (),
    now: Optional[datetime] = None,
) -> ClinicalSummary:
    now = now or datetime.now(timezone.utc)
    average = round(statistics.mean(e.mood_score for e in entries), 1) if entries else None
    trend_label = half_split_trend(entries)
    since = now - timedelta(days=ENGAGEMENT_DAYS)
    recent_count = sum(1 for e in entries if e.timestamp >= since)
    unresolved = sum(1 for ev in crisis_events or () if not ev.get("resolved"))
    return ClinicalSummary(
        entry_count=len(entries),
        average_mood=average,
        trend_label=trend_label,
        common_emotions=common_emotions(entries),
        recent_entry_count=recent_count,
        unresolved_crisis_count=unresolved,
        recommendations=_recommendations(average, trend_label, unresolved, recent_count),
    )
