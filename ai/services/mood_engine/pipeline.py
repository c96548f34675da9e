
from __future__ import annotations
from typing import List, Optional, Sequence, Protocol
import asyncio
import logging

from .models import (
    MoodEntry, TrendAnalysis, EntryAnalysis, SentimentResult, EmotionResult, NEUTRAL_SENTIMENT,
)
from .patterns import analyze_emotion_patterns
from .triggers import analyze_trigger_words
from .trend import analyze_mood_trend, MIN_ENTRIES as TREND_MIN_ENTRIES
from .insights import generate_insights
from .crisis import assess_crisis_level, ZeroShotClassifier, DEFAULT_CLASSIFIER_TIMEOUT
from .mood_score import calculate_mood_score, analysis_confidence

logger = logging.getLogger("mood_pipeline")

EMOTION_TOP_K = 5


class SentimentAnalyzer(Protocol):
    async def analyze(self, text: str) -> SentimentResult: ...


class EmotionDetector(Protocol):
    async def detect(self, text: str, top_k: int = EMOTION_TOP_K) -> List[EmotionResult]: ...


class EntryClassifiers(Protocol):
    sentiment: Optional[SentimentAnalyzer]
    emotion: Optional[EmotionDetector]
    zero_shot: Optional[ZeroShotClassifier]
    timeout: float


async def perform_trend_analysis(entries: Sequence[MoodEntry]) -> TrendAnalysis:
    """Mine patterns, trigger words and the mood trend, then compose insights.

    The three analyses share nothing but the (immutable) history, so they run
    side by side. Short histories are not an error: the result carries the
    documented defaults and how many entries are still missing.
    """
    history = tuple(entries)
    patterns, triggers, trend = await asyncio.gather(
        asyncio.to_thread(analyze_emotion_patterns, history),
        asyncio.to_thread(analyze_trigger_words, history),
        asyncio.to_thread(analyze_mood_trend, history),
    )
    insights = generate_insights(history, patterns, triggers, trend)
    logger.info(
        "trend analysis: entries=%d patterns=%d triggers=%d direction=%s insights=%d",
        len(history), len(patterns), len(triggers), trend.direction, len(insights),
    )
    return TrendAnalysis(
        emotion_patterns=patterns,
        trigger_words=triggers,
        mood_trend=trend,
        insights=insights,
        entry_count=len(history),
        entries_needed=max(0, TREND_MIN_ENTRIES - len(history)),
    )


async def _sentiment(text: str, analyzer: Optional[SentimentAnalyzer], timeout: float) -> SentimentResult:
    if not text.strip() or analyzer is None:
        return NEUTRAL_SENTIMENT
    try:
        return await asyncio.wait_for(analyzer.analyze(text), timeout=timeout)
    except Exception as exc:
        logger.error("Sentiment analysis unavailable: %s", exc or type(exc).__name__)
        return NEUTRAL_SENTIMENT


async def _emotions(text: str, detector: Optional[EmotionDetector], timeout: float) -> List[EmotionResult]:
    if not text.strip() or detector is None:
        return []
    try:
        return await asyncio.wait_for(detector.detect(text, EMOTION_TOP_K), timeout=timeout)
    except Exception as exc:
        logger.error("Emotion detection unavailable: %s", exc or type(exc).__name__)
        return []


async def perform_entry_analysis(
    text: Optional[str],
    emotion_tags: Sequence[str],
    current_mood_score: int,
    classifiers: Optional[EntryClassifiers] = None,
) -> EntryAnalysis:
    body = text or ""
    sentiment_cap = getattr(classifiers, "sentiment", None)
    emotion_cap = getattr(classifiers, "emotion", None)
    zero_shot_cap = getattr(classifiers, "zero_shot", None)
    timeout = float(getattr(classifiers, "timeout", DEFAULT_CLASSIFIER_TIMEOUT) or DEFAULT_CLASSIFIER_TIMEOUT)

    sentiment, emotions, crisis = await asyncio.gather(
        _sentiment(body, sentiment_cap, timeout),
        _emotions(body, emotion_cap, timeout),
        assess_crisis_level(body, emotion_tags, zero_shot_cap, timeout=timeout),
    )
    return EntryAnalysis(
        sentiment=sentiment,
        emotions=emotions,
        crisis=crisis,
        suggested_mood_score=calculate_mood_score(sentiment, emotions, current_mood_score),
        confidence=analysis_confidence(body, sentiment.score),
    )
