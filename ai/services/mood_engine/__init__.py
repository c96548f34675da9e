
from .models import (
    MoodEntry, EmotionPattern, TriggerWord, MoodTrend, CrisisAssessment, PatternInsight,
    TrendAnalysis, SentimentResult, EmotionResult, ZeroShotResult, EntryAnalysis, ClinicalSummary,
)
from .errors import (
    MoodEngineError, InvalidInputError, ExternalCapabilityUnavailable, MalformedResponseError,
    UpstreamError, UpstreamRateLimitedError, UpstreamPaymentRequiredError,
)
from .stats import moving_average, volatility, slope
from .keywords import extract_keywords
from .patterns import analyze_emotion_patterns
from .triggers import analyze_trigger_words
from .trend import analyze_mood_trend
from .crisis import assess_crisis_level, should_trigger_emergency_alert
from .insights import generate_insights
from .mood_score import calculate_mood_score
from .report import summarize_for_report
from .pipeline import perform_trend_analysis, perform_entry_analysis
