
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import List, Dict, Optional, Any, Tuple, Iterable, Literal

from .errors import InvalidInputError

MOOD_MIN = 1
MOOD_MAX = 10

TrendDirection = Literal["improving", "declining", "stable"]
RiskLevel = Literal["low", "medium", "high"]
Impact = Literal["positive", "negative", "neutral"]


def parse_timestamp(value: Any) -> datetime:
    """ISO-8601 string (or datetime) -> aware datetime in UTC."""
    if isinstance(value, datetime):
        dt = value
    else:
        s = str(value or "").strip()
        if not s:
            raise InvalidInputError("timestamp is required")
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            raise InvalidInputError(f"invalid timestamp: {value!r}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def validate_mood_score(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidInputError(f"mood_score must be an integer, got {value!r}")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int):
        raise InvalidInputError(f"mood_score must be an integer, got {value!r}")
    if not (MOOD_MIN <= value <= MOOD_MAX):
        raise InvalidInputError(f"mood_score must be within [{MOOD_MIN},{MOOD_MAX}], got {value}")
    return value


def normalize_tags(tags: Optional[Iterable[Any]]) -> Tuple[str, ...]:
    # duplicates inside one entry carry no meaning; keep first occurrence
    out: Dict[str, None] = {}
    for t in tags or ():
        s = str(t or "").strip()
        if s:
            out.setdefault(s, None)
    return tuple(out)


@dataclass(frozen=True)
class MoodEntry:
    id: str
    timestamp: datetime
    mood_score: int  # 1..10
    emotion_tags: Tuple[str, ...] = ()
    text_note: Optional[str] = None
    transcription: Optional[str] = None

    @property
    def text(self) -> str:
        return self.text_note or self.transcription or ""

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> "MoodEntry":
        """Build an entry from a mood_entries row; raises InvalidInputError."""
        if not isinstance(row, dict):
            raise InvalidInputError("mood record must be an object")
        entry_id = row.get("id")
        if entry_id is None or str(entry_id).strip() == "":
            raise InvalidInputError("mood record has no id")
        return cls(
            id=str(entry_id),
            timestamp=parse_timestamp(row.get("created_at") or row.get("timestamp")),
            mood_score=validate_mood_score(row.get("mood_score")),
            emotion_tags=normalize_tags(row.get("emotion_tags") or row.get("tags")),
            text_note=row.get("notes") or None,
            transcription=row.get("voice_transcription") or row.get("transcription") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "mood_score": self.mood_score,
            "emotion_tags": list(self.emotion_tags),
            "text_note": self.text_note,
            "transcription": self.transcription,
        }


@dataclass
class EmotionPattern:
    combination: List[str]
    frequency: int
    average_mood: float

    def to_dict(self):
        return asdict(self)


@dataclass
class TriggerWord:
    word: str
    frequency: int
    average_mood: float
    impact: Impact

    def to_dict(self):
        return asdict(self)


@dataclass
class MoodTrend:
    direction: TrendDirection = "stable"
    confidence: float = 0.0
    prediction: List[float] = field(default_factory=list)
    volatility: float = 0.0

    def to_dict(self):
        return asdict(self)


@dataclass
class CrisisAssessment:
    is_crisis: bool = False
    risk_level: RiskLevel = "low"
    score: float = 0.0
    indicators: List[str] = field(default_factory=list)

    def to_dict(self):
        return asdict(self)


@dataclass
class PatternInsight:
    title: str
    description: str
    confidence: float
    actionable: str

    def to_dict(self):
        return asdict(self)


@dataclass
class TrendAnalysis:
    emotion_patterns: List[EmotionPattern]
    trigger_words: List[TriggerWord]
    mood_trend: MoodTrend
    insights: List[PatternInsight]
    entry_count: int = 0
    entries_needed: int = 0

    def to_dict(self):
        return {
            "emotion_patterns": [p.to_dict() for p in self.emotion_patterns],
            "trigger_words": [w.to_dict() for w in self.trigger_words],
            "mood_trend": self.mood_trend.to_dict(),
            "insights": [i.to_dict() for i in self.insights],
            "entry_count": self.entry_count,
            "entries_needed": self.entries_needed,
        }


@dataclass
class SentimentResult:
    label: str
    score: float
    normalized_score: float  # -1..1

    def to_dict(self):
        return asdict(self)


NEUTRAL_SENTIMENT = SentimentResult(label="NEUTRAL", score=0.5, normalized_score=0.0)


@dataclass
class EmotionResult:
    label: str
    score: float

    def to_dict(self):
        return asdict(self)


@dataclass
class ZeroShotResult:
    labels: List[str]
    scores: List[float]

    def score_for(self, label: str) -> Optional[float]:
        for l, s in zip(self.labels, self.scores):
            if l == label:
                return s
        return None


@dataclass
class EntryAnalysis:
    sentiment: SentimentResult
    emotions: List[EmotionResult]
    crisis: CrisisAssessment
    suggested_mood_score: int
    confidence: float

    def to_dict(self):
        return {
            "sentiment": self.sentiment.to_dict(),
            "emotions": [e.to_dict() for e in self.emotions],
            "crisis": self.crisis.to_dict(),
            "suggested_mood_score": self.suggested_mood_score,
            "confidence": self.confidence,
        }


@dataclass
class ReportRecommendation:
    key: str
    severity: str  # "critical" | "warning" | "info"
    text: str


@dataclass
class ClinicalSummary:
    entry_count: int
    average_mood: Optional[float]
    trend_label: str
    common_emotions: List[str]
    recent_entry_count: int
    unresolved_crisis_count: int
    recommendations: List[ReportRecommendation] = field(default_factory=list)

    def to_dict(self):
        return asdict(self)
