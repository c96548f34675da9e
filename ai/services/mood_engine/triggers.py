
from __future__ import annotations
from typing import List, Dict, Sequence, Optional, AbstractSet
from .models import Impact, MoodEntry, TriggerWord
from .keywords import extract_keywords

MIN_ENTRIES = 3
MIN_FREQUENCY = 2
TOP_K = 10

POSITIVE_MOOD = 7
NEGATIVE_MOOD = 4


def impact_for(average_mood: float) -> Impact:
    if average_mood >= POSITIVE_MOOD:
        return "positive"
    if average_mood <= NEGATIVE_MOOD:
        return "negative"
    return "neutral"


def analyze_trigger_words(
    entries: Sequence[MoodEntry],
    *,
    dedupe_within_entry: bool = False,
    stopwords: Optional[AbstractSet[str]] = None,
) -> List[TriggerWord]:
    """Frequent note keywords with the average mood of the entries using them.

    By default a word repeated inside one note counts once per repetition,
    so a single note can push a word over the frequency threshold. Pass
    dedupe_within_entry=True to count each entry at most once per word.
    """
    if len(entries) < MIN_ENTRIES:
        return []
    acc: Dict[str, List[int]] = {}
    for e in entries:
        text = e.text
        if not text:
            continue
        words = extract_keywords(text, stopwords)
        if dedupe_within_entry:
            words = list(dict.fromkeys(words))
        for w in words:
            slot = acc.setdefault(w, [0, 0])
            slot[0] += 1
            slot[1] += e.mood_score
    out: List[TriggerWord] = []
    for word, (count, total) in acc.items():
        if count < MIN_FREQUENCY:
            continue
        avg = total / count
        out.append(TriggerWord(word=word, frequency=count, average_mood=avg, impact=impact_for(avg)))
    out.sort(key=lambda w: w.frequency, reverse=True)
    return out[:TOP_K]
