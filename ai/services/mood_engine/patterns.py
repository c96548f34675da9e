
from __future__ import annotations
from typing import List, Dict, Sequence, Tuple
from itertools import combinations
from .models import MoodEntry, EmotionPattern

MIN_ENTRIES = 3
MIN_FREQUENCY = 2
TOP_K = 5


def analyze_emotion_patterns(entries: Sequence[MoodEntry]) -> List[EmotionPattern]:
    if len(entries) < MIN_ENTRIES:
        return []
    # pair -> [count, mood_sum]; dict keeps first-seen order for ties
    acc: Dict[Tuple[str, str], List[int]] = {}
    for e in entries:
        tags = sorted(set(e.emotion_tags))
        if len(tags) < 2:
            continue
        for pair in combinations(tags, 2):
            slot = acc.setdefault(pair, [0, 0])
            slot[0] += 1
            slot[1] += e.mood_score
    patterns = [
        EmotionPattern(combination=list(pair), frequency=count, average_mood=total / count)
        for pair, (count, total) in acc.items()
        if count >= MIN_FREQUENCY
    ]
    patterns.sort(key=lambda p: p.frequency, reverse=True)
    return patterns[:TOP_K]
