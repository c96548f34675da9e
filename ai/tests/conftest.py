"""Shared fixtures and builders for the mood service test suite."""

from datetime import datetime, timedelta, timezone

import pytest

from mood_engine.models import MoodEntry

BASE_TS = datetime(2025, 10, 1, 9, 0, tzinfo=timezone.utc)


def make_entry(i, score, tags=(), note=None, ts=None, transcription=None):
    return MoodEntry(
        id=f"e{i}",
        timestamp=ts or BASE_TS + timedelta(days=i),
        mood_score=score,
        emotion_tags=tuple(tags),
        text_note=note,
        transcription=transcription,
    )


def series(scores, tags=()):
    """Entries one day apart, oldest first."""
    return [make_entry(i, s, tags) for i, s in enumerate(scores)]


@pytest.fixture
def improving_history():
    return series([3, 3, 4, 4, 5, 6, 7])


@pytest.fixture
def flat_history():
    return series([5, 5, 5, 5, 5, 5])
