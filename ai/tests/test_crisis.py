"""Tests for mood_engine.crisis risk scoring and the emergency alert rule."""
import asyncio

import pytest

from mood_engine.crisis import (
    CANDIDATE_LABELS,
    assess_crisis_level,
    risk_level_for,
    should_trigger_emergency_alert,
)
from mood_engine.models import CrisisAssessment, ZeroShotResult


class FakeZeroShot:
    def __init__(self, scores=None, exc=None, delay=0.0):
        self.scores = scores or {}
        self.exc = exc
        self.delay = delay
        self.calls = []

    async def classify(self, text, candidate_labels):
        self.calls.append((text, tuple(candidate_labels)))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc:
            raise self.exc
        ranked = sorted(self.scores.items(), key=lambda kv: kv[1], reverse=True)
        return ZeroShotResult(labels=[k for k, _ in ranked], scores=[v for _, v in ranked])


def _assess(text, tags=(), classifier=None, **kwargs):
    return asyncio.run(assess_crisis_level(text, list(tags), classifier, **kwargs))


class TestLocalSignals:
    def test_empty_input_is_low(self):
        assert _assess("", []) == CrisisAssessment(is_crisis=False, risk_level="low", score=0.0, indicators=[])

    def test_single_keyword(self):
        result = _assess("I want to give up")
        assert result.score == pytest.approx(0.3)
        assert result.risk_level == "low"
        assert not result.is_crisis
        assert result.indicators == ['Crisis keyword detected: "give up"']

    def test_keyword_plus_emotion_is_medium(self):
        result = _assess("there is no point", ["Overwhelmed"])
        assert result.score == pytest.approx(0.5)
        assert result.risk_level == "medium"
        assert result.is_crisis
        assert "High-risk emotion: Overwhelmed" in result.indicators

    def test_score_is_capped(self):
        result = _assess("hopeless, worthless, I want to give up", ["hopeless", "anxious", "desperate"])
        assert result.score == 1.0
        assert result.risk_level == "high"


class TestModelSignal:
    def test_model_adds_half_of_top_crisis_score(self):
        clf = FakeZeroShot({"suicidal thoughts": 0.9, "normal emotional expression": 0.1})
        result = _assess("I want to give up on everything", classifier=clf)
        assert result.score == pytest.approx(0.75)
        assert result.risk_level == "high"
        assert "ML model detected crisis indicators" in result.indicators
        assert clf.calls[0][1] == CANDIDATE_LABELS

    def test_low_model_score_ignored(self):
        clf = FakeZeroShot({"normal emotional expression": 0.6, "severe depression": 0.4})
        result = _assess("had a quiet day at home", classifier=clf)
        assert result.score == 0.0

    def test_short_text_skips_model(self):
        clf = FakeZeroShot({"suicidal thoughts": 0.99})
        _assess("sad today", classifier=clf)
        assert clf.calls == []

    def test_failure_falls_back_to_local(self):
        clf = FakeZeroShot(exc=RuntimeError("model crashed"))
        result = _assess("I want to give up on everything", classifier=clf)
        assert result.score == pytest.approx(0.3)

    def test_timeout_falls_back_to_local(self):
        clf = FakeZeroShot({"suicidal thoughts": 0.99}, delay=1.0)
        result = _assess("I want to give up on everything", classifier=clf, timeout=0.01)
        assert result.score == pytest.approx(0.3)

    def test_result_without_crisis_labels_ignored(self):
        clf = FakeZeroShot({"weather": 0.99})
        result = _assess("I want to give up on everything", classifier=clf)
        assert result.score == pytest.approx(0.3)


@pytest.mark.parametrize("score,expected", [(0.0, "low"), (0.4, "low"), (0.41, "medium"), (0.7, "medium"), (0.71, "high")])
def test_risk_level_boundaries(score, expected):
    assert risk_level_for(score) == expected


class TestEmergencyAlertRule:
    def test_critical_score_alone(self):
        assert should_trigger_emergency_alert(3, [])

    def test_low_score_with_distress_tag(self):
        assert should_trigger_emergency_alert(5, ["Anxious"])

    def test_low_score_without_distress_tag(self):
        assert not should_trigger_emergency_alert(5, ["happy"])

    def test_distress_tag_with_ok_score(self):
        assert not should_trigger_emergency_alert(6, ["sad"])
