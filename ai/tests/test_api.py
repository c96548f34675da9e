"""HTTP-level tests for the mood service with storage and collaborators faked."""
from datetime import datetime, timezone

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import series
from mood_engine.errors import UpstreamPaymentRequiredError, UpstreamRateLimitedError
from mood_engine.models import MoodEntry
from mood_inference import api_emergency_alert, api_mood_insights, api_mood_submit
from mood_inference.app import create_app
from mood_inference.auth import current_user_id
from mood_inference.capabilities import Capabilities
from mood_inference.classifiers import ClassifierSet
from mood_inference.sms_client import SmsResult, normalize_phone

USER = "user-1"


class FakeLLM:
    configured = True

    def __init__(self, payload=None, exc=None, deltas=(), stream_exc=None):
        self.payload, self.exc, self.deltas = payload, exc, list(deltas)
        self.stream_exc = stream_exc
        self.calls = []

    async def generate_json(self, system, user, *, temperature=0.7):
        self.calls.append((system, user, temperature))
        if self.exc:
            raise self.exc
        return self.payload

    async def stream_chat(self, messages, *, system):
        if self.exc:
            raise self.exc
        for d in self.deltas:
            yield d
        if self.stream_exc:
            raise self.stream_exc

    async def aclose(self):
        pass


class FakeSms:
    configured = True

    def __init__(self, success=True):
        self.success = success
        self.sent = []

    async def send(self, to, body):
        self.sent.append((to, body))
        number = normalize_phone(to)
        if not self.success:
            return SmsResult(success=False, to=number, error="Twilio API error: down")
        return SmsResult(success=True, message_sid="SM1", status="queued", to=number)

    async def aclose(self):
        pass


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def sms():
    return FakeSms()


@pytest.fixture
def app(llm, sms):
    app = create_app()
    app.state.capabilities = Capabilities(classifiers=ClassifierSet(), llm=llm, sms=sms)
    app.dependency_overrides[current_user_id] = lambda: USER
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def store(monkeypatch):
    """In-memory stand-in for the Supabase tables."""
    state = {"entries": [], "crisis_events": [], "profile": {"full_name": "Asha", "emergency_contact": "98765 43210"}}

    async def insert_mood_entry(**kw):
        entry = MoodEntry(
            id=f"m{len(state['entries']) + 1}",
            timestamp=datetime(2025, 10, 20, 9, 0, tzinfo=timezone.utc),
            mood_score=kw["mood_score"],
            emotion_tags=tuple(kw["emotion_tags"]),
            text_note=kw.get("notes"),
            transcription=kw.get("voice_transcription"),
        )
        state["entries"].append(entry)
        return entry

    async def insert_crisis_event(user_id, assessment, **kw):
        state["crisis_events"].append({"user_id": user_id, "severity": assessment.risk_level, "resolved": False})
        return True

    async def fetch_mood_history(user_id, *, limit=100):
        return list(reversed(state["entries"]))[:limit]

    async def fetch_crisis_events(user_id):
        return list(state["crisis_events"])

    async def fetch_emergency_profile(user_id):
        return state["profile"]

    monkeypatch.setattr(api_mood_submit, "insert_mood_entry", insert_mood_entry)
    monkeypatch.setattr(api_mood_submit, "insert_crisis_event", insert_crisis_event)
    monkeypatch.setattr(api_mood_submit, "fetch_mood_history", fetch_mood_history)
    monkeypatch.setattr(api_mood_insights, "fetch_mood_history", fetch_mood_history)
    monkeypatch.setattr(api_mood_insights, "fetch_crisis_events", fetch_crisis_events)
    monkeypatch.setattr(api_emergency_alert, "fetch_emergency_profile", fetch_emergency_profile)
    return state


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_missing_bearer_token_is_401(app):
    app.dependency_overrides.clear()
    resp = TestClient(app).get("/mood/entries")
    assert resp.status_code == 401


# ---------------------------------------------------------------------------
# /mood/entries
# ---------------------------------------------------------------------------
class TestMoodEntries:
    def test_out_of_range_score_rejected(self, client, store):
        assert client.post("/mood/entries", json={"mood_score": 11}).status_code == 422
        assert store["entries"] == []

    def test_good_day_sends_nothing(self, client, store, sms):
        resp = client.post("/mood/entries", json={"mood_score": 8, "emotion_tags": ["happy"], "notes": "nice walk"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["entry"]["mood_score"] == 8
        assert body["crisis"]["risk_level"] == "low"
        assert body["alert"] is None
        assert sms.sent == []

    def test_low_score_alerts_emergency_contact(self, client, store, sms):
        resp = client.post("/mood/entries", json={"mood_score": 2, "emotion_tags": ["sad"], "notes": "rough night"})
        body = resp.json()
        assert body["alert"]["sent"] is True
        assert body["alert"]["to"] == "***3210"
        to, message = sms.sent[0]
        assert to == "98765 43210"
        assert "Asha may need your support." in message
        assert "Note: rough night" in message
        assert body["crisis_event_recorded"] is False

    def test_high_risk_records_crisis_event(self, client, store, sms):
        resp = client.post("/mood/entries", json={
            "mood_score": 6,
            "emotion_tags": ["hopeless", "anxious"],
            "notes": "I feel hopeless and want to give up",
        })
        body = resp.json()
        assert body["crisis"]["risk_level"] == "high"
        assert body["alert"]["sent"] is True
        assert body["crisis_event_recorded"] is True
        assert store["crisis_events"][0]["severity"] == "high"

    def test_failed_sms_does_not_fail_request(self, app, store):
        app.state.capabilities.sms = FakeSms(success=False)
        resp = TestClient(app).post("/mood/entries", json={"mood_score": 1})
        assert resp.status_code == 200
        assert resp.json()["alert"]["sent"] is False

    def test_missing_contact_is_reported(self, client, store, sms):
        store["profile"] = {"full_name": "Asha", "emergency_contact": None}
        body = client.post("/mood/entries", json={"mood_score": 1}).json()
        assert body["alert"] == {"sent": False, "reason": "no_emergency_contact",
                                 "message_sid": None, "status": None, "to": None}
        assert sms.sent == []

    def test_history_most_recent_first(self, client, store):
        for score in (4, 6, 8):
            client.post("/mood/entries", json={"mood_score": score})
        body = client.get("/mood/entries", params={"limit": 2}).json()
        assert body["count"] == 2
        assert [e["mood_score"] for e in body["entries"]] == [8, 6]


# ---------------------------------------------------------------------------
# insights / report
# ---------------------------------------------------------------------------
class TestInsights:
    def test_short_history(self, client, store):
        store["entries"].extend(series([4, 5, 6]))
        body = client.get("/mood/insights").json()
        assert body["entry_count"] == 3
        assert body["entries_needed"] == 2
        assert body["mood_trend"]["direction"] == "stable"

    def test_trend(self, client, store):
        store["entries"].extend(series([3, 3, 4, 4, 5, 6, 7]))
        body = client.get("/mood/insights").json()
        assert body["mood_trend"]["direction"] == "improving"
        assert body["entries_needed"] == 0

    def test_report_summary(self, client, store):
        store["entries"].extend(series([3, 3, 4, 4, 5, 6, 7]))
        store["crisis_events"].append({"resolved": False})
        body = client.get("/mood/report/summary").json()
        assert body["entry_count"] == 7
        assert body["unresolved_crisis_count"] == 1
        assert body["recommendations"][0]["key"] == "unresolved_crisis"


# ---------------------------------------------------------------------------
# analysis
# ---------------------------------------------------------------------------
AI_ANALYSIS = {
    "analysis": "You sound tired but hopeful.",
    "concernLevel": "moderate",
    "suggestedMoodScore": 5,
    "keywords": ["tired"],
    "isCrisis": False,
    "recommendations": ["Take a short walk"],
}


class TestAnalyze:
    def test_requires_text_or_tags(self, client):
        assert client.post("/mood/analyze", json={}).status_code == 400
        assert client.post("/mood/analyze/ai", json={"text": "  "}).status_code == 400

    def test_local_analysis_without_models(self, client):
        body = client.post("/mood/analyze", json={"text": "I want to give up", "current_score": 4}).json()
        assert body["sentiment"]["label"] == "NEUTRAL"
        assert body["crisis"]["score"] == pytest.approx(0.3)
        assert 1 <= body["suggested_mood_score"] <= 10

    def test_ai_analysis(self, client, llm):
        llm.payload = AI_ANALYSIS
        resp = client.post("/mood/analyze/ai", json={"text": "long day", "emotion_tags": ["tired"], "current_score": 5})
        assert resp.status_code == 200
        assert resp.json()["concernLevel"] == "moderate"
        system, user, temperature = llm.calls[0]
        assert "Selected emotions: tired." in user
        assert temperature == 0.7

    def test_ai_contract_violation_is_502(self, client, llm):
        llm.payload = {**AI_ANALYSIS, "concernLevel": "panic"}
        assert client.post("/mood/analyze/ai", json={"text": "x"}).status_code == 502

    @pytest.mark.parametrize("exc,status,detail", [
        (UpstreamRateLimitedError(), 429, "Too many requests. Please try again in a moment."),
        (UpstreamPaymentRequiredError(), 402, "Please add credits to continue using AI features."),
    ])
    def test_upstream_errors_are_distinct(self, client, llm, exc, status, detail):
        llm.exc = exc
        resp = client.post("/mood/analyze/ai", json={"text": "x"})
        assert resp.status_code == status
        assert resp.json()["detail"] == detail

    def test_unreachable_gateway_is_502(self, client, llm):
        llm.exc = httpx.ConnectError("connection refused")
        assert client.post("/mood/analyze/ai", json={"text": "x"}).status_code == 502


class TestWellnessAi:
    def test_goals(self, client, llm):
        llm.payload = {"goals": [{
            "title": "Call a friend", "description": "Ten minutes", "category": "social",
            "difficulty": "easy", "rationale": "Connection helps",
        }]}
        resp = client.post("/ai/goals", json={"recent_moods": [4, 5, 3]})
        assert resp.status_code == 200
        assert resp.json()["goals"][0]["category"] == "social"
        assert "Recent mood pattern: 4, 5, 3/10" in llm.calls[0][1]
        assert llm.calls[0][2] == 0.8

    def test_goals_need_some_mood(self, client):
        assert client.post("/ai/goals", json={}).status_code == 400

    def test_recommendations(self, client, llm):
        llm.payload = {"recommendations": [{
            "type": "mindfulness", "title": "Box breathing", "description": "4-4-4-4",
            "duration": "5 minutes", "benefit": "Calms the body", "priority": "high",
        }]}
        resp = client.post("/ai/recommendations", json={"mood_score": 4, "emotion_tags": ["anxious"]})
        assert resp.status_code == 200
        assert resp.json()["recommendations"][0]["priority"] == "high"

    def test_unreachable_gateway_is_502(self, client, llm):
        llm.exc = httpx.ConnectError("connection refused")
        assert client.post("/ai/recommendations", json={"mood_score": 4}).status_code == 502
        assert client.post("/ai/goals", json={"mood_score": 4}).status_code == 502


# ---------------------------------------------------------------------------
# chat / alerts
# ---------------------------------------------------------------------------
class TestChat:
    def test_streams_sse(self, client, llm):
        llm.deltas = ["Hi", " there"]
        resp = client.post("/chat", json={"messages": [{"role": "user", "content": "hello"}], "language": "hi"})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/event-stream")
        assert resp.text == 'data: {"delta": "Hi"}\n\ndata: {"delta": " there"}\n\ndata: [DONE]\n\n'

    def test_rate_limited(self, client, llm):
        llm.exc = UpstreamRateLimitedError()
        resp = client.post("/chat", json={"messages": [{"role": "user", "content": "hello"}]})
        assert resp.status_code == 429

    def test_unreachable_gateway_is_502(self, client, llm):
        llm.exc = httpx.ConnectError("connection refused")
        resp = client.post("/chat", json={"messages": [{"role": "user", "content": "hello"}]})
        assert resp.status_code == 502

    def test_transport_failure_mid_stream_is_reported_in_band(self, client, llm):
        llm.deltas = ["Hi"]
        llm.stream_exc = httpx.ReadTimeout("gateway went quiet")
        resp = client.post("/chat", json={"messages": [{"role": "user", "content": "hello"}]})
        assert resp.status_code == 200
        assert resp.text == (
            'data: {"delta": "Hi"}\n\ndata: {"error": "stream_interrupted"}\n\ndata: [DONE]\n\n'
        )

    def test_rejects_unknown_language(self, client):
        resp = client.post("/chat", json={"messages": [{"role": "user", "content": "hi"}], "language": "fr"})
        assert resp.status_code == 422


class TestEmergencyAlert:
    def test_sends(self, client, store, sms):
        resp = client.post("/alerts/emergency", json={"mood_score": 2, "emotion_tags": ["sad"]})
        assert resp.status_code == 200
        assert resp.json()["message_sid"] == "SM1"
        assert len(sms.sent) == 1

    def test_no_contact(self, client, store):
        store["profile"] = None
        assert client.post("/alerts/emergency", json={"mood_score": 2}).status_code == 400

    def test_sms_failure_is_502(self, app, store):
        app.state.capabilities.sms = FakeSms(success=False)
        assert TestClient(app).post("/alerts/emergency", json={"mood_score": 2}).status_code == 502
