# -*- coding: utf-8 -*-
"""classifiers.py

Local text classifiers backed by Hugging Face ``transformers`` pipelines
------------------------------------------------------------------------

- sentiment: binary POSITIVE / NEGATIVE (distilbert SST-2)
- emotion: 1..5 star rating model used as a coarse emotional tone
- zero-shot: NLI model scoring the crisis candidate labels

Each pipeline is loaded on first use, at most once per process: concurrent
first callers wait on the same lock and re-check before loading. Inference is
blocking, so it runs in a worker thread. Raw pipeline output is validated
into the engine's result types; anything else raises MalformedResponseError.

Environment
- MOOD_ML_ENABLED=true/false (default true)
- MOOD_SENTIMENT_MODEL, MOOD_EMOTION_MODEL, MOOD_ZERO_SHOT_MODEL
- MOOD_CLASSIFIER_TIMEOUT_SECONDS (default 10)
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Callable, List, Optional, Sequence

from mood_engine.errors import MalformedResponseError
from mood_engine.models import SentimentResult, EmotionResult, ZeroShotResult
from mood_engine.mood_score import to_sentiment

logger = logging.getLogger("mood_classifiers")

MOOD_ML_ENABLED = os.getenv("MOOD_ML_ENABLED", "true").strip().lower() in ("1", "true", "yes")
MOOD_SENTIMENT_MODEL = os.getenv("MOOD_SENTIMENT_MODEL", "distilbert-base-uncased-finetuned-sst-2-english")
MOOD_EMOTION_MODEL = os.getenv("MOOD_EMOTION_MODEL", "nlptown/bert-base-multilingual-uncased-sentiment")
MOOD_ZERO_SHOT_MODEL = os.getenv("MOOD_ZERO_SHOT_MODEL", "typeform/mobilebert-uncased-mnli")
try:
    MOOD_CLASSIFIER_TIMEOUT_SECONDS = float(os.getenv("MOOD_CLASSIFIER_TIMEOUT_SECONDS", "10") or "10")
except ValueError:
    MOOD_CLASSIFIER_TIMEOUT_SECONDS = 10.0

PipelineFactory = Callable[[str, str], Callable[..., Any]]


def _transformers_factory(task: str, model: str) -> Callable[..., Any]:
    from transformers import pipeline

    return pipeline(task, model=model)


class LazyPipeline:
    """A ``transformers`` pipeline loaded once, on first call.

    The load runs as a task owned by this object. Callers await it through
    ``asyncio.shield``, so a caller timing out does not discard the model; the
    next caller picks up the same load. A failed load is retried on next use.
    """

    def __init__(self, task: str, model: str, factory: Optional[PipelineFactory] = None) -> None:
        self.task = task
        self.model = model
        self._factory = factory or _transformers_factory
        self._pipe: Optional[Callable[..., Any]] = None
        self._load_task: Optional["asyncio.Task[Callable[..., Any]]"] = None

    @property
    def loaded(self) -> bool:
        return self._pipe is not None

    async def _load(self) -> Callable[..., Any]:
        logger.info("Loading %s pipeline: %s", self.task, self.model)
        try:
            pipe = await asyncio.to_thread(self._factory, self.task, self.model)
        except BaseException:
            self._load_task = None
            raise
        self._pipe = pipe
        return pipe

    async def get(self) -> Callable[..., Any]:
        if self._pipe is not None:
            return self._pipe
        if self._load_task is None:
            self._load_task = asyncio.create_task(self._load())
        return await asyncio.shield(self._load_task)

    async def __call__(self, *args: Any, **kwargs: Any) -> Any:
        pipe = await self.get()
        return await asyncio.to_thread(pipe, *args, **kwargs)


def _first_list(raw: Any) -> List[Any]:
    # single-input calls may come back wrapped once more
    if isinstance(raw, list) and raw and isinstance(raw[0], list):
        return raw[0]
    if isinstance(raw, list):
        return raw
    return [raw]


def _label_score(item: Any) -> tuple:
    if not isinstance(item, dict):
        raise MalformedResponseError(f"classifier item is not an object: {item!r}")
    label, score = item.get("label"), item.get("score")
    if not isinstance(label, str) or not isinstance(score, (int, float)):
        raise MalformedResponseError(f"classifier item lacks label/score: {item!r}")
    return label, float(score)


class SentimentClassifier:
    def __init__(self, pipe: LazyPipeline) -> None:
        self._pipe = pipe

    async def analyze(self, text: str) -> SentimentResult:
        items = _first_list(await self._pipe(text))
        if not items:
            raise MalformedResponseError("sentiment pipeline returned nothing")
        label, score = _label_score(items[0])
        return to_sentiment(label, score)


class EmotionClassifier:
    def __init__(self, pipe: LazyPipeline) -> None:
        self._pipe = pipe

    async def detect(self, text: str, top_k: int = 5) -> List[EmotionResult]:
        items = _first_list(await self._pipe(text, top_k=top_k))
        out = [EmotionResult(*_label_score(i)) for i in items]
        out.sort(key=lambda e: e.score, reverse=True)
        return out


class ZeroShotCrisisClassifier:
    def __init__(self, pipe: LazyPipeline) -> None:
        self._pipe = pipe

    async def classify(self, text: str, candidate_labels: Sequence[str]) -> ZeroShotResult:
        raw = await self._pipe(text, candidate_labels=list(candidate_labels))
        if isinstance(raw, list) and raw:
            raw = raw[0]
        if not isinstance(raw, dict):
            raise MalformedResponseError("zero-shot pipeline returned an unexpected shape")
        labels, scores = raw.get("labels"), raw.get("scores")
        if not isinstance(labels, list) or not isinstance(scores, list) or len(labels) != len(scores):
            raise MalformedResponseError("zero-shot output lacks aligned labels/scores")
        return ZeroShotResult(labels=[str(l) for l in labels], scores=[float(s) for s in scores])


class ClassifierSet:
    """What the entry-analysis pipeline needs; any member may be None."""

    def __init__(
        self,
        sentiment: Optional[SentimentClassifier] = None,
        emotion: Optional[EmotionClassifier] = None,
        zero_shot: Optional[ZeroShotCrisisClassifier] = None,
        timeout: float = MOOD_CLASSIFIER_TIMEOUT_SECONDS,
    ) -> None:
        self.sentiment = sentiment
        self.emotion = emotion
        self.zero_shot = zero_shot
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return any(c is not None for c in (self.sentiment, self.emotion, self.zero_shot))


def build_classifiers(
    *,
    enabled: bool = MOOD_ML_ENABLED,
    factory: Optional[PipelineFactory] = None,
) -> ClassifierSet:
    """Construct the adapters; no model is downloaded until first use."""
    if not enabled:
        logger.info("Local ML classifiers disabled (MOOD_ML_ENABLED=false)")
        return ClassifierSet()
    return ClassifierSet(
        sentiment=SentimentClassifier(LazyPipeline("sentiment-analysis", MOOD_SENTIMENT_MODEL, factory)),
        emotion=EmotionClassifier(LazyPipeline("text-classification", MOOD_EMOTION_MODEL, factory)),
        zero_shot=ZeroShotCrisisClassifier(LazyPipeline("zero-shot-classification", MOOD_ZERO_SHOT_MODEL, factory)),
    )
