# -*- coding: utf-8 -*-
"""
Mood insights API
-----------------
- GET /mood/insights       : patterns, trigger words, trend and insights
- GET /mood/report/summary : numbers behind the clinical summary report

Both read the caller's stored history. Fewer than five entries is a normal
answer (``entries_needed`` tells the client how many are missing).
"""

from __future__ import annotations

import logging
from typing import Any, Dict

import httpx
from fastapi import Depends, FastAPI, Query

from mood_engine.errors import UpstreamError
from mood_engine.pipeline import perform_trend_analysis
from mood_engine.report import summarize_for_report

from .auth import current_user_id
from .http_errors import to_http_exception
from .mood_store import fetch_crisis_events, fetch_mood_history
from .observability import elapsed_ms, log_event, monotonic_ms, new_run_id

logger = logging.getLogger("mood_insights")

INSIGHTS_HISTORY_LIMIT = 100
REPORT_HISTORY_LIMIT = 500


def register_mood_insights_routes(app: FastAPI) -> None:

    @app.get("/mood/insights")
    async def mood_insights(
        limit: int = Query(default=INSIGHTS_HISTORY_LIMIT, ge=1, le=REPORT_HISTORY_LIMIT),
        user_id: str = Depends(current_user_id),
    ) -> Dict[str, Any]:
        run_id = new_run_id("insights")
        started = monotonic_ms()
        try:
            entries = await fetch_mood_history(user_id, limit=limit)
        except (UpstreamError, httpx.HTTPError, RuntimeError) as exc:
            raise to_http_exception(exc, what="load mood history")

        analysis = await perform_trend_analysis(entries)
        log_event(
            logger,
            "mood_insights_built",
            run_id=run_id,
            user_id=user_id,
            entries=analysis.entry_count,
            direction=analysis.mood_trend.direction,
            insights=len(analysis.insights),
            elapsed_ms=elapsed_ms(started),
        )
        return analysis.to_dict()

    @app.get("/mood/report/summary")
    async def mood_report_summary(
        user_id: str = Depends(current_user_id),
    ) -> Dict[str, Any]:
        try:
            entries = await fetch_mood_history(user_id, limit=REPORT_HISTORY_LIMIT)
            events = await fetch_crisis_events(user_id)
        except (UpstreamError, httpx.HTTPError, RuntimeError) as exc:
            raise to_http_exception(exc, what="load report data")

        summary = summarize_for_report(entries, crisis_events=events)
        log_event(
            logger,
            "mood_report_summary_built",
            user_id=user_id,
            entries=summary.entry_count,
            trend=summary.trend_label,
            unresolved_crisis=summary.unresolved_crisis_count,
        )
        return summary.to_dict()
