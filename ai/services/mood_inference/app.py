# -*- coding: utf-8 -*-
"""
Mood Insights API
-----------------
- POST /mood/entries, GET /mood/entries
- GET  /mood/insights, GET /mood/report/summary
- POST /mood/analyze, POST /mood/analyze/ai
- POST /ai/goals, POST /ai/recommendations
- POST /chat
- POST /alerts/emergency
- GET  /healthz

Notes:
- Classifiers, the LLM client and the SMS client are built once in the
  lifespan and shared through ``app.state.capabilities``.
- Classifier models are downloaded lazily on first use, so startup is fast.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api_chat import register_chat_routes
from .api_emergency_alert import register_emergency_alert_routes
from .api_mood_analyze import register_mood_analyze_routes
from .api_mood_insights import register_mood_insights_routes
from .api_mood_submit import register_mood_submit_routes
from .api_wellness_ai import register_wellness_ai_routes
from .capabilities import build_capabilities
from .supabase_client import aclose_async_client

APP_NAME = os.getenv("MOOD_APP_NAME", "Mood Insights")
PORT = int(os.getenv("MOOD_PORT", "8765"))
HOST = os.getenv("MOOD_HOST", "0.0.0.0")
# For release, set MOOD_CORS_ORIGINS to a comma-separated list of allowed origins.
ALLOWED_ORIGINS_RAW = os.getenv("MOOD_CORS_ORIGINS", "*")
ALLOWED_ORIGINS = [o.strip() for o in ALLOWED_ORIGINS_RAW.split(",") if o.strip()] or ["*"]

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("mood_app")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    if getattr(app.state, "capabilities", None) is None:
        app.state.capabilities = build_capabilities()
    logger.info(
        "%s starting: ml=%s llm=%s sms=%s",
        APP_NAME,
        app.state.capabilities.classifiers.enabled,
        app.state.capabilities.llm.configured,
        app.state.capabilities.sms.configured,
    )
    try:
        yield
    finally:
        await app.state.capabilities.aclose()
        await aclose_async_client()


def create_app() -> FastAPI:
    app = FastAPI(title=APP_NAME, version="1.0.0", lifespan=lifespan)
    app.state.capabilities = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=ALLOWED_ORIGINS != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_mood_submit_routes(app)
    register_mood_insights_routes(app)
    register_mood_analyze_routes(app)
    register_wellness_ai_routes(app)
    register_chat_routes(app)
    register_emergency_alert_routes(app)

    @app.get("/healthz")
    def healthz() -> Dict[str, Any]:
        return {"status": "ok", "app": APP_NAME}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("mood_inference.app:app", host=HOST, port=PORT, log_level="info")
