# -*- coding: utf-8 -*-
"""Map engine / upstream failures onto HTTPException."""

from __future__ import annotations

import logging

import httpx
from fastapi import HTTPException

from mood_engine.errors import (
    ExternalCapabilityUnavailable,
    MalformedResponseError,
    UpstreamError,
    UpstreamPaymentRequiredError,
    UpstreamRateLimitedError,
)

logger = logging.getLogger("mood_http_errors")

RATE_LIMITED_MESSAGE = "Too many requests. Please try again in a moment."
PAYMENT_REQUIRED_MESSAGE = "Please add credits to continue using AI features."


def to_http_exception(exc: Exception, *, what: str = "request") -> HTTPException:
    if isinstance(exc, UpstreamRateLimitedError):
        return HTTPException(status_code=429, detail=RATE_LIMITED_MESSAGE)
    if isinstance(exc, UpstreamPaymentRequiredError):
        return HTTPException(status_code=402, detail=PAYMENT_REQUIRED_MESSAGE)
    if isinstance(exc, MalformedResponseError):
        return HTTPException(status_code=502, detail=f"Unreadable response while processing {what}")
    if isinstance(exc, ExternalCapabilityUnavailable):
        return HTTPException(status_code=503, detail=str(exc) or "Service temporarily unavailable")
    if isinstance(exc, (UpstreamError, httpx.HTTPError)):
        return HTTPException(status_code=502, detail=f"Failed to {what}")
    if isinstance(exc, RuntimeError):
        # missing deployment configuration
        logger.error("Configuration error during %s: %s", what, exc)
        return HTTPException(status_code=500, detail="Server configuration is incomplete")
    return HTTPException(status_code=500, detail="Internal error")
