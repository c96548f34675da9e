
from __future__ import annotations
from typing import Optional


class MoodEngineError(Exception):
    """Base error for the mood analytics service."""


class InvalidInputError(MoodEngineError, ValueError):
    """A record failed validation before entering the analysis pipeline."""


class ExternalCapabilityUnavailable(MoodEngineError):
    """An optional ML/LLM capability is missing, failed or timed out."""


class MalformedResponseError(ExternalCapabilityUnavailable):
    """A capability answered with a payload of unexpected shape."""


class UpstreamError(MoodEngineError):
    """Non-success answer from a hosted collaborator (LLM gateway, SMS provider)."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamRateLimitedError(UpstreamError):
    def __init__(self, message: str = "Upstream rate limit exceeded") -> None:
        super().__init__(message, status_code=429)


class UpstreamPaymentRequiredError(UpstreamError):
    def __init__(self, message: str = "Upstream credits exhausted") -> None:
        super().__init__(message, status_code=402)
