"""
Exception taxonomy for the analytics engine.

Only boundary failures are exceptions. Sparse data and weak catalog matches
are not: they resolve to neutral values inside the computations.
"""

from __future__ import annotations


class SkinEngineError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(SkinEngineError):
    """Required AI-service configuration (API key, model) is missing."""


class ExternalServiceError(SkinEngineError):
    """The AI generation call failed, timed out or was refused."""


class AIResponseParseError(SkinEngineError):
    """The AI generation service returned a payload we cannot use."""


class RateLimitExceeded(ExternalServiceError):
    """The per-user AI call budget for the current window is spent."""


def degraded_reason(exc: BaseException) -> str:
    """Status tag reported by pipelines that fell back to rule-based output."""
    if isinstance(exc, ConfigurationError):
        return "ai_not_configured"
    if isinstance(exc, RateLimitExceeded):
        return "ai_rate_limited"
    if isinstance(exc, AIResponseParseError):
        return "ai_response_invalid"
    return "ai_call_failed"
