"""
Shared configuration utilities.
Single source of truth for AI-service credentials and engine tunables.
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()

# Keys copied from .env templates are not real credentials
_PLACEHOLDER_KEYS = {
    "your-api-key-here",
    "your-openai-api-key-here",
    "your-google-api-key-here",
    "changeme",
}


def get_ai_api_key() -> str:
    """Return the AI-service API key, or "" when unset or a placeholder.

    Checks GOOGLE_API_KEY first (Gemini via CrewAI), falls back to AI_API_KEY.
    """
    key = (os.getenv("GOOGLE_API_KEY") or os.getenv("AI_API_KEY") or "").strip()
    if key.lower() in _PLACEHOLDER_KEYS:
        return ""
    return key


def get_ai_model() -> str:
    return os.getenv("AI_MODEL", "gemini/gemini-2.5-flash").strip()


def get_ai_temperature() -> float:
    return float(os.getenv("AI_TEMPERATURE", "0.3"))


def get_ai_timeout() -> float:
    return float(os.getenv("AI_TIMEOUT_SEC", "30"))


def get_rate_limit() -> int:
    return int(os.getenv("AI_RATE_LIMIT", "10"))


def get_rate_limit_window() -> float:
    return float(os.getenv("AI_RATE_LIMIT_WINDOW_SEC", "3600"))


def get_cache_ttl() -> float:
    return float(os.getenv("AI_CACHE_TTL_SEC", "900"))


def get_catalog_path() -> str:
    return os.getenv("CATALOG_PATH", "").strip()


def get_frontend_origins() -> list:
    raw = os.getenv("FRONTEND_ORIGINS", "")
    return [o.strip() for o in raw.split(",") if o.strip()] or [
        "http://localhost:8081",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
