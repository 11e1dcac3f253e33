"""
AI Generation Service Boundary
==============================
Everything that touches the external generative model lives here:

  - prompt builders (skin profile, catalog listing, weekly insight context)
  - tolerant JSON extraction from raw model text
  - strict pydantic schema validation -> ParseResult (never partial data)
  - injectable RateLimiter (limits) / ResponseCache, no module-level state
  - AIGenerationClient wrapping a CrewAI ``LLM``

Callers treat any failure here as "no AI data" and use their rule-based path.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from crewai import LLM
from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage, Storage
from limits.strategies import FixedWindowRateLimiter
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

import settings
from errors import ConfigurationError, ExternalServiceError, RateLimitExceeded
from models import AnalysisSnapshot, CatalogProduct, WeeklyStats, WeeklyTrends

log = logging.getLogger("ai_service")


# ─── Response schemas ──────────────────────────────────────


class AIRecommendation(BaseModel):
    """One product suggestion from the generation service (untrusted input)."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    category: str
    product_name: str = Field(alias="productName")
    brand_name: str = Field(alias="brandName")
    personal_reason: str = Field(alias="personalReason")
    why_for_you: List[str] = Field(alias="whyForYou")
    skin_type_match: str = Field(alias="skinTypeMatch")
    concerns_addressed: List[str] = Field(alias="concernsAddressed")
    avoid_reason: Optional[str] = Field(default=None, alias="avoidReason")
    priority_order: int = Field(alias="priorityOrder")
    usage_tip: str = Field(alias="usageTip")

    @field_validator("category")
    @classmethod
    def _normalise_category(cls, value: str) -> str:
        return value.strip().lower()


class AIInsights(BaseModel):
    """Weekly insight payload: free-text lines the summary merges with rules."""

    insights: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    wins: List[str] = Field(default_factory=list)


@dataclass(frozen=True)
class ParseResult:
    """Either a fully validated value or an error message, never both."""

    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any) -> "ParseResult":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "ParseResult":
        return cls(error=error)


# ─── JSON extraction / validation ──────────────────────────

_FENCED = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)


def extract_json(text: Optional[str]) -> Any:
    """Parse model output that may wrap JSON in code fences or prose.

    Tries, in order: the raw text, the first fenced block, the outermost
    ``{...}`` span, the outermost ``[...]`` span. Returns None if all fail.
    """
    raw = str(text or "").strip()
    if not raw:
        return None

    candidates = [raw]
    fenced = _FENCED.search(raw)
    if fenced:
        candidates.append(fenced.group(1))
    for open_ch, close_ch in (("{", "}"), ("[", "]")):
        first, last = raw.find(open_ch), raw.rfind(close_ch)
        if 0 <= first < last:
            candidates.append(raw[first:last + 1])

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue
    return None


def parse_recommendations(text: Optional[str]) -> ParseResult:
    """Validate a recommendation payload (object with ``recommendations`` or bare array)."""
    payload = extract_json(text)
    if payload is None:
        return ParseResult.failure("response is not valid JSON")
    items = payload.get("recommendations") if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        return ParseResult.failure("response has no recommendations array")
    try:
        recs = [AIRecommendation.model_validate(item) for item in items]
    except ValidationError as e:
        return ParseResult.failure(f"recommendation failed schema validation: {e.error_count()} error(s)")
    return ParseResult.success(recs)


def parse_insights(text: Optional[str]) -> ParseResult:
    payload = extract_json(text)
    if not isinstance(payload, dict):
        return ParseResult.failure("insight response is not a JSON object")
    try:
        return ParseResult.success(AIInsights.model_validate(payload))
    except ValidationError as e:
        return ParseResult.failure(f"insights failed schema validation: {e.error_count()} error(s)")


# ─── Rate limiting / caching ───────────────────────────────


class RateLimiter:
    """Fixed-window call budget per key (user id), counted by ``limits``.

    Pass a shared ``storage`` to let several limiters (or processes, with a
    networked backend) draw from the same budget.
    """

    def __init__(
        self,
        limit: int = 10,
        window_seconds: float = 3600.0,
        storage: Optional[Storage] = None,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._item = RateLimitItemPerSecond(limit, max(1, int(window_seconds)))
        self._storage = storage if storage is not None else MemoryStorage()
        self._strategy = FixedWindowRateLimiter(self._storage)

    def allow(self, key: str) -> bool:
        return self._strategy.hit(self._item, key)

    def reset(self, key: Optional[str] = None) -> None:
        if key is None:
            self._storage.reset()
        else:
            self._strategy.clear(self._item, key)


class ResponseCache:
    """TTL cache for raw model responses keyed by prompt hash."""

    def __init__(
        self,
        ttl_seconds: float = 900.0,
        max_entries: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, Tuple[float, str]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def make_key(*parts: str) -> str:
        return hashlib.sha256("\x1f".join(parts).encode("utf-8")).hexdigest()

    def get(self, key: str) -> Optional[str]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if now >= expires_at:
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: str) -> None:
        with self._lock:
            if len(self._entries) >= self.max_entries and key not in self._entries:
                oldest = min(self._entries, key=lambda k: self._entries[k][0])
                del self._entries[oldest]
            self._entries[key] = (self._clock() + self.ttl_seconds, value)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


# ─── Prompt builders ───────────────────────────────────────


def build_skin_profile_prompt(snapshot: AnalysisSnapshot) -> str:
    s = snapshot.scores
    weak: List[str] = []
    strong: List[str] = []

    for label_low, label_high, value in (
        ("low hydration", "good hydration", s.hydration),
        ("dull/low brightness", "good brightness", s.brightness),
        ("rough texture", "smooth texture", s.texture),
        ("uneven tone", "even skin tone", s.evenness),
    ):
        if value < 60:
            weak.append(f"{label_low} ({value:g}%)")
        elif value >= 80:
            strong.append(f"{label_high} ({value:g}%)")
    if s.pore_visibility > 60:
        weak.append(f"visible pores ({s.pore_visibility:g}%)")
    if s.elasticity < 60:
        weak.append(f"low elasticity ({s.elasticity:g}%)")
    if s.jawline < 60:
        weak.append(f"soft jawline definition ({s.jawline:g}%)")

    concerns = ", ".join(snapshot.skin_concerns) or "None identified"
    return (
        "EXACT SKIN PROFILE:\n"
        f"- Skin Type: {snapshot.skin_type or 'unknown'}\n"
        f"- Overall Score: {s.overall:g}/100\n\n"
        "DETAILED SCORES:\n"
        f"- Hydration: {s.hydration:g}%\n"
        f"- Brightness/Glow: {s.brightness:g}%\n"
        f"- Texture: {s.texture:g}%\n"
        f"- Pore Visibility: {s.pore_visibility:g}%\n"
        f"- Evenness: {s.evenness:g}%\n"
        f"- Elasticity: {s.elasticity:g}%\n"
        f"- Jawline: {s.jawline:g}%\n"
        f"- Symmetry: {s.symmetry:g}%\n\n"
        f"SKIN CONCERNS: {concerns}\n"
        f"PROBLEM AREAS: {', '.join(weak) if weak else 'None significant'}\n"
        f"STRENGTHS: {', '.join(strong) if strong else 'Average across the board'}\n"
    )


def available_product_listing(catalog: Sequence[CatalogProduct], region: Optional[str] = None) -> str:
    """Catalog names grouped by category, restricted to the region when given."""
    by_category: Dict[str, List[str]] = {}
    for p in catalog:
        if p.is_available_in(region):
            by_category.setdefault(p.category, []).append(f"{p.brand} - {p.name}")
    return "\n".join(f"{cat}: {'; '.join(names)}" for cat, names in by_category.items())


def build_recommendation_prompt(
    snapshot: AnalysisSnapshot, catalog: Sequence[CatalogProduct], region: Optional[str] = None
) -> str:
    return (
        "You are a board-certified dermatologist. Based on this patient's EXACT skin "
        "analysis data, recommend the most specific skincare products from the "
        "available database.\n\n"
        f"{build_skin_profile_prompt(snapshot)}\n"
        "AVAILABLE PRODUCTS IN DATABASE (you MUST pick from these exact products):\n"
        f"{available_product_listing(catalog, region)}\n\n"
        "RULES:\n"
        "1. Pick the best product for each category based on THIS person's scores and concerns.\n"
        "2. Every recommendation must reference the user's actual scores and concerns.\n"
        "3. Order by priority (1 = most urgent, based on the weakest scores).\n"
        "4. Include a cleanser, serum, moisturizer, and sunscreen at minimum.\n"
        "5. Add a treatment if there are specific concerns like acne or hyperpigmentation.\n\n"
        "Return ONLY a JSON object of the form:\n"
        '{"recommendations": [{"category": "cleansers", "productName": "...", '
        '"brandName": "...", "personalReason": "...", "whyForYou": ["...", "...", "..."], '
        '"skinTypeMatch": "...", "concernsAddressed": ["..."], "priorityOrder": 1, '
        '"usageTip": "..."}]}'
    )


def build_insight_prompt(stats: WeeklyStats, trends: WeeklyTrends) -> str:
    glow = "n/a" if stats.glow_score_change is None else f"{stats.glow_score_change:+.1f}"
    return (
        "You are a skincare coach reviewing one week of a user's tracking data.\n\n"
        f"WEEK: {stats.start_date} to {stats.end_date}\n"
        f"- Routine days completed: {stats.days_completed}/7\n"
        f"- Photos taken: {stats.photos_taken}\n"
        f"- Journal entries: {stats.journal_entries}\n"
        f"- Average mood (1-4): {stats.average_mood:.1f} ({trends.mood_trend})\n"
        f"- Average sleep (h): {stats.average_sleep:.1f} ({trends.sleep_trend})\n"
        f"- Average water (glasses): {stats.average_water:.1f} ({trends.water_trend})\n"
        f"- Average stress (1-5): {stats.average_stress:.1f}\n"
        f"- Consistency trend: {trends.consistency_trend}\n"
        f"- Glow score change: {glow}\n\n"
        "Return ONLY a JSON object: "
        '{"insights": [string], "recommendations": [string], "wins": [string]} '
        "with at most 3 short sentences per list."
    )


# ─── Client ────────────────────────────────────────────────


class AIGenerationClient:
    """Thin, injectable wrapper around the generation model.

    Raises ConfigurationError at construction when no credentials exist;
    per-request failures surface as ExternalServiceError (or its
    RateLimitExceeded subclass) from ``complete``.
    """

    def __init__(
        self,
        api_key: str = "",
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
        limiter: Optional[RateLimiter] = None,
        cache: Optional[ResponseCache] = None,
        llm: Any = None,
    ):
        if not api_key and llm is None:
            raise ConfigurationError(
                "AI service API key is not configured (set GOOGLE_API_KEY or AI_API_KEY)"
            )
        self.api_key = api_key
        self.model = model or settings.get_ai_model()
        self.temperature = settings.get_ai_temperature() if temperature is None else temperature
        self.timeout = settings.get_ai_timeout() if timeout is None else timeout
        self.limiter = limiter
        self.cache = cache
        self._llm = llm

    @classmethod
    def from_env(cls) -> "AIGenerationClient":
        return cls(
            api_key=settings.get_ai_api_key(),
            limiter=RateLimiter(settings.get_rate_limit(), settings.get_rate_limit_window()),
            cache=ResponseCache(settings.get_cache_ttl()),
        )

    def _get_llm(self) -> Any:
        if self._llm is None:
            self._llm = LLM(
                model=self.model,
                api_key=self.api_key,
                temperature=self.temperature,
                timeout=self.timeout,
            )
        return self._llm

    def complete(self, prompt: str, user_id: str = "anonymous") -> str:
        cache_key = ResponseCache.make_key(self.model, prompt)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                log.debug("AI response served from cache")
                return cached

        if self.limiter is not None and not self.limiter.allow(user_id):
            raise RateLimitExceeded(f"AI rate limit reached for user {user_id}")

        try:
            text = self._get_llm().call([{"role": "user", "content": prompt}])
        except Exception as e:
            raise ExternalServiceError(f"AI generation call failed: {e}") from e

        text = str(text or "").strip()
        if not text:
            raise ExternalServiceError("AI generation call returned an empty response")
        if self.cache is not None:
            self.cache.set(cache_key, text)
        return text

    def recommend_products(
        self,
        snapshot: AnalysisSnapshot,
        catalog: Sequence[CatalogProduct],
        region: Optional[str] = None,
        user_id: str = "anonymous",
    ) -> ParseResult:
        text = self.complete(build_recommendation_prompt(snapshot, catalog, region), user_id)
        return parse_recommendations(text)

    def generate_insights(
        self, stats: WeeklyStats, trends: WeeklyTrends, user_id: str = "anonymous"
    ) -> ParseResult:
        text = self.complete(build_insight_prompt(stats, trends), user_id)
        return parse_insights(text)
