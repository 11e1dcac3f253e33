"""
Data model for the skin analytics engine.

Inputs (snapshots, journal entries, breakouts, usage logs, catalog entries)
arrive as camelCase JSON from the persistence layer; every type here can be
built with ``from_dict`` and serialised back with ``to_dict``. Derived types
are plain result containers, never persisted by the engine.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

# Python field name -> JSON key where plain camelCase is not the wire name
_JSON_KEYS = {
    "trigger_type": "type",
    "kind": "type",
}


def _camel(name: str) -> str:
    if name in _JSON_KEYS:
        return _JSON_KEYS[name]
    head, *rest = name.split("_")
    return head + "".join(p.title() for p in rest)


def to_jsonable(value: Any) -> Any:
    """Recursively convert dataclasses / pydantic models into plain JSON data."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            _camel(f.name): to_jsonable(getattr(value, f.name))
            for f in dataclasses.fields(value)
        }
    if hasattr(value, "model_dump"):
        return value.model_dump(by_alias=True)
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _num(value: Any, default: float = 0.0) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def day_of(value: Any) -> date:
    """Normalise an ISO string, epoch-ms number, date or datetime to a UTC calendar day."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc).date()
    text = str(value).strip()
    if len(text) > 10:
        return day_of(datetime.fromisoformat(text.replace("Z", "+00:00")))
    return date.fromisoformat(text)


def day_key(value: Any) -> str:
    """``YYYY-MM-DD`` string used for window filtering and date matching."""
    return day_of(value).isoformat()


class JsonMixin:
    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(self)


# ─── Inputs ────────────────────────────────────────────────


@dataclass(frozen=True)
class SkinScores(JsonMixin):
    hydration: float = 0.0
    texture: float = 0.0
    brightness: float = 0.0
    evenness: float = 0.0
    elasticity: float = 0.0
    pore_visibility: float = 0.0
    jawline: float = 0.0
    symmetry: float = 0.0
    overall: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SkinScores":
        # Vision payloads use the long names (hydrationLevel, skinTexture, ...)
        return cls(
            hydration=_num(_pick(data, "hydration", "hydrationLevel")),
            texture=_num(_pick(data, "texture", "skinTexture")),
            brightness=_num(_pick(data, "brightness", "brightnessGlow")),
            evenness=_num(_pick(data, "evenness")),
            elasticity=_num(_pick(data, "elasticity")),
            pore_visibility=_num(_pick(data, "poreVisibility", "pore_visibility")),
            jawline=_num(_pick(data, "jawline", "jawlineSharpness")),
            symmetry=_num(_pick(data, "symmetry", "facialSymmetry")),
            overall=_num(_pick(data, "overall", "overallScore")),
        )


@dataclass(frozen=True)
class AnalysisSnapshot(JsonMixin):
    timestamp_ms: int
    scores: SkinScores
    skin_type: str = ""
    skin_concerns: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisSnapshot":
        scores = _pick(data, "scores", "detailedScores", default={})
        return cls(
            timestamp_ms=int(_num(_pick(data, "timestampMs", "timestamp_ms", "timestamp"))),
            scores=SkinScores.from_dict(scores),
            skin_type=str(_pick(data, "skinType", "skin_type", default="")),
            skin_concerns=tuple(_pick(data, "skinConcerns", "skin_concerns", default=())),
        )


@dataclass(frozen=True)
class JournalEntry(JsonMixin):
    date: str
    sleep_hours: float = 0.0
    water_intake_glasses: float = 0.0
    stress_level: float = 0.0
    mood: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JournalEntry":
        return cls(
            date=day_key(_pick(data, "dateISO", "date", "timestamp")),
            sleep_hours=_num(_pick(data, "sleepHours", "sleep_hours")),
            water_intake_glasses=_num(_pick(data, "waterIntakeGlasses", "waterIntake", "water_intake")),
            stress_level=_num(_pick(data, "stressLevel", "stress_level")),
            mood=str(_pick(data, "mood", default="")).lower(),
        )


@dataclass(frozen=True)
class BreakoutEvent(JsonMixin):
    date: str
    severity: float
    location: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BreakoutEvent":
        return cls(
            date=day_key(_pick(data, "dateISO", "date")),
            severity=_num(_pick(data, "severity")),
            location=str(_pick(data, "location", default="")),
        )


@dataclass(frozen=True)
class ProductUsageRecord(JsonMixin):
    product_id: str
    product_name: str
    date_started: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProductUsageRecord":
        return cls(
            product_id=str(_pick(data, "productId", "product_id", default="")),
            product_name=str(_pick(data, "productName", "product_name", default="")),
            date_started=day_key(_pick(data, "dateStartedISO", "dateStarted", "date_started")),
        )


@dataclass(frozen=True)
class RegionalAvailability(JsonMixin):
    country_code: str
    available: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegionalAvailability":
        return cls(
            country_code=str(_pick(data, "countryCode", "country_code", default="")).upper(),
            available=bool(_pick(data, "available", default=False)),
        )


@dataclass(frozen=True)
class CatalogProduct(JsonMixin):
    id: str
    brand: str
    name: str
    category: str
    key_ingredients: Tuple[str, ...] = ()
    regional_availability: Tuple[RegionalAvailability, ...] = ()
    target_skin_types: Tuple[str, ...] = ()
    target_concerns: Tuple[str, ...] = ()

    def is_available_in(self, country_code: Optional[str]) -> bool:
        if not country_code:
            return True
        code = country_code.upper()
        return any(a.country_code == code and a.available for a in self.regional_availability)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CatalogProduct":
        return cls(
            id=str(_pick(data, "id", default="")),
            brand=str(_pick(data, "brand", default="")),
            name=str(_pick(data, "name", default="")),
            category=str(_pick(data, "category", default="treatments")),
            key_ingredients=tuple(_pick(data, "keyIngredients", "key_ingredients", default=())),
            regional_availability=tuple(
                RegionalAvailability.from_dict(a)
                for a in _pick(data, "regionalAvailability", "regional_availability", default=())
            ),
            target_skin_types=tuple(
                str(s).lower() for s in _pick(data, "targetSkinTypes", "target_skin_types", default=())
            ),
            target_concerns=tuple(_pick(data, "targetConcerns", "target_concerns", default=())),
        )


@dataclass(frozen=True)
class SideEffectFlags(JsonMixin):
    irritation: bool = False
    breakouts: bool = False
    dryness: bool = False
    redness: bool = False

    @property
    def count(self) -> int:
        return sum((self.irritation, self.breakouts, self.dryness, self.redness))

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SideEffectFlags":
        data = data or {}
        return cls(
            irritation=bool(data.get("irritation")),
            breakouts=bool(data.get("breakouts")),
            dryness=bool(data.get("dryness")),
            redness=bool(data.get("redness")),
        )


@dataclass(frozen=True)
class SideEffectRecord(JsonMixin):
    date: str
    kind: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SideEffectRecord":
        return cls(
            date=day_key(_pick(data, "dateISO", "date")),
            kind=str(_pick(data, "type", "kind", default="")),
        )


@dataclass(frozen=True)
class PhotoAnalysis(JsonMixin):
    hydration: float
    texture: float
    brightness: float
    acne: float
    improvements: Tuple[str, ...] = ()

    @property
    def glow_average(self) -> float:
        return (self.hydration + self.texture + self.brightness + (100 - self.acne)) / 4

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PhotoAnalysis":
        return cls(
            hydration=_num(data.get("hydration")),
            texture=_num(data.get("texture")),
            brightness=_num(data.get("brightness")),
            acne=_num(data.get("acne")),
            improvements=tuple(data.get("improvements") or ()),
        )


@dataclass(frozen=True)
class ProgressPhoto(JsonMixin):
    timestamp_ms: int
    analysis: Optional[PhotoAnalysis] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgressPhoto":
        analysis = data.get("analysis")
        return cls(
            timestamp_ms=int(_num(_pick(data, "timestampMs", "timestamp"))),
            analysis=PhotoAnalysis.from_dict(analysis) if analysis else None,
        )


@dataclass(frozen=True)
class Badge(JsonMixin):
    id: str
    name: str = ""
    unlocked_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Badge":
        return cls(
            id=str(_pick(data, "id", default="")),
            name=str(_pick(data, "name", default="")),
            unlocked_at=_pick(data, "unlockedAt", "unlocked_at"),
        )


@dataclass(frozen=True)
class Achievement(JsonMixin):
    id: str
    name: str = ""
    completed: bool = False
    completed_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Achievement":
        return cls(
            id=str(_pick(data, "id", default="")),
            name=str(_pick(data, "name", default="")),
            completed=bool(_pick(data, "completed", default=False)),
            completed_at=_pick(data, "completedAt", "completed_at"),
        )


@dataclass(frozen=True)
class PointEvent(JsonMixin):
    points: float
    timestamp: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PointEvent":
        return cls(points=_num(data.get("points")), timestamp=str(data.get("timestamp", "")))


@dataclass(frozen=True)
class WeeklyLogs(JsonMixin):
    """Everything the weekly aggregator reads, snapshotted by the caller."""

    photos: Tuple[ProgressPhoto, ...] = ()
    journal_entries: Tuple[JournalEntry, ...] = ()
    completions: Tuple[str, ...] = ()
    badges: Tuple[Badge, ...] = ()
    achievements: Tuple[Achievement, ...] = ()
    point_events: Tuple[PointEvent, ...] = ()
    current_streak: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeeklyLogs":
        return cls(
            photos=tuple(ProgressPhoto.from_dict(p) for p in data.get("photos") or ()),
            journal_entries=tuple(
                JournalEntry.from_dict(j) for j in _pick(data, "journalEntries", "journal", default=())
            ),
            completions=tuple(str(c) for c in _pick(data, "completions", "dailyCompletions", default=())),
            badges=tuple(Badge.from_dict(b) for b in data.get("badges") or ()),
            achievements=tuple(Achievement.from_dict(a) for a in data.get("achievements") or ()),
            point_events=tuple(
                PointEvent.from_dict(p) for p in _pick(data, "pointEvents", "glowBoosts", default=())
            ),
            current_streak=int(_num(_pick(data, "currentStreak", "current_streak"))),
        )


# ─── Derived results ───────────────────────────────────────


@dataclass
class BarrierIndicators(JsonMixin):
    hydration: float
    sensitivity: float
    irritation: float
    recovery: float


@dataclass
class BarrierHealth(JsonMixin):
    score: int
    status: str
    indicators: BarrierIndicators
    recommendations: List[str]
    repair_priority: str


@dataclass
class TreatmentImpact(JsonMixin):
    hydration: float
    texture: float
    brightness: float
    acne: float
    overall: float


@dataclass
class TreatmentEvidence(JsonMixin):
    photos_analyzed: int
    consistent_improvement: bool
    side_effect_frequency: int


@dataclass
class TreatmentResponse(JsonMixin):
    product_id: str
    product_name: str
    days_used: int
    impact: TreatmentImpact
    side_effects: SideEffectFlags
    verdict: str
    recommendation: str
    confidence: float
    evidence: TreatmentEvidence


@dataclass
class AcneTrigger(JsonMixin):
    factor: str
    correlation: float
    frequency: float
    confidence: str
    recommendation: str
    trigger_type: str


@dataclass
class LifestyleCorrelation(JsonMixin):
    factor: str
    impact: str
    strength: int
    evidence: str
    recommendation: str
    actionable: bool


@dataclass
class MedicalAlert(JsonMixin):
    code: str
    severity: str
    message: str
    action: str


@dataclass
class WeeklyStats(JsonMixin):
    week_number: int
    start_date: str
    end_date: str
    days_completed: int
    photos_taken: int
    journal_entries: int
    points_earned: float
    achievements_unlocked: int
    badges_earned: int
    average_mood: float
    average_sleep: float
    average_water: float
    average_stress: float
    routine_completion_rate: float
    streak_days: int
    # None means "fewer than two analysed photos", not "no change"
    glow_score_change: Optional[float] = None
    top_improvements: List[str] = field(default_factory=list)
    highlights: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeeklyStats":
        """Rebuild stats a caller stored from an earlier ``to_dict``."""
        kwargs = {}
        for f in dataclasses.fields(cls):
            value = _pick(data, _camel(f.name), f.name)
            if value is not None:
                kwargs[f.name] = list(value) if isinstance(value, (list, tuple)) else value
        return cls(**kwargs)


@dataclass
class WeeklyTrends(JsonMixin):
    mood_trend: str = "stable"
    sleep_trend: str = "stable"
    water_trend: str = "stable"
    consistency_trend: str = "stable"


@dataclass
class WeeklySummary(JsonMixin):
    stats: WeeklyStats
    previous_week: Optional[WeeklyStats]
    trends: WeeklyTrends
    insights: List[str]
    recommendations: List[str]
    insight_source: str = "rules"


@dataclass
class PersonalizedProduct(JsonMixin):
    catalog_product: CatalogProduct
    ai_insight: Any  # ai_service.AIRecommendation
    match_score: int
    synthesized: bool = False
