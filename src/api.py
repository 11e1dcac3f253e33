"""
FastAPI presentation boundary for the skin analytics engine.

Handlers parse the request body into domain objects, call the pure engine
functions and return plain JSON dicts. Shared parsing lives in routes/helpers.py.
"""

from __future__ import annotations

import logging
import os
os.environ["CREWAI_DISABLE_SIGTERM"] = "true"
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

import settings
from ai_service import AIGenerationClient
from analytics.medical_alerts import check_medical_alerts
from analytics.skin_health import analyze_treatment_response, calculate_barrier_health
from analytics.triggers import generate_lifestyle_correlations, identify_acne_triggers
from errors import ConfigurationError
from models import CatalogProduct, SideEffectFlags, WeeklyLogs, WeeklyStats
from pipeline.recommendation_pipeline import RecommendationPipeline
from pipeline.weekly_summary import run_weekly_summary
from routes.helpers import (
    _breakouts, _catalog, _jsonable, _journal, _side_effect_records,
    _snapshot, _snapshots, _usage, _with_status,
)

log = logging.getLogger("api")


# ─── App setup ─────────────────────────────────────────────

app = FastAPI(title="Skin Analytics API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_frontend_origins(),
    allow_credentials=False,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

# None = not resolved yet; False = resolved, AI unavailable
app.state.ai_client = None


def _ai_client() -> Optional[AIGenerationClient]:
    """Build the AI client once; a missing key is logged once, then ignored."""
    if app.state.ai_client is None:
        try:
            app.state.ai_client = AIGenerationClient.from_env()
        except ConfigurationError as e:
            log.error("AI generation disabled: %s", e)
            app.state.ai_client = False
    return app.state.ai_client or None


# ─── Request bodies ────────────────────────────────────────

class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class BarrierHealthRequest(_Body):
    current: Dict[str, Any]
    history: List[Dict[str, Any]] = Field(default_factory=list)


class TreatmentResponseRequest(_Body):
    product: Dict[str, Any]
    baseline: Dict[str, Any]
    current: Dict[str, Any]
    days_used: int = Field(alias="daysUsed", ge=0)
    side_effects: Optional[Dict[str, Any]] = Field(default=None, alias="sideEffects")


class AcneTriggersRequest(_Body):
    journal_entries: List[Dict[str, Any]] = Field(default_factory=list, alias="journalEntries")
    breakouts: List[Dict[str, Any]] = Field(default_factory=list)
    products: List[Dict[str, Any]] = Field(default_factory=list)


class LifestyleRequest(_Body):
    journal_entries: List[Dict[str, Any]] = Field(default_factory=list, alias="journalEntries")


class MedicalAlertsRequest(_Body):
    history: List[Dict[str, Any]] = Field(default_factory=list)
    breakouts: List[Dict[str, Any]] = Field(default_factory=list)
    side_effects: List[Dict[str, Any]] = Field(default_factory=list, alias="sideEffects")
    now: Optional[str] = None


class WeeklySummaryRequest(_Body):
    date: Optional[str] = None
    logs: Dict[str, Any] = Field(default_factory=dict)
    previous_week: Optional[Dict[str, Any]] = Field(default=None, alias="previousWeek")
    user_id: str = Field(default="anonymous", alias="userId")
    use_ai: bool = Field(default=True, alias="useAi")


class RecommendationsRequest(_Body):
    snapshot: Dict[str, Any]
    region: Optional[str] = None
    catalog: Optional[List[Dict[str, Any]]] = None
    user_id: str = Field(default="anonymous", alias="userId")
    use_ai: bool = Field(default=True, alias="useAi")


def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def _previous_week(data: Optional[Dict[str, Any]]) -> Optional[WeeklyStats]:
    if not data:
        return None
    try:
        return WeeklyStats.from_dict(data)
    except TypeError as e:
        raise HTTPException(status_code=400, detail=f"invalid previousWeek: {e}")


# ─── Routes ────────────────────────────────────────────────

@app.get("/")
def root() -> Dict[str, Any]:
    return {"service": "skin-analytics-api", "status": "ok"}


@app.get("/health-check")
def health_check() -> Dict[str, Any]:
    return {
        "status": "Online",
        "ai_configured": bool(settings.get_ai_api_key()),
    }


@app.post("/api/v1/analytics/barrier-health")
def barrier_health(body: BarrierHealthRequest) -> Dict[str, Any]:
    try:
        current = _snapshot(body.current, "current")
        history = _snapshots(body.history)
        return {"barrier_health": _jsonable(calculate_barrier_health(current, history))}
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/v1/analytics/treatment-response")
def treatment_response(body: TreatmentResponseRequest) -> Dict[str, Any]:
    try:
        if not body.product.get("id") and not body.product.get("name"):
            raise HTTPException(status_code=400, detail="product id or name is required")
        product = CatalogProduct.from_dict(body.product)
        response = analyze_treatment_response(
            product,
            _snapshot(body.baseline, "baseline"),
            _snapshot(body.current, "current"),
            body.days_used,
            SideEffectFlags.from_dict(body.side_effects),
        )
        return {"treatment_response": _jsonable(response)}
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/v1/analytics/acne-triggers")
def acne_triggers(body: AcneTriggersRequest) -> Dict[str, Any]:
    try:
        triggers = identify_acne_triggers(
            _journal(body.journal_entries), _breakouts(body.breakouts), _usage(body.products)
        )
        return {"triggers": _jsonable(triggers)}
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/v1/analytics/lifestyle")
def lifestyle(body: LifestyleRequest) -> Dict[str, Any]:
    try:
        journal = _journal(body.journal_entries)
        return {
            "correlations": _jsonable(generate_lifestyle_correlations(journal)),
            "journal_entries": len(journal),
        }
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/v1/analytics/medical-alerts")
def medical_alerts(body: MedicalAlertsRequest) -> Dict[str, Any]:
    try:
        alerts = check_medical_alerts(
            _snapshots(body.history),
            _breakouts(body.breakouts),
            _side_effect_records(body.side_effects),
            body.now or _today(),
        )
        return {"alerts": _jsonable(alerts)}
    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/v1/weekly-summary")
def weekly_summary(body: WeeklySummaryRequest) -> Dict[str, Any]:
    try:
        logs = WeeklyLogs.from_dict(body.logs)
        client = _ai_client() if body.use_ai else None
        result = run_weekly_summary(
            body.date or _today(),
            logs,
            insight_client=client,
            user_id=body.user_id,
            previous_week=_previous_week(body.previous_week),
        )
        if not body.use_ai:
            result["degraded_reasons"] = []
            result["analysis_status"] = "success"
        return _with_status({"summary": _jsonable(result["summary"])}, result)
    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/v1/recommendations")
def recommendations(body: RecommendationsRequest) -> Dict[str, Any]:
    try:
        snapshot = _snapshot(body.snapshot)
        client = _ai_client() if body.use_ai else None
        pipeline = RecommendationPipeline(_catalog(body.catalog), client=client)
        result = pipeline.run(snapshot, region=body.region, user_id=body.user_id)
        if not body.use_ai:
            result["degraded_reasons"] = []
            result["analysis_status"] = "success"
        return _with_status({"products": _jsonable(result["products"])}, result)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
