"""
Contract/behavior tests for src/api.py.

Route functions are called directly with request models; the AI client is
monkeypatched so nothing leaves the process. Validates:
- response shapes (camelCase payloads, status fields)
- 400 on malformed bodies
- AI configuration resolved once and degraded output served afterwards
"""
from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException

import api as api_mod
from ai_service import AIInsights, ParseResult
from errors import ConfigurationError

DAY_MS = 24 * 60 * 60 * 1000
BASE_MS = 1772409600000


def _snap(day=0, hydration=70, texture=70):
    return {
        "timestampMs": BASE_MS + day * DAY_MS,
        "scores": {
            "hydration": hydration, "texture": texture, "brightness": 70,
            "evenness": 70, "elasticity": 70, "poreVisibility": 30,
            "jawline": 70, "symmetry": 70, "overall": 70,
        },
        "skinType": "dry",
        "skinConcerns": ["dryness"],
    }


@pytest.fixture(autouse=True)
def reset_ai_state(monkeypatch):
    monkeypatch.setattr(api_mod.app.state, "ai_client", None)


def test_root_and_health_check(monkeypatch):
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    monkeypatch.delenv("AI_API_KEY", raising=False)
    assert api_mod.root()["status"] == "ok"
    out = api_mod.health_check()
    assert out["status"] == "Online"
    assert out["ai_configured"] is False


def test_barrier_health_shape():
    body = api_mod.BarrierHealthRequest(current=_snap(1), history=[_snap(0, hydration=60)])
    out = api_mod.barrier_health(body)["barrier_health"]
    assert set(out) == {"score", "status", "indicators", "recommendations", "repairPriority"}
    assert out["indicators"]["recovery"] == 20
    assert 0 <= out["score"] <= 100


def test_barrier_health_missing_current_is_400():
    body = api_mod.BarrierHealthRequest(current={})
    with pytest.raises(HTTPException) as exc:
        api_mod.barrier_health(body)
    assert exc.value.status_code == 400


def test_treatment_response_accepts_camel_case_body():
    body = api_mod.TreatmentResponseRequest.model_validate({
        "product": {"id": "p1", "name": "Serum"},
        "baseline": _snap(0, hydration=50),
        "current": _snap(30, hydration=65),
        "daysUsed": 30,
        "sideEffects": {"irritation": True, "dryness": True},
    })
    out = api_mod.treatment_response(body)["treatment_response"]
    assert out["verdict"] == "harmful"
    assert out["productName"] == "Serum"
    assert out["sideEffects"]["dryness"] is True


def test_acne_triggers_bad_date_is_400():
    body = api_mod.AcneTriggersRequest(breakouts=[{"date": "not-a-date", "severity": 3}])
    with pytest.raises(HTTPException) as exc:
        api_mod.acne_triggers(body)
    assert exc.value.status_code == 400


def test_lifestyle_sparse_journal_is_empty():
    body = api_mod.LifestyleRequest(journalEntries=[{"date": "2026-03-02", "sleepHours": 9}])
    out = api_mod.lifestyle(body)
    assert out == {"correlations": [], "journal_entries": 1}


def test_medical_alerts_severe_reaction():
    body = api_mod.MedicalAlertsRequest(
        sideEffects=[{"date": "2026-03-02", "type": "allergic reaction"}],
        now="2026-03-04",
    )
    alerts = api_mod.medical_alerts(body)["alerts"]
    assert alerts == [{
        "code": "severe_reaction",
        "severity": "high",
        "message": "Severe skin reactions detected",
        "action": "Stop using the product immediately. If symptoms persist, seek medical attention.",
    }]


def test_weekly_summary_without_ai_key_is_degraded(monkeypatch, caplog):
    def no_key():
        raise ConfigurationError("no key")

    monkeypatch.setattr(api_mod.AIGenerationClient, "from_env", staticmethod(no_key))
    body = api_mod.WeeklySummaryRequest(
        date="2026-03-04",
        logs={"completions": ["2026-03-02", "2026-03-03"], "currentStreak": 2},
    )

    with caplog.at_level("ERROR", logger="api"):
        first = api_mod.weekly_summary(body)
        second = api_mod.weekly_summary(body)

    assert first["analysis_status"] == "degraded"
    assert first["degraded_reasons"] == ["ai_not_configured"]
    assert first["summary"]["stats"]["daysCompleted"] == 2
    assert first["summary"]["insightSource"] == "rules"
    assert second == first
    # configuration failure is reported once, not per request
    assert sum("AI generation disabled" in r.message for r in caplog.records) == 1


def test_weekly_summary_with_ai(monkeypatch):
    client = MagicMock()
    client.generate_insights.return_value = ParseResult.success(
        AIInsights(insights=["Hydration habits are strong."])
    )
    monkeypatch.setattr(api_mod.app.state, "ai_client", client)

    body = api_mod.WeeklySummaryRequest(date="2026-03-04", userId="u7")
    out = api_mod.weekly_summary(body)

    assert out["analysis_status"] == "success"
    assert out["summary"]["insights"][0] == "Hydration habits are strong."
    assert out["summary"]["insightSource"] == "ai+rules"


def test_weekly_summary_use_ai_false_skips_client(monkeypatch):
    client = MagicMock()
    monkeypatch.setattr(api_mod.app.state, "ai_client", client)
    out = api_mod.weekly_summary(api_mod.WeeklySummaryRequest(date="2026-03-04", useAi=False))
    client.generate_insights.assert_not_called()
    assert out["analysis_status"] == "success"
    assert out["summary"]["previousWeek"]["startDate"] == "2026-02-23"


def test_weekly_summary_previous_week_missing_fields_is_400():
    body = api_mod.WeeklySummaryRequest(date="2026-03-04", previousWeek={"weekNumber": 9}, useAi=False)
    with pytest.raises(HTTPException) as exc:
        api_mod.weekly_summary(body)
    assert exc.value.status_code == 400


def test_recommendations_cover_required_categories(monkeypatch):
    monkeypatch.setattr(api_mod.app.state, "ai_client", False)
    body = api_mod.RecommendationsRequest(snapshot=_snap(), region="US")
    out = api_mod.recommendations(body)

    assert out["analysis_status"] == "degraded"
    categories = {p["catalogProduct"]["category"] for p in out["products"]}
    assert {"cleansers", "serums", "moisturizers", "sunscreens"} <= categories
    assert all(p["matchScore"] == 72 for p in out["products"])


def test_recommendations_with_request_catalog(monkeypatch):
    monkeypatch.setattr(api_mod.app.state, "ai_client", False)
    catalog = [
        {"id": "only", "brand": "B", "name": "Gel", "category": "cleansers",
         "regionalAvailability": [{"countryCode": "US", "available": True}]},
    ]
    body = api_mod.RecommendationsRequest(snapshot=_snap(), catalog=catalog, useAi=False)
    out = api_mod.recommendations(body)
    assert [p["catalogProduct"]["id"] for p in out["products"]] == ["only"]
    assert out["degraded_reasons"] == []


def test_unexpected_error_is_500(monkeypatch):
    def boom(*_a, **_k):
        raise RuntimeError("engine exploded")

    monkeypatch.setattr(api_mod, "calculate_barrier_health", boom)
    with pytest.raises(HTTPException) as exc:
        api_mod.barrier_health(api_mod.BarrierHealthRequest(current=_snap()))
    assert exc.value.status_code == 500
    assert "engine exploded" in exc.value.detail
