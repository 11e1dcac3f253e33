"""
Skin Health Scoring
===================
Barrier-health scoring from photo-derived snapshots and before/after
treatment-response verdicts for a single product.

Both functions are pure: missing history degrades to neutral priors
(stability 100, recovery 50) instead of raising.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Mapping, Optional, Sequence, Union

from constants import SCORE_MAX, SCORE_MIN
from models import (
    AnalysisSnapshot,
    BarrierHealth,
    BarrierIndicators,
    SideEffectFlags,
    TreatmentEvidence,
    TreatmentImpact,
    TreatmentResponse,
)

log = logging.getLogger("skin_health")

NEUTRAL_STABILITY = 100.0
NEUTRAL_RECOVERY = 50.0
STABILITY_WINDOW = 3

# Weights for the composite barrier score
W_HYDRATION = 0.30
W_SENSITIVITY = 0.25
W_IRRITATION = 0.25
W_RECOVERY = 0.20

# (min score, status, repair priority, fixed recommendations)
BARRIER_STATUSES = (
    (80, "excellent", "low", (
        "Your skin barrier is healthy! Maintain with gentle products.",
    )),
    (65, "good", "low", (
        "Barrier is healthy but could be stronger. Focus on hydration.",
    )),
    (50, "compromised", "high", (
        "Barrier is compromised. Avoid harsh products and focus on repair.",
        "Use ceramides, niacinamide, and fatty acids to rebuild barrier.",
        "Avoid exfoliants and active ingredients until barrier recovers.",
    )),
    (SCORE_MIN, "damaged", "high", (
        "Barrier is damaged. Immediate repair needed.",
        "Use barrier repair products with ceramides, cholesterol, and fatty acids.",
        "Avoid ALL active ingredients (retinol, AHA, BHA) until healed.",
        "Consider seeing a dermatologist if irritation persists.",
    )),
)
LOW_HYDRATION_TIP = "Increase hydration with hyaluronic acid and glycerin."
HIGH_SENSITIVITY_TIP = "Reduce sensitivity by avoiding fragrances and harsh ingredients."

VERDICT_MESSAGES = {
    "harmful": "This product is causing side effects. Stop using it immediately "
               "and consult a dermatologist if symptoms persist.",
    "excellent": "Excellent results! This product is working well for your skin. "
                 "Continue using as directed.",
    "good": "Good results. This product is helping your skin. Continue monitoring.",
    "poor": "This product may not be suitable. Consider discontinuing or reducing frequency.",
    "neutral": "Continue monitoring. Results are neutral so far. Give it more time "
               "(at least 4-6 weeks for active ingredients).",
}
EARLY_RESULTS_CAVEAT = "Note: Most products need 4-6 weeks to show full results."
EARLY_RESULTS_DAYS = 14
EARLY_CONFIDENCE_CAP = 50


def clamp_score(value: float) -> float:
    return max(float(SCORE_MIN), min(float(SCORE_MAX), value))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ─── Barrier health ────────────────────────────────────────


def calculate_barrier_health(
    current: AnalysisSnapshot, history: Sequence[AnalysisSnapshot] = ()
) -> BarrierHealth:
    """Score skin-barrier integrity 0-100.

    Parameters
    ----------
    current : AnalysisSnapshot
        The snapshot being scored.
    history : sequence of AnalysisSnapshot
        Prior snapshots, newest first, not including ``current``.
    """
    scores = current.scores
    hydration = clamp_score(scores.hydration)
    texture = clamp_score(scores.texture)
    pores = clamp_score(scores.pore_visibility)

    recent = [s.scores.hydration for s in history[:STABILITY_WINDOW]]
    if len(recent) >= 2:
        stability = clamp_score(100 - (max(recent) - min(recent)))
    else:
        stability = NEUTRAL_STABILITY

    sensitivity = clamp_score(100 - stability - texture)
    irritation = clamp_score(0.5 * (100 - pores) + 0.5 * (100 - texture))

    if history:
        recovery = clamp_score(2 * (scores.hydration - history[0].scores.hydration))
    else:
        recovery = NEUTRAL_RECOVERY

    raw = (
        W_HYDRATION * hydration
        + W_SENSITIVITY * (100 - sensitivity)
        + W_IRRITATION * (100 - irritation)
        + W_RECOVERY * recovery
    )
    score = int(clamp_score(round_half_up(raw)))

    for threshold, status, priority, tips in BARRIER_STATUSES:
        if score >= threshold:
            break
    recommendations = list(tips)
    if hydration < 60:
        recommendations.append(LOW_HYDRATION_TIP)
    if sensitivity > 40:
        recommendations.append(HIGH_SENSITIVITY_TIP)

    log.debug("barrier score=%d status=%s (history=%d)", score, status, len(history))
    return BarrierHealth(
        score=score,
        status=status,
        indicators=BarrierIndicators(
            hydration=hydration,
            sensitivity=sensitivity,
            irritation=irritation,
            recovery=recovery,
        ),
        recommendations=recommendations,
        repair_priority=priority,
    )


# ─── Treatment response ────────────────────────────────────


def _verdict(overall_change: float, side_effect_count: int) -> str:
    # Order matters: harmful beats any score improvement
    if side_effect_count >= 2:
        return "harmful"
    if overall_change > 10 and side_effect_count == 0:
        return "excellent"
    if overall_change > 5 and side_effect_count == 0:
        return "good"
    if overall_change < -5 or side_effect_count > 0:
        return "poor"
    return "neutral"


def analyze_treatment_response(
    product: Any,
    baseline: AnalysisSnapshot,
    current: AnalysisSnapshot,
    days_used: int,
    side_effects: Optional[Union[SideEffectFlags, Mapping[str, Any]]] = None,
) -> TreatmentResponse:
    """Judge one product's effect from a baseline and a current snapshot.

    ``product`` is anything exposing ``id`` and ``name`` (a CatalogProduct
    in practice). Side-effect flags are normalised to booleans.
    """
    if not isinstance(side_effects, SideEffectFlags):
        side_effects = SideEffectFlags.from_dict(side_effects)

    before, after = baseline.scores, current.scores
    hydration_change = after.hydration - before.hydration
    texture_change = after.texture - before.texture
    brightness_change = after.brightness - before.brightness
    # lower pore visibility is improvement
    acne_change = before.pore_visibility - after.pore_visibility
    overall_change = (hydration_change + texture_change + brightness_change - acne_change) / 4

    count = side_effects.count
    verdict = _verdict(overall_change, count)
    recommendation = VERDICT_MESSAGES[verdict]

    days_used = max(0, int(days_used))
    confidence = min(100, days_used * 2)
    if days_used < EARLY_RESULTS_DAYS:
        confidence = min(confidence, EARLY_CONFIDENCE_CAP)
        recommendation = f"{recommendation} {EARLY_RESULTS_CAVEAT}"

    return TreatmentResponse(
        product_id=str(getattr(product, "id", "")),
        product_name=str(getattr(product, "name", "")),
        days_used=days_used,
        impact=TreatmentImpact(
            hydration=hydration_change,
            texture=texture_change,
            brightness=brightness_change,
            acne=acne_change,
            overall=overall_change,
        ),
        side_effects=side_effects,
        verdict=verdict,
        recommendation=recommendation,
        confidence=float(confidence),
        evidence=TreatmentEvidence(
            photos_analyzed=2,
            consistent_improvement=overall_change > 0,
            side_effect_frequency=count,
        ),
    )
