"""Rule-based safety net that flags patterns worth a dermatologist visit."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, List, Sequence

from constants import (
    PERSISTENT_ACNE_MIN_BREAKOUTS,
    PERSISTENT_ACNE_WINDOW_DAYS,
    RAPID_CHANGE_POINTS,
    RAPID_CHANGE_WINDOW_DAYS,
    SEVERE_SIDE_EFFECTS,
)
from models import AnalysisSnapshot, BreakoutEvent, MedicalAlert, SideEffectRecord, day_of

log = logging.getLogger("medical_alerts")

_MS_PER_DAY = 24 * 60 * 60 * 1000


def _persistent_acne(breakouts: Sequence[BreakoutEvent], today: date) -> List[MedicalAlert]:
    since = today - timedelta(days=PERSISTENT_ACNE_WINDOW_DAYS)
    recent = [b for b in breakouts if since <= day_of(b.date) <= today]
    if len(recent) < PERSISTENT_ACNE_MIN_BREAKOUTS:
        return []
    return [MedicalAlert(
        code="persistent_acne",
        severity="high",
        message="Persistent acne for 3+ months",
        action="Consider seeing a dermatologist. Persistent acne may need prescription treatment.",
    )]


def _rapid_change(history: Sequence[AnalysisSnapshot]) -> List[MedicalAlert]:
    ordered = sorted(history, key=lambda s: s.timestamp_ms)
    window_ms = RAPID_CHANGE_WINDOW_DAYS * _MS_PER_DAY
    for i, older in enumerate(ordered):
        for newer in ordered[i + 1:]:
            if newer.timestamp_ms - older.timestamp_ms > window_ms:
                break
            hydration_swing = abs(newer.scores.hydration - older.scores.hydration)
            texture_swing = abs(newer.scores.texture - older.scores.texture)
            if hydration_swing > RAPID_CHANGE_POINTS or texture_swing > RAPID_CHANGE_POINTS:
                return [MedicalAlert(
                    code="rapid_change",
                    severity="medium",
                    message="Rapid skin changes detected",
                    action="Monitor closely. If changes persist or worsen, consult a dermatologist.",
                )]
    return []


def _severe_reactions(side_effects: Sequence[SideEffectRecord]) -> List[MedicalAlert]:
    if not any(se.kind.strip().lower() in SEVERE_SIDE_EFFECTS for se in side_effects):
        return []
    return [MedicalAlert(
        code="severe_reaction",
        severity="high",
        message="Severe skin reactions detected",
        action="Stop using the product immediately. If symptoms persist, seek medical attention.",
    )]


def check_medical_alerts(
    history: Sequence[AnalysisSnapshot],
    breakouts: Sequence[BreakoutEvent],
    side_effects: Sequence[SideEffectRecord],
    now: Any,
) -> List[MedicalAlert]:
    """Evaluate every rule independently; several alerts may fire together.

    ``now`` is the reference day (date, datetime, ISO string or epoch ms) for
    the trailing 90-day breakout window.
    """
    today = day_of(now)
    alerts = (
        _persistent_acne(breakouts, today)
        + _rapid_change(history)
        + _severe_reactions(side_effects)
    )
    if alerts:
        log.debug("medical alerts fired: %s", ", ".join(a.code for a in alerts))
    return alerts
