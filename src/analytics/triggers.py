"""
Acne-trigger and lifestyle correlation reports built from journal data.

Both reports gate on evidence: a trigger needs |r| (or a product ratio)
above 0.3, and lifestyle factors need at least a week of journal entries.
Below the gate the factor is simply left out.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from analytics.correlation import correlate_series
from constants import (
    BREAKOUT_WINDOW_DAYS,
    HIGH_CONFIDENCE_THRESHOLD,
    MIN_JOURNAL_ENTRIES,
    PRODUCT_WINDOW_DAYS,
    TRIGGER_THRESHOLD,
)
from models import (
    AcneTrigger,
    BreakoutEvent,
    JournalEntry,
    LifestyleCorrelation,
    ProductUsageRecord,
    day_of,
)

log = logging.getLogger("triggers")

HIGH_STRESS_LEVEL = 4
LOW_SLEEP_HOURS = 7


# ─── Acne triggers ─────────────────────────────────────────


def breakout_frequency(days: Iterable[str], breakouts: Sequence[BreakoutEvent]) -> float:
    """Percent of ``days`` with a breakout within ±2 days (inclusive)."""
    days = [day_of(d) for d in days]
    if not days:
        return 0.0
    breakout_days = [day_of(b.date) for b in breakouts]
    window = timedelta(days=BREAKOUT_WINDOW_DAYS)
    hits = sum(1 for d in days if any(abs(bd - d) <= window for bd in breakout_days))
    return hits / len(days) * 100


def daily_severity(
    journal: Sequence[JournalEntry], breakouts: Sequence[BreakoutEvent]
) -> List[Dict[str, float]]:
    """Breakout severity observed on each journal day.

    A journaled day with no logged breakout is a severity-0 observation, so
    calm breakout-free days still count as evidence against a factor.
    """
    by_day: Dict[str, float] = {}
    for b in breakouts:
        by_day.setdefault(b.date, b.severity)
    return [{"date": e.date, "value": by_day.get(e.date, 0.0)} for e in journal]


def _confidence(strength: float) -> str:
    return "high" if strength > HIGH_CONFIDENCE_THRESHOLD else "medium"


def _product_trigger(
    product: ProductUsageRecord, breakouts: Sequence[BreakoutEvent]
) -> Optional[AcneTrigger]:
    start = day_of(product.date_started)
    end = start + timedelta(days=PRODUCT_WINDOW_DAYS)
    after = [b for b in breakouts if start <= day_of(b.date) <= end]
    if not after:
        return None
    ratio = len(after) / len(breakouts)
    if ratio <= TRIGGER_THRESHOLD:
        return None
    return AcneTrigger(
        factor=product.product_name,
        correlation=ratio * 100,
        frequency=float(len(after)),
        confidence=_confidence(ratio),
        recommendation="This product may be causing breakouts. Try discontinuing for 2 weeks to test.",
        trigger_type="product",
    )


def identify_acne_triggers(
    journal: Sequence[JournalEntry],
    breakouts: Sequence[BreakoutEvent],
    products: Sequence[ProductUsageRecord] = (),
) -> List[AcneTrigger]:
    """Stress, sleep and product-start factors associated with breakouts.

    Returned strongest first; ties keep stress, sleep, then product order.
    """
    triggers: List[AcneTrigger] = []
    severity = daily_severity(journal, breakouts)

    stress_r = correlate_series(
        [{"date": e.date, "value": e.stress_level} for e in journal], severity
    )
    if stress_r > TRIGGER_THRESHOLD:
        high_stress_days = [e.date for e in journal if e.stress_level >= HIGH_STRESS_LEVEL]
        triggers.append(AcneTrigger(
            factor="High Stress",
            correlation=stress_r * 100,
            frequency=breakout_frequency(high_stress_days, breakouts),
            confidence=_confidence(stress_r),
            recommendation="Manage stress through meditation, exercise, or therapy. "
                           "High stress (4-5/5) correlates with breakouts.",
            trigger_type="stress",
        ))

    sleep_r = correlate_series(
        [{"date": e.date, "value": e.sleep_hours} for e in journal], severity
    )
    # negative: less sleep, worse breakouts
    if sleep_r < -TRIGGER_THRESHOLD:
        short_sleep_days = [e.date for e in journal if e.sleep_hours < LOW_SLEEP_HOURS]
        triggers.append(AcneTrigger(
            factor="Insufficient Sleep",
            correlation=abs(sleep_r) * 100,
            frequency=breakout_frequency(short_sleep_days, breakouts),
            confidence=_confidence(abs(sleep_r)),
            recommendation="Aim for 7-9 hours of sleep. Poor sleep (under 7 hours) "
                           "correlates with breakouts.",
            trigger_type="lifestyle",
        ))

    if breakouts:
        for product in products:
            trigger = _product_trigger(product, breakouts)
            if trigger is not None:
                triggers.append(trigger)

    log.debug(
        "acne triggers: stress_r=%.3f sleep_r=%.3f -> %d trigger(s)",
        stress_r, sleep_r, len(triggers),
    )
    return sorted(triggers, key=lambda t: t.correlation, reverse=True)


# ─── Lifestyle correlations ────────────────────────────────


def _sleep_factor(avg: float) -> Optional[LifestyleCorrelation]:
    if avg >= 8:
        return LifestyleCorrelation(
            factor="Adequate Sleep (8+ hours)",
            impact="positive",
            strength=75,
            evidence=f"Your average sleep is {avg:.1f} hours. Studies show 8+ hours "
                     f"improves skin recovery by 25%.",
            recommendation="Maintain 8+ hours of sleep for optimal skin health and recovery.",
            actionable=True,
        )
    if avg < 7:
        return LifestyleCorrelation(
            factor="Insufficient Sleep (<7 hours)",
            impact="negative",
            strength=65,
            evidence=f"Your average sleep is {avg:.1f} hours. Poor sleep reduces skin "
                     f"recovery by 30%.",
            recommendation="Aim for 7-9 hours of sleep. Your skin repairs itself during deep sleep.",
            actionable=True,
        )
    return None


def _water_factor(avg: float) -> Optional[LifestyleCorrelation]:
    if avg >= 8:
        return LifestyleCorrelation(
            factor="Adequate Hydration (8+ glasses)",
            impact="positive",
            strength=70,
            evidence=f"You're drinking {avg:.1f} glasses daily. Proper hydration improves "
                     f"skin plumpness by 20%.",
            recommendation="Continue drinking 8+ glasses of water daily for optimal skin hydration.",
            actionable=True,
        )
    if avg < 6:
        return LifestyleCorrelation(
            factor="Low Water Intake (<6 glasses)",
            impact="negative",
            strength=60,
            evidence=f"You're drinking {avg:.1f} glasses daily. Dehydration can reduce "
                     f"skin hydration by 15%.",
            recommendation="Increase water intake to 8+ glasses daily. Your skin needs "
                           "hydration from within.",
            actionable=True,
        )
    return None


def _stress_factor(avg: float) -> Optional[LifestyleCorrelation]:
    if avg >= 4:
        return LifestyleCorrelation(
            factor="High Stress Levels (4-5/5)",
            impact="negative",
            strength=80,
            evidence=f"Your average stress is {avg:.1f}/5. High stress increases "
                     f"inflammation and breakouts by 40%.",
            recommendation="Practice stress management: meditation, exercise, or therapy. "
                           "High stress directly impacts skin health.",
            actionable=True,
        )
    if avg <= 2:
        return LifestyleCorrelation(
            factor="Low Stress Levels (1-2/5)",
            impact="positive",
            strength=70,
            evidence=f"Your average stress is {avg:.1f}/5. Low stress improves skin "
                     f"clarity and reduces inflammation.",
            recommendation="Maintain low stress levels. Your skin benefits from your "
                           "stress management.",
            actionable=False,
        )
    return None


def generate_lifestyle_correlations(journal: Sequence[JournalEntry]) -> List[LifestyleCorrelation]:
    """Sleep, water and stress summaries; mid-range averages emit nothing."""
    if len(journal) < MIN_JOURNAL_ENTRIES:
        log.debug("lifestyle: %d journal entries, need %d", len(journal), MIN_JOURNAL_ENTRIES)
        return []

    averages = (
        (_sleep_factor, np.mean([e.sleep_hours for e in journal])),
        (_water_factor, np.mean([e.water_intake_glasses for e in journal])),
        (_stress_factor, np.mean([e.stress_level for e in journal])),
    )
    correlations = []
    for build, avg in averages:
        item = build(float(avg))
        if item is not None:
            correlations.append(item)
    return correlations
