"""
Weekly stats aggregation.

Buckets raw logs into the Monday-Sunday week that contains a reference day
and derives completion, mood, sleep, water, stress and glow numbers. Window
membership is a plain ``YYYY-MM-DD`` string comparison on both ends.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, List, Optional, Sequence, Tuple

import pandas as pd

from constants import MOOD_SCALE, SCORE_MAX
from models import JournalEntry, WeeklyLogs, WeeklyStats, day_key

log = logging.getLogger("weekly_stats")

JOURNAL_COLUMNS = ["day", "mood", "sleep", "water", "stress"]
MAX_TOP_IMPROVEMENTS = 5


def week_bounds(reference: Any) -> Tuple[date, date]:
    """Monday and Sunday of the ISO week containing ``reference``."""
    ref = date.fromisoformat(day_key(reference))
    start = ref - timedelta(days=ref.weekday())
    return start, start + timedelta(days=6)


def _safe_day_key(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    try:
        return day_key(value)
    except (TypeError, ValueError):
        log.debug("Skipping unparseable log timestamp: %r", value)
        return None


def _journal_frame(entries: Sequence[JournalEntry]) -> pd.DataFrame:
    rows = [
        {
            "day": e.date,
            "mood": MOOD_SCALE.get(e.mood, 0),
            "sleep": e.sleep_hours,
            "water": e.water_intake_glasses,
            "stress": e.stress_level,
        }
        for e in entries
    ]
    return pd.DataFrame(rows, columns=JOURNAL_COLUMNS)


def _positive_mean(values: pd.Series) -> float:
    """Mean over values > 0; unmapped moods and blank fields are ignored."""
    values = pd.to_numeric(values, errors="coerce")
    positive = values[values > 0]
    return float(positive.mean()) if not positive.empty else 0.0


def _highlights(
    days_completed: int, streak: int, points: float, badges: int, mood: float, sleep: float
) -> List[str]:
    highlights = []
    if days_completed >= 7:
        highlights.append("Perfect week! Completed all 7 days")
    if streak >= 7:
        highlights.append(f"Maintained a {streak}-day streak!")
    if points >= 500:
        highlights.append(f"Earned {points:g} points this week")
    if badges > 0:
        highlights.append(f"Unlocked {badges} badge{'s' if badges > 1 else ''}")
    if mood >= 3.5:
        highlights.append("Great mood average this week!")
    if sleep >= 7:
        highlights.append("Consistent good sleep")
    return highlights


def calculate_weekly_stats(reference: Any, logs: WeeklyLogs) -> WeeklyStats:
    """Aggregate one calendar week of logs.

    Parameters
    ----------
    reference : date, datetime, ISO string or epoch ms
        Any day inside the week to summarise.
    logs : WeeklyLogs
        Full log history; entries outside the week are ignored.
    """
    start, end = week_bounds(reference)
    lo, hi = start.isoformat(), end.isoformat()

    def within(value: Any) -> bool:
        key = _safe_day_key(value)
        return key is not None and lo <= key <= hi

    photos = [p for p in logs.photos if within(p.timestamp_ms)]
    completion_days = sorted({day_key(c) for c in logs.completions if within(c)})
    badges = [b for b in logs.badges if b.unlocked_at and within(b.unlocked_at)]
    achievements = [
        a for a in logs.achievements if a.completed and a.completed_at and within(a.completed_at)
    ]
    points = sum(p.points for p in logs.point_events if within(p.timestamp))

    journal = _journal_frame(logs.journal_entries)
    week_journal = journal[(journal["day"] >= lo) & (journal["day"] <= hi)]

    average_mood = _positive_mean(week_journal["mood"])
    average_sleep = _positive_mean(week_journal["sleep"])
    average_water = _positive_mean(week_journal["water"])
    average_stress = _positive_mean(week_journal["stress"])

    days_completed = len(completion_days)
    completion_rate = min(float(SCORE_MAX), days_completed / 7 * 100)

    analysed = sorted((p for p in photos if p.analysis is not None), key=lambda p: p.timestamp_ms)
    glow_change = None
    if len(analysed) >= 2:
        glow_change = analysed[-1].analysis.glow_average - analysed[0].analysis.glow_average

    improvements: List[str] = []
    for photo in photos:
        if photo.analysis is not None:
            improvements.extend(photo.analysis.improvements)

    log.debug(
        "week %s..%s: %d photos, %d journal, %d completions",
        lo, hi, len(photos), len(week_journal), days_completed,
    )
    return WeeklyStats(
        week_number=start.isocalendar()[1],
        start_date=lo,
        end_date=hi,
        days_completed=days_completed,
        photos_taken=len(photos),
        journal_entries=len(week_journal),
        points_earned=points,
        achievements_unlocked=len(achievements),
        badges_earned=len(badges),
        average_mood=average_mood,
        average_sleep=average_sleep,
        average_water=average_water,
        average_stress=average_stress,
        routine_completion_rate=completion_rate,
        streak_days=logs.current_streak,
        glow_score_change=glow_change,
        top_improvements=improvements[:MAX_TOP_IMPROVEMENTS],
        highlights=_highlights(
            days_completed, logs.current_streak, points, len(badges), average_mood, average_sleep
        ),
    )
