"""
Tests for weekly stats aggregation.

Covers: Monday-Sunday week bounds, window filtering, completion dedup,
mood mapping, glow change, highlights, and determinism.
"""
from datetime import date

import pytest

from conftest import BASE_MS, DAY_MS
from models import (
    Achievement,
    Badge,
    JournalEntry,
    PhotoAnalysis,
    PointEvent,
    ProgressPhoto,
    WeeklyLogs,
)
from pipeline.weekly_stats import calculate_weekly_stats, week_bounds

WEDNESDAY = "2026-03-04"


def _photo(day, hydration=None, improvements=()):
    analysis = None
    if hydration is not None:
        # acne mirrors hydration so the glow average equals ``hydration``
        analysis = PhotoAnalysis(
            hydration=hydration, texture=hydration, brightness=hydration,
            acne=100 - hydration, improvements=tuple(improvements),
        )
    return ProgressPhoto(timestamp_ms=BASE_MS + day * DAY_MS, analysis=analysis)


def _journal(day, mood="good", sleep=7, water=8, stress=2):
    return JournalEntry(
        date=f"2026-03-{day:02d}", sleep_hours=sleep, water_intake_glasses=water,
        stress_level=stress, mood=mood,
    )


def _full_logs():
    return WeeklyLogs(
        photos=(
            _photo(0, hydration=60, improvements=["Smoother texture"]),
            _photo(3),
            _photo(5, hydration=70, improvements=["Brighter tone", "Less redness"]),
            _photo(9, hydration=95),
        ),
        journal_entries=(
            _journal(2, mood="great", sleep=8, water=9, stress=2),
            _journal(3, mood="good", sleep=7, water=7, stress=4),
            _journal(4, mood="meh", sleep=0, water=0, stress=0),
            _journal(12, mood="bad", sleep=3, water=1, stress=5),
        ),
        completions=("2026-03-02", "2026-03-02T18:00:00Z", "2026-03-03", "2026-03-10"),
        badges=(
            Badge(id="b1", unlocked_at="2026-03-04T08:00:00Z"),
            Badge(id="b2"),
            Badge(id="b3", unlocked_at="2026-02-20"),
        ),
        achievements=(
            Achievement(id="a1", completed=True, completed_at="2026-03-05"),
            Achievement(id="a2", completed=False, completed_at="2026-03-05"),
        ),
        point_events=(
            PointEvent(points=300, timestamp="2026-03-03T10:00:00Z"),
            PointEvent(points=250, timestamp="2026-03-05"),
            PointEvent(points=999, timestamp="2026-03-11"),
        ),
        current_streak=8,
    )


# ─── week_bounds ───────────────────────────────────────────


class TestWeekBounds:

    def test_wednesday_resolves_to_monday_and_sunday(self):
        assert week_bounds(WEDNESDAY) == (date(2026, 3, 2), date(2026, 3, 8))

    def test_sunday_belongs_to_preceding_monday(self):
        assert week_bounds("2026-03-08") == (date(2026, 3, 2), date(2026, 3, 8))

    def test_monday_is_its_own_start(self):
        assert week_bounds(date(2026, 3, 9))[0] == date(2026, 3, 9)

    def test_epoch_ms_reference(self):
        assert week_bounds(BASE_MS + 2 * DAY_MS)[0] == date(2026, 3, 2)


# ─── calculate_weekly_stats ────────────────────────────────


class TestWeeklyStats:

    def test_window_and_counts(self):
        stats = calculate_weekly_stats(WEDNESDAY, _full_logs())

        assert stats.start_date == "2026-03-02"
        assert stats.end_date == "2026-03-08"
        assert stats.week_number == 10
        assert stats.photos_taken == 3
        assert stats.journal_entries == 3
        assert stats.badges_earned == 1
        assert stats.achievements_unlocked == 1
        assert stats.points_earned == 550
        assert stats.streak_days == 8

    def test_completions_are_counted_once_per_day(self):
        stats = calculate_weekly_stats(WEDNESDAY, _full_logs())
        assert stats.days_completed == 2
        assert stats.routine_completion_rate == pytest.approx(200 / 7)

    def test_averages_ignore_unmapped_and_blank_values(self):
        stats = calculate_weekly_stats(WEDNESDAY, _full_logs())
        assert stats.average_mood == pytest.approx(3.5)
        assert stats.average_sleep == pytest.approx(7.5)
        assert stats.average_water == pytest.approx(8.0)
        assert stats.average_stress == pytest.approx(3.0)

    def test_glow_change_uses_first_and_last_analysed_photo(self):
        stats = calculate_weekly_stats(WEDNESDAY, _full_logs())
        assert stats.glow_score_change == pytest.approx(10.0)
        assert stats.top_improvements == ["Smoother texture", "Brighter tone", "Less redness"]

    def test_glow_change_absent_with_one_analysed_photo(self):
        logs = WeeklyLogs(photos=(_photo(0, hydration=60), _photo(1)))
        assert calculate_weekly_stats(WEDNESDAY, logs).glow_score_change is None

    def test_highlights_fire_independently(self):
        stats = calculate_weekly_stats(WEDNESDAY, _full_logs())
        assert stats.highlights == [
            "Maintained a 8-day streak!",
            "Earned 550 points this week",
            "Unlocked 1 badge",
            "Great mood average this week!",
            "Consistent good sleep",
        ]

    def test_perfect_week(self):
        logs = WeeklyLogs(completions=tuple(f"2026-03-{d:02d}" for d in range(2, 9)))
        stats = calculate_weekly_stats(WEDNESDAY, logs)
        assert stats.routine_completion_rate == 100
        assert stats.highlights == ["Perfect week! Completed all 7 days"]

    def test_empty_logs(self):
        stats = calculate_weekly_stats(WEDNESDAY, WeeklyLogs())
        assert stats.days_completed == 0
        assert stats.average_mood == 0.0
        assert stats.glow_score_change is None
        assert stats.highlights == []

    def test_top_improvements_capped_at_five(self):
        photos = tuple(_photo(d, hydration=50, improvements=[f"a{d}", f"b{d}"]) for d in range(4))
        stats = calculate_weekly_stats(WEDNESDAY, WeeklyLogs(photos=photos))
        assert len(stats.top_improvements) == 5

    def test_deterministic(self):
        first = calculate_weekly_stats(WEDNESDAY, _full_logs())
        second = calculate_weekly_stats(WEDNESDAY, _full_logs())
        assert first == second
        assert first.to_dict() == second.to_dict()

    def test_serializes_camel_case(self):
        data = calculate_weekly_stats(WEDNESDAY, _full_logs()).to_dict()
        assert data["routineCompletionRate"] == pytest.approx(200 / 7)
        assert "glowScoreChange" in data
