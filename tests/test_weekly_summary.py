"""
Tests for trend comparison, rule-based insight text and the AI merge/fallback.
"""
from unittest.mock import MagicMock

import pytest

from ai_service import AIInsights, ParseResult
from errors import ExternalServiceError, RateLimitExceeded
from models import JournalEntry, WeeklyLogs, WeeklyStats, WeeklyTrends
from pipeline.weekly_summary import (
    DEFAULT_INSIGHT,
    DEFAULT_RECOMMENDATION,
    compare_trends,
    generate_insights,
    generate_recommendations,
    generate_weekly_summary,
    generate_weekly_summary_with_ai,
    merge_with_ai,
    run_weekly_summary,
)


def _stats(**overrides) -> WeeklyStats:
    base = dict(
        week_number=10, start_date="2026-03-02", end_date="2026-03-08",
        days_completed=3, photos_taken=1, journal_entries=3, points_earned=100,
        achievements_unlocked=0, badges_earned=0, average_mood=2.5,
        average_sleep=6.5, average_water=7.0, average_stress=3.0,
        routine_completion_rate=3 / 7 * 100, streak_days=2,
    )
    base.update(overrides)
    return WeeklyStats(**base)


def _logs():
    journal = [
        JournalEntry(date=f"2026-03-{d:02d}", sleep_hours=8, water_intake_glasses=9,
                     stress_level=2, mood="great")
        for d in range(2, 9)
    ]
    journal += [
        JournalEntry(date=f"2026-02-{d:02d}", sleep_hours=6, water_intake_glasses=5,
                     stress_level=4, mood="okay")
        for d in range(23, 28)
    ]
    completions = [f"2026-03-{d:02d}" for d in range(2, 9)] + ["2026-02-23", "2026-02-24"]
    return WeeklyLogs(journal_entries=tuple(journal), completions=tuple(completions), current_streak=7)


# ─── Trends ─────────────────────────────────────────────────


class TestCompareTrends:

    def test_missing_previous_is_all_stable(self):
        assert compare_trends(_stats(), None) == WeeklyTrends()

    def test_threshold_deltas(self):
        previous = _stats()
        current = _stats(average_mood=2.8, average_sleep=5.9, average_water=8.0, days_completed=5)
        trends = compare_trends(current, previous)
        assert trends.mood_trend == "improving"
        assert trends.sleep_trend == "declining"
        assert trends.water_trend == "stable"
        assert trends.consistency_trend == "improving"

    def test_exact_threshold_is_stable(self):
        trends = compare_trends(_stats(days_completed=4), _stats(days_completed=3))
        assert trends.consistency_trend == "stable"


# ─── Rule text ──────────────────────────────────────────────


class TestRuleText:

    def test_insights_default_when_nothing_fires(self):
        assert generate_insights(_stats(), WeeklyTrends()) == [DEFAULT_INSIGHT]

    def test_insights_are_independent_rules(self):
        stats = _stats(days_completed=7, average_mood=3.8, average_sleep=7.5,
                       average_water=9, glow_score_change=6.4, photos_taken=3)
        insights = generate_insights(stats, WeeklyTrends(mood_trend="improving"))
        assert insights[0] == "Perfect consistency! You completed every day this week."
        assert "Amazing progress! Your glow score improved by 6 points." in insights
        assert "Your mood is improving - keep up the great work!" in insights
        assert len(insights) == 7

    def test_absent_glow_change_is_not_zero(self):
        insights = generate_insights(_stats(glow_score_change=None), WeeklyTrends())
        assert not any("glow score" in i for i in insights)

    def test_recommendations(self):
        recs = generate_recommendations(
            _stats(average_stress=4.0), WeeklyTrends(consistency_trend="declining")
        )
        assert "Consider stress-reducing activities like meditation or light exercise." in recs
        assert recs[-1] == "Set a daily reminder to maintain your skincare routine consistency."

    def test_recommendations_default(self):
        stats = _stats(days_completed=6, average_sleep=8, average_water=8,
                       photos_taken=2, journal_entries=6)
        assert generate_recommendations(stats, WeeklyTrends()) == [DEFAULT_RECOMMENDATION]


# ─── Merge ──────────────────────────────────────────────────


class TestMergeWithAI:

    def test_ai_first_and_prefix_dedup(self):
        ai = ["Great hydration! Keep drinking water, your skin shows it."]
        rules = ["Great hydration! Keep drinking water for glowing skin.", "Sleep more."]
        assert merge_with_ai(ai, rules) == [ai[0], "Sleep more."]

    def test_truncated_to_five(self):
        ai = [f"AI line {i}" for i in range(4)]
        rules = [f"Rule number {i} is here" for i in range(4)]
        merged = merge_with_ai(ai, rules)
        assert len(merged) == 5
        assert merged[:4] == ai

    def test_no_ai_keeps_rules(self):
        assert merge_with_ai([], ["a", "b"]) == ["a", "b"]


# ─── Summary assembly ──────────────────────────────────────


class TestWeeklySummary:

    def test_rule_based_summary_computes_previous_week(self):
        summary = generate_weekly_summary("2026-03-04", _logs())
        assert summary.previous_week is not None
        assert summary.previous_week.start_date == "2026-02-23"
        assert summary.previous_week.streak_days == 0
        assert summary.trends.mood_trend == "improving"
        assert summary.trends.consistency_trend == "improving"
        assert summary.insight_source == "rules"

    def test_ai_success_merges_and_marks_source(self):
        client = MagicMock()
        client.generate_insights.return_value = ParseResult.success(AIInsights(
            insights=["Your routine streak is paying off."],
            recommendations=["Add an SPF reapplication at noon."],
            wins=["Seven-day streak"],
        ))
        result = run_weekly_summary("2026-03-04", _logs(), insight_client=client, user_id="u1")
        summary = result["summary"]

        assert result["analysis_status"] == "success"
        assert summary.insight_source == "ai+rules"
        assert summary.insights[:2] == ["Your routine streak is paying off.", "Seven-day streak"]
        assert summary.recommendations[0] == "Add an SPF reapplication at noon."
        assert len(summary.insights) <= 5
        client.generate_insights.assert_called_once()
        assert client.generate_insights.call_args.kwargs["user_id"] == "u1"

    @pytest.mark.parametrize("failure,reason", [
        (ExternalServiceError("timeout"), "ai_call_failed"),
        (RateLimitExceeded("slow down"), "ai_rate_limited"),
    ])
    def test_ai_failure_falls_back_to_rules(self, failure, reason):
        client = MagicMock()
        client.generate_insights.side_effect = failure
        rules_only = generate_weekly_summary("2026-03-04", _logs())

        result = run_weekly_summary("2026-03-04", _logs(), insight_client=client)

        assert result["analysis_status"] == "degraded"
        assert result["degraded_reasons"] == [reason]
        assert result["summary"] == rules_only

    def test_invalid_ai_payload_falls_back(self):
        client = MagicMock()
        client.generate_insights.return_value = ParseResult.failure("not JSON")
        summary = generate_weekly_summary_with_ai("2026-03-04", _logs(), insight_client=client)
        assert summary == generate_weekly_summary("2026-03-04", _logs())

    def test_no_client_reports_not_configured(self):
        result = run_weekly_summary("2026-03-04", _logs())
        assert result["degraded_reasons"] == ["ai_not_configured"]
        assert result["summary"].insight_source == "rules"

    def test_empty_ai_payload_keeps_rules(self):
        client = MagicMock()
        client.generate_insights.return_value = ParseResult.success(AIInsights())
        result = run_weekly_summary("2026-03-04", _logs(), insight_client=client)
        assert result["summary"].insight_source == "rules"
        assert result["degraded_reasons"] == ["ai_response_empty"]
