"""
Weekly summary: trend comparison, rule-based insight text, optional AI merge.

The rule-based path always runs first. AI text, when the generation service
answers with a valid payload, is placed ahead of the rule lines; any failure
leaves the rule-based output untouched.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from constants import DEDUP_PREFIX_CHARS, MAX_MERGED_ITEMS, TREND_THRESHOLDS
from errors import AIResponseParseError, SkinEngineError, degraded_reason
from models import WeeklyLogs, WeeklyStats, WeeklySummary, WeeklyTrends, day_of
from pipeline.weekly_stats import calculate_weekly_stats

log = logging.getLogger("weekly_summary")

DEFAULT_INSIGHT = "Keep up the great work on your glow journey!"
DEFAULT_RECOMMENDATION = "Keep maintaining your excellent routine!"


# ─── Trends ────────────────────────────────────────────────


def _classify(diff: float, threshold: float) -> str:
    if diff > threshold:
        return "improving"
    if diff < -threshold:
        return "declining"
    return "stable"


def compare_trends(current: WeeklyStats, previous: Optional[WeeklyStats]) -> WeeklyTrends:
    """Week-over-week direction for mood, sleep, water and routine days."""
    if previous is None:
        return WeeklyTrends()
    return WeeklyTrends(
        mood_trend=_classify(current.average_mood - previous.average_mood, TREND_THRESHOLDS["mood"]),
        sleep_trend=_classify(current.average_sleep - previous.average_sleep, TREND_THRESHOLDS["sleep"]),
        water_trend=_classify(current.average_water - previous.average_water, TREND_THRESHOLDS["water"]),
        consistency_trend=_classify(
            current.days_completed - previous.days_completed, TREND_THRESHOLDS["consistency"]
        ),
    )


# ─── Rule-based text ───────────────────────────────────────


def generate_insights(stats: WeeklyStats, trends: WeeklyTrends) -> List[str]:
    insights = []

    if stats.days_completed >= 7:
        insights.append("Perfect consistency! You completed every day this week.")
    elif stats.days_completed >= 5:
        insights.append(f"Great week! You completed {stats.days_completed} out of 7 days.")

    if stats.average_mood >= 3.5:
        insights.append("Your mood has been consistently positive this week!")

    if stats.average_sleep >= 7:
        insights.append("Excellent sleep habits! Your body is getting the rest it needs.")
    elif stats.average_sleep < 6:
        insights.append("Try to aim for 7-8 hours of sleep for optimal skin health.")

    if stats.average_water >= 8:
        insights.append("Great hydration! Keep drinking water for glowing skin.")
    elif stats.average_water < 6:
        insights.append("Increase water intake - aim for 8+ glasses daily for better skin.")

    if trends.mood_trend == "improving":
        insights.append("Your mood is improving - keep up the great work!")
    if trends.consistency_trend == "improving":
        insights.append("You're becoming more consistent with your routine!")

    if stats.glow_score_change is not None and stats.glow_score_change > 5:
        insights.append(
            f"Amazing progress! Your glow score improved by {round(stats.glow_score_change)} points."
        )
    if stats.points_earned >= 500:
        insights.append(f"Impressive! You earned {stats.points_earned:g} points this week.")
    if stats.photos_taken >= 3:
        insights.append("Great job tracking your progress with photos!")

    return insights or [DEFAULT_INSIGHT]


def generate_recommendations(stats: WeeklyStats, trends: WeeklyTrends) -> List[str]:
    recs = []
    if stats.days_completed < 5:
        recs.append("Aim to complete your routine 5-7 days this week for best results.")
    if stats.average_sleep < 7:
        recs.append("Try to get 7-8 hours of sleep each night for optimal skin recovery.")
    if stats.average_water < 8:
        recs.append("Increase your daily water intake to 8+ glasses for better hydration.")
    if stats.average_stress > 3.5:
        recs.append("Consider stress-reducing activities like meditation or light exercise.")
    if stats.photos_taken < 2:
        recs.append("Take at least 2 progress photos this week to track your transformation.")
    if stats.journal_entries < 5:
        recs.append("Log your daily journal entries to identify patterns and insights.")
    if trends.mood_trend == "declining":
        recs.append("Focus on self-care activities that boost your mood and wellbeing.")
    if trends.consistency_trend == "declining":
        recs.append("Set a daily reminder to maintain your skincare routine consistency.")
    return recs or [DEFAULT_RECOMMENDATION]


def merge_with_ai(ai_items: Sequence[str], rule_items: Sequence[str]) -> List[str]:
    """AI lines first, then rule lines whose opening words no AI line already covers.

    A rule line is a duplicate when its first 20 characters (lowercased)
    appear anywhere inside an AI line. The merged list is capped at 5.
    """
    ai_lower = [a.lower() for a in ai_items]
    kept = [
        rule for rule in rule_items
        if not any(rule.lower()[:DEDUP_PREFIX_CHARS] in a for a in ai_lower)
    ]
    return (list(ai_items) + kept)[:MAX_MERGED_ITEMS]


# ─── Summary assembly ──────────────────────────────────────


def _previous_week(reference: Any, logs: WeeklyLogs) -> WeeklyStats:
    # streak is a "right now" number; it does not apply to last week
    prior_logs = WeeklyLogs(
        photos=logs.photos,
        journal_entries=logs.journal_entries,
        completions=logs.completions,
        badges=logs.badges,
        achievements=logs.achievements,
        point_events=logs.point_events,
        current_streak=0,
    )
    return calculate_weekly_stats(day_of(reference) - timedelta(days=7), prior_logs)


def generate_weekly_summary(
    reference: Any, logs: WeeklyLogs, previous_week: Optional[WeeklyStats] = None
) -> WeeklySummary:
    """Rule-based summary for the week containing ``reference``."""
    stats = calculate_weekly_stats(reference, logs)
    if previous_week is None:
        previous_week = _previous_week(reference, logs)
    trends = compare_trends(stats, previous_week)
    return WeeklySummary(
        stats=stats,
        previous_week=previous_week,
        trends=trends,
        insights=generate_insights(stats, trends),
        recommendations=generate_recommendations(stats, trends),
        insight_source="rules",
    )


def _fetch_ai_insights(
    insight_client: Any, stats: WeeklyStats, trends: WeeklyTrends, user_id: str
) -> Tuple[Optional[Any], Optional[str]]:
    """Returns (AIInsights, None) on success or (None, degraded_reason)."""
    if insight_client is None:
        return None, "ai_not_configured"
    try:
        result = insight_client.generate_insights(stats, trends, user_id=user_id)
        if not result.ok:
            raise AIResponseParseError(result.error)
    except SkinEngineError as e:
        log.warning("AI weekly insights unavailable, using rule-based text: %s", e)
        return None, degraded_reason(e)
    return result.value, None


def run_weekly_summary(
    reference: Any,
    logs: WeeklyLogs,
    insight_client: Any = None,
    user_id: str = "anonymous",
    previous_week: Optional[WeeklyStats] = None,
) -> Dict[str, Any]:
    """Summary plus the pipeline status fields (analysis_status, degraded_reasons)."""
    summary = generate_weekly_summary(reference, logs, previous_week)
    ai, reason = _fetch_ai_insights(insight_client, summary.stats, summary.trends, user_id)

    if ai is not None:
        ai_insights = list(ai.insights) + list(ai.wins)
        ai_recs = list(ai.recommendations)
        if ai_insights or ai_recs:
            summary.insights = merge_with_ai(ai_insights, summary.insights)
            summary.recommendations = merge_with_ai(ai_recs, summary.recommendations)
            summary.insight_source = "ai+rules"
        else:
            reason = "ai_response_empty"

    return {
        "summary": summary,
        "analysis_status": "success" if reason is None else "degraded",
        "degraded_reasons": [] if reason is None else [reason],
    }


def generate_weekly_summary_with_ai(
    reference: Any,
    logs: WeeklyLogs,
    insight_client: Any = None,
    user_id: str = "anonymous",
    previous_week: Optional[WeeklyStats] = None,
) -> WeeklySummary:
    """AI-enriched summary; identical to the rule-based one if the AI step fails."""
    return run_weekly_summary(reference, logs, insight_client, user_id, previous_week)["summary"]
