"""
Skin Report: one-shot analytics run over an exported data file
==============================================================
Reads a JSON export of one user's history and prints a full report:
  1. Barrier health for the newest snapshot
  2. Treatment responses for any tracked products
  3. Acne triggers + lifestyle correlations
  4. Medical alerts
  5. Weekly summary (AI-enriched when configured)
  6. Personalized product list

Usage:
    python skin_report.py --input export.json
    python skin_report.py --input export.json --region US --no-ai
    python skin_report.py --input export.json --date 2026-03-04 --output report.json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
log = logging.getLogger("skin_report")

from ai_service import AIGenerationClient
from analytics.medical_alerts import check_medical_alerts
from analytics.skin_health import analyze_treatment_response, calculate_barrier_health
from analytics.triggers import generate_lifestyle_correlations, identify_acne_triggers
from catalog import load_bundled_catalog, load_catalog
from errors import ConfigurationError
from models import (
    AnalysisSnapshot,
    BreakoutEvent,
    CatalogProduct,
    JournalEntry,
    ProductUsageRecord,
    SideEffectRecord,
    WeeklyLogs,
    to_jsonable,
)
from pipeline.recommendation_pipeline import RecommendationPipeline
from pipeline.weekly_summary import run_weekly_summary
import settings


def _load_catalog(data: Dict[str, Any]) -> list:
    if data.get("catalog"):
        return [CatalogProduct.from_dict(p) for p in data["catalog"]]
    path = settings.get_catalog_path()
    return load_catalog(path) if path else load_bundled_catalog()


def _resolve_client(no_ai: bool) -> Optional[AIGenerationClient]:
    if no_ai:
        log.info("AI disabled by --no-ai; using rule-based output only")
        return None
    try:
        return AIGenerationClient.from_env()
    except ConfigurationError as e:
        log.error("AI generation disabled: %s", e)
        return None


def _treatments(data: Dict[str, Any]) -> list:
    results = []
    for item in data.get("treatments") or []:
        product = CatalogProduct.from_dict(item.get("product") or {})
        results.append(analyze_treatment_response(
            product,
            AnalysisSnapshot.from_dict(item["baseline"]),
            AnalysisSnapshot.from_dict(item["current"]),
            int(item.get("daysUsed", 0)),
            item.get("sideEffects"),
        ))
    return results


def build_report(
    data: Dict[str, Any],
    reference: str,
    region: Optional[str] = None,
    client: Any = None,
) -> Dict[str, Any]:
    """Run every analysis over one export; pure apart from the optional AI client."""
    user_id = str(data.get("userId") or "anonymous")
    snapshots = sorted(
        (AnalysisSnapshot.from_dict(s) for s in data.get("snapshots") or []),
        key=lambda s: s.timestamp_ms,
        reverse=True,
    )
    journal = [JournalEntry.from_dict(j) for j in data.get("journalEntries") or []]
    breakouts = [BreakoutEvent.from_dict(b) for b in data.get("breakouts") or []]
    usage = [ProductUsageRecord.from_dict(p) for p in data.get("products") or []]
    side_effects = [SideEffectRecord.from_dict(s) for s in data.get("sideEffects") or []]

    logs_data = dict(data.get("logs") or {})
    logs_data.setdefault("journalEntries", data.get("journalEntries") or [])
    logs = WeeklyLogs.from_dict(logs_data)

    report: Dict[str, Any] = {"userId": user_id, "referenceDate": reference}

    if snapshots:
        report["barrierHealth"] = calculate_barrier_health(snapshots[0], snapshots[1:])
    else:
        log.info("No snapshots in export; skipping barrier health and recommendations")
        report["barrierHealth"] = None

    report["treatmentResponses"] = _treatments(data)
    report["acneTriggers"] = identify_acne_triggers(journal, breakouts, usage)
    report["lifestyleCorrelations"] = generate_lifestyle_correlations(journal)
    report["medicalAlerts"] = check_medical_alerts(snapshots, breakouts, side_effects, reference)

    weekly = run_weekly_summary(reference, logs, insight_client=client, user_id=user_id)
    report["weeklySummary"] = weekly["summary"]

    degraded = list(weekly["degraded_reasons"]) if client is not None else []
    if snapshots:
        pipeline = RecommendationPipeline(_load_catalog(data), client=client)
        recs = pipeline.run(snapshots[0], region=region, user_id=user_id)
        report["recommendations"] = recs["products"]
        if client is not None:
            degraded.extend(r for r in recs["degraded_reasons"] if r not in degraded)
    else:
        report["recommendations"] = []

    report["analysisStatus"] = "degraded" if degraded else "success"
    report["degradedReasons"] = degraded
    return to_jsonable(report)


def main():
    parser = argparse.ArgumentParser(
        description="Skin analytics report from a JSON export"
    )
    parser.add_argument("--input", required=True,
                        help="Path to the JSON export")
    parser.add_argument("--region", default=None,
                        help="ISO country code for product availability (e.g. US)")
    parser.add_argument("--no-ai", action="store_true",
                        help="Skip the AI generation service")
    parser.add_argument("--date", default=None,
                        help="Reference day YYYY-MM-DD (default: today, UTC)")
    parser.add_argument("--output", default=None,
                        help="Write the report here instead of stdout")
    args = parser.parse_args()

    try:
        data = json.loads(Path(args.input).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        log.error("Could not read %s: %s", args.input, e)
        sys.exit(1)

    reference = args.date or datetime.now(timezone.utc).date().isoformat()
    region = args.region or data.get("region")

    try:
        report = build_report(data, reference, region=region, client=_resolve_client(args.no_ai))
    except OSError as e:
        log.error("Could not load product catalog: %s", e)
        sys.exit(1)
    except (KeyError, TypeError, ValueError) as e:
        log.error("Export is malformed: %s", e)
        sys.exit(1)

    text = json.dumps(report, indent=2)
    if args.output:
        Path(args.output).write_text(text + "\n", encoding="utf-8")
        log.info("Report written to %s", args.output)
    else:
        print(text)


if __name__ == "__main__":
    main()
