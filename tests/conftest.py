"""
Shared test configuration.

Adds both the project root and src/ to sys.path so that flat modules
(models, product_matcher, ai_service, ...) and the sub-packages
(analytics, pipeline, routes) import the same way they do at runtime.

Also provides small builders for the snapshot/journal payloads most
test modules need.
"""

import os
import sys

import pytest

_project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
_src_dir = os.path.join(_project_root, "src")

if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

# src/ second: lets `import models` etc. work for flat modules
if _src_dir not in sys.path:
    sys.path.insert(1, _src_dir)

from models import AnalysisSnapshot, SkinScores  # noqa: E402

DAY_MS = 24 * 60 * 60 * 1000
# 2026-03-02 00:00 UTC (a Monday)
BASE_MS = 1772409600000


def make_snapshot(day: int = 0, skin_type: str = "dry", concerns=(), **scores) -> AnalysisSnapshot:
    defaults = dict(
        hydration=70, texture=70, brightness=70, evenness=70, elasticity=70,
        pore_visibility=30, jawline=70, symmetry=70, overall=70,
    )
    defaults.update(scores)
    return AnalysisSnapshot(
        timestamp_ms=BASE_MS + day * DAY_MS,
        scores=SkinScores(**defaults),
        skin_type=skin_type,
        skin_concerns=tuple(concerns),
    )


@pytest.fixture
def snapshot_factory():
    return make_snapshot
