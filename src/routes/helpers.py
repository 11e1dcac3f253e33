"""
Shared helpers for API routes.
Contains: request payload -> domain object parsing, catalog loading,
response shaping.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional

from fastapi import HTTPException

import settings
from catalog import load_bundled_catalog, load_catalog
from models import (
    AnalysisSnapshot,
    BreakoutEvent,
    CatalogProduct,
    JournalEntry,
    ProductUsageRecord,
    SideEffectRecord,
    to_jsonable,
)

log = logging.getLogger("api")


# ─── Catalog ───────────────────────────────────────────────

@lru_cache(maxsize=4)
def _catalog_from_path(path: str) -> tuple:
    return tuple(load_catalog(path))


@lru_cache(maxsize=1)
def _bundled_catalog() -> tuple:
    return tuple(load_bundled_catalog())


def _catalog(override: Optional[List[Dict[str, Any]]] = None) -> List[CatalogProduct]:
    """Request-supplied catalog if given, else the configured (or bundled) file."""
    if override:
        return [CatalogProduct.from_dict(p) for p in override]
    path = settings.get_catalog_path()
    return list(_catalog_from_path(path) if path else _bundled_catalog())


# ─── Payload parsing ───────────────────────────────────────

def _parse_many(items: Optional[Iterable[Dict[str, Any]]], parser, label: str) -> list:
    out = []
    for i, item in enumerate(items or []):
        try:
            out.append(parser(item))
        except (TypeError, ValueError, AttributeError) as e:
            raise HTTPException(status_code=400, detail=f"invalid {label}[{i}]: {e}")
    return out


def _snapshot(data: Optional[Dict[str, Any]], label: str = "snapshot") -> AnalysisSnapshot:
    if not data:
        raise HTTPException(status_code=400, detail=f"{label} is required")
    try:
        return AnalysisSnapshot.from_dict(data)
    except (TypeError, ValueError, AttributeError) as e:
        raise HTTPException(status_code=400, detail=f"invalid {label}: {e}")


def _snapshots(items, label: str = "history") -> List[AnalysisSnapshot]:
    return _parse_many(items, AnalysisSnapshot.from_dict, label)


def _journal(items) -> List[JournalEntry]:
    return _parse_many(items, JournalEntry.from_dict, "journalEntries")


def _breakouts(items) -> List[BreakoutEvent]:
    return _parse_many(items, BreakoutEvent.from_dict, "breakouts")


def _usage(items) -> List[ProductUsageRecord]:
    return _parse_many(items, ProductUsageRecord.from_dict, "products")


def _side_effect_records(items) -> List[SideEffectRecord]:
    return _parse_many(items, SideEffectRecord.from_dict, "sideEffects")


# ─── Response shaping ──────────────────────────────────────

def _jsonable(value: Any) -> Any:
    return to_jsonable(value)


def _with_status(payload: Dict[str, Any], status: Dict[str, Any]) -> Dict[str, Any]:
    payload["analysis_status"] = status.get("analysis_status", "success")
    payload["degraded_reasons"] = list(status.get("degraded_reasons") or [])
    return payload
