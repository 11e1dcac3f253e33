"""Read-only catalog store helpers. Every filter preserves catalog order."""

from __future__ import annotations

import json
import logging
from importlib import resources
from pathlib import Path
from typing import List, Optional, Sequence

from models import CatalogProduct

log = logging.getLogger("catalog")

BUNDLED_CATALOG = "catalog.json"


def load_catalog(path) -> List[CatalogProduct]:
    """Load a JSON catalog file: either a list of products or ``{"products": [...]}``."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    items = data.get("products", []) if isinstance(data, dict) else data
    catalog = [CatalogProduct.from_dict(item) for item in items]
    log.info("Loaded %d catalog products from %s", len(catalog), path)
    return catalog


def load_bundled_catalog() -> List[CatalogProduct]:
    """The catalog shipped inside the ``skin_data`` package."""
    source = resources.files("skin_data").joinpath(BUNDLED_CATALOG)
    with resources.as_file(source) as path:
        return load_catalog(path)


def products_by_category(catalog: Sequence[CatalogProduct], category: str) -> List[CatalogProduct]:
    return [p for p in catalog if p.category == category]


def available_in_region(
    catalog: Sequence[CatalogProduct], country_code: Optional[str]
) -> List[CatalogProduct]:
    return [p for p in catalog if p.is_available_in(country_code)]


def _concern_matches(concern: str, target: str) -> bool:
    c, t = concern.lower(), target.lower()
    return c in t or t in c


def find_products_for_concerns(
    catalog: Sequence[CatalogProduct],
    category: Optional[str] = None,
    skin_type: Optional[str] = None,
    concerns: Sequence[str] = (),
) -> List[CatalogProduct]:
    """Products of ``category`` suited to ``skin_type`` and any of ``concerns``.

    A product targeting skin type "all" suits every skin type. Empty filters
    are not applied.
    """
    skin_type = (skin_type or "").lower()
    concerns = [c for c in concerns if c]

    matches = []
    for product in catalog:
        if category and product.category != category:
            continue
        if skin_type and skin_type not in product.target_skin_types \
                and "all" not in product.target_skin_types:
            continue
        if concerns and not any(
            _concern_matches(c, t) for c in concerns for t in product.target_concerns
        ):
            continue
        matches.append(product)
    return matches
