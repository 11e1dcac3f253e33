"""
Product matching: AI-proposed brand/product names -> canonical catalog entries.

Scoring per candidate (case-insensitive):

    brand   exact +50, else containment either way +30
    name    exact +50, else containment either way +25
    words   +5 per AI name token contained in (or containing) a candidate token
    category match +10
    region  -30 when a region is set and the candidate is not available there

Ties go to the earliest catalog entry; catalog order is the tie-break
contract. Below 20 points the match is not credible and the category
fallback is used instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ai_service import AIRecommendation
from catalog import available_in_region, find_products_for_concerns, products_by_category
from constants import (
    FALLBACK_MATCH_SCORE,
    MATCH_SCORE_BASE,
    MATCH_SCORE_CONCERN_BONUS,
    MATCH_SCORE_MAX,
    MIN_CREDIBLE_MATCH,
    REQUIRED_CATEGORIES,
    SCORE_MIN,
)
from models import AnalysisSnapshot, CatalogProduct, PersonalizedProduct

log = logging.getLogger("product_matcher")

BRAND_EXACT = 50
BRAND_PARTIAL = 30
NAME_EXACT = 50
NAME_PARTIAL = 25
WORD_OVERLAP = 5
CATEGORY_MATCH = 10
REGION_PENALTY = 30


@dataclass(frozen=True)
class MatchResult:
    product: CatalogProduct
    score: int
    fallback: bool = False


def _contains_either(a: str, b: str) -> bool:
    return bool(a) and bool(b) and (a in b or b in a)


def score_candidate(
    brand: str, name: str, category: str, product: CatalogProduct, region: Optional[str] = None
) -> int:
    brand_l, name_l = brand.strip().lower(), name.strip().lower()
    cand_brand, cand_name = product.brand.lower(), product.name.lower()
    score = 0

    if brand_l and cand_brand == brand_l:
        score += BRAND_EXACT
    elif _contains_either(brand_l, cand_brand):
        score += BRAND_PARTIAL

    if name_l and cand_name == name_l:
        score += NAME_EXACT
    elif _contains_either(name_l, cand_name):
        score += NAME_PARTIAL

    cand_words = cand_name.split()
    overlap = [w for w in name_l.split() if any(pw in w or w in pw for pw in cand_words)]
    score += WORD_OVERLAP * len(overlap)

    if category and product.category == category:
        score += CATEGORY_MATCH
    if region and not product.is_available_in(region):
        score -= REGION_PENALTY
    return score


def _category_fallback(
    catalog: Sequence[CatalogProduct], category: str, region: Optional[str]
) -> Optional[CatalogProduct]:
    in_category = products_by_category(catalog, category)
    if not in_category:
        return None
    available = available_in_region(in_category, region)
    return available[0] if available else in_category[0]


def match_product(
    rec: AIRecommendation, catalog: Sequence[CatalogProduct], region: Optional[str] = None
) -> Optional[MatchResult]:
    """Best catalog entry for one AI recommendation, or None if nothing fits at all."""
    best: Optional[CatalogProduct] = None
    best_score = 0
    for product in catalog:
        score = score_candidate(rec.brand_name, rec.product_name, rec.category, product, region)
        if score > best_score:
            best, best_score = product, score

    if best_score < MIN_CREDIBLE_MATCH:
        fallback = _category_fallback(catalog, rec.category, region)
        if fallback is not None:
            log.debug(
                "no credible match for %r / %r (best %d); category fallback %s",
                rec.brand_name, rec.product_name, best_score, fallback.id,
            )
            return MatchResult(product=fallback, score=best_score, fallback=True)

    if best is None:
        return None
    return MatchResult(product=best, score=best_score, fallback=best_score < MIN_CREDIBLE_MATCH)


def concern_overlap(addressed: Sequence[str], user_concerns: Sequence[str]) -> int:
    """Number of AI-addressed concerns that match one of the user's concerns."""
    count = 0
    for concern in addressed:
        c = concern.lower()
        if c and any(_contains_either(c, uc.lower()) for uc in user_concerns):
            count += 1
    return count


def final_match_score(overlap: int, priority_order: int) -> int:
    priority_bonus = max(0, 10 - 2 * priority_order)
    score = MATCH_SCORE_BASE + MATCH_SCORE_CONCERN_BONUS * overlap + priority_bonus
    return int(max(SCORE_MIN, min(MATCH_SCORE_MAX, score)))


# ─── Required-category guarantee ───────────────────────────


def _required_candidate(
    catalog: Sequence[CatalogProduct],
    category: str,
    skin_type: str,
    concerns: Sequence[str],
    region: Optional[str],
) -> Optional[CatalogProduct]:
    attempts = (
        find_products_for_concerns(catalog, category, skin_type, concerns),
        find_products_for_concerns(catalog, category, None, concerns),
        products_by_category(catalog, category),
    )
    for candidates in attempts:
        available = available_in_region(candidates, region)
        if available:
            return available[0]
    in_category = attempts[-1]
    return in_category[0] if in_category else None


def synthesize_recommendation(
    product: CatalogProduct, skin_type: str, concerns: Sequence[str], priority_order: int
) -> AIRecommendation:
    skin = skin_type or "your"
    time_of_day = "morning" if product.category == "sunscreens" else "skincare"
    return AIRecommendation(
        category=product.category,
        product_name=product.name,
        brand_name=product.brand,
        personal_reason=(
            f"Selected for your {skin_type or 'unique'} skin to address "
            f"{concerns[0] if concerns else 'general skincare needs'}."
        ),
        why_for_you=[
            f"Formulated for {skin} skin types",
            f"Targets {' and '.join(concerns[:2]) or 'overall skin health'}",
            f"Key ingredients: {', '.join(product.key_ingredients[:3]) or 'see label'}",
        ],
        skin_type_match=f"Designed for {skin} skin",
        concerns_addressed=list(concerns[:3]),
        priority_order=priority_order,
        usage_tip=f"Apply as part of your daily {time_of_day} routine.",
    )


def build_personalized_products(
    recommendations: Sequence[AIRecommendation],
    catalog: Sequence[CatalogProduct],
    snapshot: AnalysisSnapshot,
    region: Optional[str] = None,
) -> List[PersonalizedProduct]:
    """Match every recommendation, then fill any missing required category.

    Output is sorted by priority order (stable, so synthesized entries keep
    their insertion order among equal priorities).
    """
    concerns = list(snapshot.skin_concerns)
    skin_type = snapshot.skin_type.lower()
    products: List[PersonalizedProduct] = []

    for rec in recommendations:
        match = match_product(rec, catalog, region)
        if match is None:
            log.debug("dropping %r: catalog has no product for category %r", rec.product_name, rec.category)
            continue
        products.append(PersonalizedProduct(
            catalog_product=match.product,
            ai_insight=rec,
            match_score=final_match_score(
                concern_overlap(rec.concerns_addressed, concerns), rec.priority_order
            ),
        ))

    present = {p.catalog_product.category for p in products}
    for category in REQUIRED_CATEGORIES:
        if category in present:
            continue
        product = _required_candidate(catalog, category, skin_type, concerns, region)
        if product is None:
            log.warning("catalog has no %s; required category left empty", category)
            continue
        log.debug("filling required category %s with %s", category, product.id)
        products.append(PersonalizedProduct(
            catalog_product=product,
            ai_insight=synthesize_recommendation(product, skin_type, concerns, len(products) + 1),
            match_score=FALLBACK_MATCH_SCORE,
            synthesized=True,
        ))

    return sorted(products, key=lambda p: p.ai_insight.priority_order)
