"""
Recommendation pipeline: AI suggestions -> catalog matching -> ranked products.

    AIGenerationClient.recommend_products()   (optional, may fail)
        -> ProductMatcher per recommendation
        -> required-category fill
        -> status dict (analysis_status / degraded_reasons)

Without a working AI client the pipeline still returns the required
categories, picked from the catalog by skin type and concerns.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from errors import AIResponseParseError, SkinEngineError, degraded_reason
from models import AnalysisSnapshot, CatalogProduct
from product_matcher import build_personalized_products

log = logging.getLogger("recommendation_pipeline")


class RecommendationPipeline:
    def __init__(self, catalog: Sequence[CatalogProduct], client: Any = None):
        self.catalog = list(catalog)
        self.client = client

    def run(
        self,
        snapshot: AnalysisSnapshot,
        region: Optional[str] = None,
        user_id: str = "anonymous",
    ) -> Dict[str, Any]:
        status: Dict[str, Any] = {
            "analysis_status": "success",
            "degraded_reasons": [],
        }

        recommendations = self._ai_recommendations(snapshot, region, user_id, status)
        products = build_personalized_products(recommendations, self.catalog, snapshot, region)

        if status["degraded_reasons"]:
            status["analysis_status"] = "degraded"
            log.warning(
                "Recommendations degraded: %s",
                ", ".join(status["degraded_reasons"]),
            )
        log.info(
            "Built %d personalized products (%d from AI, %d fallback)",
            len(products),
            sum(1 for p in products if not p.synthesized),
            sum(1 for p in products if p.synthesized),
        )
        status["products"] = products
        return status

    def _ai_recommendations(
        self,
        snapshot: AnalysisSnapshot,
        region: Optional[str],
        user_id: str,
        status: Dict[str, Any],
    ) -> List[Any]:
        if self.client is None:
            status["degraded_reasons"].append("ai_not_configured")
            return []
        try:
            result = self.client.recommend_products(snapshot, self.catalog, region, user_id=user_id)
            if not result.ok:
                raise AIResponseParseError(result.error)
        except SkinEngineError as e:
            log.warning("AI recommendations unavailable, using catalog fallback: %s", e)
            status["degraded_reasons"].append(degraded_reason(e))
            return []
        if not result.value:
            log.warning("AI returned no recommendations, using catalog fallback")
            status["degraded_reasons"].append("ai_response_empty")
            return []
        return list(result.value)
