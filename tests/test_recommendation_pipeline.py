"""
Tests for the recommendation pipeline status contract and AI fallback.
"""
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from ai_service import AIRecommendation, ParseResult
from catalog import load_bundled_catalog, load_catalog
from conftest import make_snapshot
from constants import REQUIRED_CATEGORIES
from errors import ExternalServiceError, RateLimitExceeded
from pipeline.recommendation_pipeline import RecommendationPipeline


@pytest.fixture
def catalog():
    return load_bundled_catalog()


def _rec(**overrides):
    data = {
        "category": "cleansers",
        "productName": "Foaming Facial Cleanser",
        "brandName": "CeraVe",
        "personalReason": "Low hydration at 45%.",
        "whyForYou": ["a", "b", "c"],
        "skinTypeMatch": "dry",
        "concernsAddressed": ["dryness"],
        "priorityOrder": 1,
        "usageTip": "Morning and night.",
    }
    data.update(overrides)
    return AIRecommendation.model_validate(data)


# ─── Status contract ────────────────────────────────────────


class TestStatus:

    def test_ai_success(self, catalog):
        client = MagicMock()
        client.recommend_products.return_value = ParseResult.success([_rec()])
        snapshot = make_snapshot(skin_type="dry", concerns=["dryness"])

        result = RecommendationPipeline(catalog, client=client).run(snapshot, region="US", user_id="u1")

        assert result["analysis_status"] == "success"
        assert result["degraded_reasons"] == []
        first = result["products"][0]
        assert first.catalog_product.id == "cerave_hydrating_facial_cleanser"
        assert not first.synthesized
        client.recommend_products.assert_called_once()
        assert client.recommend_products.call_args.kwargs["user_id"] == "u1"

    def test_no_client_is_degraded_but_complete(self, catalog):
        result = RecommendationPipeline(catalog).run(make_snapshot(concerns=["acne"]), region="US")
        assert result["analysis_status"] == "degraded"
        assert result["degraded_reasons"] == ["ai_not_configured"]
        categories = {p.catalog_product.category for p in result["products"]}
        assert set(REQUIRED_CATEGORIES) <= categories

    @pytest.mark.parametrize("outcome,reason", [
        (ExternalServiceError("boom"), "ai_call_failed"),
        (RateLimitExceeded("limit"), "ai_rate_limited"),
        (ParseResult.failure("bad json"), "ai_response_invalid"),
    ])
    def test_ai_failures_fall_back(self, catalog, outcome, reason):
        client = MagicMock()
        if isinstance(outcome, Exception):
            client.recommend_products.side_effect = outcome
        else:
            client.recommend_products.return_value = outcome

        result = RecommendationPipeline(catalog, client=client).run(make_snapshot(), region="US")

        assert result["analysis_status"] == "degraded"
        assert result["degraded_reasons"] == [reason]
        assert all(p.synthesized and p.match_score == 72 for p in result["products"])
        assert len(result["products"]) == len(REQUIRED_CATEGORIES)

    def test_empty_ai_list_is_degraded(self, catalog):
        client = MagicMock()
        client.recommend_products.return_value = ParseResult.success([])

        result = RecommendationPipeline(catalog, client=client).run(make_snapshot(), region="US")

        assert result["analysis_status"] == "degraded"
        assert result["degraded_reasons"] == ["ai_response_empty"]
        assert all(p.synthesized for p in result["products"])

    def test_unexpected_exception_propagates(self, catalog):
        client = MagicMock()
        client.recommend_products.side_effect = KeyError("bug")
        with pytest.raises(KeyError):
            RecommendationPipeline(catalog, client=client).run(make_snapshot())


class TestCatalogFile:

    def test_bundled_catalog_covers_required_categories(self, catalog):
        categories = {p.category for p in catalog}
        assert set(REQUIRED_CATEGORIES) <= categories
        assert len({p.id for p in catalog}) == len(catalog)

    def test_bundled_catalog_is_package_data(self, tmp_path, monkeypatch):
        import skin_data

        monkeypatch.chdir(tmp_path)
        products = load_bundled_catalog()
        assert products[0].id == "cerave_hydrating_facial_cleanser"
        assert (Path(skin_data.__file__).parent / "catalog.json").is_file()

    def test_load_accepts_bare_list(self, tmp_path):
        path = tmp_path / "c.json"
        path.write_text('[{"id": "x", "brand": "B", "name": "N", "category": "serums"}]')
        products = load_catalog(path)
        assert products[0].id == "x"
        assert products[0].regional_availability == ()
