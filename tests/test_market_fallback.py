"""Tests for market (grocery) fallback recommendations."""

import pytest

from conftest import FakeEmbeddingProvider, make_stock_index, stock_record
from services.ingredient_matcher import IngredientStockMatcher
from services.market_fallback import FallbackPolicy, MarketFallbackRecommender, extract_keywords


def _one_hot(i, dim=8):
    v = [0.0] * dim
    v[i] = 1.0
    return v


def _recommender(vectors, records, dim=8):
    provider = FakeEmbeddingProvider(vectors, dimension=dim)
    matcher = IngredientStockMatcher(make_stock_index(records), provider)
    return MarketFallbackRecommender(matcher, top_k=1, min_score=0.5), provider


def test_beer_request_recommends_beer():
    records = [stock_record(i + 1, _one_hot(i), name=f"Item {i + 1}") for i in range(8)]
    records[3]["name"] = "Lager beer"
    recommender, provider = _recommender({"beer": _one_hot(3)}, records)

    policy = FallbackPolicy.from_keywords(["beer", "chips"])
    assert policy.should_trigger(0.9, "need some beer")

    items = recommender.recommend(notes="need some beer", limit=5)
    assert provider.calls == [["need", "some", "beer"]]
    assert [i.name for i in items] == ["Lager beer"]
    assert items[0].ingredient == "beer"


def test_results_are_deduplicated_and_truncated():
    records = [stock_record(i + 1, _one_hot(i)) for i in range(8)]
    vectors = {f"kw{i}": _one_hot(i) for i in range(8)}
    vectors["kw0 again"] = [0.8, 0.6, 0, 0, 0, 0, 0, 0]
    recommender, _ = _recommender(vectors, records)

    keywords = [f"kw{i}" for i in range(8)] + ["kw0 again"]
    items = recommender.recommend(ingredients=keywords, limit=5)
    assert len(items) == 5
    assert len({i.id for i in items}) == 5
    item_one = [i for i in recommender.recommend(ingredients=keywords, limit=50) if i.id == 1]
    assert len(item_one) == 1
    assert item_one[0].score == pytest.approx(1.0)


def test_limit_is_at_least_one():
    records = [stock_record(1, _one_hot(0)), stock_record(2, _one_hot(1))]
    recommender, _ = _recommender({"kw0": _one_hot(0), "kw1": _one_hot(1)}, records)
    assert len(recommender.recommend(ingredients=["kw0", "kw1"], limit=0)) == 1


def test_no_keywords_returns_empty_without_provider_call():
    recommender, provider = _recommender({}, [stock_record(1, _one_hot(0))])
    assert recommender.recommend(notes="a an to", ingredients=["", "  "]) == []
    assert provider.calls == []


def test_keyword_extraction_keeps_ingredients_verbatim():
    assert extract_keywords("Need ice, lots of it!", ["Sparkling Water"]) == [
        "Sparkling Water", "need", "ice", "lots",
    ]


def test_trigger_policy():
    policy = FallbackPolicy.from_keywords(["beer", "chips"], score_threshold=0.15)
    assert policy.should_trigger(None, "pizza")
    assert policy.should_trigger(0.1, "pizza")
    assert not policy.should_trigger(0.5, "pizza with extra cheese")
    assert policy.should_trigger(0.5, "pizza and CHIPS")


def test_threshold_is_tunable():
    strict = FallbackPolicy.from_keywords([], score_threshold=0.6)
    assert strict.should_trigger(0.5, "pizza")
    assert not FallbackPolicy.from_keywords([], score_threshold=0.3).should_trigger(0.5, "pizza")
