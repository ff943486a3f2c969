"""Tests for the matching API endpoints and their error translation."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.matching import match_stock, rank_dishes, recommend_market, router
from conftest import (
    FakeAnalyzer,
    FakeEmbeddingProvider,
    dish_record,
    make_dish_index,
    make_stock_index,
    stock_record,
)
from core.error_handlers import register_exception_handlers
from schemas.matching_schema import DishRankRequest, MarketRecommendRequest, StockMatchRequest
from services.matching_service import MatchingService


@pytest.fixture
def service(settings, cache):
    dishes = make_dish_index([
        dish_record("burger", "Burger", ["beef", "bun"], description="classic burger"),
        dish_record("sushi", "Sushi", ["rice", "nori"], embedding=[0, 1, 0]),
    ])
    stock = make_stock_index([
        stock_record(42, [1, 0, 0], name="Tomatoes"),
        stock_record(12, [0, 0, 1], name="Lager beer", category="alcohol"),
    ])
    provider = FakeEmbeddingProvider({"tomato": [1, 0, 0], "beer": [0, 0, 1]})
    return MatchingService(dishes, stock, provider, FakeAnalyzer(["beef"]), cache, settings)


def _client(service):
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(router)
    app.state.matching = service
    return TestClient(app)


def test_match_stock_endpoint(service):
    res = match_stock(StockMatchRequest(ingredients=["tomato", "saffron"]), service=service)
    assert res.status == "matched"
    assert [(i.id, i.ingredient) for i in res.items] == [(42, "tomato")]


def test_match_stock_reports_no_match(service):
    res = match_stock(StockMatchRequest(ingredients=["saffron"]), service=service)
    assert res.status == "no_match"
    assert res.items == []
    assert "rephras" in res.message


def test_rank_dishes_endpoint(service):
    res = rank_dishes(DishRankRequest(notes="craving a beef burger", limit=1), service=service)
    assert len(res) == 1
    assert res[0].dish.id == "burger"
    assert res[0].match_score == pytest.approx(0.5)


def test_recommend_market_endpoint(service):
    res = recommend_market(MarketRecommendRequest(notes="need some beer", limit=5), service=service)
    assert res.status == "matched"
    assert [i.id for i in res.items] == [12]


def test_stock_listing_hides_embeddings(service):
    res = _client(service).get("/api/stock")
    assert res.status_code == 200
    body = res.json()
    assert {item["id"] for item in body} == {42, 12}
    assert all("embedding" not in item for item in body)


def test_provider_outage_is_retryable_error(service):
    service.matcher.provider = FakeEmbeddingProvider({}, fail=True)
    res = _client(service).post("/api/stock/match", json={"ingredients": ["tomato"]})
    assert res.status_code == 503
    assert res.headers["Retry-After"]
    error = res.json()["error"]
    assert error["details"]["retryable"] is True
    assert "try again" in error["message"]


def test_request_validation_error_shape(service):
    res = _client(service).post("/api/stock/match", json={"ingredients": []})
    assert res.status_code == 422
    assert res.json()["error"]["details"]["validation_errors"]


def test_request_id_is_echoed_on_errors(service):
    from main import app

    app.state.matching = service
    service.matcher.provider = FakeEmbeddingProvider({}, fail=True)
    # no context manager: the lifespan (real catalogs, Gemini client) is not run
    client = TestClient(app)
    res = client.post(
        "/api/stock/match",
        json={"ingredients": ["tomato"]},
        headers={"X-Request-ID": "order-123"},
    )
    assert res.status_code == 503
    assert res.headers["X-Request-ID"] == "order-123"
    assert res.json()["error"]["request_id"] == "order-123"
