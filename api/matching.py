"""Matching API router.

Thin HTTP layer over `MatchingService`: ingredient-to-stock matching,
embedding and lexical dish search, dish image analysis, photo orders and
market recommendations. Provider failures propagate as `ProviderError` and
are turned into retryable responses by the registered exception handlers.
"""

from fastapi import APIRouter, Depends
from typing import List

from api.deps import get_matching_service
from core.logger import get_logger
from schemas.matching_schema import (
    AnalyzeDishRequest,
    DishAnalysisResponse,
    DishRankRequest,
    DishSearchRequest,
    DishSearchResponse,
    ImageOrderRequest,
    ImageOrderResponse,
    MarketRecommendRequest,
    MarketRecommendResponse,
    RankedDishResult,
    StockItemView,
    StockMatchRequest,
    StockMatchResponse,
)
from services.matching_service import NO_MATCH_MESSAGE, MatchingService

logger = get_logger("api.matching")
router = APIRouter(prefix="/api", tags=["matching"])


@router.get("/stock", response_model=List[StockItemView])
def list_stock(service: MatchingService = Depends(get_matching_service)):
    """Return every stock item without its embedding."""
    return service.list_stock()


@router.post("/stock/match", response_model=StockMatchResponse)
def match_stock(payload: StockMatchRequest, service: MatchingService = Depends(get_matching_service)):
    """Match ingredient names to stock items by embedding similarity.

    Raises:
        ProviderError: If the embedding provider fails.
    """
    items = service.match_ingredients(payload.ingredients, payload.top_k, payload.min_score)
    logger.info("Stock match: %s ingredients -> %s items", len(payload.ingredients), len(items))
    if not items:
        return StockMatchResponse(status="no_match", items=[], message=NO_MATCH_MESSAGE)
    return StockMatchResponse(status="matched", items=items)


@router.post("/dishes/search", response_model=DishSearchResponse)
def search_dishes(payload: DishSearchRequest, service: MatchingService = Depends(get_matching_service)):
    """Find dishes semantically close to a free-text description.

    Market items are attached when nothing matched, the best match is weak,
    or the query asks for a drink/snack.
    """
    return service.search_dishes_with_fallback(payload.query, payload.top_k, payload.min_score)


@router.post("/dishes/rank", response_model=List[RankedDishResult])
def rank_dishes(payload: DishRankRequest, service: MatchingService = Depends(get_matching_service)):
    """Rank dishes by token overlap with the given ingredients and notes."""
    ranked = service.rank_dishes(payload.ingredients, payload.notes, payload.limit)
    return [RankedDishResult(dish=r.dish, match_score=round(r.match_score, 4)) for r in ranked]


@router.post("/analyze-dish", response_model=DishAnalysisResponse)
def analyze_dish(payload: AnalyzeDishRequest, service: MatchingService = Depends(get_matching_service)):
    """Analyze a catalog dish image into ingredients, steps and stock items.

    Results are cached per dish name and image; repeated requests are
    answered from the cache with `cached: true`.
    """
    return service.analyze_dish(payload.dish_name, payload.image_url)


@router.post("/ai-image-order", response_model=ImageOrderResponse)
def ai_image_order(payload: ImageOrderRequest, service: MatchingService = Depends(get_matching_service)):
    """Match an uploaded food photo to the closest dish on the menu."""
    return service.image_order(payload.image_base64, payload.mime_type, payload.notes)


@router.post("/market/recommend", response_model=MarketRecommendResponse)
def recommend_market(payload: MarketRecommendRequest, service: MatchingService = Depends(get_matching_service)):
    """Suggest grocery items for the keywords in notes and ingredients."""
    items = service.recommend_market(payload.notes, payload.ingredients, payload.limit)
    if not items:
        return MarketRecommendResponse(status="no_match", items=[], message=NO_MATCH_MESSAGE)
    return MarketRecommendResponse(status="matched", items=items)
