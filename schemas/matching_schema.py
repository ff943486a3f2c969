"""Schemas for matching requests, results and AI analysis payloads."""

from pydantic import BaseModel, Field
from typing import List, Literal, Optional

MatchStatus = Literal["matched", "no_match"]


class MatchedStockItem(BaseModel):
    """A stock item matched to a query ingredient, with its similarity score."""

    id: int
    name: str
    price: float
    unit: str
    category: str
    image: str = ""
    score: float = Field(..., description="Cosine similarity rounded to 4 decimals")
    ingredient: Optional[str] = Field(None, description="Query ingredient that produced this match")


class StockItemView(BaseModel):
    """Stock item as listed to clients (embedding omitted)."""

    id: int
    name: str
    price: float
    unit: str
    category: str
    image: str = ""


class DishSummary(BaseModel):
    """Dish attributes returned to clients (embedding omitted)."""

    id: str
    name: str
    description: str
    price: float
    image: str
    ingredients: List[str]
    restaurant_id: Optional[str] = None
    restaurant_slug: Optional[str] = None


class DishAnalysis(BaseModel):
    """Structured output expected from the generative analyzer."""

    ingredients: List[str] = Field(..., min_length=1, examples=[["spaghetti", "guanciale", "egg yolk", "pecorino"]])
    instructions: List[str] = Field(default_factory=list)


class StockMatchRequest(BaseModel):
    ingredients: List[str] = Field(..., min_length=1, examples=[["tomato", "basil"]])
    top_k: Optional[int] = Field(None, ge=1, le=20, description="Matches kept per ingredient")
    min_score: Optional[float] = Field(None, ge=-1.0, le=1.0)


class StockMatchResponse(BaseModel):
    status: MatchStatus
    items: List[MatchedStockItem]
    message: Optional[str] = None


class DishSearchRequest(BaseModel):
    query: str = Field(..., min_length=1, examples=["something spicy with noodles"])
    top_k: Optional[int] = Field(None, ge=1, le=20)
    min_score: Optional[float] = Field(None, ge=-1.0, le=1.0)


class DishSearchResult(BaseModel):
    dish: DishSummary
    score: float


class DishSearchResponse(BaseModel):
    status: MatchStatus
    matches: List[DishSearchResult]
    market_suggestions: List[MatchedStockItem] = []
    message: Optional[str] = None


class DishRankRequest(BaseModel):
    ingredients: List[str] = Field(default_factory=list, examples=[["beef", "bun"]])
    notes: Optional[str] = Field(None, examples=["craving a beef burger"])
    limit: int = Field(5, ge=1, le=50)


class RankedDishResult(BaseModel):
    dish: DishSummary
    match_score: float


class AnalyzeDishRequest(BaseModel):
    dish_name: str = Field(..., min_length=1, examples=["Spaghetti Carbonara"])
    image_url: str = Field(..., min_length=1, examples=["/images/dishes/carbonara.jpg"],
                           description="Image path relative to the public image root")


class DishAnalysisResponse(BaseModel):
    ingredients: List[str]
    instructions: List[str]
    matched_stock_items: List[MatchedStockItem]
    cached: bool = False


class ImageOrderRequest(BaseModel):
    image_base64: str = Field(..., min_length=1, description="Base64 image data, optionally a data: URL")
    mime_type: str = Field(..., min_length=1, examples=["image/jpeg"])
    notes: Optional[str] = Field(None, examples=["no onions please"])


class ImageOrderResponse(BaseModel):
    status: MatchStatus
    analysis: DishAnalysis
    dish: Optional[DishSummary] = None
    match_score: float = 0.0
    market_suggestions: List[MatchedStockItem] = []
    message: Optional[str] = None


class MarketRecommendRequest(BaseModel):
    notes: Optional[str] = Field(None, examples=["need some beer"])
    ingredients: List[str] = Field(default_factory=list)
    limit: int = Field(5, ge=1, le=50)


class MarketRecommendResponse(BaseModel):
    status: MatchStatus
    items: List[MatchedStockItem]
    message: Optional[str] = None
