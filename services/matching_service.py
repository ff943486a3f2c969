"""Matching service: wires catalogs, AI collaborators, cache and rankers.

One `MatchingService` is built at application startup (see `main.lifespan`)
and injected into the API routes. It owns no global state: the catalogs are
immutable and the lookup cache is an explicit instance.
"""

import base64
import binascii
import hashlib
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from core.cache import LookupCache, make_key
from core.config import Settings
from core.exceptions import NotFoundError, ProviderError, ValidationError
from core.logger import get_logger
from schemas.catalog_schema import DishRecord, StockItemRecord
from schemas.matching_schema import DishAnalysis, MatchedStockItem
from services.ai_providers import (
    EmbeddingProvider,
    GeminiDishAnalyzer,
    GeminiEmbeddingProvider,
    GenerativeAnalyzer,
    ImagePayload,
)
from services.catalog_index import CatalogEntry, CatalogIndex, load_catalog_file
from services.dish_ranker import RankedDish, TextualDishRanker
from services.ingredient_matcher import IngredientStockMatcher
from services.market_fallback import FallbackPolicy, MarketFallbackRecommender
from services.similarity_search import SimilarityMatch, search

logger = get_logger("services.matching_service")

NO_MATCH_MESSAGE = "No matches found, try rephrasing your request"

DISH_ANALYSIS_PROMPT = (
    'Analyze the dish named "{name}" from the provided image.{reference}\n\n'
    "Return a JSON object with:\n"
    '- "ingredients": array of strings (exact ingredients needed, refined from the '
    "reference list and the image; the reference list might be incomplete)\n"
    '- "instructions": array of strings (step-by-step preparation guide inferred from '
    "the image and description)\n\n"
    "Respond ONLY with valid JSON. No extra text."
)

UPLOAD_ANALYSIS_PROMPT = (
    "Identify the dish in the provided photo. Customer notes: \"{notes}\".\n\n"
    "Return a JSON object with:\n"
    '- "ingredients": array of up to 8 concise ingredient names visible or implied\n'
    '- "instructions": array of strings (short preparation steps)\n\n'
    "Respond ONLY with valid JSON. No extra text."
)

MIME_BY_EXTENSION = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
}


def guess_mime(path: str) -> str:
    ext = path.lower().rsplit(".", 1)[-1] if "." in path else ""
    return MIME_BY_EXTENSION.get(ext, "image/jpeg")


def load_image(relative_path: str, image_root: str) -> ImagePayload:
    """Read an image below `image_root`.

    Raises:
        ValidationError: If the path escapes the image root.
        NotFoundError: If the file does not exist.
    """
    root = Path(image_root).resolve()
    target = (root / relative_path.lstrip("/\\")).resolve()
    if root != target and root not in target.parents:
        raise ValidationError("Image path must stay inside the image root", field="image_url")
    if not target.is_file():
        raise NotFoundError("Image", relative_path)
    return ImagePayload(data=target.read_bytes(), mime_type=guess_mime(target.name))


def decode_image(image_base64: str, mime_type: str) -> ImagePayload:
    """Decode base64 image data, accepting a `data:` URL prefix."""
    payload = image_base64.split(",", 1)[1] if "," in image_base64 else image_base64
    if not mime_type.startswith("image/"):
        raise ValidationError("mime_type must be an image type", field="mime_type")
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Invalid image data", field="image_base64")
    if not data:
        raise ValidationError("Invalid image data", field="image_base64")
    return ImagePayload(data=data, mime_type=mime_type)


def dish_view(entry_or_attrs: Any) -> Dict[str, Any]:
    attrs = entry_or_attrs.attributes if isinstance(entry_or_attrs, CatalogEntry) else entry_or_attrs
    return dict(attrs)


class MatchingService:
    """Facade over the matching components for one pair of catalogs."""

    def __init__(
        self,
        dishes: CatalogIndex,
        stock: CatalogIndex,
        provider: EmbeddingProvider,
        analyzer: GenerativeAnalyzer,
        cache: LookupCache,
        settings: Settings,
        ranker: Optional[TextualDishRanker] = None,
    ):
        self.dishes = dishes
        self.stock = stock
        self.provider = provider
        self.analyzer = analyzer
        self.cache = cache
        self.settings = settings
        self.ranker = ranker or TextualDishRanker()
        self.matcher = IngredientStockMatcher(stock, provider)
        self.market = MarketFallbackRecommender(
            self.matcher, top_k=settings.market_top_k, min_score=settings.market_min_score
        )
        self.fallback_policy = FallbackPolicy.from_keywords(
            settings.market_fallback_keywords, settings.market_fallback_threshold
        )

    # stock

    def list_stock(self) -> List[Dict[str, Any]]:
        return [dict(entry.attributes) for entry in self.stock.entries()]

    def match_ingredients(self, ingredients: Sequence[str], top_k: Optional[int] = None,
                          min_score: Optional[float] = None) -> List[MatchedStockItem]:
        return self.matcher.match_ingredients(
            ingredients,
            top_k if top_k is not None else self.settings.stock_top_k,
            min_score if min_score is not None else self.settings.stock_min_score,
        )

    def recommend_market(self, notes: Optional[str] = None, ingredients: Optional[Sequence[str]] = None,
                         limit: Optional[int] = None) -> List[MatchedStockItem]:
        return self.market.recommend(notes, ingredients,
                                     limit if limit is not None else self.settings.market_limit)

    # dishes

    def search_dishes(self, query: str, top_k: Optional[int] = None,
                      min_score: Optional[float] = None) -> List[SimilarityMatch]:
        """Embed free text and return the closest dishes above the threshold."""
        vectors = self.provider.embed([query])
        if len(vectors) != 1:
            raise ProviderError(f"Embedding provider returned {len(vectors)} vectors for 1 query",
                                reason="count_mismatch")
        if self.dishes.dimension is not None and len(vectors[0]) != self.dishes.dimension:
            raise ProviderError(f"Query embedding has {len(vectors[0])} dimensions, "
                                f"dish catalog uses {self.dishes.dimension}", reason="dimension_mismatch")
        return search(
            self.dishes,
            vectors[0],
            top_k if top_k is not None else self.settings.dish_top_k,
            min_score if min_score is not None else self.settings.dish_min_score,
        )

    def rank_dishes(self, ingredients: Sequence[str] = (), notes: Optional[str] = None,
                    limit: int = 5) -> List[RankedDish]:
        return self.ranker.rank([dish_view(e) for e in self.dishes.entries()], ingredients, notes, limit)

    def find_dish_by_name(self, name: str) -> Optional[CatalogEntry]:
        wanted = name.strip().lower()
        for entry in self.dishes.entries():
            if entry.attributes["name"].strip().lower() == wanted:
                return entry
        return None

    def should_suggest_market(self, best_score: Optional[float], query_text: Optional[str]) -> bool:
        return self.fallback_policy.should_trigger(best_score, query_text)

    # orchestration

    def search_dishes_with_fallback(self, query: str, top_k: Optional[int] = None,
                                    min_score: Optional[float] = None) -> Dict[str, Any]:
        matches = self.search_dishes(query, top_k, min_score)
        best = matches[0].score if matches else None
        suggestions: List[MatchedStockItem] = []
        if self.should_suggest_market(best, query):
            suggestions = self.recommend_market(notes=query)
        return {
            "status": "matched" if matches else "no_match",
            "matches": [{"dish": dish_view(m.entry), "score": round(m.score, 4)} for m in matches],
            "market_suggestions": suggestions,
            "message": None if matches else NO_MATCH_MESSAGE,
        }

    def analyze_dish(self, dish_name: str, image_url: str) -> Dict[str, Any]:
        """Analyze a dish image and match its ingredients to stock, memoized per dish and image."""
        key = make_key("analyze-dish", dish_name, image_url)

        def compute() -> Dict[str, Any]:
            entry = self.find_dish_by_name(dish_name)
            reference = ""
            if entry is not None:
                attrs = entry.attributes
                reference = (f' Use the official description "{attrs["description"]}" and listed '
                             f'ingredients [{", ".join(attrs["ingredients"])}] as reference.')
            image = load_image(image_url, self.settings.image_root)
            analysis = self.analyzer.analyze(
                DISH_ANALYSIS_PROMPT.format(name=dish_name, reference=reference), image
            )
            matched = self.match_ingredients(analysis.ingredients)
            logger.info("Analyzed dish '%s': %s ingredients, %s stock matches",
                        dish_name, len(analysis.ingredients), len(matched))
            return {
                "ingredients": analysis.ingredients,
                "instructions": analysis.instructions,
                "matched_stock_items": [m.model_dump() for m in matched],
            }

        return self.cache.get_or_compute(key, compute)

    def analyze_upload(self, image: ImagePayload, notes: Optional[str]) -> DishAnalysis:
        key = make_key("analyze-upload", hashlib.sha256(image.data).hexdigest(), notes or "")

        def compute() -> Dict[str, Any]:
            prompt = UPLOAD_ANALYSIS_PROMPT.format(notes=(notes or "").strip()[:200])
            return self.analyzer.analyze(prompt, image).model_dump()

        result = self.cache.get_or_compute(key, compute)
        return DishAnalysis(ingredients=result["ingredients"], instructions=result["instructions"])

    def image_order(self, image_base64: str, mime_type: str, notes: Optional[str] = None) -> Dict[str, Any]:
        """Find the catalog dish closest to an uploaded photo.

        The photo is analyzed into ingredients, dishes are ranked lexically
        against those ingredients and the notes, and market items are added
        when the fallback policy says the dish result is not good enough.
        """
        image = decode_image(image_base64, mime_type)
        analysis = self.analyze_upload(image, notes)

        ranked = self.rank_dishes(analysis.ingredients, notes, limit=1)
        best = ranked[0] if ranked and ranked[0].match_score > 0 else None
        best_score = best.match_score if best else None

        suggestions: List[MatchedStockItem] = []
        if self.should_suggest_market(best_score, notes):
            suggestions = self.recommend_market(notes=notes, ingredients=analysis.ingredients)

        return {
            "status": "matched" if best else "no_match",
            "analysis": analysis,
            "dish": best.dish if best else None,
            "match_score": round(best_score, 4) if best else 0.0,
            "market_suggestions": suggestions,
            "message": None if best else NO_MATCH_MESSAGE,
        }


def build_matching_service(settings: Settings, provider: Optional[EmbeddingProvider] = None,
                           analyzer: Optional[GenerativeAnalyzer] = None) -> MatchingService:
    """Load both catalogs and construct the service with Gemini collaborators.

    Raises:
        SchemaError: If either catalog fails validation.
        ConfigurationError: If Gemini credentials are missing.
    """
    dishes = load_catalog_file(settings.dishes_catalog_path, DishRecord, "dishes", settings.embedding_dim)
    stock = load_catalog_file(settings.stock_catalog_path, StockItemRecord, "stock", settings.embedding_dim)
    provider = provider or GeminiEmbeddingProvider(
        api_key=settings.gemini_api_key, model=settings.embedding_model, dimension=settings.embedding_dim
    )
    analyzer = analyzer or GeminiDishAnalyzer(api_key=settings.gemini_api_key, model=settings.analysis_model)
    cache = LookupCache(max_entries=settings.cache_max_entries, ttl_seconds=settings.cache_ttl_seconds)
    return MatchingService(dishes, stock, provider, analyzer, cache, settings)
