"""Market (grocery) recommendations for queries that dishes cannot answer.

Some requests are for pantry items rather than prepared food ("need some
beer"). When dish matching fails, scores low, or the query names a
beverage/snack/alcohol keyword, stock items are suggested instead.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from core.logger import get_logger
from schemas.matching_schema import MatchedStockItem
from services.catalog_index import EntryId
from services.dish_ranker import tokenize
from services.ingredient_matcher import IngredientStockMatcher

logger = get_logger("services.market_fallback")

MIN_KEYWORD_LENGTH = 3


@dataclass(frozen=True)
class FallbackPolicy:
    """Decides when market suggestions accompany a dish result.

    Attributes:
        score_threshold: Best dish scores below this trigger the fallback.
        keywords: Query tokens that mark a non-dish request.
    """

    score_threshold: float = 0.15
    keywords: frozenset = frozenset()

    @classmethod
    def from_keywords(cls, keywords: Iterable[str], score_threshold: float = 0.15) -> "FallbackPolicy":
        return cls(score_threshold=score_threshold,
                   keywords=frozenset(k.strip().lower() for k in keywords if k and k.strip()))

    def mentions_market_item(self, query_text: Optional[str]) -> bool:
        return any(token in self.keywords for token in tokenize(query_text))

    def should_trigger(self, best_score: Optional[float], query_text: Optional[str] = None) -> bool:
        """True when no dish matched, the best score is low, or the query names a market keyword."""
        if best_score is None:
            return True
        if best_score < self.score_threshold:
            return True
        return self.mentions_market_item(query_text)


def extract_keywords(notes: Optional[str] = None, ingredients: Optional[Sequence[str]] = None) -> List[str]:
    """Ingredients verbatim plus note tokens longer than two characters, de-duplicated in order."""
    keywords: List[str] = []
    for ingredient in ingredients or []:
        if ingredient and ingredient.strip():
            keywords.append(ingredient)
    keywords.extend(t for t in tokenize(notes) if len(t) >= MIN_KEYWORD_LENGTH)
    return list(dict.fromkeys(keywords))


class MarketFallbackRecommender:
    """Suggests stock items for the keywords of a query."""

    def __init__(self, matcher: IngredientStockMatcher, top_k: int = 1, min_score: float = 0.5):
        self.matcher = matcher
        self.top_k = top_k
        self.min_score = min_score

    def recommend(self, notes: Optional[str] = None, ingredients: Optional[Sequence[str]] = None,
                  limit: int = 5) -> List[MatchedStockItem]:
        """Return at most `limit` (at least 1) stock items, best score first.

        Raises:
            ProviderError: Propagated from the embedding provider.
        """
        keywords = extract_keywords(notes, ingredients)
        if not keywords:
            return []

        matches = self.matcher.match_ingredients(keywords, self.top_k, self.min_score)

        best: Dict[EntryId, MatchedStockItem] = {}
        for item in matches:
            current = best.get(item.id)
            if current is None or item.score > current.score:
                best[item.id] = item

        ranked = sorted(best.values(), key=lambda item: item.score, reverse=True)
        limit = max(1, limit)
        logger.info("Market fallback: %s keywords -> %s items (limit %s)", len(keywords), len(ranked), limit)
        return ranked[:limit]
