"""Map extracted ingredient strings to stock items via embedding search.

All ingredients are embedded in a single provider call, each vector is
searched against the stock catalog, and the results are deduplicated by
stock id keeping the best-scoring occurrence.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from core.exceptions import ProviderError
from core.logger import get_logger
from schemas.matching_schema import MatchedStockItem
from services.ai_providers import EmbeddingProvider
from services.catalog_index import CatalogIndex, EntryId
from services.similarity_search import SimilarityMatch, search

logger = get_logger("services.ingredient_matcher")


def to_matched_item(match: SimilarityMatch, ingredient: Optional[str] = None) -> MatchedStockItem:
    """Copy the stock attributes of `match` into a `MatchedStockItem`."""
    attrs = match.entry.attributes
    return MatchedStockItem(
        id=match.entry.id,
        name=attrs["name"],
        price=attrs["price"],
        unit=attrs["unit"],
        category=attrs["category"],
        image=attrs.get("image") or "",
        score=round(match.score, 4),
        ingredient=ingredient,
    )


class IngredientStockMatcher:
    """Matches ingredient names to stock items of one catalog."""

    def __init__(self, stock_index: CatalogIndex, provider: EmbeddingProvider):
        self.stock_index = stock_index
        self.provider = provider

    def match_ingredients(self, ingredients: Sequence[str], top_k_per_ingredient: int = 1,
                          min_score: float = 0.75) -> List[MatchedStockItem]:
        """Return stock items matching `ingredients`, one per stock id.

        Args:
            ingredients: Ingredient strings; blank entries are ignored.
            top_k_per_ingredient: Matches kept for each ingredient.
            min_score: Minimum cosine similarity for a match.

        Returns:
            Matched items tagged with the ingredient that produced them. When
            several ingredients hit the same stock item only the highest
            score is kept. Order follows first appearance, not score.

        Raises:
            ProviderError: If the provider fails or its output does not line
                up with the requested ingredients.
        """
        queries = [i for i in ingredients if i and i.strip()]
        if not queries:
            return []

        vectors = self.provider.embed(queries)
        if len(vectors) != len(queries):
            raise ProviderError(
                f"Embedding provider returned {len(vectors)} vectors for {len(queries)} ingredients",
                reason="count_mismatch",
            )

        best: Dict[EntryId, Tuple[SimilarityMatch, str]] = {}
        for ingredient, vector in zip(queries, vectors):
            if self.stock_index.dimension is not None and len(vector) != self.stock_index.dimension:
                raise ProviderError(
                    f"Embedding for '{ingredient}' has {len(vector)} dimensions, "
                    f"stock catalog uses {self.stock_index.dimension}",
                    reason="dimension_mismatch",
                )
            for match in search(self.stock_index, vector, top_k_per_ingredient, min_score):
                current = best.get(match.entry.id)
                if current is None or match.score > current[0].score:
                    best[match.entry.id] = (match, ingredient)

        logger.info("Matched %s ingredients to %s stock items", len(queries), len(best))
        return [to_matched_item(match, ingredient) for match, ingredient in best.values()]
