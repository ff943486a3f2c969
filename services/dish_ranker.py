"""Lexical dish ranking by token overlap.

Used when no embedding is available for the query (e.g. ingredients came
back from image analysis) or as a second signal next to the embedding
search. Exact ingredient matches count double; the denominator grows with
the size of the query so long notes do not inflate scores on their own.
"""

import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Set

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_text(value: Optional[str]) -> str:
    """Lowercase, collapse non-alphanumeric runs to one space and trim."""
    if not value:
        return ""
    return _NON_ALNUM.sub(" ", value.lower()).strip()


def tokenize(value: Optional[str]) -> List[str]:
    normalized = normalize_text(value)
    return normalized.split() if normalized else []


def _token_set(values: Iterable[Optional[str]]) -> Set[str]:
    tokens: Set[str] = set()
    for value in values:
        tokens.update(tokenize(value))
    return tokens


@dataclass(frozen=True)
class RankedDish:
    dish: Mapping[str, Any]
    match_score: float


class TextualDishRanker:
    """Scores dishes against query ingredients and free-text notes."""

    def score(self, dish: Mapping[str, Any], query_ingredients: Sequence[str],
              query_tokens: Set[str]) -> float:
        """Score one dish; `query_tokens` must come from the same query."""
        dish_ingredients = list(dish.get("ingredients") or [])
        dish_tokens = _token_set(dish_ingredients)
        dish_tokens.update(tokenize(dish.get("name")))
        dish_tokens.update(tokenize(dish.get("description")))

        overlap = sum(1 for token in query_tokens if token in dish_tokens)

        normalized_dish_ingredients = {normalize_text(i) for i in dish_ingredients}
        direct_matches = sum(
            1 for ingredient in query_ingredients
            if normalize_text(ingredient) in normalized_dish_ingredients
        )

        denom = max(1, len(query_tokens) + len(query_ingredients))
        return (direct_matches * 2 + overlap) / denom

    def rank(self, dishes: Sequence[Mapping[str, Any]], query_ingredients: Sequence[str] = (),
             query_notes: Optional[str] = None, limit: int = 5) -> List[RankedDish]:
        """Rank `dishes` by descending match score, ties in catalog order.

        Args:
            dishes: Dish mappings with `name`, `description` and `ingredients`.
            query_ingredients: Ingredient strings from the query.
            query_notes: Optional free-text notes.
            limit: Maximum number of results.

        Returns:
            Up to `limit` `RankedDish` objects.
        """
        if limit <= 0 or not dishes:
            return []
        query_ingredients = list(query_ingredients or [])
        query_tokens = _token_set(query_ingredients)
        query_tokens.update(tokenize(query_notes))

        ranked = [
            RankedDish(dish=dish, match_score=self.score(dish, query_ingredients, query_tokens))
            for dish in dishes
        ]
        # sorted() is stable, so ties keep catalog order
        ranked = sorted(ranked, key=lambda r: r.match_score, reverse=True)
        return ranked[:limit]
