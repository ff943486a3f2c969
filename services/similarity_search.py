"""Top-K cosine similarity search over a `CatalogIndex`."""

from dataclasses import dataclass
from typing import List

import numpy as np

from services.catalog_index import CatalogEntry, CatalogIndex
from services.vector_math import VectorLike, similarity_scores


@dataclass(frozen=True)
class SimilarityMatch:
    """A catalog entry paired with its cosine similarity to the query."""

    entry: CatalogEntry
    score: float


def search(index: CatalogIndex, query_embedding: VectorLike, top_k: int = 3,
           min_score: float = 0.7) -> List[SimilarityMatch]:
    """Return at most `top_k` entries scoring at least `min_score`.

    Results are ordered by descending score; equal scores keep catalog
    order. An empty index or a non-positive `top_k` yields an empty list.

    Raises:
        ValueError: If the query length differs from the catalog dimension.
    """
    if top_k <= 0 or index.size() == 0:
        return []

    scores = similarity_scores(query_embedding, index.matrix)
    # stable sort on the negated scores keeps catalog order for ties
    order = np.argsort(-scores, kind="stable")
    entries = index.entries()

    matches: List[SimilarityMatch] = []
    for i in order:
        score = float(scores[i])
        if not score >= min_score:
            # sorted descending (NaN last), nothing further can pass
            break
        matches.append(SimilarityMatch(entry=entries[i], score=score))
        if len(matches) >= top_k:
            break
    return matches
