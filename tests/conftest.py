"""Shared test doubles and catalog builders."""

import math

import numpy as np
import pytest

from core.cache import LookupCache
from core.config import Settings
from core.exceptions import ProviderError
from schemas.catalog_schema import DishRecord, StockItemRecord
from schemas.matching_schema import DishAnalysis
from services.ai_providers import EmbeddingProvider, GenerativeAnalyzer
from services.catalog_index import CatalogIndex


class FakeEmbeddingProvider(EmbeddingProvider):
    """Embeds texts from a fixed lookup table; unknown texts get a zero vector."""

    def __init__(self, vectors, dimension=3, fail=False, drop_last=False):
        self.vectors = {k.lower(): v for k, v in vectors.items()}
        self.dimension = dimension
        self.fail = fail
        self.drop_last = drop_last
        self.calls = []

    def embed(self, texts):
        self.calls.append(list(texts))
        if self.fail:
            raise ProviderError("quota exceeded", provider="fake", reason="quota")
        out = [np.asarray(self.vectors.get(t.lower(), [0.0] * self.dimension), dtype=np.float32)
               for t in texts]
        if self.drop_last:
            out = out[:-1]
        return out


class FakeAnalyzer(GenerativeAnalyzer):
    """Returns a canned analysis and records each prompt."""

    def __init__(self, ingredients, instructions=None, fail=False):
        self.analysis = DishAnalysis(ingredients=ingredients, instructions=instructions or ["Serve."])
        self.fail = fail
        self.calls = []

    def analyze(self, prompt, image=None):
        self.calls.append((prompt, image))
        if self.fail:
            raise ProviderError("analysis unavailable", provider="fake")
        return self.analysis


def unit_at(score, dim=3, axis=0, spill=1):
    """Unit vector whose cosine with the `axis` basis vector equals `score`."""
    v = [0.0] * dim
    v[axis] = score
    v[spill] = math.sqrt(max(0.0, 1.0 - score * score))
    return v


def stock_record(item_id, embedding, name=None, category="pantry"):
    return {
        "id": item_id,
        "name": name or f"Item {item_id}",
        "price": 1.5,
        "unit": "1 pc",
        "category": category,
        "image": f"/images/stock/{item_id}.jpg",
        "embedding": list(embedding),
    }


def dish_record(dish_id, name, ingredients, description=None, embedding=(1.0, 0.0, 0.0)):
    return {
        "id": dish_id,
        "restaurantSlug": "test-kitchen",
        "name": name,
        "description": description or name,
        "price": 9.0,
        "image": f"/images/dishes/{dish_id}.jpg",
        "ingredients": list(ingredients),
        "embedding": list(embedding),
    }


def make_stock_index(records):
    return CatalogIndex.load(records, StockItemRecord, "stock")


def make_dish_index(records):
    return CatalogIndex.load(records, DishRecord, "dishes")


@pytest.fixture
def settings(tmp_path):
    return Settings(image_root=str(tmp_path), embedding_dim=3)


@pytest.fixture
def cache():
    return LookupCache(max_entries=16)
