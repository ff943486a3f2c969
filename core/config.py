"""Application settings read from environment variables.

All tunables of the matching pipeline live here: catalog locations, model
names, search thresholds, the market fallback heuristic and the lookup cache
bounds. `get_settings()` reads the environment once per process.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Tuple

from core.exceptions import ConfigurationError

ROOT_DIR = Path(__file__).resolve().parents[1]
FIXTURES_DIR = ROOT_DIR / "data" / "fixtures"

DEFAULT_MARKET_KEYWORDS = (
    # beverages
    "drink", "drinks", "beverage", "water", "soda", "cola", "juice", "coffee", "tea", "milk",
    # alcohol
    "beer", "wine", "vodka", "whisky", "whiskey", "rum", "gin", "tequila", "cider", "alcohol",
    # snacks
    "snack", "snacks", "chips", "crisps", "candy", "chocolate", "cookies", "crackers", "nuts", "popcorn",
)


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got '{raw}'", config_key=key)


def _env_float(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be a number, got '{raw}'", config_key=key)


def _env_keywords(key: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    return tuple(k.strip().lower() for k in raw.split(",") if k.strip())


@dataclass(frozen=True)
class Settings:
    """Immutable snapshot of the service configuration."""

    gemini_api_key: str = ""
    embedding_model: str = "gemini-embedding-001"
    embedding_dim: int = 768
    analysis_model: str = "gemini-2.5-flash"

    dishes_catalog_path: str = str(FIXTURES_DIR / "dishes-with-embeddings.json")
    stock_catalog_path: str = str(FIXTURES_DIR / "stock-with-embeddings.json")
    image_root: str = str(ROOT_DIR / "public")

    # ingredient -> stock matching used by dish analysis
    stock_top_k: int = 1
    stock_min_score: float = 0.75
    # free text -> dish search
    dish_top_k: int = 3
    dish_min_score: float = 0.7

    market_top_k: int = 1
    market_min_score: float = 0.5
    market_limit: int = 5
    market_fallback_threshold: float = 0.15
    market_fallback_keywords: Tuple[str, ...] = field(default=DEFAULT_MARKET_KEYWORDS)

    cache_max_entries: int = 512
    cache_ttl_seconds: float = 0.0


def load_settings() -> Settings:
    """Build a `Settings` instance from the current environment.

    Raises:
        ConfigurationError: If a numeric variable cannot be parsed.
    """
    defaults = Settings()
    return Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY", defaults.gemini_api_key),
        embedding_model=os.getenv("EMBEDDING_MODEL", defaults.embedding_model),
        embedding_dim=_env_int("EMBEDDING_DIM", defaults.embedding_dim),
        analysis_model=os.getenv("ANALYSIS_MODEL", defaults.analysis_model),
        dishes_catalog_path=os.getenv("DISHES_CATALOG_PATH", defaults.dishes_catalog_path),
        stock_catalog_path=os.getenv("STOCK_CATALOG_PATH", defaults.stock_catalog_path),
        image_root=os.getenv("IMAGE_ROOT", defaults.image_root),
        stock_top_k=_env_int("STOCK_TOP_K", defaults.stock_top_k),
        stock_min_score=_env_float("STOCK_MIN_SCORE", defaults.stock_min_score),
        dish_top_k=_env_int("DISH_TOP_K", defaults.dish_top_k),
        dish_min_score=_env_float("DISH_MIN_SCORE", defaults.dish_min_score),
        market_top_k=_env_int("MARKET_TOP_K", defaults.market_top_k),
        market_min_score=_env_float("MARKET_MIN_SCORE", defaults.market_min_score),
        market_limit=_env_int("MARKET_LIMIT", defaults.market_limit),
        market_fallback_threshold=_env_float("MARKET_FALLBACK_THRESHOLD", defaults.market_fallback_threshold),
        market_fallback_keywords=_env_keywords("MARKET_FALLBACK_KEYWORDS", defaults.market_fallback_keywords),
        cache_max_entries=_env_int("CACHE_MAX_ENTRIES", defaults.cache_max_entries),
        cache_ttl_seconds=_env_float("CACHE_TTL_SECONDS", defaults.cache_ttl_seconds),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, reading the environment on first use."""
    return load_settings()
