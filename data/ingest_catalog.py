"""Utilities to build the embedding catalogs from CSV fixtures.

This module provides:
- parse_stock_csv(csv_path): returns a list of normalized stock item dicts
- parse_dishes_csv(csv_path): returns a list of normalized dish dicts
- embed_records(records, provider, text_fn): attaches an `embedding` to each record
- build_catalog(kind, csv_path, out_path, provider): parse, embed and write JSON

The JSON files written here are the static catalogs loaded by the service at
startup. Embeddings are computed offline so the service never embeds its own
catalog at request time.
"""
from __future__ import annotations

from typing import Callable, Dict, List, Optional
import json
import logging
import math
from pathlib import Path

import pandas as pd

from core.exceptions import ProviderError

logger = logging.getLogger("data.ingest_catalog")

STOCK_COLUMNS = ("id", "name", "price", "unit", "category")
DISH_COLUMNS = ("id", "name", "description", "price", "image", "ingredients")


def _clean(value) -> str:
    """Return a stripped string for a CSV cell, '' for empty/NaN cells."""
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return ""
    return str(value).strip()


def _split_ingredients(raw: str) -> List[str]:
    """Parse an ingredients cell given as a JSON list or a ';'/',' separated string."""
    if not raw:
        return []
    if raw.startswith("["):
        try:
            return [str(i).strip() for i in json.loads(raw) if str(i).strip()]
        except json.JSONDecodeError:
            logger.debug("Ingredients cell is not JSON, splitting: %s", raw)
    sep = ";" if ";" in raw else ","
    return [i.strip() for i in raw.split(sep) if i.strip()]


def _read_csv(csv_path: str, required: tuple) -> pd.DataFrame:
    df = pd.read_csv(csv_path, encoding="utf-8", engine="python", dtype=str)
    df = df.rename(columns=lambda s: s.strip())
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"{csv_path} is missing columns: {', '.join(missing)}")
    return df


def parse_stock_csv(csv_path: str) -> List[Dict]:
    """Parse a stock CSV into record dicts (without embeddings).

    Rows with no name or a non-positive/unparseable price are skipped.

    Args:
        csv_path: Path to the stock CSV file.

    Returns:
        List of dicts with keys: id, name, price, unit, category, image.
    """
    logger.info("Parsing stock CSV: %s", csv_path)
    df = _read_csv(csv_path, STOCK_COLUMNS)

    items = []
    for _, row in df.iterrows():
        name = _clean(row.get("name"))
        try:
            item_id = int(_clean(row.get("id")))
            price = float(_clean(row.get("price")))
        except ValueError:
            logger.warning("Skipping stock row with bad id/price: %s", name or row.to_dict())
            continue
        if not name or price <= 0:
            continue
        items.append({
            "id": item_id,
            "name": name,
            "price": round(price, 2),
            "unit": _clean(row.get("unit")),
            "category": _clean(row.get("category")).lower(),
            "image": _clean(row.get("image")),
        })

    logger.info("Parsed %s stock items from CSV", len(items))
    return items


def parse_dishes_csv(csv_path: str) -> List[Dict]:
    """Parse a dishes CSV into record dicts (without embeddings).

    Args:
        csv_path: Path to the dishes CSV file.

    Returns:
        List of dicts with keys: id, restaurantId, restaurantSlug, name,
        description, price, image, ingredients.
    """
    logger.info("Parsing dishes CSV: %s", csv_path)
    df = _read_csv(csv_path, DISH_COLUMNS)

    dishes = []
    for _, row in df.iterrows():
        name = _clean(row.get("name"))
        ingredients = _split_ingredients(_clean(row.get("ingredients")))
        try:
            price = float(_clean(row.get("price")))
        except ValueError:
            logger.warning("Skipping dish row with bad price: %s", name)
            continue
        if not name or not ingredients or price <= 0:
            continue
        dish = {
            "id": _clean(row.get("id")),
            "name": name,
            "description": _clean(row.get("description")) or name,
            "price": round(price, 2),
            "image": _clean(row.get("image")),
            "ingredients": ingredients,
        }
        restaurant_id = _clean(row.get("restaurant_id"))
        restaurant_slug = _clean(row.get("restaurant_slug"))
        if restaurant_id:
            dish["restaurantId"] = restaurant_id
        if restaurant_slug:
            dish["restaurantSlug"] = restaurant_slug
        dishes.append(dish)

    logger.info("Parsed %s dishes from CSV", len(dishes))
    return dishes


def stock_text(record: Dict) -> str:
    return record["name"]


def dish_text(record: Dict) -> str:
    return f"{record['name']}. {record['description']}. Ingredients: {', '.join(record['ingredients'])}"


def embed_records(records: List[Dict], provider, text_fn: Callable[[Dict], str],
                  batch_size: int = 100) -> List[Dict]:
    """Return copies of `records` with an `embedding` list attached.

    Raises:
        ProviderError: If the provider fails or returns a wrong number of vectors.
    """
    out = []
    for start in range(0, len(records), batch_size):
        batch = records[start:start + batch_size]
        vectors = provider.embed([text_fn(r) for r in batch])
        if len(vectors) != len(batch):
            raise ProviderError(
                f"Embedding provider returned {len(vectors)} vectors for {len(batch)} records",
                reason="count_mismatch",
            )
        for record, vector in zip(batch, vectors):
            enriched = dict(record)
            enriched["embedding"] = [round(float(v), 7) for v in vector]
            out.append(enriched)
        logger.info("Embedded %s/%s records", len(out), len(records))
    return out


def write_catalog(records: List[Dict], out_path: str, wrapper_key: Optional[str] = None) -> Path:
    """Write catalog records as JSON, optionally wrapped in `{wrapper_key: [...]}`."""
    path = Path(out_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {wrapper_key: records} if wrapper_key else records
    with path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, ensure_ascii=False)
    logger.info("Wrote %s records to %s", len(records), path)
    return path


def build_catalog(kind: str, csv_path: str, out_path: str, provider) -> int:
    """Parse, embed and write one catalog.

    Args:
        kind: 'stock' or 'dishes'.
        csv_path: Source CSV.
        out_path: Destination JSON file.
        provider: An `EmbeddingProvider`.

    Returns:
        Number of records written.
    """
    if kind == "stock":
        records = embed_records(parse_stock_csv(csv_path), provider, stock_text)
        write_catalog(records, out_path)
    elif kind == "dishes":
        records = embed_records(parse_dishes_csv(csv_path), provider, dish_text)
        write_catalog(records, out_path, wrapper_key="restaurantDishes")
    else:
        raise ValueError(f"Unknown catalog kind: {kind}")
    return len(records)


if __name__ == "__main__":
    import argparse

    from core.config import FIXTURES_DIR, get_settings
    from services.ai_providers import GeminiEmbeddingProvider

    p = argparse.ArgumentParser("Build an embedding catalog from a CSV fixture")
    p.add_argument("kind", choices=["stock", "dishes"])
    p.add_argument("csv_path", nargs="?", default=None)
    p.add_argument("out_path", nargs="?", default=None)
    args = p.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    settings = get_settings()
    csv_path = args.csv_path or str(FIXTURES_DIR / f"{args.kind}.csv")
    out_path = args.out_path or (settings.stock_catalog_path if args.kind == "stock" else settings.dishes_catalog_path)
    provider = GeminiEmbeddingProvider(
        api_key=settings.gemini_api_key, model=settings.embedding_model, dimension=settings.embedding_dim
    )
    count = build_catalog(args.kind, csv_path, out_path, provider)
    print(f"Done: {count} {args.kind} records -> {out_path}")
