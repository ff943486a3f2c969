"""Pydantic schema package for catalog records and request/response models."""

from .catalog_schema import DishRecord, StockItemRecord
from .matching_schema import DishAnalysis, DishSummary, MatchedStockItem

__all__ = [
    "DishRecord",
    "StockItemRecord",
    "DishAnalysis",
    "DishSummary",
    "MatchedStockItem",
]
