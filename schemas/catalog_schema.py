"""Schemas for the static catalog fixtures (dishes and stock items).

Each record carries a precomputed embedding. These models validate the raw
JSON at load time; the embedding dimension itself is checked by the
catalog index, which knows the expected size for the whole catalog.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class DishRecord(BaseModel):
    """A prepared dish offered by a restaurant."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1, description="Stable dish identifier (UUID in the fixtures)")
    name: str = Field(..., min_length=1, examples=["Margherita Pizza"])
    description: str = Field(..., min_length=1)
    price: float = Field(..., gt=0)
    image: str = Field(..., min_length=1, description="Image path relative to the public image root")
    ingredients: List[str] = Field(..., min_length=1, examples=[["tomato", "mozzarella", "basil"]])
    restaurant_id: Optional[str] = Field(None, alias="restaurantId")
    restaurant_slug: Optional[str] = Field(None, alias="restaurantSlug")
    embedding: List[float] = Field(..., min_length=1)


class StockItemRecord(BaseModel):
    """A grocery/market item sold by unit."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: int = Field(..., gt=0)
    name: str = Field(..., min_length=1, examples=["Cherry tomatoes"])
    price: float = Field(..., gt=0)
    unit: str = Field(..., min_length=1, examples=["500 g"])
    category: str = Field(..., min_length=1, examples=["vegetables"])
    image: str = Field("", description="Optional image path")
    embedding: List[float] = Field(..., min_length=1)
