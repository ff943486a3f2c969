"""Contracts and Gemini-backed implementations of the AI collaborators.

Two collaborators sit behind explicit interfaces so the matching code never
touches raw API responses:

- `EmbeddingProvider.embed(texts)` returns one normalized vector per text,
  in input order.
- `GenerativeAnalyzer.analyze(prompt, image)` returns a validated
  `DishAnalysis` (ingredients and preparation steps).

Both raise `ProviderError` for quota, network or malformed-response failures.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
from google import genai
from google.genai import types
from pydantic import ValidationError as PydanticValidationError

from core.exceptions import ConfigurationError, ProviderError
from core.logger import get_logger
from schemas.matching_schema import DishAnalysis
from services.vector_math import normalize

logger = get_logger("services.ai_providers")

# embed_content accepts at most 100 texts per request
EMBED_BATCH_SIZE = 100


@dataclass(frozen=True)
class ImagePayload:
    """Raw image bytes with their MIME type."""

    data: bytes
    mime_type: str = "image/jpeg"


class EmbeddingProvider(ABC):
    """Turns texts into normalized embedding vectors."""

    dimension: Optional[int] = None

    @abstractmethod
    def embed(self, texts: Sequence[str]) -> List[np.ndarray]:
        """Return one vector per text, in the same order."""


class GenerativeAnalyzer(ABC):
    """Extracts structured dish information from a prompt and optional image."""

    @abstractmethod
    def analyze(self, prompt: str, image: Optional[ImagePayload] = None) -> DishAnalysis:
        """Return the validated analysis for `prompt` (and `image` when given)."""


def _make_client(api_key: str) -> "genai.Client":
    if not api_key:
        raise ConfigurationError("GEMINI_API_KEY is not set", config_key="GEMINI_API_KEY")
    return genai.Client(api_key=api_key)


class GeminiEmbeddingProvider(EmbeddingProvider):
    """Embeddings from the Gemini embedding model.

    Texts are sent in batches; every returned vector is L2-normalized and
    checked against the configured dimensionality.
    """

    def __init__(self, api_key: str = "", model: str = "gemini-embedding-001",
                 dimension: int = 768, client=None):
        self.model = model
        self.dimension = dimension
        self.client = client or _make_client(api_key)
        logger.info("Gemini embedding provider ready (model=%s, dim=%s)", model, dimension)

    def embed(self, texts: Sequence[str]) -> List[np.ndarray]:
        texts = list(texts)
        if not texts:
            return []
        vectors: List[np.ndarray] = []
        for start in range(0, len(texts), EMBED_BATCH_SIZE):
            batch = texts[start:start + EMBED_BATCH_SIZE]
            vectors.extend(self._embed_batch(batch))
        return vectors

    def _embed_batch(self, batch: List[str]) -> List[np.ndarray]:
        try:
            response = self.client.models.embed_content(
                model=self.model,
                contents=batch,
                config=types.EmbedContentConfig(
                    task_type="SEMANTIC_SIMILARITY",
                    output_dimensionality=self.dimension,
                ),
            )
        except Exception as exc:
            logger.error("Embedding request failed for %s texts: %s", len(batch), exc)
            raise ProviderError("Embedding request failed", provider="gemini-embedding", reason=str(exc)) from exc

        embeddings = getattr(response, "embeddings", None) or []
        if len(embeddings) != len(batch):
            raise ProviderError(
                f"Embedding provider returned {len(embeddings)} vectors for {len(batch)} texts",
                provider="gemini-embedding", reason="count_mismatch",
            )

        out = []
        for emb in embeddings:
            values = getattr(emb, "values", None) or []
            if len(values) != self.dimension:
                raise ProviderError(
                    f"Embedding has {len(values)} dimensions, expected {self.dimension}",
                    provider="gemini-embedding", reason="dimension_mismatch",
                )
            out.append(normalize(values))
        return out


class GeminiDishAnalyzer(GenerativeAnalyzer):
    """Dish analysis through a Gemini model in JSON response mode."""

    def __init__(self, api_key: str = "", model: str = "gemini-2.5-flash", client=None):
        self.model = model
        self.client = client or _make_client(api_key)
        logger.info("Gemini dish analyzer ready (model=%s)", model)

    def analyze(self, prompt: str, image: Optional[ImagePayload] = None) -> DishAnalysis:
        contents = []
        if image is not None:
            contents.append(types.Part.from_bytes(data=image.data, mime_type=image.mime_type))
        contents.append(prompt)

        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=contents,
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=DishAnalysis,
                ),
            )
        except Exception as exc:
            logger.error("Dish analysis request failed: %s", exc)
            raise ProviderError("Dish analysis request failed", provider="gemini-analysis", reason=str(exc)) from exc

        text = getattr(response, "text", None)
        if not text:
            raise ProviderError("Dish analysis returned no text", provider="gemini-analysis", reason="empty_response")
        return parse_analysis(text)


def parse_analysis(text: str) -> DishAnalysis:
    """Validate the analyzer's JSON text against `DishAnalysis`.

    Raises:
        ProviderError: If the text is not JSON of the expected shape.
    """
    try:
        analysis = DishAnalysis.model_validate_json(text)
    except PydanticValidationError as exc:
        logger.warning("Dish analysis failed validation: %s", exc.errors())
        raise ProviderError("Dish analysis response failed validation",
                            provider="gemini-analysis", reason="invalid_json") from exc
    cleaned = [i.strip() for i in analysis.ingredients if i and i.strip()]
    if not cleaned:
        raise ProviderError("Dish analysis returned no ingredients",
                            provider="gemini-analysis", reason="no_ingredients")
    return DishAnalysis(ingredients=cleaned, instructions=analysis.instructions)
