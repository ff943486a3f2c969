"""Tests for the Gemini adapters using stand-in clients."""

from types import SimpleNamespace

import numpy as np
import pytest

from core.exceptions import ConfigurationError, ProviderError
from services.ai_providers import (
    GeminiDishAnalyzer,
    GeminiEmbeddingProvider,
    ImagePayload,
    parse_analysis,
)


class DummyModels:
    """Mimics `client.models` with canned responses."""

    def __init__(self, embed_response=None, generate_response=None, error=None):
        self.embed_response = embed_response
        self.generate_response = generate_response
        self.error = error
        self.embed_calls = []
        self.generate_calls = []

    def embed_content(self, model, contents, config):
        self.embed_calls.append(list(contents))
        if self.error:
            raise self.error
        if callable(self.embed_response):
            return self.embed_response(contents)
        return self.embed_response

    def generate_content(self, model, contents, config):
        self.generate_calls.append(contents)
        if self.error:
            raise self.error
        return self.generate_response


def _client(**kwargs):
    return SimpleNamespace(models=DummyModels(**kwargs))


def _embeddings(vectors):
    return SimpleNamespace(embeddings=[SimpleNamespace(values=v) for v in vectors])


def test_embeddings_are_normalized_and_ordered():
    client = _client(embed_response=_embeddings([[3.0, 4.0], [0.0, 2.0]]))
    provider = GeminiEmbeddingProvider(dimension=2, client=client)
    vectors = provider.embed(["tomato", "basil"])
    assert np.allclose(vectors[0], [0.6, 0.8])
    assert np.allclose(vectors[1], [0.0, 1.0])


def test_large_inputs_are_sent_in_batches():
    client = _client(embed_response=lambda texts: _embeddings([[1.0, 0.0]] * len(texts)))
    provider = GeminiEmbeddingProvider(dimension=2, client=client)
    vectors = provider.embed([f"item {i}" for i in range(250)])
    assert len(vectors) == 250
    assert [len(c) for c in client.models.embed_calls] == [100, 100, 50]


def test_short_embedding_response_is_provider_error():
    client = _client(embed_response=_embeddings([[1.0, 0.0]]))
    provider = GeminiEmbeddingProvider(dimension=2, client=client)
    with pytest.raises(ProviderError):
        provider.embed(["tomato", "basil"])


def test_wrong_dimension_is_provider_error():
    client = _client(embed_response=_embeddings([[1.0, 0.0, 0.0]]))
    provider = GeminiEmbeddingProvider(dimension=2, client=client)
    with pytest.raises(ProviderError):
        provider.embed(["tomato"])


def test_transport_failure_is_wrapped():
    client = _client(error=ConnectionError("reset by peer"))
    provider = GeminiEmbeddingProvider(dimension=2, client=client)
    with pytest.raises(ProviderError) as exc_info:
        provider.embed(["tomato"])
    assert "reset by peer" in exc_info.value.details["reason"]


def test_missing_api_key_is_configuration_error():
    with pytest.raises(ConfigurationError):
        GeminiEmbeddingProvider(api_key="")


def test_analyzer_parses_json_response():
    response = SimpleNamespace(text='{"ingredients": ["egg", " ", "pecorino"], "instructions": ["Mix."]}')
    client = _client(generate_response=response)
    analyzer = GeminiDishAnalyzer(client=client)
    analysis = analyzer.analyze("Analyze", ImagePayload(data=b"img", mime_type="image/png"))
    assert analysis.ingredients == ["egg", "pecorino"]
    assert len(client.models.generate_calls[0]) == 2


def test_analyzer_rejects_malformed_output():
    with pytest.raises(ProviderError):
        parse_analysis("not json at all")
    with pytest.raises(ProviderError):
        parse_analysis('{"ingredients": []}')
    client = _client(generate_response=SimpleNamespace(text=""))
    with pytest.raises(ProviderError):
        GeminiDishAnalyzer(client=client).analyze("Analyze")
