"""Tests for the vector primitives."""

import math

import numpy as np
import pytest

from services.vector_math import cosine_similarity, normalize, similarity_scores


def test_normalize_produces_unit_vector():
    v = normalize([3.0, 4.0])
    assert np.linalg.norm(v) == pytest.approx(1.0)
    assert v.tolist() == pytest.approx([0.6, 0.8])


def test_normalize_leaves_zero_vector_unchanged():
    v = normalize([0.0, 0.0, 0.0])
    assert v.tolist() == [0.0, 0.0, 0.0]


def test_cosine_bounds_and_self_similarity():
    rng = np.random.default_rng(7)
    for _ in range(50):
        a = rng.normal(size=16)
        b = rng.normal(size=16)
        score = cosine_similarity(a, b)
        assert -1.0 <= score <= 1.0
        assert cosine_similarity(a, a) == pytest.approx(1.0, abs=1e-6)


def test_cosine_of_opposite_vectors_is_minus_one():
    assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)


def test_cosine_with_zero_vector_is_zero():
    score = cosine_similarity([0.0, 0.0, 0.0], [0.2, 0.5, 0.1])
    assert score == 0.0
    assert not math.isnan(score)


def test_cosine_rejects_mismatched_lengths():
    with pytest.raises(ValueError):
        cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])


def test_similarity_scores_against_matrix():
    matrix = np.array([[1.0, 0.0], [0.0, 1.0], [0.0, 0.0]], dtype=np.float32)
    scores = similarity_scores([2.0, 0.0], matrix)
    assert scores.tolist() == pytest.approx([1.0, 0.0, 0.0])


def test_similarity_scores_rejects_wrong_width():
    matrix = np.zeros((2, 3), dtype=np.float32)
    with pytest.raises(ValueError):
        similarity_scores([1.0, 0.0], matrix)
