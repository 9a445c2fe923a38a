import numpy as np
import pytest

from engram.runtime.memory.vector_math import cosine_similarity, normalize, weighted_average


def test_cosine_similarity_identical_and_orthogonal():
    assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)


def test_cosine_similarity_degenerate_inputs_are_zero():
    assert cosine_similarity([], []) == 0.0
    assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0]) == 0.0
    assert cosine_similarity(None, [1.0]) == 0.0


def test_cosine_similarity_accepts_numpy():
    a = np.array([0.5, 0.5])
    assert cosine_similarity(a, [1.0, 1.0]) == pytest.approx(1.0)


def test_normalize_and_weighted_average():
    assert np.linalg.norm(normalize([3.0, 4.0])) == pytest.approx(1.0)
    assert normalize([0.0, 0.0]).tolist() == [0.0, 0.0]

    avg = weighted_average([[1.0, 0.0], [0.0, 1.0]], [1.0, 3.0])
    assert avg.tolist() == pytest.approx([0.25, 0.75])
    assert weighted_average([], []).size == 0
