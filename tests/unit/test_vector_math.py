"""
Tests for artisan_match.ml.embeddings.vector_math — pure vector operations.
"""

import math

import numpy as np
import pytest

from artisan_match.core.exceptions import DimensionMismatchError
from artisan_match.ml.embeddings.vector_math import (
    add,
    centroid,
    cosine_similarity,
    euclidean_distance,
    hash_vector,
    is_valid_vector,
    is_zero_vector,
    magnitude,
    normalize,
    scale,
    subtract,
    weighted_average,
)


# ── normalize / magnitude ───────────────────────────────────────────────────


class TestNormalize:
    def test_unit_length(self):
        v = normalize([3.0, 4.0])
        assert magnitude(v) == pytest.approx(1.0)
        np.testing.assert_allclose(v, [0.6, 0.8])

    def test_idempotent(self):
        v = normalize([1.0, -2.0, 5.5, 0.25])
        np.testing.assert_allclose(normalize(v), v)

    def test_zero_vector_returns_zero_copy(self):
        zero = np.zeros(4)
        result = normalize(zero)
        assert is_zero_vector(result)
        assert result is not zero

    def test_does_not_mutate_input(self):
        original = np.array([2.0, 0.0])
        normalize(original)
        np.testing.assert_array_equal(original, [2.0, 0.0])

    def test_magnitude(self):
        assert magnitude([3.0, 4.0]) == pytest.approx(5.0)
        assert magnitude([0.0, 0.0]) == 0.0


# ── cosine_similarity ───────────────────────────────────────────────────────


class TestCosineSimilarity:
    def test_identical(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_symmetric(self):
        a, b = [1.0, 0.5, -2.0], [0.3, -1.0, 4.0]
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))

    def test_orthogonal(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite(self):
        assert cosine_similarity([1.0, 1.0], [-1.0, -1.0]) == pytest.approx(-1.0)

    def test_zero_vector_gives_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0

    def test_scale_invariant(self):
        assert cosine_similarity([1.0, 2.0], [10.0, 20.0]) == pytest.approx(1.0)

    def test_dimension_mismatch(self):
        with pytest.raises(DimensionMismatchError):
            cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])

    def test_dimension_mismatch_is_value_error(self):
        with pytest.raises(ValueError):
            cosine_similarity([1.0], [1.0, 2.0])


# ── arithmetic ──────────────────────────────────────────────────────────────


class TestArithmetic:
    def test_add(self):
        np.testing.assert_allclose(add([1.0, 2.0], [3.0, 4.0]), [4.0, 6.0])

    def test_subtract(self):
        np.testing.assert_allclose(subtract([5.0, 5.0], [1.0, 2.0]), [4.0, 3.0])

    def test_scale(self):
        np.testing.assert_allclose(scale([1.0, -2.0], 3.0), [3.0, -6.0])

    def test_euclidean_distance(self):
        assert euclidean_distance([0.0, 0.0], [3.0, 4.0]) == pytest.approx(5.0)

    @pytest.mark.parametrize("op", [add, subtract, euclidean_distance])
    def test_binary_ops_reject_mismatch(self, op):
        with pytest.raises(DimensionMismatchError):
            op([1.0, 2.0], [1.0])


# ── weighted_average / centroid ─────────────────────────────────────────────


class TestWeightedAverage:
    def test_single_vector_identity(self):
        v = np.array([0.2, -0.7, 1.5])
        np.testing.assert_allclose(weighted_average([(v, 1.0)]), v)

    def test_weights_normalized(self):
        result = weighted_average([([1.0, 0.0], 3.0), ([0.0, 1.0], 1.0)])
        np.testing.assert_allclose(result, [0.75, 0.25])

    def test_zero_total_weight_returns_accumulator(self):
        result = weighted_average([([1.0, 2.0], 0.0), ([3.0, 4.0], 0.0)])
        assert is_zero_vector(result)

    def test_negative_weight_rejected(self):
        with pytest.raises(ValueError):
            weighted_average([([1.0, 2.0], -1.0)])

    def test_empty_rejected(self):
        with pytest.raises(ValueError):
            weighted_average([])

    def test_mismatched_dimensions(self):
        with pytest.raises(DimensionMismatchError):
            weighted_average([([1.0, 2.0], 1.0), ([1.0, 2.0, 3.0], 1.0)])

    def test_centroid(self):
        np.testing.assert_allclose(centroid([[0.0, 2.0], [2.0, 0.0]]), [1.0, 1.0])


# ── validity and hashing ────────────────────────────────────────────────────


class TestIsValidVector:
    def test_finite_vector(self):
        assert is_valid_vector([0.1, 0.2, 0.3])

    def test_nan_rejected(self):
        assert not is_valid_vector([0.1, math.nan])

    def test_infinity_rejected(self):
        assert not is_valid_vector([math.inf, 0.0])

    def test_empty_rejected(self):
        assert not is_valid_vector([])

    def test_dimension_checked(self):
        assert is_valid_vector([1.0, 2.0], dimension=2)
        assert not is_valid_vector([1.0, 2.0], dimension=3)

    def test_zero_vector_is_valid(self):
        assert is_valid_vector([0.0, 0.0])


class TestHashVector:
    def test_deterministic(self):
        assert hash_vector([0.1, 0.2]) == hash_vector([0.1, 0.2])

    def test_near_duplicates_share_hash(self):
        assert hash_vector([0.1234561, 0.5]) == hash_vector([0.1234559, 0.5])

    def test_different_vectors_differ(self):
        assert hash_vector([0.1, 0.2]) != hash_vector([0.2, 0.1])

    def test_negative_zero(self):
        assert hash_vector([-0.0, 1.0]) == hash_vector([0.0, 1.0])

    def test_precision_controls_grouping(self):
        assert hash_vector([0.11, 0.0], precision=1) == hash_vector([0.12, 0.0], precision=1)
        assert hash_vector([0.11, 0.0], precision=2) != hash_vector([0.12, 0.0], precision=2)
