"""Tests for sparse difference operators and normal-equation assembly."""

from __future__ import annotations

import numpy as np
import pytest

from edgesmooth.core.calculus import gradient
from edgesmooth.core.matrix import (
    build_backward_difference,
    build_full_system,
    build_gradient_operators,
    build_rhs,
    build_smoothness_matrix,
)
from edgesmooth.core.types import ImageVolume, plane_index


class TestBackwardDifference:
    def test_contents(self):
        B = build_backward_difference(4).toarray()
        expected = np.array([
            [0, 0, 0, 0],
            [-1, 1, 0, 0],
            [0, -1, 1, 0],
            [0, 0, -1, 1],
        ], dtype=np.float64)
        np.testing.assert_array_equal(B, expected)

    def test_single_sample_is_zero(self):
        B = build_backward_difference(1)
        assert B.shape == (1, 1)
        assert B.nnz == 0


class TestGradientOperators:
    """Dx / Dy must agree with the dense gradient for the C-order layout."""

    def test_shapes(self):
        Dx, Dy = build_gradient_operators(5, 3)
        assert Dx.shape == (15, 15)
        assert Dy.shape == (15, 15)

    def test_dx_matches_dense_gradient(self, random_gray):
        plane = random_gray.data[0, :, :, 0].astype(np.float64)
        Dx, _ = build_gradient_operators(random_gray.width, random_gray.height)
        sparse = (Dx @ plane.ravel()).reshape(plane.shape)
        dense = gradient(random_gray, "x").data[0, :, :, 0]
        np.testing.assert_allclose(sparse[:, 1:], dense[:, 1:], atol=1e-6)
        np.testing.assert_array_equal(sparse[:, 0], 0.0)

    def test_dy_matches_dense_gradient(self, random_gray):
        plane = random_gray.data[0, :, :, 0].astype(np.float64)
        _, Dy = build_gradient_operators(random_gray.width, random_gray.height)
        sparse = (Dy @ plane.ravel()).reshape(plane.shape)
        dense = gradient(random_gray, "y").data[0, :, :, 0]
        np.testing.assert_allclose(sparse[1:, :], dense[1:, :], atol=1e-6)
        np.testing.assert_array_equal(sparse[0, :], 0.0)

    def test_dx_row_entries(self):
        Dx, _ = build_gradient_operators(4, 3)
        row = Dx[plane_index(2, 1, 4)].toarray().ravel()
        assert row[plane_index(2, 1, 4)] == 1.0
        assert row[plane_index(1, 1, 4)] == -1.0
        assert np.count_nonzero(row) == 2


class TestSmoothnessMatrix:
    """Tests for the weighted Laplacian-like penalty."""

    def test_symmetric_with_zero_row_sums(self, rng):
        h, w = 6, 7
        Dx, Dy = build_gradient_operators(w, h)
        sx = rng.random((h, w))
        sy = rng.random((h, w))
        S = build_smoothness_matrix(Dx, Dy, sx, sy)
        dense = S.toarray()
        np.testing.assert_allclose(dense, dense.T, atol=1e-12)
        np.testing.assert_allclose(dense.sum(axis=1), 0.0, atol=1e-12)

    def test_boundary_only_weights_give_zero(self):
        """Weights on the empty first column / row never enter the system."""
        h, w = 4, 5
        Dx, Dy = build_gradient_operators(w, h)
        sx = np.zeros((h, w))
        sy = np.zeros((h, w))
        sx[:, 0] = 10.0
        sy[0, :] = 10.0
        S = build_smoothness_matrix(Dx, Dy, sx, sy)
        assert np.count_nonzero(S.toarray()) == 0

    def test_positive_semidefinite(self, rng):
        h, w = 5, 5
        Dx, Dy = build_gradient_operators(w, h)
        S = build_smoothness_matrix(Dx, Dy, rng.random((h, w)), rng.random((h, w)))
        eigenvalues = np.linalg.eigvalsh(S.toarray())
        assert eigenvalues.min() > -1e-10


class TestRhs:
    def test_zero_gradients_give_weighted_target(self, rng):
        h, w = 4, 6
        Dx, Dy = build_gradient_operators(w, h)
        target = rng.random((h, w))
        weight = rng.random((h, w)) + 0.5
        zeros = np.zeros((h, w))
        b = build_rhs(Dx, Dy, target, weight, zeros, zeros, rng.random((h, w)), rng.random((h, w)))
        np.testing.assert_allclose(b, (weight * target).ravel())

    def test_gradient_term(self):
        h, w = 1, 3
        Dx, Dy = build_gradient_operators(w, h)
        zeros = np.zeros((h, w))
        gx = np.ones((h, w))
        sx = np.ones((h, w))
        b = build_rhs(Dx, Dy, zeros, zeros, gx, zeros, sx, zeros)
        # Dx^T [0, 1, 1]
        np.testing.assert_allclose(b, [-1.0, 0.0, 1.0])


class TestFullSystem:
    def test_matches_precomputed(self, rng):
        h, w = 5, 4
        target = rng.random((h, w))
        weight = np.ones((h, w))
        zeros = np.zeros((h, w))
        sx = rng.random((h, w))
        sy = rng.random((h, w))

        A1, b1 = build_full_system(target, weight, zeros, zeros, sx, sy)

        ops = build_gradient_operators(w, h)
        S = build_smoothness_matrix(ops[0], ops[1], sx, sy)
        A2, b2 = build_full_system(
            target, weight, zeros, zeros, sx, sy,
            precomputed_operators=ops, precomputed_smoothness=S,
        )
        np.testing.assert_allclose(A1.toarray(), A2.toarray())
        np.testing.assert_allclose(b1, b2)

    @pytest.mark.parametrize("h, w", [(1, 1), (1, 6), (6, 1), (3, 3)])
    def test_positive_definite_with_unit_data_weight(self, rng, h, w):
        target = rng.random((h, w))
        zeros = np.zeros((h, w))
        A, _ = build_full_system(
            target, np.ones((h, w)), zeros, zeros, rng.random((h, w)), rng.random((h, w)),
        )
        assert A.shape == (h * w, h * w)
        assert np.linalg.eigvalsh(A.toarray()).min() >= 1.0 - 1e-10

    def test_accepts_volume_planes(self, random_gray):
        plane = random_gray.data[0, :, :, 0]
        ones = ImageVolume.full(random_gray.width, random_gray.height, 1, 1, 1.0).data[0, :, :, 0]
        zeros = np.zeros_like(plane)
        A, b = build_full_system(plane, ones, zeros, zeros, ones, ones)
        assert A.shape[0] == plane.size
        assert b.dtype == np.float64
