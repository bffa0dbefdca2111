"""Sparse normal equations for the gradient-domain least-squares problem.

For one (height, width) plane the objective is:
    E(u) = sum_p w(p) (u(p) - d(p))^2
         + sum_p sx(p) ((Dx u)(p) - gx(p))^2
         + sum_p sy(p) ((Dy u)(p) - gy(p))^2

Dx and Dy are backward differences whose first column / first row are
empty, so pixels on the leading boundary carry no smoothness term.

Setting the gradient to zero gives the system A u = b with:
    A = W + Dx^T Sx Dx + Dy^T Sy Dy
    b = W d + Dx^T Sx gx + Dy^T Sy gy

A is symmetric, and positive definite whenever every data weight is
positive. Plane flattening is C order: flat = y * width + x.
"""

from __future__ import annotations

import numpy as np
from scipy.sparse import coo_matrix, csr_matrix, diags, identity, kron


def build_backward_difference(n: int) -> csr_matrix:
    """1D backward difference with an empty first row.

    Row i (i >= 1) holds -1 at column i-1 and +1 at column i.

    Args:
        n: Number of samples along the axis.

    Returns:
        CSR sparse matrix of shape (n, n).
    """
    if n < 2:
        return csr_matrix((n, n), dtype=np.float64)

    rows = np.arange(1, n, dtype=np.int64)
    all_rows = np.concatenate([rows, rows])
    all_cols = np.concatenate([rows - 1, rows])
    vals = np.concatenate([np.full(n - 1, -1.0), np.full(n - 1, 1.0)])

    return coo_matrix((vals, (all_rows, all_cols)), shape=(n, n)).tocsr()


def build_gradient_operators(width: int, height: int) -> tuple[csr_matrix, csr_matrix]:
    """Build the plane-level backward difference operators.

    Args:
        width: Plane width.
        height: Plane height.

    Returns:
        (Dx, Dy): CSR matrices of shape (width*height, width*height).
    """
    Dx = kron(identity(height, format="csr"), build_backward_difference(width), format="csr")
    Dy = kron(build_backward_difference(height), identity(width, format="csr"), format="csr")
    return Dx, Dy


def build_smoothness_matrix(
    Dx: csr_matrix,
    Dy: csr_matrix,
    smooth_x: np.ndarray,
    smooth_y: np.ndarray,
) -> csr_matrix:
    """Weighted gradient penalty Dx^T Sx Dx + Dy^T Sy Dy.

    Args:
        Dx, Dy: Plane difference operators.
        smooth_x, smooth_y: (height, width) smoothness weights.

    Returns:
        Symmetric CSR matrix.
    """
    Sx = diags(np.asarray(smooth_x, dtype=np.float64).ravel())
    Sy = diags(np.asarray(smooth_y, dtype=np.float64).ravel())
    return (Dx.T @ Sx @ Dx + Dy.T @ Sy @ Dy).tocsr()


def build_rhs(
    Dx: csr_matrix,
    Dy: csr_matrix,
    target: np.ndarray,
    data_weight: np.ndarray,
    grad_x: np.ndarray,
    grad_y: np.ndarray,
    smooth_x: np.ndarray,
    smooth_y: np.ndarray,
) -> np.ndarray:
    """Right-hand side W d + Dx^T Sx gx + Dy^T Sy gy for one channel.

    All plane arguments are (height, width) arrays.

    Returns:
        (width*height,) float64 vector.
    """
    w = np.asarray(data_weight, dtype=np.float64).ravel()
    b = w * np.asarray(target, dtype=np.float64).ravel()

    gx = np.asarray(grad_x, dtype=np.float64).ravel()
    gy = np.asarray(grad_y, dtype=np.float64).ravel()
    # Zero target gradients contribute nothing
    if np.any(gx):
        b += Dx.T @ (np.asarray(smooth_x, dtype=np.float64).ravel() * gx)
    if np.any(gy):
        b += Dy.T @ (np.asarray(smooth_y, dtype=np.float64).ravel() * gy)
    return b


def build_full_system(
    target: np.ndarray,
    data_weight: np.ndarray,
    grad_x: np.ndarray,
    grad_y: np.ndarray,
    smooth_x: np.ndarray,
    smooth_y: np.ndarray,
    precomputed_operators: tuple[csr_matrix, csr_matrix] | None = None,
    precomputed_smoothness: csr_matrix | None = None,
) -> tuple[csr_matrix, np.ndarray]:
    """Build the complete normal-equation system for one plane and channel.

    Accepts pre-computed components to avoid redundant work across channels
    of the same frame (the weights are shared, only target and target
    gradients differ per channel).

    Args:
        target: (height, width) fidelity target d.
        data_weight: (height, width) data weights w.
        grad_x, grad_y: (height, width) target gradients.
        smooth_x, smooth_y: (height, width) smoothness weights.
        precomputed_operators: (Dx, Dy) from build_gradient_operators.
        precomputed_smoothness: matrix from build_smoothness_matrix.

    Returns:
        (A, b): CSR matrix and RHS vector.
    """
    height, width = np.shape(target)

    if precomputed_operators is not None:
        Dx, Dy = precomputed_operators
    else:
        Dx, Dy = build_gradient_operators(width, height)

    if precomputed_smoothness is not None:
        A_smooth = precomputed_smoothness
    else:
        A_smooth = build_smoothness_matrix(Dx, Dy, smooth_x, smooth_y)

    A_data = diags(np.asarray(data_weight, dtype=np.float64).ravel())
    A = (A_data + A_smooth).tocsr()
    b = build_rhs(Dx, Dy, target, data_weight, grad_x, grad_y, smooth_x, smooth_y)

    return A, b
