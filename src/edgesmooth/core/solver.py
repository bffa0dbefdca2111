"""Preconditioned conjugate-gradient solver for gradient-domain problems.

Uses scipy.sparse.linalg.cg with a Jacobi (diagonal) preconditioner on the
normal equations built by edgesmooth.core.matrix, warm-started from the
fidelity target.

Per-plane solving: every (frame, channel) plane is solved independently.
The difference operators and smoothness matrix are shared by all channels
of a frame.

A direct sparse LU path (method="direct") is available for small planes
and reference solutions.

Hitting the iteration cap is not an error: the current estimate is
returned and the plane is reported as not converged.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import numpy as np
from scipy.sparse import diags
from scipy.sparse.linalg import cg, spsolve

from edgesmooth.config import (
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_SOLVER_METHOD,
    DEFAULT_TOLERANCE,
    EPSILON,
    MAX_SOLVER_ITERATIONS,
    SOLVER_METHODS,
)
from edgesmooth.core.matrix import (
    build_full_system,
    build_gradient_operators,
    build_smoothness_matrix,
)
from edgesmooth.core.types import ImageVolume, ProgressCallback, SolveInfo
from edgesmooth.errors import ImageDimensionError, SolverDivergenceError

logger = logging.getLogger(__name__)


def solve_pcg(
    A,
    b: np.ndarray,
    x0: Optional[np.ndarray] = None,
    tolerance: float = DEFAULT_TOLERANCE,
    maxiter: int = DEFAULT_MAX_ITERATIONS,
) -> tuple[np.ndarray, dict]:
    """Solve a sparse SPD system with Jacobi-preconditioned CG.

    Args:
        A: Sparse symmetric positive (semi-)definite matrix.
        b: RHS vector.
        x0: Initial guess (defaults to zeros).
        tolerance: Relative residual ||b - Ax|| / ||b|| at which to stop.
        maxiter: Maximum iterations.

    Returns:
        (x, info): Solution vector and convergence info.
    """
    maxiter = min(maxiter, MAX_SOLVER_ITERATIONS)

    diag = A.diagonal()
    M = diags(1.0 / np.maximum(diag, EPSILON))

    iterations = 0

    def count(_xk):
        nonlocal iterations
        iterations += 1

    x, istop = cg(A, b, x0=x0, rtol=tolerance, atol=0.0, maxiter=maxiter, M=M, callback=count)

    if istop < 0:
        raise SolverDivergenceError(f"Conjugate gradient breakdown (info={istop})")

    b_norm = float(np.linalg.norm(b))
    residual = float(np.linalg.norm(b - A @ x)) / b_norm if b_norm > 0 else 0.0

    info = {
        "istop": istop,
        "iterations": iterations,
        "residual": residual,
        "converged": istop == 0,
    }

    if istop > 0:
        logger.warning(
            "PCG solver stopped at the iteration cap: %d iterations, "
            "relative residual %.3e (tolerance %.3e)",
            iterations, residual, tolerance,
        )

    return x, info


def solve_direct(A, b: np.ndarray) -> tuple[np.ndarray, dict]:
    """Solve a sparse system exactly with a sparse LU factorization.

    Memory grows quickly with the plane size; intended for small images
    and reference solutions.
    """
    x = spsolve(A.tocsc(), b)
    if not np.all(np.isfinite(x)):
        raise SolverDivergenceError("Direct solve produced non-finite values (singular system?)")

    b_norm = float(np.linalg.norm(b))
    residual = float(np.linalg.norm(b - A @ x)) / b_norm if b_norm > 0 else 0.0
    return x, {"istop": 0, "iterations": 0, "residual": residual, "converged": True}


def _check_extent(name: str, field: ImageVolume, target: ImageVolume, channels: int) -> None:
    if not field.same_extent(target) or field.channels != channels:
        raise ImageDimensionError(
            f"{name} has shape {field.shape}, expected "
            f"{target.shape[:3] + (channels,)}"
        )


def solve(
    target: ImageVolume,
    grad_x: ImageVolume,
    grad_y: ImageVolume,
    data_weight: ImageVolume,
    smooth_x: ImageVolume,
    smooth_y: ImageVolume,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE,
    method: str = DEFAULT_SOLVER_METHOD,
    parallel: bool = False,
    progress_callback: Optional[ProgressCallback] = None,
) -> tuple[ImageVolume, list[SolveInfo]]:
    """Solve the weighted gradient-domain least-squares problem.

    Minimizes, independently per frame and channel, the squared deviation
    from target (weighted by data_weight) plus the squared deviation of the
    result's gradients from (grad_x, grad_y) (weighted by smooth_x, smooth_y).

    Args:
        target: (T, H, W, C) fidelity target.
        grad_x, grad_y: (T, H, W, C) target gradients.
        data_weight: (T, H, W, 1) data weights.
        smooth_x, smooth_y: (T, H, W, 1) smoothness weights.
        max_iterations: Iteration cap per plane.
        tolerance: Relative residual tolerance per plane.
        method: "pcg" (iterative, default) or "direct" (sparse LU).
        parallel: Whether to solve the channels of a frame in parallel threads.
        progress_callback: Optional (stage, fraction, message) callback.

    Returns:
        (result, infos): (T, H, W, C) float32 volume and one SolveInfo per plane.
    """
    if method not in SOLVER_METHODS:
        raise ValueError(
            f"Unknown solver method: {method!r}. "
            f"Use one of: {', '.join(sorted(SOLVER_METHODS))}"
        )

    channels = target.channels
    _check_extent("grad_x", grad_x, target, channels)
    _check_extent("grad_y", grad_y, target, channels)
    _check_extent("data_weight", data_weight, target, 1)
    _check_extent("smooth_x", smooth_x, target, 1)
    _check_extent("smooth_y", smooth_y, target, 1)

    frames = target.frames
    total_planes = frames * channels
    result = np.empty_like(target.data)
    infos: list[SolveInfo] = []

    # Operators depend only on the plane size
    operators = build_gradient_operators(target.width, target.height)

    for t in range(frames):
        w = data_weight.data[t, :, :, 0]
        sx = smooth_x.data[t, :, :, 0]
        sy = smooth_y.data[t, :, :, 0]

        logger.debug("Frame %d: building smoothness matrix (%dx%d)", t, target.width, target.height)
        smoothness_cached = build_smoothness_matrix(operators[0], operators[1], sx, sy)

        def solve_channel(c: int) -> tuple[np.ndarray, dict]:
            """Solve for one channel of frame t."""
            d = target.data[t, :, :, c]
            A, b = build_full_system(
                target=d,
                data_weight=w,
                grad_x=grad_x.data[t, :, :, c],
                grad_y=grad_y.data[t, :, :, c],
                smooth_x=sx,
                smooth_y=sy,
                precomputed_operators=operators,
                precomputed_smoothness=smoothness_cached,
            )
            if method == "direct":
                return solve_direct(A, b)
            return solve_pcg(
                A, b,
                x0=d.astype(np.float64).ravel(),
                tolerance=tolerance,
                maxiter=max_iterations,
            )

        if parallel and channels > 1:
            # scipy releases the GIL during sparse matrix-vector products
            with ThreadPoolExecutor(max_workers=channels) as pool:
                futures = {pool.submit(solve_channel, c): c for c in range(channels)}
                solved = {futures[f]: f.result() for f in futures}
        else:
            solved = {c: solve_channel(c) for c in range(channels)}

        for c in range(channels):
            x, info = solved[c]
            result[t, :, :, c] = x.reshape(target.height, target.width)
            infos.append(SolveInfo(
                frame=t,
                channel=c,
                iterations=info["iterations"],
                residual=info["residual"],
                converged=info["converged"],
            ))
            logger.debug(
                "Frame %d channel %d: %s after %d iterations (residual %.3e)",
                t, c, "converged" if info["converged"] else "not converged",
                info["iterations"], info["residual"],
            )
            if progress_callback:
                done = t * channels + c + 1
                progress_callback("solving", done / total_planes, f"frame {t}, channel {c}")

    return ImageVolume(result), infos
