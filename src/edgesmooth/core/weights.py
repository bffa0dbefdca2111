"""Anisotropic smoothness weights from log-luminance gradients.

For each pixel p the horizontal and vertical weights are:
    Lx(p) = lambda / (|dl(p)/dx|^alpha + eps)
    Ly(p) = lambda / (|dl(p)/dy|^alpha + eps)
where l is the (log) luminance proxy. Strong edges give small weights
(little smoothing across them), flat regions give large weights.

Boundary condition: Lx is zero in column x = 0 and Ly is zero in row
y = 0 for every frame, so the smoothness term never reaches outside the
image.

KNOWN CAVEAT: the log transform is skipped when the proxy has any
negative sample, on the assumption that such input is already
log-encoded. A log-encoded image with no negative samples is log
transformed a second time.
"""

from __future__ import annotations

import logging

import numpy as np

from edgesmooth.config import LOG_EPSILON, WEIGHT_EPSILON
from edgesmooth.core.calculus import apply_log, gradient, image_stats
from edgesmooth.core.color import equal_channel_weights, to_luma, weighted_channel_average
from edgesmooth.core.types import ImageVolume

logger = logging.getLogger(__name__)


def luminance_proxy(image: ImageVolume) -> tuple[ImageVolume, bool]:
    """Build the single-channel (log) luminance proxy.

    Three-channel input is treated as RGB and reduced to luma; any other
    channel count is averaged with equal weights.

    Args:
        image: Input volume (not modified).

    Returns:
        (proxy, log_applied): proxy of shape (frames, height, width, 1) and
        whether the log transform was applied.
    """
    if image.channels == 3:
        L = to_luma(image)
    else:
        L = weighted_channel_average(image, equal_channel_weights(image.channels))

    stats = image_stats(L)
    # A negative minimum suggests the data is already in the log domain,
    # and the log of negative numbers is undefined anyway.
    if stats.minimum >= 0:
        L.data += LOG_EPSILON
        apply_log(L)
        logger.debug("Luminance proxy min=%.4g >= 0: applied log transform", stats.minimum)
        return L, True

    logger.debug("Luminance proxy min=%.4g < 0: assuming log-domain input", stats.minimum)
    return L, False


def gradient_to_weight(grad: np.ndarray, alpha: float, lambda_: float) -> np.ndarray:
    """lambda / (|g|^alpha + eps), computed in place on a float32 array."""
    np.abs(grad, out=grad)
    np.power(grad, alpha, out=grad)
    grad += WEIGHT_EPSILON
    np.divide(lambda_, grad, out=grad)
    return grad


def build_weights(
    image: ImageVolume,
    alpha: float,
    lambda_: float,
) -> tuple[ImageVolume, ImageVolume]:
    """Build the horizontal and vertical smoothness weight fields.

    Args:
        image: Input volume, any positive channel count.
        alpha: Edge sensitivity exponent (expected > 0).
        lambda_: Smoothing strength (expected > 0).

    Returns:
        (Lx, Ly): single-channel volumes with the input's width, height and
        frame count.
    """
    L, _ = luminance_proxy(image)

    # gradient() returns fresh volumes, so Lx and Ly never share storage
    Lx = gradient(L, "x")
    Ly = gradient(L, "y")

    gradient_to_weight(Lx.data, alpha, lambda_)
    gradient_to_weight(Ly.data, alpha, lambda_)

    # Nuke the weights for the boundary condition
    Lx.data[:, :, 0, :] = 0.0
    Ly.data[:, 0, :, :] = 0.0

    logger.debug(
        "Weight fields built: Lx in [%.4g, %.4g], Ly in [%.4g, %.4g]",
        float(Lx.data.min()), float(Lx.data.max()),
        float(Ly.data.min()), float(Ly.data.max()),
    )
    return Lx, Ly
