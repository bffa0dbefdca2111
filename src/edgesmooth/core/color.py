"""Channel reduction primitives for building single-channel luminance proxies.

Two reductions are provided:
    to_luma                  - Rec.601 luma for 3-channel RGB volumes
    weighted_channel_average - arbitrary per-channel weights, any channel count

Both return a fresh single-channel ImageVolume with the same width, height
and frame count as the input.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from edgesmooth.config import LUMA_WEIGHTS
from edgesmooth.core.types import ImageVolume

# Rec.601 luma coefficients as a (3,) reduction vector
LUMA_VECTOR = np.array(LUMA_WEIGHTS, dtype=np.float64)


def to_luma(image: ImageVolume) -> ImageVolume:
    """Convert a 3-channel RGB volume to single-channel luma.

    Args:
        image: Volume with exactly 3 channels.

    Returns:
        (frames, height, width, 1) luma volume.
    """
    if image.channels != 3:
        raise ValueError(f"to_luma requires 3 channels, got {image.channels}")
    return weighted_channel_average(image, LUMA_VECTOR)


def weighted_channel_average(
    image: ImageVolume,
    weights: Sequence[float] | np.ndarray,
) -> ImageVolume:
    """Reduce all channels to one using a fixed weight per channel.

    Args:
        image: Volume with C channels.
        weights: (C,) weights. They are used as given, not renormalized.

    Returns:
        (frames, height, width, 1) reduced volume.
    """
    w = np.asarray(weights, dtype=np.float64).ravel()
    if w.shape[0] != image.channels:
        raise ValueError(
            f"Expected {image.channels} channel weights, got {w.shape[0]}"
        )
    reduced = image.data.astype(np.float64) @ w
    return ImageVolume(reduced[..., np.newaxis].astype(np.float32))


def equal_channel_weights(channels: int) -> np.ndarray:
    """Weights of 1/channels for each channel."""
    return np.full(channels, 1.0 / channels, dtype=np.float64)
