"""Elementwise and finite-difference primitives on image volumes.

Gradient convention (backward difference along the named axis):
    g[x] = f[x] - f[x - 1]   for x >= 1
    g[0] = f[0]              (no left neighbour; callers zero its weight)

The same convention is used by the sparse difference operators in
edgesmooth.core.matrix, so weights built from these gradients line up
with the rows of the linear system.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from edgesmooth.core.types import ImageVolume

# Axis name -> numpy axis in the (frames, height, width, channels) layout
_AXES = {"t": 0, "y": 1, "x": 2}


@dataclass
class ImageStats:
    """Summary statistics over every sample of a volume."""
    minimum: float
    maximum: float
    mean: float


def image_stats(image: ImageVolume) -> ImageStats:
    data = image.data
    return ImageStats(
        minimum=float(data.min()),
        maximum=float(data.max()),
        mean=float(data.mean(dtype=np.float64)),
    )


def apply_log(image: ImageVolume) -> ImageVolume:
    """Natural log of every sample, in place.

    Undefined for non-positive samples; callers add an epsilon first.
    Returns the same volume for chaining.
    """
    np.log(image.data, out=image.data)
    return image


def gradient(image: ImageVolume, axis: str) -> ImageVolume:
    """Backward finite difference along 'x', 'y' or 't'.

    Args:
        image: Input volume (not modified).
        axis: Axis name.

    Returns:
        Fresh volume of the same shape.
    """
    try:
        ax = _AXES[axis]
    except KeyError:
        raise ValueError(f"Unknown gradient axis: {axis!r}. Use 'x', 'y' or 't'.") from None

    out = image.data.copy()
    if image.data.shape[ax] > 1:
        lead = [slice(None)] * 4
        lag = [slice(None)] * 4
        lead[ax] = slice(1, None)
        lag[ax] = slice(None, -1)
        out[tuple(lead)] = image.data[tuple(lead)] - image.data[tuple(lag)]
    return ImageVolume(out)


def add_uniform_noise(
    image: ImageVolume,
    low: float,
    high: float,
    seed: Optional[int] = None,
) -> ImageVolume:
    """Return a copy with independent uniform noise in [low, high) per sample."""
    rng = np.random.default_rng(seed)
    noise = rng.uniform(low, high, size=image.shape).astype(np.float32)
    return ImageVolume(image.data + noise)
