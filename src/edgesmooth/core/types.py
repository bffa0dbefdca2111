"""Core data types and callback signatures for EdgeSmooth.

CRITICAL CONVENTION:
    Image volumes are float32 arrays of shape (frames, height, width, channels)
    indexed as data[t, y, x, c]. Flattening a single (height, width) plane in
    C order gives flat = y * width + x (x varies fastest).
    This convention MUST be used consistently in ALL modules.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import numpy as np

from edgesmooth.config import DEFAULT_MAX_ITERATIONS, DEFAULT_SOLVER_METHOD, DEFAULT_TOLERANCE
from edgesmooth.errors import ImageDimensionError


# ---------------------------------------------------------------------------
# Indexing helpers
# ---------------------------------------------------------------------------

def plane_index(x: int, y: int, width: int) -> int:
    """Convert (x, y) to a flat index within one plane. X varies fastest."""
    return y * width + x


# ---------------------------------------------------------------------------
# Image volume
# ---------------------------------------------------------------------------

@dataclass
class ImageVolume:
    """Dense 4D float32 image: (frames, height, width, channels)."""
    data: np.ndarray

    def __post_init__(self):
        data = np.ascontiguousarray(self.data, dtype=np.float32)
        if data.ndim != 4:
            raise ImageDimensionError(
                f"Image volume must be 4D (frames, height, width, channels), got shape {data.shape}"
            )
        if data.size == 0:
            raise ImageDimensionError(f"Image volume is empty: shape {data.shape}")
        self.data = data

    @classmethod
    def zeros(cls, width: int, height: int, frames: int = 1, channels: int = 1) -> ImageVolume:
        return cls.full(width, height, frames, channels, 0.0)

    @classmethod
    def full(
        cls,
        width: int,
        height: int,
        frames: int = 1,
        channels: int = 1,
        value: float = 0.0,
    ) -> ImageVolume:
        if min(width, height, frames, channels) <= 0:
            raise ImageDimensionError(
                f"Invalid volume dimensions: {width}x{height}, "
                f"{frames} frame(s), {channels} channel(s)"
            )
        return cls(np.full((frames, height, width, channels), value, dtype=np.float32))

    @classmethod
    def from_array(cls, array: np.ndarray) -> ImageVolume:
        """Wrap a (H, W), (H, W, C) or (T, H, W, C) array, copying it."""
        arr = np.array(array, dtype=np.float32, copy=True)
        if arr.ndim == 2:
            arr = arr[np.newaxis, :, :, np.newaxis]
        elif arr.ndim == 3:
            arr = arr[np.newaxis]
        return cls(arr)

    @property
    def frames(self) -> int:
        return self.data.shape[0]

    @property
    def height(self) -> int:
        return self.data.shape[1]

    @property
    def width(self) -> int:
        return self.data.shape[2]

    @property
    def channels(self) -> int:
        return self.data.shape[3]

    @property
    def shape(self) -> tuple[int, int, int, int]:
        return self.data.shape

    def copy(self) -> ImageVolume:
        return ImageVolume(self.data.copy())

    def frame(self, t: int) -> np.ndarray:
        """(height, width, channels) view of frame t."""
        return self.data[t]

    def pixel(self, x: int, y: int, t: int = 0, c: int = 0) -> float:
        return float(self.data[t, y, x, c])

    def set_pixel(self, x: int, y: int, t: int, c: int, value: float) -> None:
        self.data[t, y, x, c] = value

    def same_extent(self, other: ImageVolume) -> bool:
        """True when width, height and frame count match (channels may differ)."""
        return self.shape[:3] == other.shape[:3]


# ---------------------------------------------------------------------------
# Configuration and reports
# ---------------------------------------------------------------------------

@dataclass
class WLSConfig:
    """Parameters for one WLS filter invocation.

    alpha and lambda_ are expected to be positive; non-positive values are
    numerically defined but meaningless.
    """
    alpha: float = 1.2
    lambda_: float = 0.25
    tolerance: float = DEFAULT_TOLERANCE
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    method: str = DEFAULT_SOLVER_METHOD
    parallel: bool = False


@dataclass
class SolveInfo:
    """Convergence report for one (frame, channel) plane."""
    frame: int
    channel: int
    iterations: int
    residual: float
    converged: bool


# ---------------------------------------------------------------------------
# Progress callback type
# ---------------------------------------------------------------------------

ProgressCallback = Callable[[str, float, str], None]
"""Callback signature: (stage_name, fraction_complete, message)."""
