"""Shared fixtures for EdgeSmooth tests."""

from __future__ import annotations

import numpy as np
import pytest

from edgesmooth.core.types import ImageVolume


@pytest.fixture
def rng():
    """Seeded random generator."""
    return np.random.default_rng(42)


@pytest.fixture
def random_rgb(rng):
    """Small random (1, 12, 16, 3) RGB volume in [0, 1)."""
    return ImageVolume(rng.random((1, 12, 16, 3), dtype=np.float32))


@pytest.fixture
def random_gray(rng):
    """Small random (1, 10, 8, 1) single-channel volume in [0, 1)."""
    return ImageVolume(rng.random((1, 10, 8, 1), dtype=np.float32))


@pytest.fixture
def flat_rgb():
    """Constant-colour (1, 24, 32, 3) volume."""
    data = np.empty((1, 24, 32, 3), dtype=np.float32)
    data[...] = np.array([0.3, 0.6, 0.9], dtype=np.float32)
    return ImageVolume(data)


@pytest.fixture
def disk_image():
    """400x300 RGB image: a (1, 0.5, 0.25) disk of radius 100 on black.

    Returns (image, r) where r is the squared normalized radius per pixel.
    """
    yy, xx = np.mgrid[0:300, 0:400]
    dx = (xx - 200) / 100.0
    dy = (yy - 150) / 100.0
    r = dx * dx + dy * dy
    inside = (r < 1).astype(np.float32)

    data = np.stack([inside, inside * 0.5, inside * 0.25], axis=-1)
    return ImageVolume(data[np.newaxis]), r


@pytest.fixture
def tmp_image_dir(tmp_path):
    """Temporary directory for test images."""
    d = tmp_path / "images"
    d.mkdir()
    return d


@pytest.fixture
def sample_png(tmp_image_dir, rng):
    """Small 8-bit RGB PNG on disk. Returns its path."""
    from edgesmooth.io.image import save_image

    image = ImageVolume(rng.random((1, 20, 24, 3), dtype=np.float32))
    path = tmp_image_dir / "sample.png"
    save_image(image, path, bit_depth=8)
    return path


@pytest.fixture
def sample_npy(tmp_image_dir, rng):
    """Small float volume saved as .npy. Returns its path."""
    from edgesmooth.io.image import save_image

    image = ImageVolume(rng.random((1, 14, 18, 3), dtype=np.float32))
    path = tmp_image_dir / "sample.npy"
    save_image(image, path)
    return path
