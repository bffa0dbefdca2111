"""Image I/O for EdgeSmooth.

Raster formats (PNG, TIFF, JPEG, BMP) go through imageio v3 and are
normalized to float32 [0, 1]. Raw float volumes of any shape the
ImageVolume accepts are stored as .npy files, which keeps negative and
log-domain values and multiple frames intact.

All images are returned as ImageVolume with their native channel count.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import imageio.v3 as iio
import numpy as np

from edgesmooth.config import (
    DEFAULT_BIT_DEPTH,
    IMAGE_EXTENSIONS,
    MAX_IMAGE_DIMENSION,
    MAX_IMAGE_PIXELS,
    VOLUME_EXTENSIONS,
)
from edgesmooth.core.types import ImageVolume
from edgesmooth.errors import ImageDimensionError, ImageFormatError

logger = logging.getLogger(__name__)

_ALL_EXTENSIONS = IMAGE_EXTENSIONS | VOLUME_EXTENSIONS


def validate_input_path(filepath: str | Path) -> Path:
    """Validate an input file path.

    Args:
        filepath: Path to validate.

    Returns:
        Resolved Path object.

    Raises:
        FileNotFoundError: If file does not exist.
        ImageFormatError: If extension is not allowed.
    """
    path = Path(filepath).resolve()

    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    if not path.is_file():
        raise ImageFormatError(f"Not a regular file: {path}")

    if path.suffix.lower() not in _ALL_EXTENSIONS:
        raise ImageFormatError(
            f"Unsupported image format: {path.suffix}. "
            f"Supported: {', '.join(sorted(_ALL_EXTENSIONS))}"
        )

    return path


def validate_output_path(filepath: str | Path) -> Path:
    """Validate an output file path.

    Raises:
        FileNotFoundError: If parent directory does not exist.
        ImageFormatError: If extension is not allowed.
    """
    path = Path(filepath).resolve()

    if not path.parent.exists():
        raise FileNotFoundError(f"Output directory does not exist: {path.parent}")

    if not os.access(path.parent, os.W_OK):
        raise PermissionError(f"Cannot write to directory: {path.parent}")

    if path.suffix.lower() not in _ALL_EXTENSIONS:
        raise ImageFormatError(f"Unsupported output format: {path.suffix}")

    return path


def _validate_dimensions(width: int, height: int) -> None:
    """Check image dimensions before further allocation."""
    if width <= 0 or height <= 0:
        raise ImageDimensionError(f"Invalid image dimensions: {width}x{height}")
    if width > MAX_IMAGE_DIMENSION or height > MAX_IMAGE_DIMENSION:
        raise ImageDimensionError(
            f"Image dimension {max(width, height)} exceeds "
            f"maximum allowed {MAX_IMAGE_DIMENSION}"
        )
    if width * height > MAX_IMAGE_PIXELS:
        raise ImageDimensionError(
            f"Image has {width * height:,} pixels, exceeds "
            f"maximum allowed {MAX_IMAGE_PIXELS:,}"
        )


def _normalize(raw: np.ndarray) -> np.ndarray:
    """Convert integer or float pixel data to float32 [0, 1]."""
    if raw.dtype == np.uint8:
        return raw.astype(np.float32) / 255.0
    if raw.dtype == np.uint16:
        return raw.astype(np.float32) / 65535.0
    if np.issubdtype(raw.dtype, np.integer):
        return raw.astype(np.float32) / np.iinfo(raw.dtype).max
    return raw.astype(np.float32)


def _load_raster(path: Path) -> ImageVolume:
    raw = iio.imread(str(path))
    if raw.ndim not in (2, 3):
        raise ImageFormatError(f"Unsupported image shape: {raw.shape}")
    _validate_dimensions(raw.shape[1], raw.shape[0])
    return ImageVolume.from_array(_normalize(raw))


def _load_volume(path: Path) -> ImageVolume:
    try:
        raw = np.load(str(path), allow_pickle=False)
    except ValueError as e:
        raise ImageFormatError(f"Cannot read volume {path}: {e}") from e
    if raw.ndim not in (2, 3, 4):
        raise ImageFormatError(f"Unsupported volume shape: {raw.shape}")
    height, width = (raw.shape[0], raw.shape[1]) if raw.ndim < 4 else (raw.shape[1], raw.shape[2])
    _validate_dimensions(width, height)
    return ImageVolume.from_array(raw)


def load_image(filepath: str | Path) -> ImageVolume:
    """Load an image file as an ImageVolume.

    Args:
        filepath: Path to image or .npy volume file.

    Returns:
        ImageVolume (one frame for raster formats).
    """
    path = validate_input_path(filepath)

    if path.suffix.lower() in VOLUME_EXTENSIONS:
        logger.debug("Loading volume: %s", path)
        image = _load_volume(path)
    else:
        logger.debug("Loading with imageio: %s", path)
        image = _load_raster(path)

    logger.info(
        "Loaded %s: %dx%d, %d frame(s), %d channel(s)",
        path.name, image.width, image.height, image.frames, image.channels,
    )
    return image


def save_image(
    image: ImageVolume,
    filepath: str | Path,
    bit_depth: int = DEFAULT_BIT_DEPTH,
) -> Path:
    """Save an ImageVolume to file.

    Raster formats are clipped to [0, 1] and quantized; .npy keeps the raw
    float32 volume.

    Args:
        image: Volume to save.
        filepath: Output path.
        bit_depth: 8 or 16 bits per channel for raster formats.

    Returns:
        Resolved output path.
    """
    path = validate_output_path(filepath)

    if path.suffix.lower() in VOLUME_EXTENSIONS:
        np.save(str(path), image.data)
        logger.info("Saved volume: %s", path)
        return path

    if image.frames != 1:
        raise ImageFormatError(
            f"{path.suffix} holds a single frame; got {image.frames}. Use .npy for volumes."
        )
    if image.channels not in (1, 3, 4):
        raise ImageFormatError(
            f"{path.suffix} needs 1, 3 or 4 channels; got {image.channels}. Use .npy instead."
        )

    array = image.frame(0)
    if image.channels == 1:
        array = array[:, :, 0]

    if bit_depth == 16:
        if path.suffix.lower() in (".jpg", ".jpeg", ".bmp"):
            raise ImageFormatError(f"{path.suffix} does not support 16-bit output")
        out = np.round(np.clip(array, 0.0, 1.0) * 65535).astype(np.uint16)
    elif bit_depth == 8:
        out = np.round(np.clip(array, 0.0, 1.0) * 255).astype(np.uint8)
    else:
        raise ValueError(f"Unsupported bit depth: {bit_depth}")

    iio.imwrite(str(path), out)
    logger.info("Saved image: %s (%d-bit)", path, bit_depth)
    return path
