"""Error-diffusion dithering.

Each pixel is quantized to black or white at a fixed midpoint and the
residual error is spread forward onto unvisited neighbours according to a
kernel. Pixels are visited column by column (x outer, y inner): kernel row
`ky` steps along x and kernel column offset `kx` steps along y, so every
target lies after the current pixel in traversal order.
"""

from __future__ import annotations

import logging
import math

import numpy as np
from PIL import Image

from dither_maker.core.accumulator import ErrorAccumulator
from dither_maker.core.kernel import Filter, Kernel
from dither_maker.core.tone import grayscale

logger = logging.getLogger(__name__)

DEFAULT_MULTIPLIER = 1.18
MIDPOINT = 128
BLACK = 0
WHITE = 255


def _resolve_kernel(kernel: Kernel | Filter) -> Kernel:
    if isinstance(kernel, Filter):
        return kernel.kernel
    if isinstance(kernel, Kernel):
        return kernel
    raise TypeError(f"Expected a Kernel or Filter, got {type(kernel).__name__}")


def _check_multiplier(multiplier: float) -> float:
    multiplier = float(multiplier)
    if not math.isfinite(multiplier) or multiplier <= 0:
        raise ValueError(f"Error multiplier must be a positive number, got {multiplier}")
    return multiplier


def _check_image(image: Image.Image | None) -> None:
    if image is None:
        raise ValueError("No image to dither")
    if image.width == 0 or image.height == 0:
        raise ValueError(f"Cannot dither an empty image ({image.width}x{image.height})")


def diffuse_channel(
    values: np.ndarray,
    kernel: Kernel | Filter,
    multiplier: float = DEFAULT_MULTIPLIER,
) -> np.ndarray:
    """Dither one channel of intensities to 0/255.

    Args:
        values: 2D array (height, width) of intensities in [0, 255].
        kernel: diffusion weights, or a Filter carrying them.
        multiplier: scale applied to accumulated error before it is
            subtracted. Values above 1 exaggerate the diffusion; well above
            2 tends to produce streaks.

    Returns:
        uint8 array of the same shape holding only 0 and 255.
    """
    kernel = _resolve_kernel(kernel)
    multiplier = _check_multiplier(multiplier)
    src = np.asarray(values, dtype=np.float64)
    if src.ndim != 2:
        raise ValueError(f"Expected a 2D channel, got shape {src.shape}")
    height, width = src.shape
    if width == 0 or height == 0:
        raise ValueError(f"Cannot dither an empty channel ({width}x{height})")

    out = np.empty((height, width), dtype=np.uint8)
    errors = ErrorAccumulator(width, height)
    taps = kernel.taps()

    for x in range(width):
        for y in range(height):
            adjusted = src[y, x] - errors.get(x, y) * multiplier
            if adjusted < MIDPOINT:
                out[y, x] = BLACK
                residual = -adjusted
            else:
                out[y, x] = WHITE
                residual = WHITE - adjusted

            for ky, kx, weight in taps:
                tx = x + ky
                ty = y + kx
                # Anything past the edge is dropped
                if tx < width and 0 <= ty < height:
                    errors.add(tx, ty, residual * weight)

    return out


def monochrome(
    image: Image.Image,
    kernel: Kernel | Filter,
    multiplier: float = DEFAULT_MULTIPLIER,
) -> Image.Image:
    """Dither the luma of an image to a black and white "L" image."""
    _check_image(image)
    gray = np.asarray(grayscale(image), dtype=np.uint8)
    out = diffuse_channel(gray, kernel, multiplier)
    logger.debug(
        "Dithered %dx%d image to monochrome (multiplier %.2f)",
        image.width, image.height, multiplier,
    )
    return Image.fromarray(out)


def color(
    image: Image.Image,
    kernel: Kernel | Filter,
    multiplier: float = DEFAULT_MULTIPLIER,
) -> Image.Image:
    """Dither R, G and B independently; alpha is copied through.

    Returns an "RGBA" image. Sources without alpha get an opaque channel.
    """
    _check_image(image)
    rgba = np.asarray(image if image.mode == "RGBA" else image.convert("RGBA"), dtype=np.uint8)
    channels = [diffuse_channel(rgba[:, :, c], kernel, multiplier) for c in range(3)]
    channels.append(rgba[:, :, 3].copy())
    logger.debug(
        "Dithered %dx%d image per channel (multiplier %.2f)",
        image.width, image.height, multiplier,
    )
    return Image.fromarray(np.dstack(channels))
