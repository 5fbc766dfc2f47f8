"""Pixel-independent tone helpers: luma conversion and plain thresholding."""

from __future__ import annotations

import numpy as np
from PIL import Image

THRESHOLD_CUTOFF = 123


def grayscale(image: Image.Image) -> Image.Image:
    """Convert any image to single-channel luma ("L" mode)."""
    if image.mode == "L":
        return image.copy()
    if image.mode in ("P", "PA"):
        image = image.convert("RGBA")
    return image.convert("L")


def threshold(image: Image.Image, cutoff: int = THRESHOLD_CUTOFF) -> Image.Image:
    """Binarize at a fixed cutoff with no error propagation.

    Values strictly above `cutoff` become white, the rest black.
    """
    gray = np.asarray(grayscale(image), dtype=np.uint8)
    binary = np.where(gray > cutoff, 255, 0).astype(np.uint8)
    return Image.fromarray(binary)
