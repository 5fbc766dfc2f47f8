"""Pending quantization error for one channel of one dithering run."""

from __future__ import annotations

import numpy as np


class ErrorAccumulator:
    """Dense float buffer of error still to be applied, addressed as (x, y).

    Coordinates are not checked; callers clip to the image first.
    """

    def __init__(self, width: int, height: int) -> None:
        self._width = width
        self._height = height
        self._errors = np.zeros((height, width), dtype=np.float64)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def get(self, x: int, y: int) -> float:
        return float(self._errors[y, x])

    def add(self, x: int, y: int, delta: float) -> None:
        self._errors[y, x] += delta
