"""Error-diffusion kernels and the named filter presets.

A kernel is a `rows x cols` table of weights. Row 0 is the scan line that
holds the current pixel, which sits in the middle column; later rows reach
further along the traversal. Cells at or before the current pixel are never
diffused to, whatever the table says.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Sequence

import numpy as np


class KernelError(ValueError):
    """Raised when a kernel table has an invalid shape or weights."""


class Kernel:
    """Immutable table of diffusion weights."""

    def __init__(self, weights: np.ndarray) -> None:
        weights = np.asarray(weights, dtype=np.float64)
        if weights.ndim != 2 or weights.size == 0:
            raise KernelError("Kernel must be a non-empty 2D table")
        cols = weights.shape[1]
        if cols % 2 == 0:
            raise KernelError(f"Kernel must have an odd number of columns, got {cols}")
        if not np.all(np.isfinite(weights)):
            raise KernelError("Kernel weights must be finite")

        table = weights.copy()
        table.flags.writeable = False
        self._weights = table
        self._taps = tuple(self._collect_taps())

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[float]]) -> Kernel:
        """Build a kernel from a list of equally sized rows."""
        if not rows:
            raise KernelError("Kernel needs at least one row")
        widths = {len(row) for row in rows}
        if 0 in widths:
            raise KernelError("Kernel rows must not be empty")
        if len(widths) != 1:
            raise KernelError(f"Kernel rows have mismatched lengths: {sorted(widths)}")
        return cls(np.array(rows, dtype=np.float64))

    @property
    def cols(self) -> int:
        return self._weights.shape[1]

    @property
    def rows(self) -> int:
        return self._weights.shape[0]

    @property
    def center_offset(self) -> int:
        return self.cols // 2

    def get(self, col: int, row: int) -> float:
        return float(self._weights[row, col])

    def total(self) -> float:
        """Sum of all weights in the table."""
        return float(self._weights.sum())

    def taps(self) -> tuple[tuple[int, int, float], ...]:
        """Non-zero (row, column offset, weight) entries that receive error."""
        return self._taps

    def _collect_taps(self) -> Iterator[tuple[int, int, float]]:
        c = self.center_offset
        for row in range(self.rows):
            for offset in range(-c, c + 1):
                # The current pixel and everything before it is already done
                if row == 0 and offset <= 0:
                    continue
                weight = float(self._weights[row, offset + c])
                if weight != 0.0:
                    yield row, offset, weight

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Kernel):
            return NotImplemented
        return np.array_equal(self._weights, other._weights)

    def __hash__(self) -> int:
        return hash((self._weights.shape, self._weights.tobytes()))

    def __repr__(self) -> str:
        return f"Kernel(rows={self.rows}, cols={self.cols}, total={self.total():.4f})"


@dataclass(frozen=True)
class Filter:
    """A kernel paired with the name used for reporting and file names."""

    name: str
    kernel: Kernel


class FilterName(str, Enum):
    FLOYD_STEINBERG = "floyd-steinberg"
    JARVIS_JUDICE_NINKE = "jarvis-judice-ninke"
    STUCKI = "stucki"
    ATKINSON = "atkinson"
    BURKES = "burkes"
    SIERRA3 = "sierra3"
    SIERRA2 = "sierra2"
    SIERRA_LITE = "sierra-lite"


FILTERS: dict[FilterName, Filter] = {
    FilterName.FLOYD_STEINBERG: Filter(
        "Floyd-Steinberg",
        Kernel.from_rows([
            [0.0, 0.0, 7 / 16],
            [3 / 16, 5 / 16, 1 / 16],
        ]),
    ),
    FilterName.JARVIS_JUDICE_NINKE: Filter(
        "Jarvis-Judice-Ninke",
        Kernel.from_rows([
            [0.0, 0.0, 0.0, 7 / 48, 5 / 48],
            [3 / 48, 5 / 48, 7 / 48, 5 / 48, 3 / 48],
            [1 / 48, 3 / 48, 5 / 48, 3 / 48, 1 / 48],
        ]),
    ),
    FilterName.STUCKI: Filter(
        "Stucki",
        Kernel.from_rows([
            [0.0, 0.0, 0.0, 8 / 42, 4 / 42],
            [2 / 42, 4 / 42, 8 / 42, 4 / 42, 2 / 42],
            [1 / 42, 2 / 42, 4 / 42, 2 / 42, 1 / 42],
        ]),
    ),
    # Only 6/8 of the error is passed on, which gives the lighter look
    FilterName.ATKINSON: Filter(
        "Atkinson",
        Kernel.from_rows([
            [0.0, 0.0, 0.0, 1 / 8, 1 / 8],
            [0.0, 1 / 8, 1 / 8, 1 / 8, 0.0],
            [0.0, 0.0, 1 / 8, 0.0, 0.0],
        ]),
    ),
    FilterName.BURKES: Filter(
        "Burkes",
        Kernel.from_rows([
            [0.0, 0.0, 0.0, 8 / 32, 4 / 32],
            [2 / 32, 4 / 32, 8 / 32, 4 / 32, 2 / 32],
        ]),
    ),
    FilterName.SIERRA3: Filter(
        "Sierra-3",
        Kernel.from_rows([
            [0.0, 0.0, 0.0, 5 / 32, 3 / 32],
            [2 / 32, 4 / 32, 5 / 32, 4 / 32, 2 / 32],
            [0.0, 2 / 32, 3 / 32, 2 / 32, 0.0],
        ]),
    ),
    FilterName.SIERRA2: Filter(
        "Sierra-2",
        Kernel.from_rows([
            [0.0, 0.0, 0.0, 4 / 16, 3 / 16],
            [1 / 16, 2 / 16, 3 / 16, 2 / 16, 1 / 16],
        ]),
    ),
    FilterName.SIERRA_LITE: Filter(
        "Sierra-Lite",
        Kernel.from_rows([
            [0.0, 0.0, 2 / 4],
            [1 / 4, 1 / 4, 0.0],
        ]),
    ),
}


def _filter_name(name: str | FilterName) -> FilterName:
    try:
        return FilterName(name)
    except ValueError:
        valid = ", ".join(f.value for f in FilterName)
        raise ValueError(f"Unknown filter: {name!r} (expected one of: {valid})") from None


def get_filter(name: str | FilterName) -> Filter:
    """Look up a preset filter by its CLI name."""
    return FILTERS[_filter_name(name)]


def parse_filters(text: str) -> tuple[FilterName, ...]:
    """Parse a comma-separated filter list. 'all' selects every preset."""
    selected: list[FilterName] = []
    for part in text.split(","):
        key = part.strip().lower()
        if not key:
            continue
        if key == "all":
            names = list(FilterName)
        else:
            names = [_filter_name(key)]
        for name in names:
            if name not in selected:
                selected.append(name)
    if not selected:
        raise ValueError("No filters selected")
    return tuple(selected)
