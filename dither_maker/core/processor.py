"""Rendering pipeline.

Source image → (per filter) monochrome and/or color dithering → results.
Filters run concurrently, one task per filter, on threads or on worker
processes. The traversal is pure Python and holds the GIL, so only the
process pool spreads the work over several cores. Each task allocates its own
accumulators and output buffers, only the source image and kernels are
shared.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import (
    Executor,
    Future,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    as_completed,
)
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from PIL import Image

from dither_maker.core.dither import DEFAULT_MULTIPLIER, color, monochrome
from dither_maker.core.kernel import Filter, FilterName, get_filter

logger = logging.getLogger(__name__)


class ExportMode(str, Enum):
    ALL = "all"
    COLOR = "color"
    MONO = "mono"


class RenderError(RuntimeError):
    """A dithering run failed for a specific filter."""

    def __init__(self, filter_name: str, message: str) -> None:
        super().__init__(f"{filter_name}: {message}")
        self.filter_name = filter_name


@dataclass(frozen=True)
class Settings:
    """Options for a rendering session."""

    filters: tuple[FilterName, ...] = tuple(FilterName)
    multiplier: float = DEFAULT_MULTIPLIER
    export: ExportMode = ExportMode.ALL
    grayscale: bool = True
    threshold: bool = True

    @property
    def modes(self) -> tuple[str, ...]:
        if self.export == ExportMode.MONO:
            return ("mono",)
        if self.export == ExportMode.COLOR:
            return ("color",)
        return ("mono", "color")


@dataclass
class RenderResult:
    """Output of one filter in one mode."""

    filter_name: str
    mode: str  # "mono" or "color"
    image: Image.Image
    elapsed_s: float = field(default=0.0)


def _check_source(image: Image.Image | None) -> None:
    if image is None:
        raise ValueError("No source image")
    if image.width == 0 or image.height == 0:
        raise ValueError(f"Source image is empty ({image.width}x{image.height})")


def render_filter(
    image: Image.Image, filt: Filter, settings: Settings
) -> list[RenderResult]:
    """Run every requested mode for one filter, in order."""
    results = []
    for mode in settings.modes:
        start = time.perf_counter()
        if mode == "mono":
            out = monochrome(image, filt, settings.multiplier)
        else:
            out = color(image, filt, settings.multiplier)
        elapsed = time.perf_counter() - start
        logger.debug("%s %s finished in %.2fs", filt.name, mode, elapsed)
        results.append(RenderResult(filt.name, mode, out, elapsed))
    return results


def render_all(
    image: Image.Image,
    settings: Settings,
    max_workers: int | None = None,
    on_progress: Callable[[int, int], None] | None = None,
    use_processes: bool = False,
) -> list[RenderResult]:
    """Render every selected filter concurrently and wait for all of them.

    Threads share the process and run one traversal at a time; with
    `use_processes` each filter runs in a worker process and the image and
    results are pickled across.

    Args:
        image: decoded source image. Not modified.
        settings: filters, modes and multiplier to use.
        max_workers: pool size, defaults to one per filter.
        on_progress: callback(finished_filters, total_filters).
        use_processes: use a process pool instead of a thread pool.

    Returns:
        Results ordered by filter selection, then mode.

    Raises:
        ValueError: for an empty source image, before any run starts.
        RenderError: if any filter run failed. With several failures, the
            one earliest in the filter selection is raised.
    """
    _check_source(image)
    filters = [get_filter(name) for name in settings.filters]
    if not filters:
        return []

    workers = max_workers or len(filters)
    logger.debug(
        "Rendering %d filter(s) on %d %s: %s",
        len(filters), workers, "process(es)" if use_processes else "thread(s)",
        ", ".join(f.name for f in filters),
    )

    pool_cls: type[Executor] = ProcessPoolExecutor if use_processes else ThreadPoolExecutor
    outputs: dict[str, list[RenderResult]] = {}
    failures: dict[str, RenderError] = {}
    with pool_cls(max_workers=workers) as pool:
        futures: dict[Future, Filter] = {
            pool.submit(render_filter, image, filt, settings): filt for filt in filters
        }
        for done, future in enumerate(as_completed(futures), start=1):
            filt = futures[future]
            try:
                outputs[filt.name] = future.result()
            except Exception as e:
                logger.warning("Filter %s failed: %s", filt.name, e)
                err = RenderError(filt.name, str(e))
                err.__cause__ = e
                failures[filt.name] = err
            if on_progress:
                on_progress(done, len(filters))

    for filt in filters:
        if filt.name in failures:
            raise failures[filt.name]

    results: list[RenderResult] = []
    for filt in filters:
        results.extend(outputs[filt.name])
    return results
