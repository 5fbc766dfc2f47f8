"""Save rendered images as PNG files.

Layout under the output directory:

    grayscale.png
    threshold.png
    mono/<Filter-Name>.png
    color/<Filter-Name>.png
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from PIL import Image

from dither_maker.core.processor import RenderResult

logger = logging.getLogger(__name__)

EXPORT_SUBDIRS = ("mono", "color")


def prepare_output_dirs(output_dir: Path) -> dict[str, Path]:
    """Create the per-mode subdirectories and return them by mode."""
    dirs = {}
    for mode in EXPORT_SUBDIRS:
        subdir = output_dir / mode
        try:
            subdir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OSError(f"Failed to create output directory {subdir}: {e}") from e
        dirs[mode] = subdir
    return dirs


def save_png(image: Image.Image, path: Path) -> Path:
    """Encode an image to PNG at `path`."""
    try:
        image.save(str(path), format="PNG")
    except (OSError, ValueError) as e:
        raise OSError(f"Failed to write {path}: {e}") from e
    logger.debug("Wrote %s", path)
    return path


def output_path_for(result: RenderResult, output_dir: Path) -> Path:
    return output_dir / result.mode / f"{result.filter_name}.png"


def save_results(results: Iterable[RenderResult], output_dir: Path) -> list[Path]:
    """Write each result under its mode directory. Returns written paths."""
    prepare_output_dirs(output_dir)
    return [save_png(r.image, output_path_for(r, output_dir)) for r in results]
