"""Command-line interface for dither_maker.

Renders every selected error-diffusion filter for one image and writes the
results as PNG files. `--json` prints a structured summary for scripting.
"""

from __future__ import annotations

import argparse
import json
import logging
import math
import sys
import time
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from dither_maker.core.dither import DEFAULT_MULTIPLIER
from dither_maker.core.kernel import FILTERS, FilterName, parse_filters
from dither_maker.core.processor import ExportMode, RenderError, Settings

logger = logging.getLogger("dither_maker")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dither-maker",
        description="Dither an image with error-diffusion filters.",
    )
    parser.add_argument("input", help="Input image file path or HTTP(S) URL.")
    parser.add_argument(
        "--filters",
        default="all",
        help=(
            "Comma-separated filters to apply, or 'all' (default: all). "
            f"Available: {', '.join(f.value for f in FilterName)}."
        ),
    )
    parser.add_argument(
        "-o", "--outputdir",
        default="output",
        help="Directory to save the generated images in (default: output).",
    )
    parser.add_argument(
        "--export",
        choices=[m.value for m in ExportMode],
        default="all",
        help="Which dithered images to generate (default: all).",
    )
    parser.add_argument(
        "--grayscale",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Also save the grayscale conversion (default: on).",
    )
    parser.add_argument(
        "--threshold",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Also save a plain threshold image for comparison (default: on).",
    )
    parser.add_argument(
        "--multiplier",
        type=float,
        default=DEFAULT_MULTIPLIER,
        help=f"Error multiplier (default: {DEFAULT_MULTIPLIER}).",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of filters rendered in parallel (default: one per filter).",
    )
    parser.add_argument(
        "--processes",
        action="store_true",
        help="Render filters in worker processes to use several CPU cores.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output structured JSON (pipe-friendly).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Show stack traces on error.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    return parser


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Send log records to stderr through Rich."""
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=verbose,
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(level)
    logger.propagate = False


def _json_error(message: str, code: str) -> None:
    """Print JSON error to stderr and exit with code 1."""
    err = {"status": "error", "error": message, "code": code}
    print(json.dumps(err), file=sys.stderr)
    sys.exit(1)


def _fail(args: argparse.Namespace, message: str, code: str) -> None:
    if args.debug and sys.exc_info()[0] is not None:
        logger.exception(message)
    if args.json:
        _json_error(message, code)
    print(f"\nError: {message}", file=sys.stderr)
    sys.exit(1)


def _run(args: argparse.Namespace) -> None:
    """Load the image, render all filters and write the results."""
    from dither_maker.core.processor import render_all
    from dither_maker.core.reader import open_image
    from dither_maker.core.tone import grayscale, threshold
    from dither_maker.core.writer import prepare_output_dirs, save_png, save_results

    is_json = args.json

    try:
        filter_names = parse_filters(args.filters)
    except ValueError as e:
        _fail(args, str(e), "INVALID_ARGUMENT")
    if not math.isfinite(args.multiplier) or args.multiplier <= 0:
        _fail(args, f"Multiplier must be a positive number, got {args.multiplier}", "INVALID_ARGUMENT")
    if args.workers is not None and args.workers < 1:
        _fail(args, f"Workers must be at least 1, got {args.workers}", "INVALID_ARGUMENT")

    try:
        image = open_image(args.input)
    except FileNotFoundError as e:
        _fail(args, str(e), "FILE_NOT_FOUND")
    except (ValueError, OSError) as e:
        _fail(args, str(e), "INVALID_INPUT")

    settings = Settings(
        filters=filter_names,
        multiplier=args.multiplier,
        export=ExportMode(args.export),
        grayscale=args.grayscale,
        threshold=args.threshold,
    )
    output_dir = Path(args.outputdir).resolve()
    display_names = [FILTERS[name].name for name in settings.filters]

    if not is_json:
        print(f"Applying filters [{', '.join(display_names)}]", file=sys.stderr)
        print("Rendering image...", end="", file=sys.stderr, flush=True)

    def on_progress(done: int, total: int) -> None:
        if not is_json:
            print(
                f"\rRendering image... {done}/{total}",
                end="",
                file=sys.stderr,
                flush=True,
            )

    start = time.perf_counter()
    extras: list[Path] = []
    try:
        prepare_output_dirs(output_dir)
        if settings.grayscale:
            extras.append(save_png(grayscale(image), output_dir / "grayscale.png"))
        if settings.threshold:
            extras.append(save_png(threshold(image), output_dir / "threshold.png"))

        results = render_all(
            image, settings, args.workers, on_progress, use_processes=args.processes
        )
        written = save_results(results, output_dir)
    except (RenderError, OSError, ValueError) as e:
        _fail(args, str(e), "PROCESSING_ERROR")
    elapsed = time.perf_counter() - start

    if not is_json:
        print("\nDone ✓", file=sys.stderr)
        print(f"Rendered in: {elapsed:.2f}s", file=sys.stderr)
        print(f"Saved to {output_dir}", file=sys.stderr)
        return

    summary = {
        "status": "success",
        "input": str(args.input),
        "output_dir": str(output_dir),
        "settings": {
            "filters": [name.value for name in settings.filters],
            "multiplier": settings.multiplier,
            "export": settings.export.value,
            "grayscale": settings.grayscale,
            "threshold": settings.threshold,
        },
        "metadata": {
            "width": image.width,
            "height": image.height,
            "mode": image.mode,
            "elapsed_s": round(elapsed, 3),
        },
        "files": [str(p) for p in extras + written],
    }
    print(json.dumps(summary, indent=2))


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    setup_logging(verbose=args.verbose, quiet=args.json)
    _run(args)


if __name__ == "__main__":
    main()
