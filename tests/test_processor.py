"""Tests for the rendering pipeline."""

import numpy as np
import pytest
from PIL import Image

from dither_maker.core.dither import color, monochrome
from dither_maker.core.kernel import FILTERS, FilterName
from dither_maker.core.processor import (
    ExportMode,
    RenderError,
    RenderResult,
    Settings,
    render_all,
    render_filter,
)


def _make_test_image(width: int = 12, height: int = 8) -> Image.Image:
    rng = np.random.default_rng(1)
    arr = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    return Image.fromarray(arr)


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.filters == tuple(FilterName)
        assert s.multiplier == pytest.approx(1.18)
        assert s.export == ExportMode.ALL
        assert s.grayscale is True
        assert s.threshold is True

    def test_frozen(self):
        s = Settings()
        with pytest.raises(AttributeError):
            s.multiplier = 2.0

    def test_modes(self):
        assert Settings(export=ExportMode.ALL).modes == ("mono", "color")
        assert Settings(export=ExportMode.MONO).modes == ("mono",)
        assert Settings(export=ExportMode.COLOR).modes == ("color",)


class TestRenderFilter:
    def test_both_modes(self):
        img = _make_test_image()
        filt = FILTERS[FilterName.BURKES]
        results = render_filter(img, filt, Settings())

        assert [r.mode for r in results] == ["mono", "color"]
        assert all(isinstance(r, RenderResult) for r in results)
        assert all(r.filter_name == "Burkes" for r in results)
        assert results[0].image.mode == "L"
        assert results[1].image.mode == "RGBA"
        assert all(r.elapsed_s >= 0 for r in results)

    def test_mono_only(self):
        results = render_filter(
            _make_test_image(), FILTERS[FilterName.STUCKI], Settings(export=ExportMode.MONO)
        )
        assert [r.mode for r in results] == ["mono"]


class TestRenderAll:
    def test_results_in_filter_order(self):
        settings = Settings(
            filters=(FilterName.SIERRA_LITE, FilterName.ATKINSON, FilterName.FLOYD_STEINBERG),
            export=ExportMode.MONO,
        )
        results = render_all(_make_test_image(), settings)
        assert [r.filter_name for r in results] == ["Sierra-Lite", "Atkinson", "Floyd-Steinberg"]

    def test_matches_sequential_runs(self):
        img = _make_test_image()
        settings = Settings(multiplier=1.4)
        results = render_all(img, settings, max_workers=4)
        assert len(results) == 2 * len(FilterName)

        for r in results:
            filt = next(f for f in FILTERS.values() if f.name == r.filter_name)
            fn = monochrome if r.mode == "mono" else color
            expected = fn(img, filt, 1.4)
            assert r.image.tobytes() == expected.tobytes()

    def test_source_untouched(self):
        img = _make_test_image()
        before = img.tobytes()
        render_all(img, Settings(filters=(FilterName.STUCKI, FilterName.BURKES)))
        assert img.tobytes() == before

    def test_progress_callback(self):
        progress = []

        def on_progress(done, total):
            progress.append((done, total))

        settings = Settings(filters=(FilterName.STUCKI, FilterName.BURKES, FilterName.SIERRA2))
        render_all(_make_test_image(), settings, on_progress=on_progress)

        assert len(progress) == 3
        assert progress[-1] == (3, 3)

    def test_no_filters(self):
        assert render_all(_make_test_image(), Settings(filters=())) == []

    def test_failed_run_names_filter(self):
        settings = Settings(filters=(FilterName.ATKINSON,), multiplier=-1.0)
        with pytest.raises(RenderError, match="Atkinson") as excinfo:
            render_all(_make_test_image(), settings)
        assert excinfo.value.filter_name == "Atkinson"
        assert isinstance(excinfo.value.__cause__, ValueError)

    def test_first_failure_in_selection_order_is_raised(self):
        selection = (FilterName.SIERRA2, FilterName.STUCKI, FilterName.ATKINSON)
        settings = Settings(filters=selection, multiplier=float("nan"))
        for _ in range(5):
            with pytest.raises(RenderError) as excinfo:
                render_all(_make_test_image(), settings, max_workers=3)
            assert excinfo.value.filter_name == "Sierra-2"

    def test_process_pool_matches_threads(self):
        img = _make_test_image()
        settings = Settings(filters=(FilterName.BURKES, FilterName.SIERRA_LITE))
        threaded = render_all(img, settings)
        pooled = render_all(img, settings, max_workers=2, use_processes=True)

        assert [(r.filter_name, r.mode) for r in pooled] == [
            (r.filter_name, r.mode) for r in threaded
        ]
        for a, b in zip(threaded, pooled):
            assert a.image.mode == b.image.mode
            assert a.image.tobytes() == b.image.tobytes()

    def test_process_pool_failure_names_filter(self):
        settings = Settings(filters=(FilterName.BURKES,), multiplier=-1.0)
        with pytest.raises(RenderError, match="Burkes") as excinfo:
            render_all(_make_test_image(), settings, use_processes=True)
        assert isinstance(excinfo.value.__cause__, ValueError)

    def test_empty_image_rejected_before_run(self):
        with pytest.raises(ValueError, match="empty"):
            render_all(Image.new("RGBA", (0, 0)), Settings())

    def test_none_image_rejected(self):
        with pytest.raises(ValueError, match="No source"):
            render_all(None, Settings())
