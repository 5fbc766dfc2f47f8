"""Tests for grayscale conversion and plain thresholding."""

import numpy as np
from PIL import Image

from dither_maker.core.tone import THRESHOLD_CUTOFF, grayscale, threshold


class TestGrayscale:
    def test_rgb_to_l(self):
        out = grayscale(Image.new("RGB", (4, 3), (255, 0, 0)))
        assert out.mode == "L"
        assert out.size == (4, 3)

    def test_equal_channels_keep_value(self):
        img = Image.new("RGBA", (2, 2), (77, 77, 77, 10))
        assert np.all(np.asarray(grayscale(img)) == 77)

    def test_l_input_is_copied(self):
        img = Image.new("L", (2, 2), 40)
        out = grayscale(img)
        assert out is not img
        assert out.tobytes() == img.tobytes()

    def test_palette_input(self):
        img = Image.new("RGB", (2, 2), (10, 200, 30)).convert("P")
        assert grayscale(img).mode == "L"


class TestThreshold:
    def test_cutoff(self):
        assert THRESHOLD_CUTOFF == 123
        arr = np.array([[0, 123, 124, 255]], dtype=np.uint8)
        out = np.asarray(threshold(Image.fromarray(arr)))
        assert out.tolist() == [[0, 0, 255, 255]]

    def test_custom_cutoff(self):
        arr = np.array([[10, 60]], dtype=np.uint8)
        out = np.asarray(threshold(Image.fromarray(arr), cutoff=50))
        assert out.tolist() == [[0, 255]]

    def test_color_input(self):
        out = threshold(Image.new("RGB", (3, 3), (200, 200, 200)))
        assert out.mode == "L"
        assert np.all(np.asarray(out) == 255)
