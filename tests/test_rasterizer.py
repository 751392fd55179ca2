"""
radarppi PPI Rasterizer Test Suite

Test ID | Description                     | Expected
--------|---------------------------------|-------------------------------
1       | Transparent cases               | all-zero / no data -> alpha 0
2       | Geometry                        | up = 0°, clockwise, r -> bin
3       | Colormaps                       | gray linear, aliases, fallback
4       | Output format                   | (N, N, 4) uint8, binary alpha

Geometry for size = 16: center (8, 8), radius 8. Pixel (x, y) center is
(x + 0.5, y + 0.5); y grows downward.
"""

import os
import sys

import numpy as np
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from radarppi.errors import UnknownColormapError
from radarppi.processing.colormaps import ColorMap, apply_colormap, resolve_colormap
from radarppi.processing.rasterizer import global_max_intensity, render_ppi
from radarppi.processing.regularizer import RegularGrid


def _grid(rows, present=None) -> RegularGrid:
    bins = np.asarray(rows, dtype=np.float32)
    if present is None:
        present = np.ones(bins.shape[0], dtype=bool)
    present = np.asarray(present, dtype=bool)
    bins = bins.copy()
    bins[~present] = np.nan
    return RegularGrid(bins=bins, present=present)


# =============================================================================
# TEST 1: Transparent Cases
# =============================================================================


class TestTransparent:
    def test_all_zero_is_transparent(self):
        """Full grid of zeros renders nothing"""
        image = render_ppi(_grid(np.zeros((8, 4))), 0, 16)

        assert image.shape == (16, 16, 4)
        assert np.all(image[..., 3] == 0)

    def test_no_present_slots(self):
        image = render_ppi(_grid(np.ones((4, 2)), present=[False] * 4), 0, 16)

        assert np.all(image == 0)

    def test_corners_outside_circle(self):
        image = render_ppi(_grid(np.ones((4, 2))), 0, 16)

        for x, y in [(0, 0), (15, 0), (0, 15), (15, 15)]:
            assert image[y, x, 3] == 0

    def test_absent_sector_transparent(self):
        """Only slot 0 (0°-90°, upper right) has data"""
        image = render_ppi(_grid(np.ones((4, 2)), present=[True, False, False, False]), 0, 16)

        assert image[5, 10, 3] == 255  # upper right, bearing 45°
        assert image[10, 5, 3] == 0  # lower left, bearing 225°
        assert image[5, 5, 3] == 0  # upper left, bearing 315°
        assert image[10, 10, 3] == 0  # lower right, bearing 135°

    def test_zero_bin_transparent(self):
        """Zero intensity is transparent, nonzero neighbours are not"""
        image = render_ppi(_grid(np.tile([0.0, 5.0], (4, 1))), 0, 16)

        assert image[7, 8, 3] == 0  # near center -> bin 0
        assert image[7, 14, 3] == 255  # r_norm ≈ 0.8 -> bin 1

    def test_nan_bin_transparent(self):
        image = render_ppi(_grid(np.tile([np.nan, 5.0], (4, 1))), 0, 16)

        assert image[7, 8, 3] == 0


# =============================================================================
# TEST 2: Geometry
# =============================================================================


class TestGeometry:
    def test_bearing_clockwise_from_up(self):
        """Slot order follows bearing: up-right, down-right, down-left, up-left"""
        rows = np.array([[1.0], [2.0], [3.0], [4.0]])
        image = render_ppi(_grid(rows), 0, 16, ColorMap.GRAY)

        up_right = image[5, 10, 0]
        down_right = image[10, 10, 0]
        down_left = image[10, 5, 0]
        up_left = image[5, 5, 0]

        assert up_right < down_right < down_left < up_left
        assert up_left == 255

    def test_radius_to_bin(self):
        """Inner pixels read bin 0, outer pixels bin 1"""
        image = render_ppi(_grid(np.tile([1.0, 2.0], (4, 1))), 0, 16, ColorMap.GRAY)

        inner = image[7, 8, 0]
        outer = image[7, 14, 0]

        assert inner < outer
        assert outer == 255

    def test_range_setting_does_not_shift_bins(self):
        """Range scale cancels out of the pixel -> bin mapping"""
        grid = _grid(np.random.default_rng(1).uniform(1, 10, size=(36, 50)))

        np.testing.assert_array_equal(render_ppi(grid, 0, 64), render_ppi(grid, 1500, 64))

    def test_global_max(self):
        grid = _grid([[1.0, np.inf], [7.0, -3.0], [100.0, 100.0]], present=[True, True, False])

        assert global_max_intensity(grid) == 7.0


# =============================================================================
# TEST 3: Colormaps
# =============================================================================


class TestColormaps:
    def test_gray_endpoints(self):
        rgb = apply_colormap(np.array([0.0, 1.0]), ColorMap.GRAY)

        np.testing.assert_array_equal(rgb[0], [0, 0, 0])
        np.testing.assert_array_equal(rgb[1], [255, 255, 255])

    def test_gray_is_neutral(self):
        rgb = apply_colormap(np.linspace(0, 1, 11), ColorMap.GRAY)

        assert np.all(rgb[:, 0] == rgb[:, 1])
        assert np.all(rgb[:, 1] == rgb[:, 2])
        assert np.all(np.diff(rgb[:, 0].astype(int)) >= 0)

    def test_gray_exact_levels(self):
        """Every 8-bit level maps to round(v * 255) on all channels"""
        values = np.arange(256) / 255.0

        rgb = apply_colormap(values, ColorMap.GRAY)

        assert rgb.dtype == np.uint8
        for channel in range(3):
            np.testing.assert_array_equal(rgb[:, channel], np.arange(256))

    def test_gray_rounds_to_nearest(self):
        rgb = apply_colormap(np.array([0.5, 0.1294]), ColorMap.GRAY)

        np.testing.assert_array_equal(rgb[:, 0], [128, 33])

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("viridis", ColorMap.VIRIDIS),
            ("TURBO", ColorMap.TURBO),
            ("Magma", ColorMap.MAGMA),
            ("grey", ColorMap.GRAY),
            ("grayscale", ColorMap.GRAY),
        ],
    )
    def test_names(self, name, expected):
        assert resolve_colormap(name, strict=True) is expected

    def test_unknown_lenient_falls_back(self):
        assert resolve_colormap("rainbow") is ColorMap.VIRIDIS

    def test_unknown_strict_raises(self):
        with pytest.raises(UnknownColormapError):
            resolve_colormap("rainbow", strict=True)

    def test_render_unknown_lenient_matches_viridis(self):
        grid = _grid(np.tile([1.0, 2.0, 3.0], (8, 1)))

        np.testing.assert_array_equal(
            render_ppi(grid, 0, 32, "rainbow"), render_ppi(grid, 0, 32, "viridis")
        )

    def test_render_unknown_strict_raises(self):
        with pytest.raises(UnknownColormapError):
            render_ppi(_grid(np.ones((4, 2))), 0, 16, "rainbow", strict=True)


# =============================================================================
# TEST 4: Output Format
# =============================================================================


class TestOutputFormat:
    @pytest.mark.parametrize("size", [1, 4, 17, 100])
    def test_shape_and_alpha(self, size):
        grid = _grid(np.random.default_rng(size).uniform(0, 5, size=(90, 20)))

        image = render_ppi(grid, 0, size, ColorMap.MAGMA)

        assert image.shape == (size, size, 4)
        assert image.dtype == np.uint8
        assert set(np.unique(image[..., 3])).issubset({0, 255})

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            render_ppi(_grid(np.ones((4, 2))), 0, 0)


# =============================================================================
# MAIN EXECUTION
# =============================================================================

if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
