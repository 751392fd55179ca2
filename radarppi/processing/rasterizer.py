"""
PPI Rasterizer

Renders a regular polar grid into a square RGBA image.

Geometry (image y axis points down):
    center        cx = cy = size / 2
    radius        min(cx, cy)
    r_norm        |pixel - center| / radius, pixels with r_norm > 1 are outside
    bearing       atan2(dx, dy), 0 = up, increasing clockwise, in [0, 2π)
    slot          floor(bearing / 2π · pulses) mod pulses
    bin           floor(r_norm · range_max / range_max · n_bins)

Transparency (alpha = 0):
    - outside the sweep circle
    - bin index beyond the last range bin
    - absent slot
    - non-finite or exactly zero intensity
Every other pixel is opaque (alpha = 255), colored by value / global max.

Reference: Skolnik, "Radar Handbook", 3rd Ed., Chapter 7
"""

import math
from typing import Union

import numba
import numpy as np

from .colormaps import ColorMap, apply_colormap, resolve_colormap
from .regularizer import RegularGrid


@numba.jit(nopython=True, cache=True)
def _ppi_lookup_jit(
    bins: np.ndarray, present: np.ndarray, size: int, range_max: float, max_val: float
) -> np.ndarray:
    """
    JIT-compiled polar-to-Cartesian lookup.

    Args:
        bins: Grid intensities, shape (pulses, n_bins)
        present: Slot occupancy mask
        size: Image width and height [px]
        range_max: Range scale (range setting or n_bins)
        max_val: Global maximum intensity (> 0)

    Returns:
        (size, size) plane of normalised values, NaN where transparent
    """
    pulses = bins.shape[0]
    n_bins = bins.shape[1]
    plane = np.full((size, size), np.nan)

    cx = size / 2.0
    cy = size / 2.0
    radius = min(cx, cy)
    two_pi = 2.0 * math.pi

    for y in range(size):
        for x in range(size):
            dx = x + 0.5 - cx
            dy = cy - (y + 0.5)
            r_norm = math.sqrt(dx * dx + dy * dy) / radius
            if r_norm > 1.0:
                continue

            theta = math.atan2(dx, dy)
            if theta < 0.0:
                theta += two_pi

            pulse_idx = int(math.floor(theta / two_pi * pulses)) % pulses

            r_val = r_norm * range_max
            bin_idx = int(math.floor(r_val / range_max * n_bins))
            if bin_idx >= n_bins:
                continue

            if not present[pulse_idx]:
                continue

            v = bins[pulse_idx, bin_idx]
            if not math.isfinite(v) or v == 0.0:
                continue

            plane[y, x] = min(max(v / max_val, 0.0), 1.0)

    return plane


def global_max_intensity(grid: RegularGrid) -> float:
    """
    Largest finite, positive intensity over present slots.

    Returns:
        Maximum, or 0.0 if there is none
    """
    values = grid.bins[grid.present]
    values = values[np.isfinite(values) & (values > 0)]
    if values.size == 0:
        return 0.0
    return float(values.max())


def transparent_image(size: int) -> np.ndarray:
    """Fully transparent RGBA image."""
    return np.zeros((size, size, 4), dtype=np.uint8)


def render_ppi(
    grid: RegularGrid,
    range_setting: int,
    image_size: int,
    colormap: Union[str, ColorMap] = ColorMap.VIRIDIS,
    strict: bool = False,
) -> np.ndarray:
    """
    Render a PPI image.

    Args:
        grid: Regularized polar grid
        range_setting: Recorder range setting (<= 0 means unknown)
        image_size: Output width and height [px]
        colormap: Colormap name or member
        strict: Unknown colormap raises instead of falling back

    Returns:
        uint8 RGBA array, shape (image_size, image_size, 4), alpha 0 or 255

    Raises:
        UnknownColormapError: Unknown colormap in strict mode
        ValueError: If image_size < 1
    """
    if image_size < 1:
        raise ValueError(f"image_size must be >= 1, got {image_size}")

    cmap = resolve_colormap(colormap, strict)

    max_val = global_max_intensity(grid)
    if max_val <= 0.0 or grid.n_bins == 0:
        return transparent_image(image_size)

    range_max = float(range_setting) if range_setting > 0 else float(grid.n_bins)

    plane = _ppi_lookup_jit(
        np.ascontiguousarray(grid.bins, dtype=np.float32),
        np.ascontiguousarray(grid.present, dtype=np.bool_),
        int(image_size),
        range_max,
        max_val,
    )

    image = transparent_image(image_size)
    opaque = np.isfinite(plane)
    image[opaque, :3] = apply_colormap(plane[opaque], cmap)
    image[opaque, 3] = 255

    return image
