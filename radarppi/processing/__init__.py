"""
Processing Package

Polar regularization and PPI rasterization.

References:
    - Skolnik, "Radar Handbook", 3rd Ed., Chapter 7
"""

from .colormaps import ColorMap, apply_colormap, resolve_colormap
from .rasterizer import render_ppi
from .regularizer import RegularGrid, regularize, theta_edges

__all__ = [
    "RegularGrid",
    "regularize",
    "theta_edges",
    "render_ppi",
    "ColorMap",
    "resolve_colormap",
    "apply_colormap",
]
