"""
PPI Colormaps

Maps normalised intensities [0, 1] to RGB using matplotlib's colormap
registry.

Supported maps:
    viridis, turbo, magma - perceptually ordered continuous maps
    gray                  - linear black (0) to white (1)
                            aliases: grey, grayscale, greyscale
"""

import logging
from enum import Enum
from typing import Union

import matplotlib
import numpy as np

from ..errors import UnknownColormapError

logger = logging.getLogger(__name__)


class ColorMap(Enum):
    """Colormaps available for PPI rendering (value = matplotlib name)."""

    VIRIDIS = "viridis"
    TURBO = "turbo"
    MAGMA = "magma"
    GRAY = "gray"


DEFAULT_COLORMAP = ColorMap.VIRIDIS

_ALIASES = {
    "grey": ColorMap.GRAY,
    "grayscale": ColorMap.GRAY,
    "greyscale": ColorMap.GRAY,
}


def resolve_colormap(name: Union[str, ColorMap], strict: bool = False) -> ColorMap:
    """
    Look up a colormap by name (case-insensitive).

    Args:
        name: Colormap name or ColorMap member
        strict: Raise on unknown names instead of falling back to viridis

    Returns:
        ColorMap member

    Raises:
        UnknownColormapError: Unknown name in strict mode
    """
    if isinstance(name, ColorMap):
        return name

    key = str(name).strip().lower()
    if key in _ALIASES:
        return _ALIASES[key]
    try:
        return ColorMap(key)
    except ValueError:
        if strict:
            raise UnknownColormapError(f"Unknown colormap: {name}") from None

    logger.warning("Unknown colormap %r, using %s", name, DEFAULT_COLORMAP.value)
    return DEFAULT_COLORMAP


def apply_colormap(values: np.ndarray, cmap: ColorMap) -> np.ndarray:
    """
    Evaluate a colormap.

    Args:
        values: Normalised intensities, clipped to [0, 1]
        cmap: Colormap

    Returns:
        uint8 RGB array, shape values.shape + (3,)
    """
    values = np.clip(np.asarray(values, dtype=np.float64), 0.0, 1.0)
    if cmap is ColorMap.GRAY:
        # Exact linear ramp; the 256-entry table truncates some levels
        levels = np.round(values * 255.0).astype(np.uint8)
        return np.repeat(levels[..., None], 3, axis=-1)

    rgba = matplotlib.colormaps[cmap.value](values, bytes=True)
    return rgba[..., :3]
