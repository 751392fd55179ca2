"""
PPI Image Writer

Output naming and PNG export for rendered PPI images.

Output contract:
    file name      {label}_{gain_code}_{range_setting}.png
    batch layout   <output_root>/<input folder name>/       (output root set)
                   <input folder parent>/<folder>_img_<pulses>/  (default)

Images are written to a temporary sibling and renamed into place, so a
failed write never leaves a partial PNG behind.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

import matplotlib.image
import numpy as np

from ..errors import IoFailureError

logger = logging.getLogger(__name__)

IMAGE_SUFFIX = ".png"
_PARTIAL_SUFFIX = ".part"


def output_filename(label: str, gain_code: int, range_setting: int) -> str:
    """Canonical output file name for one recording."""
    return f"{label}_{gain_code}_{range_setting}{IMAGE_SUFFIX}"


def resolve_output_dir(
    folder: Union[str, Path], pulses: int, output_root: Optional[Union[str, Path]] = None
) -> Path:
    """
    Output directory for one input folder.

    Args:
        folder: Input folder
        pulses: Angular resolution (part of the default directory name)
        output_root: Optional output root; empty string counts as unset

    Returns:
        output_root/<folder name> if output_root is set, otherwise the sibling
        directory <folder>_img_<pulses>
    """
    folder = Path(folder)
    name = folder.name or "output"

    if output_root is not None and str(output_root):
        return Path(output_root) / name

    if folder.parent == folder:
        # Filesystem root has no sibling
        return folder / "ppi_output"
    return folder.parent / f"{name}_img_{pulses}"


def resolve_output_path(
    target: Union[str, Path], label: str, gain_code: int, range_setting: int
) -> Path:
    """
    Output file for a single-shot render.

    A target ending in .png is used verbatim; anything else is a directory
    that receives the canonical file name.
    """
    target = Path(target)
    if target.suffix.lower() == IMAGE_SUFFIX:
        return target
    return target / output_filename(label, gain_code, range_setting)


def write_png(image: np.ndarray, filepath: Union[str, Path]) -> Path:
    """
    Write an RGBA image as PNG.

    Args:
        image: uint8 array, shape (H, W, 4)
        filepath: Destination file

    Returns:
        Path written

    Raises:
        IoFailureError: If the file cannot be written
    """
    path = Path(filepath)
    partial = path.with_name(path.name + _PARTIAL_SUFFIX)

    try:
        matplotlib.image.imsave(partial, image, format="png")
        os.replace(partial, path)
    except (OSError, ValueError) as e:
        if partial.exists():
            partial.unlink()
        raise IoFailureError(f"Cannot write {path}: {e}") from e

    logger.debug("Wrote %s", path)
    return path
