"""
Per-file Render Pipeline

read recording -> regularize -> rasterize -> write PNG

Used by the batch pool workers and the single-shot CLI. Nothing is written
unless every stage before the write succeeded.
"""

import logging
from pathlib import Path
from typing import Union

from .config import ProcessingSettings
from .io.image_writer import resolve_output_path, write_png
from .io.record_reader import read_pulse_file
from .processing.rasterizer import render_ppi
from .processing.regularizer import regularize

logger = logging.getLogger(__name__)


def render_file(
    csv_path: Union[str, Path],
    output: Union[str, Path],
    settings: ProcessingSettings,
) -> Path:
    """
    Render one recording to a PPI PNG.

    Args:
        csv_path: Input recording
        output: Output directory (canonical file name) or explicit .png path
        settings: Processing settings

    Returns:
        Path of the written image

    Raises:
        EmptyInputError, MalformedRowError, UnknownColormapError, IoFailureError
    """
    scan = read_pulse_file(csv_path, strict=settings.strict)

    grid = regularize(scan.matrix, settings.pulses, settings.gap_rad, settings.slot_collision)
    image = render_ppi(
        grid,
        scan.range_setting,
        settings.image_size,
        settings.colormap,
        strict=settings.strict,
    )

    output_path = resolve_output_path(output, scan.label, scan.gain_code, scan.range_setting)
    return write_png(image, output_path)
