"""
radarppi

Converts rotating-radar pulse recordings into PPI (plan position indicator)
images:
- CSV pulse ingestion with duplicate-angle merging
- Regular angular grid resampling with small-gap interpolation
- Colormapped RGBA rasterization
- Parallel multi-folder batch processing with progress events
"""

from radarppi.batch import BatchRunner, FolderTask, process_folders, scan_folder
from radarppi.config import (
    ProcessingSettings,
    SlotCollision,
    Strictness,
    load_settings,
    save_settings,
)
from radarppi.errors import (
    EmptyInputError,
    IoFailureError,
    MalformedRowError,
    PoolCreationError,
    PPIError,
    UnknownColormapError,
)
from radarppi.io import read_pulse_file
from radarppi.pipeline import render_file
from radarppi.processing import ColorMap, regularize, render_ppi

__version__ = "1.0.0"
__author__ = "radarppi Contributors"

__all__ = [
    # Config
    "ProcessingSettings",
    "Strictness",
    "SlotCollision",
    "load_settings",
    "save_settings",
    # Pipeline
    "read_pulse_file",
    "regularize",
    "render_ppi",
    "render_file",
    "ColorMap",
    # Batch
    "FolderTask",
    "scan_folder",
    "process_folders",
    "BatchRunner",
    # Errors
    "PPIError",
    "EmptyInputError",
    "MalformedRowError",
    "UnknownColormapError",
    "IoFailureError",
    "PoolCreationError",
]
