"""
Processing Settings

Configuration consumed by the render pipeline and the batch orchestrator,
plus YAML persistence of the user's last-used settings.

YAML layout (all keys optional, defaults shown):

    pulses: 720
    gap_deg: 1.0
    image_size: 1735
    colormap: viridis
    jobs: 0
    output_dir: null
    strictness: lenient
    slot_collision: last

Usage:
    settings = load_settings()
    settings.pulses = 360
    save_settings(settings)
"""

import logging
import math
import os
from dataclasses import asdict, dataclass, fields
from enum import Enum
from multiprocessing import cpu_count
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path.home() / ".config" / "radarppi" / "settings.yaml"


class Strictness(Enum):
    """How tolerant ingestion and colormap selection are."""

    LENIENT = "lenient"  # skip short rows, fall back to the default colormap
    STRICT = "strict"  # short rows and unknown colormaps fail the file


class SlotCollision(Enum):
    """Policy when two distinct angles fall into the same grid slot."""

    LAST = "last"  # later angle (ascending order) overwrites
    MEAN = "mean"  # element-wise mean of all colliding pulses


def resolve_worker_count(jobs: int, available: Optional[int] = None) -> int:
    """
    Resolve the worker pool size.

    Args:
        jobs: Requested worker count (0 = auto)
        available: Hardware parallelism (default: multiprocessing.cpu_count())

    Returns:
        jobs if positive, else ceil(0.9 * available), never less than 1
    """
    if jobs > 0:
        return jobs
    if available is None:
        available = cpu_count()
    # Integer ceil of 0.9 * available
    return max(1, -(-available * 9 // 10))


@dataclass
class ProcessingSettings:
    """
    Settings for one batch run.

    Attributes:
        pulses: Angular resolution of the regular grid (slots per revolution)
        gap_deg: Widest angular gap filled by interpolation [deg]
        image_size: Output image width and height [px]
        colormap: Colormap name (viridis, turbo, magma, gray)
        jobs: Worker count (0 = auto)
        output_dir: Output root; None writes next to each input folder
        strictness: Parsing / colormap tolerance
        slot_collision: Grid slot collision policy
    """

    pulses: int = 720
    gap_deg: float = 1.0
    image_size: int = 1735
    colormap: str = "viridis"
    jobs: int = 0
    output_dir: Optional[Path] = None
    strictness: Strictness = Strictness.LENIENT
    slot_collision: SlotCollision = SlotCollision.LAST

    def __post_init__(self):
        if isinstance(self.strictness, str):
            self.strictness = Strictness(self.strictness.lower())
        if isinstance(self.slot_collision, str):
            self.slot_collision = SlotCollision(self.slot_collision.lower())
        if self.output_dir is not None and not isinstance(self.output_dir, Path):
            # Empty string from a form field means "no override"
            self.output_dir = Path(self.output_dir) if str(self.output_dir) else None

    @property
    def gap_rad(self) -> float:
        """Gap threshold in radians."""
        return math.radians(self.gap_deg)

    @property
    def strict(self) -> bool:
        return self.strictness is Strictness.STRICT

    def resolve_jobs(self, available: Optional[int] = None) -> int:
        """Worker count for this run (see resolve_worker_count)."""
        return resolve_worker_count(self.jobs, available)

    def validate(self) -> None:
        """
        Check value ranges.

        Raises:
            ValueError: If any setting is out of range
        """
        if self.pulses < 1:
            raise ValueError(f"pulses must be >= 1, got {self.pulses}")
        if self.image_size < 1:
            raise ValueError(f"image_size must be >= 1, got {self.image_size}")
        if self.jobs < 0:
            raise ValueError(f"jobs must be >= 0, got {self.jobs}")
        if self.gap_deg < 0:
            raise ValueError(f"gap_deg must be >= 0, got {self.gap_deg}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain types for YAML export."""
        data = asdict(self)
        data["output_dir"] = str(self.output_dir) if self.output_dir else None
        data["strictness"] = self.strictness.value
        data["slot_collision"] = self.slot_collision.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProcessingSettings":
        """Build settings from a dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in (data or {}).items() if k in known and v is not None}

        for key in ("pulses", "image_size", "jobs"):
            if key in kwargs:
                kwargs[key] = int(kwargs[key])
        if "gap_deg" in kwargs:
            kwargs["gap_deg"] = float(kwargs["gap_deg"])
        if "colormap" in kwargs:
            kwargs["colormap"] = str(kwargs["colormap"])

        return cls(**kwargs)


def load_settings(filepath: Union[str, Path, None] = None) -> ProcessingSettings:
    """
    Load settings from a YAML file.

    Args:
        filepath: Settings file (default: ~/.config/radarppi/settings.yaml)

    Returns:
        Loaded settings, or defaults if the file does not exist

    Raises:
        yaml.YAMLError: If the file is not valid YAML
    """
    path = Path(filepath) if filepath else DEFAULT_SETTINGS_PATH

    if not path.exists():
        logger.debug("No settings file at %s, using defaults", path)
        return ProcessingSettings()

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Settings file must contain a mapping: {path}")

    return ProcessingSettings.from_dict(data)


def save_settings(settings: ProcessingSettings, filepath: Union[str, Path, None] = None) -> Path:
    """
    Save settings to a YAML file, creating parent directories.

    Returns:
        Path written
    """
    path = Path(filepath) if filepath else DEFAULT_SETTINGS_PATH
    os.makedirs(path.parent, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(settings.to_dict(), f, default_flow_style=False, sort_keys=False)

    logger.debug("Settings saved to %s", path)
    return path
