"""
Pulse Record Reader

Parses raw pulse recordings (CSV text, one antenna sample per row) into an
angle-sorted, duplicate-free angle/intensity matrix.

Row layout (after one header line):
    field[0..1]  - ignored (recorder bookkeeping)
    field[2]     - range setting (int)
    field[3]     - gain code (int)
    field[4]     - angle tick, 0..8191 = 1/8192 of a revolution
    field[5..]   - range-bin intensities

Parsing policy:
    - Unparsable numbers become 0 in every mode
    - Rows with fewer than 6 fields: MalformedRowError (strict) or dropped (lenient)
    - Range setting and gain code: first nonzero value in the file wins
    - Fractional ticks round half up; ticks fold modulo 8192, so 8192 is
      tick 0 and is averaged with any tick-0 rows
    - Rows sharing an angle tick are averaged element-wise

Usage:
    scan = read_pulse_file('data/20240101_120000.csv')
    scan.matrix.angles, scan.matrix.bins
"""

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np

from ..errors import EmptyInputError, IoFailureError, MalformedRowError

logger = logging.getLogger(__name__)

TICKS_PER_REVOLUTION = 8192
MIN_FIELDS = 6
FIELD_DELIMITER = ","

# Column indices
COL_RANGE = 2
COL_GAIN = 3
COL_ANGLE = 4
COL_BINS = 5


@dataclass
class PulseRecord:
    """
    One parsed input row.

    Attributes:
        angle_tick: Antenna angle in ticks [0, 8192)
        range_setting: Range setting reported by the recorder (0 = unknown)
        gain_code: Receiver gain code (0 = unknown)
        bins: Range-bin intensities
    """

    angle_tick: int
    range_setting: int
    gain_code: int
    bins: np.ndarray


@dataclass
class AngleBinMatrix:
    """
    De-duplicated pulses sorted by ascending angle.

    Attributes:
        ticks: Angle ticks, strictly increasing, shape (N,)
        bins: Intensities, shape (N, n_bins)
    """

    ticks: np.ndarray
    bins: np.ndarray

    @property
    def angles(self) -> np.ndarray:
        """Pulse angles in radians, in [0, 2π)."""
        return self.ticks.astype(np.float64) * (2.0 * np.pi / TICKS_PER_REVOLUTION)

    @property
    def n_bins(self) -> int:
        return int(self.bins.shape[1]) if self.bins.ndim == 2 else 0

    def __len__(self) -> int:
        return int(self.ticks.shape[0])


@dataclass
class PulseScan:
    """
    Everything read from one recording.

    Attributes:
        matrix: Angle/intensity matrix
        range_setting: First nonzero range setting (0 if none)
        gain_code: First nonzero gain code (0 if none)
        label: Source label (file stem), used verbatim in output names
        skipped_rows: Rows dropped by lenient parsing
    """

    matrix: AngleBinMatrix
    range_setting: int
    gain_code: int
    label: str
    skipped_rows: int = 0


def _to_float(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        return 0.0


def _to_int(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


def tick_to_radians(tick: Union[int, np.ndarray]) -> Union[float, np.ndarray]:
    """Convert angle ticks to radians."""
    return tick * (2.0 * np.pi / TICKS_PER_REVOLUTION)


def parse_line(line: str, line_number: int = 0, strict: bool = False) -> Optional[PulseRecord]:
    """
    Parse one data row.

    Args:
        line: Raw row text
        line_number: 1-based line number, for error messages
        strict: Raise on short rows instead of returning None

    Returns:
        PulseRecord, or None if the row was dropped

    Raises:
        MalformedRowError: Short row in strict mode
    """
    parts = line.split(FIELD_DELIMITER)
    if len(parts) < MIN_FIELDS:
        if strict:
            raise MalformedRowError(
                f"expected at least {MIN_FIELDS} fields, got {len(parts)}", line_number
            )
        return None

    angle = _to_float(parts[COL_ANGLE])
    tick = math.floor(angle + 0.5) % TICKS_PER_REVOLUTION if math.isfinite(angle) else 0
    bins = np.array([_to_float(v) for v in parts[COL_BINS:]], dtype=np.float32)

    return PulseRecord(
        angle_tick=tick,
        range_setting=_to_int(parts[COL_RANGE]),
        gain_code=_to_int(parts[COL_GAIN]),
        bins=bins,
    )


def parse_records(text: str, strict: bool = False) -> Tuple[List[PulseRecord], int]:
    """
    Parse every data row of a recording.

    The first line is a header and is always discarded. Blank lines are
    ignored in both modes.

    Returns:
        Tuple of (records, number of dropped rows)

    Raises:
        EmptyInputError: Text has no header line
        MalformedRowError: Short row in strict mode
    """
    lines = text.splitlines()
    if not lines:
        raise EmptyInputError("empty file (no header line)")

    records = []
    skipped = 0

    for line_number, line in enumerate(lines[1:], start=2):
        if not line.strip():
            continue
        record = parse_line(line, line_number, strict)
        if record is None:
            skipped += 1
            continue
        records.append(record)

    return records, skipped


def _conform_bins(records: List[PulseRecord], strict: bool) -> np.ndarray:
    """Stack bin vectors into a (N, n_bins) array; n_bins comes from the first row."""
    n_bins = len(records[0].bins)
    stacked = np.full((len(records), n_bins), np.nan, dtype=np.float32)

    for i, record in enumerate(records):
        row = record.bins
        if len(row) != n_bins:
            if strict:
                raise MalformedRowError(
                    f"row {i + 1} has {len(row)} bins, expected {n_bins}"
                )
            # Short rows are NaN-padded (rendered transparent), long rows truncated
            row = row[:n_bins]
        stacked[i, : len(row)] = row

    return stacked


def merge_duplicate_angles(ticks: np.ndarray, bins: np.ndarray) -> AngleBinMatrix:
    """
    Average rows that share an angle tick.

    Args:
        ticks: Angle ticks, shape (N,)
        bins: Intensities, shape (N, n_bins)

    Returns:
        AngleBinMatrix with unique ticks in ascending order
    """
    unique_ticks, inverse = np.unique(ticks, return_inverse=True)
    inverse = inverse.reshape(-1)

    if len(unique_ticks) == len(ticks):
        order = np.argsort(ticks, kind="stable")
        return AngleBinMatrix(ticks=ticks[order].astype(np.int64), bins=bins[order])

    sums = np.zeros((len(unique_ticks), bins.shape[1]), dtype=np.float64)
    np.add.at(sums, inverse, bins.astype(np.float64))
    counts = np.bincount(inverse, minlength=len(unique_ticks)).astype(np.float64)

    merged = (sums / counts[:, None]).astype(np.float32)
    return AngleBinMatrix(ticks=unique_ticks.astype(np.int64), bins=merged)


def read_pulse_text(text: str, label: str = "unknown", strict: bool = False) -> PulseScan:
    """
    Parse the full text of one recording.

    Args:
        text: File contents
        label: Source label for output naming
        strict: Strict parsing mode

    Returns:
        PulseScan

    Raises:
        EmptyInputError: No data rows survived parsing
        MalformedRowError: Rejected row in strict mode
    """
    records, skipped = parse_records(text, strict)

    if not records:
        raise EmptyInputError(f"no data rows in {label}")

    if skipped:
        logger.debug("%s: skipped %d malformed rows", label, skipped)

    range_setting = next((r.range_setting for r in records if r.range_setting != 0), 0)
    gain_code = next((r.gain_code for r in records if r.gain_code != 0), 0)

    ticks = np.array([r.angle_tick for r in records], dtype=np.int64)
    bins = _conform_bins(records, strict)

    return PulseScan(
        matrix=merge_duplicate_angles(ticks, bins),
        range_setting=range_setting,
        gain_code=gain_code,
        label=label,
        skipped_rows=skipped,
    )


def read_pulse_file(filepath: Union[str, Path], strict: bool = False) -> PulseScan:
    """
    Read and parse one recording from disk.

    The label is the file name without extension.

    Raises:
        IoFailureError: File cannot be read or decoded
        EmptyInputError: No data rows
        MalformedRowError: Rejected row in strict mode
    """
    path = Path(filepath)
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise IoFailureError(f"Cannot read {path}: {e}") from e

    return read_pulse_text(text, label=path.stem or "unknown", strict=strict)
