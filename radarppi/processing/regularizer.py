"""
Polar Regularizer

Resamples irregularly spaced pulses onto a fixed angular grid covering one
full revolution, then closes short angular gaps by linear interpolation.

Grid geometry:
    slot i covers [i·2π/P, (i+1)·2π/P)  for P = pulses
    slot(θ) = floor(θ / 2π · P) mod P

Gap policy:
    A run of empty slots bounded by present slots prev/next spans
    gap_steps = (next - prev) mod P slots, i.e. gap_steps · 2π/P radians.
    If that angle is <= gap_threshold every slot in the run is filled with
        prev · (1 - t) + next · t,   t = k / (run_length + 1)
    otherwise the whole run stays absent (rendered transparent).
    Runs wrap across the 0/2π boundary.

Reference: Skolnik, "Radar Handbook", 3rd Ed., Chapter 7 (PPI display)
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from ..config import SlotCollision
from ..io.record_reader import AngleBinMatrix

logger = logging.getLogger(__name__)


@dataclass
class RegularGrid:
    """
    Fixed-size polar grid.

    Attributes:
        bins: Intensities, shape (pulses, n_bins); absent rows are NaN
        present: Slot holds data (measured or interpolated), shape (pulses,)
    """

    bins: np.ndarray
    present: np.ndarray

    @property
    def pulses(self) -> int:
        return int(self.bins.shape[0])

    @property
    def n_bins(self) -> int:
        return int(self.bins.shape[1])

    @property
    def n_present(self) -> int:
        return int(np.count_nonzero(self.present))

    def slot(self, index: int) -> Optional[np.ndarray]:
        """Bin vector of a slot, or None if the slot is absent."""
        if not self.present[index]:
            return None
        return self.bins[index]


def theta_edges(pulses: int) -> np.ndarray:
    """Slot boundaries in radians, pulses + 1 values from 0 to 2π."""
    return np.arange(pulses + 1, dtype=np.float64) * (2.0 * np.pi / pulses)


def slot_indices(angles: np.ndarray, pulses: int) -> np.ndarray:
    """Map angles [rad] to grid slot indices."""
    slots = np.floor(np.asarray(angles, dtype=np.float64) / (2.0 * np.pi) * pulses)
    return slots.astype(np.int64) % pulses


def assign_slots(
    matrix: AngleBinMatrix, pulses: int, collision: SlotCollision = SlotCollision.LAST
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Drop every pulse into its grid slot.

    Args:
        matrix: Duplicate-free pulses
        pulses: Grid size
        collision: What to do when distinct angles share a slot

    Returns:
        Tuple of (bins array with NaN rows for empty slots, present mask)
    """
    n_bins = matrix.n_bins
    bins = np.full((pulses, n_bins), np.nan, dtype=np.float32)
    present = np.zeros(pulses, dtype=bool)

    if len(matrix) == 0:
        return bins, present

    order = np.argsort(matrix.angles, kind="stable")
    rows = matrix.bins[order]
    slots = slot_indices(matrix.angles[order], pulses)

    if collision is SlotCollision.MEAN:
        sums = np.zeros((pulses, n_bins), dtype=np.float64)
        np.add.at(sums, slots, rows.astype(np.float64))
        counts = np.bincount(slots, minlength=pulses)
        filled = counts > 0
        bins[filled] = (sums[filled] / counts[filled, None]).astype(np.float32)
    else:
        # Last occurrence of each slot in ascending-angle order wins
        reversed_slots = slots[::-1]
        unique_slots, first_in_reversed = np.unique(reversed_slots, return_index=True)
        last_rows = len(slots) - 1 - first_in_reversed
        bins[unique_slots] = rows[last_rows]
        filled = np.zeros(pulses, dtype=bool)
        filled[unique_slots] = True

    n_collisions = len(slots) - int(np.count_nonzero(filled))

    # A slot holding no finite value is absent and can be bridged
    present[filled & np.isfinite(bins).any(axis=1)] = True
    bins[~present] = np.nan

    if n_collisions:
        logger.debug("%d pulses collided with an occupied slot (%s)", n_collisions, collision.value)

    return bins, present


def find_absent_runs(present: np.ndarray) -> List[Tuple[int, int]]:
    """
    Maximal runs of absent slots, wraparound included.

    Args:
        present: Slot occupancy mask

    Returns:
        List of (start slot, run length). Empty if no slot, or every slot,
        is present.
    """
    n = len(present)
    if n == 0 or present.all() or not present.any():
        return []

    # Walk the circle starting just after a present slot so no run is split
    anchor = int(np.argmax(present))
    runs = []
    run_start = None
    run_length = 0

    for k in range(1, n + 1):
        i = (anchor + k) % n
        if not present[i]:
            if run_start is None:
                run_start = i
                run_length = 0
            run_length += 1
        elif run_start is not None:
            runs.append((run_start, run_length))
            run_start = None

    return runs


def fill_gaps(bins: np.ndarray, present: np.ndarray, gap_threshold: float) -> int:
    """
    Interpolate across absent runs no wider than gap_threshold.

    Modifies bins and present in place.

    Args:
        bins: Grid intensities, shape (pulses, n_bins)
        present: Slot occupancy mask
        gap_threshold: Widest bridgeable gap between present slots [rad]

    Returns:
        Number of slots filled
    """
    pulses = len(present)
    step_rad = 2.0 * np.pi / pulses
    n_filled = 0

    for run_start, run_length in find_absent_runs(present):
        prev_slot = (run_start - 1) % pulses
        next_slot = (run_start + run_length) % pulses

        gap_steps = (next_slot - prev_slot) % pulses
        if gap_steps == 0:
            # Single present slot: nothing to interpolate between
            continue

        gap_angle = gap_steps * step_rad
        if gap_angle > gap_threshold:
            continue

        prev_row = bins[prev_slot].copy()
        next_row = bins[next_slot].copy()
        missing = gap_steps - 1

        for k in range(1, missing + 1):
            t = np.float32(k / (missing + 1))
            target = (prev_slot + k) % pulses
            bins[target] = prev_row * (np.float32(1.0) - t) + next_row * t
            present[target] = True
            n_filled += 1

    return n_filled


def regularize(
    matrix: AngleBinMatrix,
    pulses: int,
    gap_threshold: float,
    collision: SlotCollision = SlotCollision.LAST,
) -> RegularGrid:
    """
    Resample pulses onto a regular grid and fill small gaps.

    Args:
        matrix: Duplicate-free pulses from the record reader
        pulses: Number of grid slots per revolution
        gap_threshold: Widest gap filled by interpolation [rad]
        collision: Slot collision policy

    Returns:
        RegularGrid with exactly `pulses` slots

    Raises:
        ValueError: If pulses < 1
    """
    if pulses < 1:
        raise ValueError(f"pulses must be >= 1, got {pulses}")

    bins, present = assign_slots(matrix, pulses, collision)
    n_measured = int(np.count_nonzero(present))
    n_filled = fill_gaps(bins, present, gap_threshold)

    logger.debug(
        "Regularized %d pulses onto %d slots: %d measured, %d interpolated, %d absent",
        len(matrix),
        pulses,
        n_measured,
        n_filled,
        pulses - n_measured - n_filled,
    )

    return RegularGrid(bins=bins, present=present)
