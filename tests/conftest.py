"""Shared fixtures: synthetic pulse recordings on disk."""

import numpy as np
import pytest

HEADER = "time,seq,range,gain,angle,bins"


def make_recording(ticks, bins, range_setting=1500, gain_code=3) -> str:
    """CSV text for one recording, one row per (tick, bin vector)."""
    lines = [HEADER]
    for seq, (tick, row) in enumerate(zip(ticks, bins)):
        values = ",".join(f"{v:g}" for v in row)
        lines.append(f"0,{seq},{range_setting},{gain_code},{tick},{values}")
    return "\n".join(lines) + "\n"


@pytest.fixture
def recording_folder(tmp_path):
    """
    Factory: recording_folder(name, n_files) creates a folder of small
    full-circle recordings and returns its path.
    """

    def _make(name: str, n_files: int = 3, n_bins: int = 8):
        folder = tmp_path / name
        folder.mkdir()
        rng = np.random.default_rng(n_files)
        ticks = np.arange(0, 8192, 64)
        for i in range(n_files):
            bins = rng.uniform(1, 100, size=(len(ticks), n_bins))
            (folder / f"scan_{i:03d}.csv").write_text(make_recording(ticks, bins))
        return folder

    return _make
