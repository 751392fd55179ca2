"""
radarppi API Examples

Usage examples for the recording -> PPI image API. Each example builds a
small synthetic recording in a temporary folder, so no radar data is needed.
"""

import os
import sys
import tempfile
from pathlib import Path

import numpy as np

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def _synthetic_recording(path: Path, n_pulses: int = 2048, n_bins: int = 256) -> Path:
    """Write a recording with two point echoes and a ring of clutter."""
    rng = np.random.default_rng(0)
    ticks = np.linspace(0, 8192, n_pulses, endpoint=False).astype(int)
    bins = rng.uniform(0, 5, size=(n_pulses, n_bins))
    bins[:, 40:44] += 30.0  # clutter ring
    bins[200:230, 120:126] += 120.0  # echo near 35°
    bins[1300:1340, 180:190] += 200.0  # echo near 230°

    lines = ["time,seq,range,gain,angle,bins"]
    for seq, (tick, row) in enumerate(zip(ticks, bins)):
        lines.append(f"0,{seq},1500,3,{tick}," + ",".join(f"{v:.1f}" for v in row))
    path.write_text("\n".join(lines) + "\n")
    return path


def example_single_file():
    """
    Example 1: Single File

    Render one recording with the defaults and a custom colormap.
    """
    from radarppi import ProcessingSettings, render_file

    with tempfile.TemporaryDirectory() as tmp:
        csv_path = _synthetic_recording(Path(tmp) / "20240101_120000.csv")

        settings = ProcessingSettings(image_size=512, colormap="turbo")
        output = render_file(csv_path, tmp, settings)

        print("=== Single File Example ===")
        print(f"Input:  {csv_path.name}")
        print(f"Output: {output.name}")


def example_step_by_step():
    """
    Example 2: Pipeline Stages

    Read, regularize and rasterize by hand to inspect the grid.
    """
    from radarppi.io import read_pulse_file, write_png
    from radarppi.processing import regularize, render_ppi

    with tempfile.TemporaryDirectory() as tmp:
        csv_path = _synthetic_recording(Path(tmp) / "scan.csv", n_pulses=500)

        scan = read_pulse_file(csv_path)
        grid = regularize(scan.matrix, pulses=720, gap_threshold=np.radians(2.0))
        image = render_ppi(grid, scan.range_setting, 256, "magma")
        write_png(image, Path(tmp) / "scan.png")

        print("\n=== Pipeline Stages Example ===")
        print(f"Distinct angles: {len(scan.matrix)}")
        print(f"Range bins:      {scan.matrix.n_bins}")
        print(f"Grid slots:      {grid.n_present}/{grid.pulses} present")
        print(f"Opaque pixels:   {int((image[..., 3] == 255).sum())}")


def example_batch():
    """
    Example 3: Batch Processing

    Process two folders on the worker pool and print the event stream.
    """
    from radarppi import ProcessingSettings
    from radarppi.batch import BatchRunner, FileProgress, scan_folder

    with tempfile.TemporaryDirectory() as tmp:
        folders = []
        for name in ("run1", "run2"):
            folder = Path(tmp) / name
            folder.mkdir()
            for i in range(3):
                _synthetic_recording(folder / f"scan_{i:03d}.csv", n_pulses=720, n_bins=64)
            folders.append(scan_folder(folder))

        settings = ProcessingSettings(pulses=360, image_size=256, jobs=2)
        runner = BatchRunner(folders, settings)
        runner.start()

        print("\n=== Batch Example ===")
        for event in runner.iter_events():
            if isinstance(event, FileProgress):
                print(f"  folder {event.folder_index}: {event.files_done}/{event.files_total}")
            else:
                print(f"  {event}")
        runner.join()

        for folder in folders:
            out = folder.path.parent / f"{folder.name}_img_{settings.pulses}"
            print(f"  {out.name}: {len(list(out.glob('*.png')))} images")


def example_settings():
    """
    Example 4: Persisted Settings

    Save settings to YAML and load them back.
    """
    from radarppi.config import ProcessingSettings, load_settings, save_settings

    with tempfile.TemporaryDirectory() as tmp:
        path = save_settings(
            ProcessingSettings(pulses=1440, gap_deg=0.5, strictness="strict"),
            Path(tmp) / "settings.yaml",
        )
        loaded = load_settings(path)

        print("\n=== Settings Example ===")
        print(path.read_text())
        print(f"Workers on this machine: {loaded.resolve_jobs()}")


if __name__ == "__main__":
    print("=" * 60)
    print("radarppi API Examples")
    print("=" * 60)

    example_single_file()
    example_step_by_step()
    example_batch()
    example_settings()

    print("\n" + "=" * 60)
    print("All examples completed successfully!")
    print("=" * 60)
