#!/usr/bin/env python3
"""
Batch Run Script - Folder-to-PPI Converter

Renders every pulse recording (*.csv) in one or more folders to PPI images,
using a pool of worker processes. Folders are processed in the order given.

Usage:
    python batch_run.py data/run1 data/run2
    python batch_run.py data/run1 --pulses 360 --colormap turbo
    python batch_run.py data/run1 --output-dir images --jobs 4
    python batch_run.py data/run1 --config my_settings.yaml --save-config

Press Ctrl-C once to stop after the current folder.
"""

import argparse
import logging
import os
import sys
import time
from pathlib import Path
from typing import List

from tqdm import tqdm

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from radarppi.batch import (
    AllComplete,
    BatchRunner,
    Cancelled,
    FileProgress,
    FolderCompleted,
    FolderError,
    FolderStarted,
    FolderStatus,
    FolderTask,
    apply_event,
    scan_folder,
)
from radarppi.config import ProcessingSettings, Strictness, load_settings, save_settings


def run_batch(folders: List[FolderTask], settings: ProcessingSettings) -> List[FolderTask]:
    """
    Run a batch and display progress.

    Args:
        folders: Folder snapshots
        settings: Processing settings

    Returns:
        Final folder snapshots
    """
    print("=" * 60)
    print("radarppi Batch Processor")
    print("=" * 60)
    print(f"Folders: {len(folders)}")
    print(f"Files: {sum(f.file_count for f in folders)}")
    print(f"Workers: {settings.resolve_jobs()}")
    print(f"Pulses: {settings.pulses}  Gap: {settings.gap_deg:.2f}°")
    print(f"Image: {settings.image_size} px  Colormap: {settings.colormap}")
    print(f"Output: {settings.output_dir or '<folder>_img_' + str(settings.pulses)}")
    print("=" * 60)

    start_time = time.perf_counter()
    runner = BatchRunner(folders, settings)
    runner.start()

    bar = None
    snapshot = tuple(folders)
    terminal = None

    try:
        for event in runner.iter_events():
            snapshot = apply_event(snapshot, event)

            if isinstance(event, FolderStarted):
                if bar is not None:
                    bar.close()
                total = snapshot[event.folder_index].file_count
                bar = tqdm(total=total, desc=event.folder_name, unit="file")
            elif isinstance(event, FileProgress) and bar is not None:
                bar.total = event.files_total
                bar.update(event.files_done - bar.n)
                bar.set_postfix(file=event.current_file, rate=f"{event.files_per_second:.1f}/s")
            elif isinstance(event, FolderCompleted):
                if bar is not None:
                    bar.close()
                    bar = None
            elif isinstance(event, FolderError):
                if bar is not None:
                    bar.close()
                    bar = None
                where = "Batch" if event.is_batch_fatal else snapshot[event.folder_index].name
                print(f"  ✗ {where}: {event.error}")
            elif isinstance(event, (AllComplete, Cancelled)):
                terminal = event
    except KeyboardInterrupt:
        print("\nStopping after the current folder...")
        runner.stop()
        for event in runner.iter_events():
            snapshot = apply_event(snapshot, event)
            if event.is_terminal:
                terminal = event
    finally:
        if bar is not None:
            bar.close()
        runner.join()

    _print_summary(snapshot, terminal, time.perf_counter() - start_time)
    return list(snapshot)


def _print_summary(folders, terminal, total_time: float) -> None:
    """Print batch run summary."""
    completed = [f for f in folders if f.status is FolderStatus.COMPLETE]
    failed = [f for f in folders if f.status is FolderStatus.ERROR]

    print("\n" + "=" * 60)
    print("BATCH CANCELLED" if isinstance(terminal, Cancelled) else "BATCH COMPLETE")
    print("=" * 60)
    print(f"Completed folders: {len(completed)}/{len(folders)}")
    for folder in failed:
        print(f"  ✗ {folder.name}: {folder.error_message}")
    print(f"Total time: {total_time:.2f}s")
    print("=" * 60)


def build_settings(args) -> ProcessingSettings:
    """Merge saved settings with command-line overrides."""
    settings = load_settings(args.config)

    if args.pulses is not None:
        settings.pulses = args.pulses
    if args.gap_deg is not None:
        settings.gap_deg = args.gap_deg
    if args.size is not None:
        settings.image_size = args.size
    if args.colormap is not None:
        settings.colormap = args.colormap
    if args.jobs is not None:
        settings.jobs = args.jobs
    if args.output_dir is not None:
        settings.output_dir = Path(args.output_dir) if args.output_dir else None
    if args.strict:
        settings.strictness = Strictness.STRICT

    settings.validate()
    return settings


def main():
    parser = argparse.ArgumentParser(description="Convert pulse recording folders to PPI images")
    parser.add_argument("folders", nargs="+", help="Folders containing *.csv recordings")
    parser.add_argument("--pulses", type=int, default=None, help="Angular resolution (default: 720)")
    parser.add_argument(
        "--gap-deg", type=float, default=None, help="Widest gap to interpolate [deg] (default: 1.0)"
    )
    parser.add_argument("--size", type=int, default=None, help="Image size [px] (default: 1735)")
    parser.add_argument(
        "--colormap", type=str, default=None, help="viridis, turbo, magma or gray (default: viridis)"
    )
    parser.add_argument(
        "--jobs", type=int, default=None, help="Parallel workers (default: 0 = 90%% of CPUs)"
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Output root (default: sibling <folder>_img_<pulses>)",
    )
    parser.add_argument(
        "--strict", action="store_true", help="Fail files on malformed rows / unknown colormap"
    )
    parser.add_argument("--config", type=str, default=None, help="Settings YAML file")
    parser.add_argument(
        "--save-config", action="store_true", help="Save the effective settings to --config"
    )
    parser.add_argument("--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = build_settings(args)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    if args.save_config:
        path = save_settings(settings, args.config)
        print(f"✓ Settings saved to: {path}")

    folders = []
    for path in args.folders:
        if not os.path.isdir(path):
            print(f"Error: Not a folder: {path}")
            return 1
        folders.append(scan_folder(path))

    result = run_batch(folders, settings)

    return 0 if all(f.status is FolderStatus.COMPLETE for f in result) else 1


if __name__ == "__main__":
    sys.exit(main())
