#!/usr/bin/env python3
"""
Headless Single-File CLI

Render one pulse recording to a PPI image without the batch machinery.

Usage:
    python headless.py data/20240101_120000.csv                 # next to the input
    python headless.py data/scan.csv --output images/           # into a folder
    python headless.py data/scan.csv --output scan.png --pulses 360
    python headless.py data/scan.csv --config settings.yaml --strict

Output name (when --output is a folder): {label}_{gain}_{range}.png
"""

import argparse
import logging
import os
import sys
import time
from pathlib import Path

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from radarppi.config import Strictness, load_settings
from radarppi.errors import PPIError
from radarppi.pipeline import render_file


def main():
    parser = argparse.ArgumentParser(description="Render one pulse recording to a PPI image")

    parser.add_argument("csv", type=str, help="Pulse recording (*.csv)")
    parser.add_argument(
        "--output", type=str, default=None, help="Output folder or .png path (default: input folder)"
    )

    # Processing parameters
    parser.add_argument("--pulses", type=int, default=None, help="Angular resolution (default: 720)")
    parser.add_argument(
        "--gap-deg", type=float, default=None, help="Widest gap to interpolate [deg] (default: 1.0)"
    )
    parser.add_argument("--size", type=int, default=None, help="Image size [px] (default: 1735)")
    parser.add_argument("--colormap", type=str, default=None, help="Colormap (default: viridis)")
    parser.add_argument("--strict", action="store_true", help="Strict parsing / colormap lookup")
    parser.add_argument("--config", type=str, default=None, help="Settings YAML file")

    # Options
    parser.add_argument("--quiet", action="store_true", help="Only print the output path")

    args = parser.parse_args()

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    if not os.path.isfile(args.csv):
        print(f"Error: Input file not found: {args.csv}")
        return 1

    settings = load_settings(args.config)
    if args.pulses is not None:
        settings.pulses = args.pulses
    if args.gap_deg is not None:
        settings.gap_deg = args.gap_deg
    if args.size is not None:
        settings.image_size = args.size
    if args.colormap is not None:
        settings.colormap = args.colormap
    if args.strict:
        settings.strictness = Strictness.STRICT

    try:
        settings.validate()
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    output = Path(args.output) if args.output else Path(args.csv).resolve().parent
    # Folder targets are created on demand; explicit .png targets need their parent
    os.makedirs(output.parent if output.suffix.lower() == ".png" else output, exist_ok=True)

    if not args.quiet:
        print("=" * 60)
        print("radarppi Headless Mode")
        print("=" * 60)
        print(f"Input: {args.csv}")
        print(f"Pulses: {settings.pulses}  Gap: {settings.gap_deg:.2f}°")
        print(f"Image: {settings.image_size} px  Colormap: {settings.colormap}")
        print(f"Mode: {settings.strictness.value}")
        print("=" * 60)

    start_time = time.perf_counter()
    try:
        output_path = render_file(args.csv, output, settings)
    except PPIError as e:
        print(f"Error: {e}")
        return 1

    if not args.quiet:
        print(f"✓ Saved: {output_path}")
        print(f"Runtime: {(time.perf_counter() - start_time) * 1000:.1f} ms")
        print("=" * 60)
    else:
        print(output_path)

    return 0


if __name__ == "__main__":
    sys.exit(main())
