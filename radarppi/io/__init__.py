"""
I/O Package

Pulse recording reader, folder scanning and PPI image export.
"""

from .folder_scan import count_record_files, list_record_files
from .image_writer import output_filename, resolve_output_dir, resolve_output_path, write_png
from .record_reader import AngleBinMatrix, PulseRecord, PulseScan, read_pulse_file, read_pulse_text

__all__ = [
    "PulseRecord",
    "AngleBinMatrix",
    "PulseScan",
    "read_pulse_file",
    "read_pulse_text",
    "list_record_files",
    "count_record_files",
    "output_filename",
    "resolve_output_dir",
    "resolve_output_path",
    "write_png",
]
