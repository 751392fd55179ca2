"""
Batch Package

Folder queue snapshots, progress events, the batch orchestrator and the
background runner.
"""

from .events import (
    AllComplete,
    Cancelled,
    FileProgress,
    FolderCompleted,
    FolderError,
    FolderStarted,
    ProgressEvent,
)
from .folder_queue import FolderStatus, FolderTask, apply_event, reset_folders, scan_folder
from .orchestrator import FileOutcome, FileTask, process_file, process_folders
from .runner import BatchRunner

__all__ = [
    # Events
    "ProgressEvent",
    "FolderStarted",
    "FileProgress",
    "FolderCompleted",
    "FolderError",
    "AllComplete",
    "Cancelled",
    # Queue
    "FolderStatus",
    "FolderTask",
    "scan_folder",
    "reset_folders",
    "apply_event",
    # Orchestration
    "FileTask",
    "FileOutcome",
    "process_file",
    "process_folders",
    "BatchRunner",
]
