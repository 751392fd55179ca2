"""
Folder Queue Snapshots

Immutable folder descriptors handed to the orchestrator. Front-ends keep a
tuple of FolderTask snapshots and replace it with apply_event() for every
event drained from the batch; workers never touch the queue directly.

Status lifecycle:
    PENDING -> PROCESSING -> COMPLETE | ERROR
"""

from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

from ..io.folder_scan import count_record_files
from .events import FileProgress, FolderCompleted, FolderError, FolderStarted, ProgressEvent


class FolderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class FolderTask:
    """
    One queued input folder.

    Attributes:
        path: Folder path
        name: Display name (folder base name)
        file_count: Recording files found when the folder was queued
        status: Lifecycle state
        progress: Fraction of files done [0, 1]
        error_message: Last error reported for this folder
    """

    path: Path
    name: str
    file_count: int = 0
    status: FolderStatus = FolderStatus.PENDING
    progress: float = 0.0
    error_message: Optional[str] = None


def scan_folder(path: Union[str, Path]) -> FolderTask:
    """Build a PENDING snapshot for a folder, counting its recordings."""
    path = Path(path)
    return FolderTask(path=path, name=path.name or "Unknown", file_count=count_record_files(path))


def reset_folders(folders: Sequence[FolderTask]) -> Tuple[FolderTask, ...]:
    """Return every folder to PENDING before a new run."""
    return tuple(
        replace(f, status=FolderStatus.PENDING, progress=0.0, error_message=None) for f in folders
    )


def apply_event(folders: Sequence[FolderTask], event: ProgressEvent) -> Tuple[FolderTask, ...]:
    """
    Apply one batch event to a queue snapshot.

    Args:
        folders: Current snapshot
        event: Event drained from the batch

    Returns:
        New snapshot; the input is never modified
    """
    folders = tuple(folders)
    index = getattr(event, "folder_index", None)
    if index is None or not 0 <= index < len(folders):
        return folders

    folder = folders[index]
    if isinstance(event, FolderStarted):
        folder = replace(folder, status=FolderStatus.PROCESSING, progress=0.0)
    elif isinstance(event, FileProgress):
        folder = replace(folder, progress=event.fraction)
    elif isinstance(event, FolderCompleted):
        folder = replace(folder, status=FolderStatus.COMPLETE, progress=1.0)
    elif isinstance(event, FolderError):
        folder = replace(folder, status=FolderStatus.ERROR, error_message=event.error)
    else:
        return folders

    return folders[:index] + (folder,) + folders[index + 1 :]
