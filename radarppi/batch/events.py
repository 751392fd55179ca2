"""
Batch Progress Events

Messages sent from the orchestrator to the single consumer that drains the
event queue. Every batch run ends with exactly one terminal event
(AllComplete or Cancelled), except when the worker pool cannot be built:
that run emits a single FolderError with folder_index=None and nothing else.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ProgressEvent:
    """Base class for all batch events."""

    @property
    def is_terminal(self) -> bool:
        return False


@dataclass(frozen=True)
class FolderStarted(ProgressEvent):
    folder_index: int
    folder_name: str


@dataclass(frozen=True)
class FileProgress(ProgressEvent):
    """
    Throttled per-folder progress.

    Attributes:
        folder_index: Index of the folder in the batch
        files_done: Files finished so far (success or failure)
        files_total: Files in the folder
        current_file: Name of the most recently finished file
        files_per_second: files_done / seconds since folder start
    """

    folder_index: int
    files_done: int
    files_total: int
    current_file: str
    files_per_second: float

    @property
    def fraction(self) -> float:
        return self.files_done / max(1, self.files_total)


@dataclass(frozen=True)
class FolderCompleted(ProgressEvent):
    folder_index: int


@dataclass(frozen=True)
class FolderError(ProgressEvent):
    """
    Folder failed, fully or partially.

    Attributes:
        folder_index: Folder index, or None when the whole batch failed to start
        error: Human-readable message
        failures: Number of files that failed (0 for folder-level errors)
    """

    folder_index: Optional[int]
    error: str
    failures: int = 0

    @property
    def is_batch_fatal(self) -> bool:
        return self.folder_index is None


@dataclass(frozen=True)
class AllComplete(ProgressEvent):
    @property
    def is_terminal(self) -> bool:
        return True


@dataclass(frozen=True)
class Cancelled(ProgressEvent):
    @property
    def is_terminal(self) -> bool:
        return True
