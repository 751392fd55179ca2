"""
Batch Orchestrator

Runs the per-file render pipeline over a queue of folders.

Scheduling:
    - One bounded worker pool for the whole run (multiprocessing.Pool)
    - Folders strictly in order; files of a folder fan out across the pool
      and fan back in before the next folder starts
    - Cancellation is checked once before each folder; files already
      dispatched always run to completion

Events (see events.py) go to a queue drained by a single consumer:
    FolderStarted, FileProgress (throttled to one per 100 ms per folder,
    the last file always reported), FolderCompleted | FolderError,
    then exactly one AllComplete | Cancelled.

Failure scope:
    file    - caught at the task boundary, counted in the folder's FolderError
    folder  - no recordings / output directory failure, next folder continues
    batch   - worker pool construction failure only

Usage:
    events = queue.Queue()
    stop = threading.Event()
    process_folders([scan_folder('data/run1')], ProcessingSettings(), events, stop)
"""

import logging
import os
import signal
import threading
import time
from dataclasses import dataclass
from multiprocessing import Pool
from pathlib import Path
from typing import Any, Callable, Optional, Sequence, Union

from ..config import ProcessingSettings
from ..errors import PoolCreationError
from ..io.folder_scan import list_record_files
from ..io.image_writer import resolve_output_dir
from ..pipeline import render_file
from .events import AllComplete, Cancelled, FileProgress, FolderCompleted, FolderError, FolderStarted
from .folder_queue import FolderTask, scan_folder

logger = logging.getLogger(__name__)

PROGRESS_INTERVAL_S = 0.1

PoolFactory = Callable[[int], Any]


@dataclass(frozen=True)
class FileTask:
    """Unit of work sent to a pool worker (must stay picklable)."""

    csv_path: Path
    output_dir: Path
    settings: ProcessingSettings


@dataclass(frozen=True)
class FileOutcome:
    """Result of one file task."""

    csv_path: Path
    output_path: Optional[Path] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def process_file(task: FileTask) -> FileOutcome:
    """
    Pool entry point: render one file, never raise.

    Args:
        task: File task

    Returns:
        FileOutcome with the output path or the error message
    """
    try:
        output_path = render_file(task.csv_path, task.output_dir, task.settings)
    except Exception as e:
        logger.warning("Failed to process %s: %s", task.csv_path, e)
        return FileOutcome(csv_path=task.csv_path, error=f"{type(e).__name__}: {e}")

    return FileOutcome(csv_path=task.csv_path, output_path=output_path)


class ProgressThrottle:
    """
    Rate limiter for FileProgress events.

    Emits when at least `interval_s` has passed since the last emission,
    and always for the final file. Only the fan-in loop that drains
    imap_unordered calls it, so it needs no locking.
    """

    def __init__(self, interval_s: float = PROGRESS_INTERVAL_S, clock=time.perf_counter):
        self.interval_s = interval_s
        self._clock = clock
        self._last_emit = clock()

    def should_emit(self, files_done: int, files_total: int) -> bool:
        now = self._clock()
        if now - self._last_emit >= self.interval_s or files_done == files_total:
            self._last_emit = now
            return True
        return False


def _init_worker() -> None:
    # Ctrl-C is handled by the parent, which stops between folders
    signal.signal(signal.SIGINT, signal.SIG_IGN)


def default_pool(n_workers: int):
    """Process pool whose workers ignore SIGINT."""
    return Pool(n_workers, initializer=_init_worker)


def create_pool(n_workers: int, pool_factory: Optional[PoolFactory] = None):
    """
    Build the worker pool.

    Raises:
        PoolCreationError: If the pool cannot be constructed
    """
    factory = pool_factory or default_pool
    try:
        return factory(n_workers)
    except (OSError, ValueError, RuntimeError) as e:
        raise PoolCreationError(f"Failed to create worker pool: {e}") from e


def _as_folder_task(folder: Union[FolderTask, str, Path]) -> FolderTask:
    if isinstance(folder, FolderTask):
        return folder
    return scan_folder(folder)


def process_folder(
    pool,
    folder_index: int,
    folder: FolderTask,
    settings: ProcessingSettings,
    events,
) -> bool:
    """
    Render every recording of one folder and report progress.

    Args:
        pool: Worker pool (imap_unordered)
        folder_index: Position of the folder in the batch
        folder: Folder snapshot
        settings: Processing settings
        events: Event sink with put()

    Returns:
        True if every file succeeded
    """
    csv_files = list_record_files(folder.path)
    files_total = len(csv_files)

    if files_total == 0:
        events.put(FolderError(folder_index=folder_index, error="No CSV files found"))
        return False

    output_dir = resolve_output_dir(folder.path, settings.pulses, settings.output_dir)
    try:
        os.makedirs(output_dir, exist_ok=True)
    except OSError as e:
        events.put(
            FolderError(folder_index=folder_index, error=f"Failed to create output directory: {e}")
        )
        return False

    logger.info("Folder %s: %d files -> %s", folder.name, files_total, output_dir)

    tasks = [FileTask(csv_path=p, output_dir=output_dir, settings=settings) for p in csv_files]
    start_time = time.perf_counter()
    throttle = ProgressThrottle()
    files_done = 0
    failures = 0

    for outcome in pool.imap_unordered(process_file, tasks):
        files_done += 1
        if not outcome.ok:
            failures += 1

        if throttle.should_emit(files_done, files_total):
            elapsed = time.perf_counter() - start_time
            events.put(
                FileProgress(
                    folder_index=folder_index,
                    files_done=files_done,
                    files_total=files_total,
                    current_file=outcome.csv_path.name,
                    files_per_second=files_done / elapsed if elapsed > 0 else 0.0,
                )
            )

    if failures:
        logger.info("Folder %s: %d of %d files failed", folder.name, failures, files_total)
        events.put(
            FolderError(
                folder_index=folder_index,
                error=f"{failures} files failed to process",
                failures=failures,
            )
        )
        return False

    events.put(FolderCompleted(folder_index=folder_index))
    return True


def process_folders(
    folders: Sequence[Union[FolderTask, str, Path]],
    settings: ProcessingSettings,
    events,
    stop_flag: threading.Event,
    pool_factory: Optional[PoolFactory] = None,
) -> None:
    """
    Process a batch of folders.

    Blocks until the batch is done; run it on a background thread and drain
    `events` from the consumer side.

    Args:
        folders: Ordered folder snapshots (paths are scanned on the fly)
        settings: Processing settings
        events: Event sink with put(), e.g. queue.Queue
        stop_flag: Cancellation flag, checked before each folder
        pool_factory: Callable(n_workers) -> pool, default multiprocessing.Pool
    """
    folders = [_as_folder_task(f) for f in folders]
    n_workers = settings.resolve_jobs()

    try:
        pool = create_pool(n_workers, pool_factory)
    except PoolCreationError as e:
        logger.error("%s", e)
        events.put(FolderError(folder_index=None, error=str(e)))
        return

    logger.info("Batch: %d folders, %d workers", len(folders), n_workers)

    with pool:
        for folder_index, folder in enumerate(folders):
            if stop_flag.is_set():
                logger.info("Batch cancelled before folder %d", folder_index)
                events.put(Cancelled())
                return

            events.put(FolderStarted(folder_index=folder_index, folder_name=folder.name))
            process_folder(pool, folder_index, folder, settings, events)

    events.put(AllComplete())
