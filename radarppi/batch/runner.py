"""
Background Batch Runner

Bridge between the orchestrator (background thread) and a front-end or CLI
loop (consumer). The consumer polls the event queue at its own cadence;
producers never block on it.

Usage:
    runner = BatchRunner(folders, settings)
    runner.start()
    for event in runner.iter_events():
        ...
    runner.join()
"""

import logging
import queue
import threading
from typing import Iterator, List, Optional, Sequence

from ..config import ProcessingSettings
from .events import FolderError, ProgressEvent
from .folder_queue import FolderTask
from .orchestrator import PoolFactory, process_folders

logger = logging.getLogger(__name__)


class BatchRunner:
    """
    Runs process_folders() on a daemon thread.

    Owns the unbounded event queue and the cancellation flag.
    """

    def __init__(
        self,
        folders: Sequence[FolderTask],
        settings: ProcessingSettings,
        pool_factory: Optional[PoolFactory] = None,
    ):
        """
        Initialize batch runner.

        Args:
            folders: Folder snapshots, processed in order
            settings: Processing settings
            pool_factory: Optional pool constructor (default multiprocessing.Pool)
        """
        self.folders = tuple(folders)
        self.settings = settings
        self.pool_factory = pool_factory
        self.events: "queue.Queue[ProgressEvent]" = queue.Queue()
        self.stop_flag = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def _run(self) -> None:
        try:
            process_folders(
                self.folders, self.settings, self.events, self.stop_flag, self.pool_factory
            )
        except Exception as e:
            # Keep the consumer from waiting forever on a dead batch
            logger.exception("Batch aborted")
            self.events.put(FolderError(folder_index=None, error=f"Batch aborted: {e}"))

    def start(self) -> None:
        """Start the batch on a background thread."""
        if self.is_running:
            raise RuntimeError("Batch already running")

        self.settings.validate()
        self.stop_flag.clear()
        self._thread = threading.Thread(target=self._run, name="radarppi-batch", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Request cancellation; the current folder still finishes."""
        self.stop_flag.set()

    def poll(self) -> List[ProgressEvent]:
        """Drain all pending events without blocking."""
        drained = []
        while True:
            try:
                drained.append(self.events.get_nowait())
            except queue.Empty:
                return drained

    def iter_events(self, poll_interval_s: float = 0.05) -> Iterator[ProgressEvent]:
        """
        Yield events until the batch ends.

        Stops after a terminal event, a batch-fatal FolderError, or when the
        worker thread has exited and the queue is empty.
        """
        while True:
            try:
                event = self.events.get(timeout=poll_interval_s)
            except queue.Empty:
                if not self.is_running and self.events.empty():
                    return
                continue

            yield event

            if event.is_terminal or (isinstance(event, FolderError) and event.is_batch_fatal):
                return

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the batch thread to finish."""
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
