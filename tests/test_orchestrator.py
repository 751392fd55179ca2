"""
radarppi Batch Orchestration Test Suite

Test ID | Description                       | Expected
--------|-----------------------------------|-----------------------------------
1       | Worker count resolution           | 0 on 10 CPUs -> 9, on 1 CPU -> 1
2       | Event sequence                    | one terminal event, folders in order
3       | Failure scoping                   | file / folder / batch-fatal
4       | Cancellation                      | current folder finishes, no next
5       | Progress throttling               | monotonic, last file always sent
6       | Background runner                 | events drained off-thread
7       | Queue snapshots                   | event-driven, never mutated

Most tests use a ThreadPool in place of the process pool so they stay fast;
one test runs the real multiprocessing pool.
"""

import os
import queue
import sys
import threading
from multiprocessing.pool import ThreadPool

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from radarppi.batch import (
    AllComplete,
    BatchRunner,
    Cancelled,
    FileProgress,
    FolderCompleted,
    FolderError,
    FolderStarted,
    FolderStatus,
    apply_event,
    reset_folders,
    scan_folder,
)
from radarppi.batch.orchestrator import ProgressThrottle, process_folders
from radarppi.config import ProcessingSettings, resolve_worker_count


@pytest.fixture
def settings():
    return ProcessingSettings(pulses=90, gap_deg=5.0, image_size=32, jobs=2)


def _run(folders, settings, stop_flag=None, pool_factory=ThreadPool):
    events = queue.Queue()
    process_folders(folders, settings, events, stop_flag or threading.Event(), pool_factory)
    drained = []
    while not events.empty():
        drained.append(events.get_nowait())
    return drained


class _CancelOnFirstFolder:
    """Event sink that raises the stop flag as soon as folder 0 starts."""

    def __init__(self, stop_flag):
        self.stop_flag = stop_flag
        self.events = []

    def put(self, event):
        self.events.append(event)
        if isinstance(event, FolderStarted) and event.folder_index == 0:
            self.stop_flag.set()


# =============================================================================
# TEST 1: Worker Count
# =============================================================================


class TestWorkerCount:
    def test_auto_ten_cpus(self):
        assert resolve_worker_count(0, 10) == 9

    def test_auto_one_cpu(self):
        """Never resolves to zero workers"""
        assert resolve_worker_count(0, 1) == 1

    def test_explicit(self):
        assert resolve_worker_count(4, 10) == 4

    def test_auto_rounds_up(self):
        assert resolve_worker_count(0, 4) == 4
        assert resolve_worker_count(0, 32) == 29

    def test_settings(self):
        assert ProcessingSettings(jobs=0).resolve_jobs(available=10) == 9


# =============================================================================
# TEST 2: Event Sequence
# =============================================================================


class TestEventSequence:
    def test_two_folders(self, recording_folder, settings):
        folders = [recording_folder("a", 3), recording_folder("b", 2)]

        events = _run(folders, settings)

        started = [e.folder_index for e in events if isinstance(e, FolderStarted)]
        completed = [e.folder_index for e in events if isinstance(e, FolderCompleted)]
        terminal = [e for e in events if e.is_terminal]

        assert started == [0, 1]
        assert completed == [0, 1]
        assert len(terminal) == 1
        assert isinstance(events[-1], AllComplete)

    def test_folder_order(self, recording_folder, settings):
        """Folder 1 starts only after folder 0 is finished"""
        folders = [recording_folder("a", 4), recording_folder("b", 1)]

        events = _run(folders, settings)

        done_0 = next(i for i, e in enumerate(events) if isinstance(e, FolderCompleted))
        start_1 = next(
            i for i, e in enumerate(events) if isinstance(e, FolderStarted) and e.folder_index == 1
        )
        assert done_0 < start_1

    def test_default_output_layout(self, recording_folder, settings):
        folder = recording_folder("run1", 2)

        _run([folder], settings)

        out = folder.parent / "run1_img_90"
        assert sorted(p.name for p in out.iterdir()) == [
            "scan_000_3_1500.png",
            "scan_001_3_1500.png",
        ]

    def test_output_root(self, recording_folder, settings, tmp_path):
        folder = recording_folder("run1", 1)
        settings.output_dir = tmp_path / "images"

        _run([folder], settings)

        assert (tmp_path / "images" / "run1" / "scan_000_3_1500.png").exists()

    def test_accepts_snapshots(self, recording_folder, settings):
        events = _run([scan_folder(recording_folder("a", 1))], settings)

        assert isinstance(events[-1], AllComplete)


# =============================================================================
# TEST 3: Failure Scoping
# =============================================================================


class TestFailures:
    def test_empty_folder(self, recording_folder, settings, tmp_path):
        """A folder with no recordings errors; the next folder still runs"""
        empty = tmp_path / "empty"
        empty.mkdir()
        (empty / "notes.txt").write_text("nothing here")

        events = _run([empty, recording_folder("b", 1)], settings)

        errors = [e for e in events if isinstance(e, FolderError)]
        assert len(errors) == 1
        assert errors[0].folder_index == 0
        assert "No CSV files" in errors[0].error
        assert any(isinstance(e, FolderCompleted) and e.folder_index == 1 for e in events)
        assert isinstance(events[-1], AllComplete)

    def test_file_failures_counted(self, recording_folder, settings):
        """Bad files are counted; siblings are still written"""
        folder = recording_folder("mixed", 2)
        (folder / "broken.csv").write_text("header only\n")

        events = _run([folder], settings)

        errors = [e for e in events if isinstance(e, FolderError)]
        assert len(errors) == 1
        assert errors[0].failures == 1
        assert "1 files failed" in errors[0].error

        out = folder.parent / "mixed_img_90"
        names = sorted(p.name for p in out.iterdir())
        assert names == ["scan_000_3_1500.png", "scan_001_3_1500.png"]
        assert isinstance(events[-1], AllComplete)

    def test_strict_mode_failures(self, recording_folder, settings):
        folder = recording_folder("strict", 1)
        strict = ProcessingSettings(
            pulses=90, image_size=32, jobs=2, colormap="rainbow", strictness="strict"
        )

        events = _run([folder], strict)

        errors = [e for e in events if isinstance(e, FolderError)]
        assert errors and errors[0].failures == 1

    def test_pool_creation_failure(self, recording_folder, settings):
        """Only a single error event, no folder is started"""

        def broken_pool(n_workers):
            raise OSError("no processes for you")

        events = _run([recording_folder("a", 1)], settings, pool_factory=broken_pool)

        assert len(events) == 1
        assert isinstance(events[0], FolderError)
        assert events[0].is_batch_fatal
        assert "worker pool" in events[0].error


# =============================================================================
# TEST 4: Cancellation
# =============================================================================


class TestCancellation:
    def test_cancel_before_second_folder(self, recording_folder, settings):
        """Folder 0 finishes and is reported, folder 1 never starts"""
        folders = [recording_folder("a", 3), recording_folder("b", 3)]
        stop_flag = threading.Event()
        sink = _CancelOnFirstFolder(stop_flag)

        process_folders(folders, settings, sink, stop_flag, ThreadPool)

        events = sink.events
        assert [e.folder_index for e in events if isinstance(e, FolderStarted)] == [0]
        assert any(isinstance(e, FolderCompleted) and e.folder_index == 0 for e in events)
        assert [e for e in events if e.is_terminal] == [Cancelled()]
        assert isinstance(events[-1], Cancelled)
        assert not any(isinstance(e, AllComplete) for e in events)

        assert len(list((folders[0].parent / "a_img_90").iterdir())) == 3
        assert not (folders[1].parent / "b_img_90").exists()

    def test_cancel_before_start(self, recording_folder, settings):
        stop_flag = threading.Event()
        stop_flag.set()

        events = _run([recording_folder("a", 1)], settings, stop_flag=stop_flag)

        assert events == [Cancelled()]


# =============================================================================
# TEST 5: Progress
# =============================================================================


class TestProgress:
    def test_progress_monotonic_and_final(self, recording_folder, settings):
        events = _run([recording_folder("a", 6)], settings)

        progress = [e for e in events if isinstance(e, FileProgress)]
        done = [e.files_done for e in progress]

        assert done == sorted(done)
        assert len(set(done)) == len(done)
        assert progress[-1].files_done == 6
        assert all(e.files_total == 6 for e in progress)
        assert all(e.current_file.endswith(".csv") for e in progress)
        assert all(e.files_per_second >= 0 for e in progress)

    def test_throttle(self):
        """At most one event per 100 ms, the last file always"""
        ticks = iter([0.0, 0.05, 0.10, 0.15, 0.16])
        throttle = ProgressThrottle(interval_s=0.1, clock=lambda: next(ticks))

        assert not throttle.should_emit(1, 10)  # t = 0.05
        assert throttle.should_emit(2, 10)  # t = 0.10
        assert not throttle.should_emit(3, 10)  # t = 0.15
        assert throttle.should_emit(10, 10)  # t = 0.16, last file

    def test_fraction(self):
        event = FileProgress(0, 3, 4, "x.csv", 1.0)
        assert event.fraction == pytest.approx(0.75)


# =============================================================================
# TEST 6: Background Runner
# =============================================================================


class TestBatchRunner:
    def test_runner_thread(self, recording_folder, settings):
        folders = [scan_folder(recording_folder("a", 2))]
        runner = BatchRunner(folders, settings, pool_factory=ThreadPool)

        runner.start()
        events = list(runner.iter_events(poll_interval_s=0.01))
        runner.join(timeout=10)

        assert not runner.is_running
        assert isinstance(events[0], FolderStarted)
        assert isinstance(events[-1], AllComplete)
        assert runner.poll() == []

    def test_process_pool(self, recording_folder, settings):
        """Real multiprocessing pool end to end"""
        folders = [scan_folder(recording_folder("a", 2))]
        runner = BatchRunner(folders, settings)

        runner.start()
        events = list(runner.iter_events())
        runner.join(timeout=60)

        assert any(isinstance(e, FolderCompleted) for e in events)
        assert isinstance(events[-1], AllComplete)

    def test_invalid_settings_rejected(self, recording_folder, settings):
        settings.pulses = 0
        runner = BatchRunner([scan_folder(recording_folder("a", 1))], settings)

        with pytest.raises(ValueError):
            runner.start()


# =============================================================================
# TEST 7: Queue Snapshots
# =============================================================================


class TestFolderQueue:
    def test_scan_folder(self, recording_folder):
        folder = recording_folder("a", 2)
        (folder / "UPPER.CSV").write_text("h\n0,0,0,0,0,1\n")
        (folder / "readme.md").write_text("x")

        task = scan_folder(folder)

        assert task.name == "a"
        assert task.file_count == 3
        assert task.status is FolderStatus.PENDING

    def test_apply_events(self, recording_folder):
        snapshot = (scan_folder(recording_folder("a", 1)), scan_folder(recording_folder("b", 1)))
        original = snapshot

        snapshot = apply_event(snapshot, FolderStarted(0, "a"))
        assert snapshot[0].status is FolderStatus.PROCESSING

        snapshot = apply_event(snapshot, FileProgress(0, 1, 2, "x.csv", 1.0))
        assert snapshot[0].progress == pytest.approx(0.5)

        snapshot = apply_event(snapshot, FolderCompleted(0))
        assert snapshot[0].status is FolderStatus.COMPLETE
        assert snapshot[0].progress == 1.0

        snapshot = apply_event(snapshot, FolderError(1, "No CSV files found"))
        assert snapshot[1].status is FolderStatus.ERROR
        assert snapshot[1].error_message == "No CSV files found"

        # Input snapshot untouched
        assert original[0].status is FolderStatus.PENDING
        assert original[1].status is FolderStatus.PENDING

    def test_batch_fatal_and_terminal_ignored(self, recording_folder):
        snapshot = (scan_folder(recording_folder("a", 1)),)

        assert apply_event(snapshot, FolderError(None, "pool")) == snapshot
        assert apply_event(snapshot, AllComplete()) == snapshot

    def test_reset(self, recording_folder):
        snapshot = apply_event((scan_folder(recording_folder("a", 1)),), FolderError(0, "x"))

        reset = reset_folders(snapshot)

        assert reset[0].status is FolderStatus.PENDING
        assert reset[0].error_message is None


# =============================================================================
# MAIN EXECUTION
# =============================================================================

if __name__ == "__main__":
    pytest.main([__file__, "-v", "--tb=short"])
