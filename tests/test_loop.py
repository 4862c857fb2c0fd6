import shutil
import threading

import pytest
from watchdog.events import FileCreatedEvent, FileModifiedEvent, FileMovedEvent

from folder_sync import (
    SOURCE_LOST_MESSAGE,
    IgnoreMatcher,
    SourceChangeHandler,
    SyncLoop,
    remaining_interval,
)


def fake_clock(*readings):
    it = iter(readings)
    return lambda: next(it)


class TestRemainingInterval:

    def test_waits_for_the_rest_of_the_interval(self):
        assert remaining_interval(10, 3.5) == pytest.approx(6.5)

    def test_overrun_means_no_wait(self):
        assert remaining_interval(10, 10) == 0.0
        assert remaining_interval(10, 42.0) == 0.0


class TestSyncLoop:
    """Run loop behavior"""

    def test_sleeps_interval_minus_cycle_time(self, trees, sync_log):
        source, replica = trees
        loop = SyncLoop(source, replica, 10, sync_log, clock=fake_clock(100.0, 103.0))
        waits = []

        def fake_sleep(seconds):
            waits.append(seconds)
            loop.request_stop()

        loop._sleep = fake_sleep

        assert loop.run() == 0
        assert waits == [pytest.approx(7.0)]

    def test_overrunning_cycle_starts_next_immediately(self, trees, sync_log):
        source, replica = trees
        loop = SyncLoop(source, replica, 2, sync_log, clock=fake_clock(0.0, 5.0))
        waits = []

        def fake_sleep(seconds):
            waits.append(seconds)
            loop.request_stop()

        loop._sleep = fake_sleep

        loop.run()
        assert waits == [0.0]

    def test_stop_before_start_runs_no_cycle(self, trees, sync_log, read_log):
        source, replica = trees
        loop = SyncLoop(source, replica, 1, sync_log)
        loop.request_stop()

        assert loop.run() == 0
        assert not replica.exists()
        assert "Synchronization stopped." in read_log()

    def test_runs_cycles_until_stopped(self, trees, sync_log, read_log):
        source, replica = trees
        (source / "a.txt").write_text("X")
        loop = SyncLoop(source, replica, 1, sync_log)
        ticks = []

        def fake_sleep(seconds):
            ticks.append(seconds)
            if len(ticks) == 1:
                (source / "b.txt").write_text("Y")
            else:
                loop.request_stop()

        loop._sleep = fake_sleep

        assert loop.run() == 0
        assert len(ticks) == 2
        assert (replica / "a.txt").read_text() == "X"
        assert (replica / "b.txt").read_text() == "Y"
        log = read_log()
        assert log.count("Copied file:") == 2
        assert log.rstrip().endswith("Synchronization stopped.")

    def test_source_deleted_mid_run_exits_with_error(self, trees, sync_log, read_log):
        source, replica = trees
        (source / "a.txt").write_text("X")
        loop = SyncLoop(source, replica, 1, sync_log)
        ticks = []

        def fake_sleep(seconds):
            ticks.append(seconds)
            shutil.rmtree(source)

        loop._sleep = fake_sleep

        assert loop.run() == 1
        assert len(ticks) == 1
        log = read_log()
        assert "Error: Source path does not exist." in log
        assert SOURCE_LOST_MESSAGE in log
        assert "Synchronization stopped." not in log

    def test_source_replaced_by_file_exits_with_error(self, trees, sync_log, read_log):
        source, replica = trees
        shutil.rmtree(source)
        source.write_text("now a file")
        loop = SyncLoop(source, replica, 1, sync_log)

        assert loop.run() == 1
        assert "Error: Source path is not a directory." in read_log()

    def test_cycle_crash_is_contained(self, trees, sync_log, read_log, monkeypatch):
        source, replica = trees
        loop = SyncLoop(source, replica, 1, sync_log)

        def boom(*args):
            raise RuntimeError("unexpected")

        monkeypatch.setattr("folder_sync.run_cycle", boom)
        loop._sleep = lambda seconds: loop.request_stop()

        assert loop.run() == 0
        assert "Error: unexpected" in read_log()

    def test_request_stop_interrupts_sleep(self, trees, sync_log):
        source, replica = trees
        loop = SyncLoop(source, replica, 3600, sync_log)
        worker = threading.Thread(target=loop.run)
        worker.start()
        try:
            loop.request_stop()
            worker.join(timeout=10)
            assert not worker.is_alive()
        finally:
            loop.request_stop()
            worker.join(timeout=10)

    def test_wake_cuts_sleep_short(self, trees, sync_log):
        source, replica = trees
        loop = SyncLoop(source, replica, 3600, sync_log)
        loop.wake()

        loop._sleep(3600)

        assert not loop._wake.is_set()
        assert not loop.stop_event.is_set()


class TestSourceChangeHandler:
    """Watch mode wake-ups"""

    def test_change_wakes_loop(self, trees, sync_log):
        source, replica = trees
        loop = SyncLoop(source, replica, 60, sync_log)
        handler = SourceChangeHandler(loop, source)

        handler.dispatch(FileCreatedEvent(str(source / "new.txt")))

        assert loop._wake.is_set()

    def test_ignored_change_does_not_wake(self, trees, sync_log):
        source, replica = trees
        loop = SyncLoop(source, replica, 60, sync_log)
        handler = SourceChangeHandler(loop, source, IgnoreMatcher(["*.swp"]))

        handler.dispatch(FileModifiedEvent(str(source / ".notes.swp")))
        assert not loop._wake.is_set()

        handler.dispatch(FileModifiedEvent(str(source / "notes.txt")))
        assert loop._wake.is_set()

    def test_move_from_ignored_to_mirrored_name_wakes(self, trees, sync_log):
        source, replica = trees
        loop = SyncLoop(source, replica, 60, sync_log)
        handler = SourceChangeHandler(loop, source, IgnoreMatcher(["*.tmp"]))

        handler.dispatch(FileMovedEvent(str(source / "x.tmp"), str(source / "x.txt")))

        assert loop._wake.is_set()

    def test_move_between_ignored_names_does_not_wake(self, trees, sync_log):
        source, replica = trees
        loop = SyncLoop(source, replica, 60, sync_log)
        handler = SourceChangeHandler(loop, source, IgnoreMatcher(["*.tmp"]))

        handler.dispatch(FileMovedEvent(str(source / "a.tmp"), str(source / "b.tmp")))

        assert not loop._wake.is_set()
