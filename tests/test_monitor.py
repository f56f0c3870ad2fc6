"""Tests for the CounterMonitor class."""

from queue import Queue

from cpustat.accessor import CpuStat
from cpustat.models import CounterFrame, StatSnapshot
from cpustat.monitor import CounterMonitor
from cpustat.sources import StaticSource


class FlakySource(StaticSource):
    """Static source whose first aggregate read fails."""

    def __init__(self, vectors):
        super().__init__(vectors)
        self.calls = 0

    def read_all(self):
        self.calls += 1
        if self.calls == 1:
            raise OSError("transient")
        return super().read_all()


def make_monitor(source, poll_rate=0.1) -> tuple[CounterMonitor, Queue[CounterFrame]]:
    queue: Queue[CounterFrame] = Queue()
    return CounterMonitor(queue, CpuStat(source), poll_rate=poll_rate), queue


class TestCounterMonitor:
    """Tests for CounterMonitor class."""

    def test_monitor_creation(self, four_cpu_source):
        """Test CounterMonitor can be instantiated."""
        queue: Queue[CounterFrame] = Queue()
        monitor = CounterMonitor(queue, CpuStat(four_cpu_source))

        assert monitor.poll_rate == 2.0
        assert not monitor.is_running

    def test_poll_rate_minimum(self, four_cpu_source):
        """Test poll rate has a minimum value."""
        monitor, _ = make_monitor(four_cpu_source, poll_rate=0.001)
        assert monitor.poll_rate >= 0.1

        monitor.poll_rate = 0.01
        assert monitor.poll_rate >= 0.1

    def test_collect_frame(self, four_cpu_source):
        """Test a frame carries the aggregate and every processor."""
        monitor, _ = make_monitor(four_cpu_source)

        frame = monitor.collect_frame()

        assert frame.count == 4
        assert isinstance(frame.aggregate, StatSnapshot)
        assert frame.aggregate.is_aggregate
        assert [snap.cpu for snap in frame.per_cpu] == [0, 1, 2, 3]
        assert frame.aggregate.user == sum(snap.user for snap in frame.per_cpu)

    def test_monitor_start_stop(self, four_cpu_source):
        """Test CounterMonitor can be started and stopped."""
        monitor, _ = make_monitor(four_cpu_source)

        monitor.start()
        assert monitor.is_running

        monitor.stop()
        assert not monitor.is_running

    def test_monitor_start_idempotent(self, four_cpu_source):
        """Test starting an already running monitor is safe."""
        monitor, _ = make_monitor(four_cpu_source)

        monitor.start()
        thread1 = monitor._thread
        monitor.start()
        thread2 = monitor._thread

        assert thread1 is thread2
        monitor.stop()

    def test_monitor_queues_frames(self, four_cpu_source):
        """Test CounterMonitor pushes frames to the queue."""
        monitor, queue = make_monitor(four_cpu_source)

        monitor.start()
        try:
            frame = queue.get(timeout=2.0)
            assert isinstance(frame, CounterFrame)
            assert frame.count == 4
        finally:
            monitor.stop()

    def test_monitor_survives_read_errors(self):
        """Test a failed poll is skipped and the loop keeps running."""
        source = FlakySource([[1] * 10, [2] * 10])
        monitor, queue = make_monitor(source)

        monitor.start()
        try:
            frame = queue.get(timeout=2.0)
            assert frame.aggregate.user == 3
            assert source.calls >= 2
            assert monitor.is_running
        finally:
            monitor.stop()

    def test_daemon_thread(self, four_cpu_source):
        """Test monitor thread is a daemon thread."""
        monitor, _ = make_monitor(four_cpu_source)

        monitor.start()
        try:
            assert monitor._thread is not None
            assert monitor._thread.daemon is True
            assert monitor._thread.name == "CounterMonitor"
        finally:
            monitor.stop()
