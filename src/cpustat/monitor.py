"""Background poller that feeds raw counter frames to a queue."""

import logging
import threading
import time
from queue import Queue

from cpustat.accessor import CpuStat
from cpustat.config import MIN_POLL_RATE
from cpustat.models import CounterFrame

logger = logging.getLogger(__name__)


class CounterMonitor:
    """
    Poll an accessor on a daemon thread and push ``CounterFrame`` objects
    to a thread-safe Queue.

    Frames carry cumulative counters only; consumers that want rates diff
    consecutive frames themselves.
    """

    def __init__(
        self,
        update_queue: Queue[CounterFrame],
        accessor: CpuStat | None = None,
        poll_rate: float = 2.0,
    ) -> None:
        """
        Initialize the CounterMonitor.

        Args:
            update_queue: Thread-safe queue to push frames to.
            accessor: Accessor to poll. Defaults to one over /proc/stat.
            poll_rate: How often to poll (in seconds). Default 2.0s.
        """
        self._queue = update_queue
        self._accessor = accessor if accessor is not None else CpuStat()
        self._poll_rate = max(MIN_POLL_RATE, poll_rate)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def accessor(self) -> CpuStat:
        return self._accessor

    @property
    def poll_rate(self) -> float:
        """Get the current poll rate."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        """Set the poll rate."""
        self._poll_rate = max(MIN_POLL_RATE, value)

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="CounterMonitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                self._queue.put(self.collect_frame())
            except Exception:
                # Keep polling; a transient read failure must not end the thread
                logger.exception("Counter poll failed")

            self._stop_event.wait(timeout=self._poll_rate)

    def collect_frame(self) -> CounterFrame:
        """Read the aggregate and every processor once."""
        count = self._accessor.count()
        return CounterFrame(
            timestamp=time.time(),
            count=count,
            aggregate=self._accessor.get(),
            per_cpu=[self._accessor.get(cpu) for cpu in range(count)],
        )
