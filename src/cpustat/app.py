"""cpustat - Textual viewer for raw processor counters."""

from queue import Empty, Queue

from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import DataTable, Footer, Static

from cpustat.accessor import CpuStat
from cpustat.models import CounterFrame, StatSnapshot
from cpustat.monitor import CounterMonitor

AGGREGATE_ROW = "all"


def format_ticks(ticks: int) -> str:
    """Format a tick counter compactly."""
    value = float(ticks)
    for unit in ["", "K", "M", "G", "T"]:
        if value < 1000:
            return f"{int(value)}" if unit == "" else f"{value:.1f}{unit}"
        value = value / 1000
    return f"{value:.1f}P"


def row_key(snapshot: StatSnapshot) -> str:
    """Table row key for a snapshot."""
    return AGGREGATE_ROW if snapshot.is_aggregate else f"cpu{snapshot.cpu}"


class HeaderStats(Static):
    """Header widget describing the counter set being shown."""

    DEFAULT_CSS = """
    HeaderStats {
        height: auto;
        padding: 0 1;
        background: $surface;
    }
    """

    def __init__(self, fields: tuple[str, ...], poll_rate: float, *args, **kwargs) -> None:
        """Initialize HeaderStats."""
        super().__init__(*args, **kwargs)
        self._fields = fields
        self._poll_rate = poll_rate
        self._count: int = 0

    def on_mount(self) -> None:
        self.update(self._header_text())

    @property
    def cpu_count(self) -> int:
        return self._count

    def update_count(self, count: int) -> None:
        """Update the processor count from a frame."""
        if count != self._count:
            self._count = count
            self.update(self._header_text())

    def _header_text(self) -> str:
        cpus = str(self._count) if self._count else "..."
        return (
            f"CPUs: {cpus}   Poll: {self._poll_rate:.1f}s   "
            f"Units: clock ticks\nFields: {' '.join(self._fields)}"
        )


class CounterTable(Container):
    """Container for the counter data table."""

    DEFAULT_CSS = """
    CounterTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, fields: tuple[str, ...], *args, **kwargs) -> None:
        """Initialize CounterTable."""
        super().__init__(*args, **kwargs)
        self._fields = fields
        self._row_keys: set[str] = set()
        self._show_per_cpu: bool = True

    @property
    def show_per_cpu(self) -> bool:
        return self._show_per_cpu

    def toggle_per_cpu(self) -> bool:
        """Flip per-CPU row visibility and return the new state."""
        self._show_per_cpu = not self._show_per_cpu
        if not self._show_per_cpu:
            table = self.query_one("#counter-table", DataTable)
            for key in self._row_keys - {AGGREGATE_ROW}:
                table.remove_row(key)
            self._row_keys &= {AGGREGATE_ROW}
        return self._show_per_cpu

    def compose(self) -> ComposeResult:
        """Compose the counter table."""
        yield DataTable(id="counter-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#counter-table", DataTable)
        table.cursor_type = "row"

        table.add_column("CPU", key="cpu", width=6)
        for name in self._fields:
            table.add_column(name.upper(), key=name, width=max(8, len(name) + 2))

    def update_frame(self, frame: CounterFrame) -> None:
        """
        Update the table with a new frame.

        Existing rows are updated cell by cell; rows for processors that
        disappeared are removed.
        """
        table = self.query_one("#counter-table", DataTable)

        snapshots = [frame.aggregate]
        if self._show_per_cpu:
            snapshots.extend(frame.per_cpu)

        new_keys = {row_key(snap) for snap in snapshots}
        for key in self._row_keys - new_keys:
            table.remove_row(key)

        for snap in snapshots:
            key = row_key(snap)
            if key in self._row_keys:
                for name in self._fields:
                    table.update_cell(key, name, format_ticks(snap.get(name, 0)))
            else:
                table.add_row(
                    key,
                    *(format_ticks(snap.get(name, 0)) for name in self._fields),
                    key=key,
                )

        self._row_keys = new_keys

    @property
    def row_keys(self) -> set[str]:
        return set(self._row_keys)


class CpuStatApp(App):
    """Main cpustat viewer."""

    TITLE = "cpustat"
    SUB_TITLE = "Per-CPU time counters"

    CSS = """
    Screen {
        layout: vertical;
    }

    #header-stats {
        dock: top;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("a", "toggle_per_cpu", "Per-CPU"),
    ]

    def __init__(self, accessor: CpuStat | None = None, poll_rate: float = 2.0) -> None:
        """Initialize the CpuStatApp."""
        super().__init__()
        self._update_queue: Queue[CounterFrame] = Queue()
        self._monitor = CounterMonitor(self._update_queue, accessor, poll_rate=poll_rate)

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        fields = self._monitor.accessor.fields()
        yield HeaderStats(fields, self._monitor.poll_rate, id="header-stats")
        yield CounterTable(fields)
        yield Footer()

    def on_mount(self) -> None:
        """Start the monitor when the app is mounted."""
        self._monitor.start()
        self.set_interval(0.5, self._check_for_updates)

    def _check_for_updates(self) -> None:
        """Drain the queue and render the most recent frame."""
        frame = None
        while True:
            try:
                frame = self._update_queue.get_nowait()
            except Empty:
                break

        if frame is not None:
            self.update_frame(frame)

    def update_frame(self, frame: CounterFrame) -> None:
        """Update the UI with a new counter frame."""
        self.query_one("#header-stats", HeaderStats).update_count(frame.count)
        self.query_one(CounterTable).update_frame(frame)

    def action_toggle_per_cpu(self) -> None:
        """Show or hide per-CPU rows."""
        shown = self.query_one(CounterTable).toggle_per_cpu()
        self.notify("Per-CPU rows: " + ("on" if shown else "off"))

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self.exit()


def main() -> None:
    """Entry point for the viewer."""
    from cpustat.config import build_accessor, load_settings

    settings = load_settings()
    CpuStatApp(build_accessor(settings), poll_rate=settings.poll_rate).run()


if __name__ == "__main__":
    main()
