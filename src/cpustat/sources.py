"""
Per-processor counter sources.

A source owns access to the host's accounting state; the accessor only
reads through it. Every vector is indexed by ``CounterKind`` storage index
and may be shorter than the registry width (missing slots read as zero).
"""

import logging
import os
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

import psutil

from cpustat.errors import SourceError
from cpustat.registry import CounterKind, name_of

logger = logging.getLogger(__name__)

DEFAULT_CLK_TCK = 100


@runtime_checkable
class CounterSource(Protocol):
    """Read-only view of the per-processor counter vectors."""

    @property
    def forceidle(self) -> bool: ...

    def count(self) -> int: ...

    def read(self, cpu: int) -> Sequence[int]: ...

    def read_all(self) -> list[Sequence[int]]: ...


def parse_cpu_list(text: str) -> list[int]:
    """
    Parse a kernel CPU list such as ``0-3,5,7-8``.

    Raises:
        ValueError: If the list is malformed.
    """
    cpus: list[int] = []
    for chunk in text.strip().split(","):
        if not chunk:
            continue
        if "-" in chunk:
            first, last = chunk.split("-", 1)
            cpus.extend(range(int(first), int(last) + 1))
        else:
            cpus.append(int(chunk))
    return cpus


class ProcStatSource:
    """
    Counter source backed by ``/proc/stat``.

    Values are clock ticks (USER_HZ). The processor count follows the
    kernel's possible-CPU mask, so processors that are offline are still
    counted and read as all-zero vectors.
    """

    def __init__(
        self,
        proc_root: str | Path = "/proc",
        sys_root: str | Path = "/sys",
    ) -> None:
        """
        Initialize the source.

        Args:
            proc_root: procfs mount point.
            sys_root: sysfs mount point.
        """
        self._stat_path = Path(proc_root) / "stat"
        self._possible_path = Path(sys_root) / "devices" / "system" / "cpu" / "possible"
        self._forceidle: bool | None = None
        self._count: int | None = None

    @property
    def forceidle(self) -> bool:
        """
        Whether every ``cpuN`` row carries a forced-idle column.

        Mainline kernels print ten columns, so this is normally False even
        when core scheduling is built in.
        """
        if self._forceidle is None:
            rows = self._read_rows()
            self._forceidle = bool(rows) and all(
                len(row) > CounterKind.FORCEIDLE for row in rows.values()
            )
        return self._forceidle

    def count(self) -> int:
        """Return the number of possible processor slots (``nr_cpu_ids``)."""
        # The possible mask is fixed at boot.
        if self._count is not None:
            return self._count

        try:
            cpus = parse_cpu_list(self._possible_path.read_text())
            if cpus:
                self._count = max(cpus) + 1
                return self._count
        except (OSError, ValueError) as exc:
            logger.debug("Cannot use %s: %s", self._possible_path, exc)

        # psutil counts online processors, which undercounts when ids have
        # gaps; the stat rows bound the highest id the kernel reports.
        rows = self._read_rows()
        highest = max(rows) + 1 if rows else 0
        return max(psutil.cpu_count(logical=True) or 0, highest, 1)

    def _read_rows(self) -> dict[int, list[int]]:
        """Parse every ``cpuN`` line of the stat file."""
        try:
            text = self._stat_path.read_text()
        except OSError as exc:
            raise SourceError(
                f"cannot read {self._stat_path}", {"error": str(exc)}
            ) from exc

        rows: dict[int, list[int]] = {}
        for line in text.splitlines():
            if not line.startswith("cpu") or line.startswith("cpu "):
                continue
            parts = line.split()
            try:
                cpu = int(parts[0][3:])
                rows[cpu] = [int(value) for value in parts[1:]]
            except ValueError as exc:
                raise SourceError(
                    f"malformed line in {self._stat_path}", {"line": line}
                ) from exc
        return rows

    def read(self, cpu: int) -> list[int]:
        return self._read_rows().get(cpu, [])

    def read_all(self) -> list[Sequence[int]]:
        rows = self._read_rows()
        return [rows.get(cpu, []) for cpu in range(self.count())]


class PsutilSource:
    """
    Portable counter source built on ``psutil.cpu_times``.

    psutil reports seconds; they are converted back into clock ticks so the
    units match ``ProcStatSource``. Counters the platform does not report
    read as zero.

    psutil lists online processors by position, not by id, so this source
    is only valid while every processor is online. Where sysfs publishes an
    online mask with gaps, reads raise ``SourceError``.
    """

    def __init__(self, sys_root: str | Path = "/sys") -> None:
        self._online_path = Path(sys_root) / "devices" / "system" / "cpu" / "online"
        self._clk_tck = _clock_ticks()

    @property
    def forceidle(self) -> bool:
        return False

    def count(self) -> int:
        return psutil.cpu_count(logical=True) or 1

    def _check_online(self) -> None:
        try:
            text = self._online_path.read_text().strip()
            online = parse_cpu_list(text)
        except (OSError, ValueError):
            # No sysfs: the platform numbers processors densely.
            return
        if online != list(range(len(online))):
            raise SourceError(
                "psutil source needs every processor online; use the procfs source",
                {"online": text},
            )

    def _to_vector(self, times) -> list[int]:
        return [
            round(getattr(times, name_of(kind), 0.0) * self._clk_tck)
            for kind in CounterKind
            if kind is not CounterKind.FORCEIDLE
        ]

    def read(self, cpu: int) -> list[int]:
        self._check_online()
        per_cpu = psutil.cpu_times(percpu=True)
        if cpu >= len(per_cpu):
            return []
        return self._to_vector(per_cpu[cpu])

    def read_all(self) -> list[Sequence[int]]:
        self._check_online()
        vectors: list[Sequence[int]] = [
            self._to_vector(times) for times in psutil.cpu_times(percpu=True)
        ]
        missing = self.count() - len(vectors)
        return vectors + [[] for _ in range(max(missing, 0))]


class StaticSource:
    """In-memory source holding fixed counter vectors."""

    def __init__(self, vectors: Iterable[Sequence[int]], forceidle: bool = False) -> None:
        self._vectors = [list(vector) for vector in vectors]
        if not self._vectors:
            raise SourceError("static source needs at least one processor")
        self._forceidle = forceidle

    @property
    def forceidle(self) -> bool:
        return self._forceidle

    def count(self) -> int:
        return len(self._vectors)

    def read(self, cpu: int) -> list[int]:
        return list(self._vectors[cpu])

    def read_all(self) -> list[Sequence[int]]:
        return [list(vector) for vector in self._vectors]


def _clock_ticks() -> int:
    try:
        return os.sysconf("SC_CLK_TCK")
    except (AttributeError, ValueError, OSError):
        return DEFAULT_CLK_TCK
