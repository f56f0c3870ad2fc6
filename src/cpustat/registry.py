"""
Counter registry for cpustat.

The registry is the single table of (kind, name, index) rows that drives
every snapshot. Adding a counter kind means adding one enum member and,
if it is not always present, one branch in ``build_registry``.
"""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path

from cpustat.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Marker written by the scheduler into the cgroup v2 root when core
# scheduling accounting (CONFIG_SCHED_CORE) is built in.
FORCEIDLE_MARKER = "core_sched.force_idle_usec"


class CounterKind(IntEnum):
    """Execution-state counters; the value is the storage index."""

    USER = 0
    NICE = 1
    SYSTEM = 2
    IDLE = 3
    IOWAIT = 4
    IRQ = 5
    SOFTIRQ = 6
    STEAL = 7
    GUEST = 8
    GUEST_NICE = 9
    FORCEIDLE = 10


BASE_KINDS: tuple[CounterKind, ...] = tuple(
    kind for kind in CounterKind if kind is not CounterKind.FORCEIDLE
)


def name_of(kind: CounterKind) -> str:
    """Return the external name of a counter kind."""
    return kind.name.lower()


@dataclass(slots=True, frozen=True)
class CounterField:
    """One registry row."""

    kind: CounterKind
    name: str
    index: int

    @classmethod
    def for_kind(cls, kind: CounterKind) -> "CounterField":
        return cls(kind=kind, name=name_of(kind), index=int(kind))


class CounterRegistry:
    """
    Immutable, ordered table of counter fields.

    Iteration order is emission order for every snapshot built from it.
    """

    __slots__ = ("_fields", "_by_kind", "_names", "_width")

    def __init__(self, fields: Iterable[CounterField]) -> None:
        """
        Build a registry from its rows.

        Args:
            fields: Rows in emission order.

        Raises:
            ConfigurationError: If the table is empty or any kind, name or
                index appears twice.
        """
        rows = tuple(fields)
        if not rows:
            raise ConfigurationError("counter registry cannot be empty")

        for attr in ("kind", "name", "index"):
            values = [getattr(row, attr) for row in rows]
            if len(set(values)) != len(values):
                raise ConfigurationError(
                    f"duplicate counter {attr} in registry",
                    {attr: sorted({str(v) for v in values if values.count(v) > 1})},
                )
            if attr == "index" and min(values) < 0:
                raise ConfigurationError("negative counter index in registry")

        self._fields = rows
        self._by_kind = {row.kind: row for row in rows}
        self._names = tuple(row.name for row in rows)
        self._width = max(row.index for row in rows) + 1

    def list(self) -> tuple[CounterField, ...]:
        """Return all rows in registry order."""
        return self._fields

    def names(self) -> tuple[str, ...]:
        """Return the external names in registry order."""
        return self._names

    @staticmethod
    def name_of(kind: CounterKind) -> str:
        """Return the external name of ``kind``."""
        return name_of(kind)

    @property
    def width(self) -> int:
        """Size of the storage index space covered by this registry."""
        return self._width

    @property
    def has_forceidle(self) -> bool:
        return CounterKind.FORCEIDLE in self._by_kind

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self) -> Iterator[CounterField]:
        return iter(self._fields)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, CounterKind):
            return item in self._by_kind
        if isinstance(item, str):
            return item in self._names
        return False

    def __repr__(self) -> str:
        return f"CounterRegistry({', '.join(self._names)})"


def build_registry(forceidle: bool = False) -> CounterRegistry:
    """
    Build the active registry.

    Args:
        forceidle: Include the forced-idle counter (core scheduling builds).
    """
    kinds = list(BASE_KINDS)
    if forceidle:
        kinds.append(CounterKind.FORCEIDLE)
    registry = CounterRegistry(CounterField.for_kind(kind) for kind in kinds)
    logger.debug("Counter registry resolved: %r", registry)
    return registry


def detect_forceidle(sys_root: str | Path = "/sys") -> bool:
    """
    Check whether the running kernel accounts forced-idle time.

    This is a system-wide signal only; it does not mean any source can read
    the counter per processor.
    """
    cpu_stat = Path(sys_root) / "fs" / "cgroup" / "cpu.stat"
    try:
        text = cpu_stat.read_text()
    except OSError:
        return False
    return any(line.split(" ", 1)[0] == FORCEIDLE_MARKER for line in text.splitlines())
