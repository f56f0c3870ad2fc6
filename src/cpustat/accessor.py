"""
Stat accessor for cpustat.

Reads one processor's counter vector, or sums every possible processor's
vector, and emits the result through the counter registry.
"""

import logging
import operator
from collections.abc import Sequence

from cpustat.errors import ConfigurationError, OutOfRangeError
from cpustat.models import StatSnapshot
from cpustat.registry import CounterRegistry, build_registry
from cpustat.sources import CounterSource, ProcStatSource

logger = logging.getLogger(__name__)

# Sums wrap like the kernel's unsigned 64-bit counters.
U64_MASK = (1 << 64) - 1


class CpuStat:
    """
    Read-only accessor for per-processor time-accounting counters.

    Each ``get()`` performs a fresh read and builds a private snapshot, so
    instances can be shared between threads without locking. Aggregates are
    best-effort: processors are read one after another and a concurrent
    update may land between two reads.
    """

    def __init__(
        self,
        source: CounterSource | None = None,
        registry: CounterRegistry | None = None,
    ) -> None:
        """
        Initialize the accessor.

        Args:
            source: Where counter vectors come from. Defaults to /proc/stat.
            registry: Active counter table. Defaults to the base counters,
                plus forced-idle time when the source supports it.

        Raises:
            ConfigurationError: If the registry carries forced-idle time but
                the source cannot report it.
        """
        self._source = source if source is not None else ProcStatSource()
        if registry is None:
            registry = build_registry(forceidle=self._source.forceidle)
        elif registry.has_forceidle and not self._source.forceidle:
            raise ConfigurationError(
                "source does not report forced-idle time",
                {"source": type(self._source).__name__},
            )
        self._registry = registry

    @property
    def registry(self) -> CounterRegistry:
        return self._registry

    @property
    def source(self) -> CounterSource:
        return self._source

    def count(self) -> int:
        """Return the number of possible logical processor slots."""
        return self._source.count()

    def fields(self) -> tuple[str, ...]:
        """Return the counter names every snapshot contains."""
        return self._registry.names()

    def get(self, cpu: int | None = None) -> StatSnapshot:
        """
        Read counters for one processor or for the whole system.

        Args:
            cpu: Processor index in ``[0, count())``. ``None`` or a negative
                value sums all processors.

        Returns:
            A snapshot with one entry per registry field, in clock ticks.

        Raises:
            OutOfRangeError: If ``cpu >= count()``.
            TypeError: If ``cpu`` is not an integer.
        """
        if cpu is not None:
            cpu = operator.index(cpu)
        if cpu is None or cpu < 0:
            return self._emit(None, self._aggregate())

        bound = self.count()
        if cpu >= bound:
            logger.debug("Rejected CPU %d, %d possible", cpu, bound)
            raise OutOfRangeError(cpu, bound)
        return self._emit(cpu, self._source.read(cpu))

    def _aggregate(self) -> list[int]:
        total = [0] * self._registry.width
        for vector in self._source.read_all():
            for index, value in enumerate(vector[: len(total)]):
                total[index] = (total[index] + value) & U64_MASK
        return total

    def _emit(self, cpu: int | None, vector: Sequence[int]) -> StatSnapshot:
        size = len(vector)
        counters = {
            field.name: (vector[field.index] & U64_MASK if field.index < size else 0)
            for field in self._registry
        }
        return StatSnapshot(cpu=cpu, counters=counters)


_default: CpuStat | None = None


def default_accessor() -> CpuStat:
    """Return the process-wide accessor, creating it on first use."""
    global _default
    if _default is None:
        from cpustat.config import build_accessor, load_settings

        _default = build_accessor(load_settings())
    return _default


def count() -> int:
    """Number of logical processor slots on this host."""
    return default_accessor().count()


def get(cpu: int | None = None) -> StatSnapshot:
    """Counters for ``cpu``, or summed over all processors when omitted."""
    return default_accessor().get(cpu)


def fields() -> tuple[str, ...]:
    """Names of the counters this host reports."""
    return default_accessor().fields()
