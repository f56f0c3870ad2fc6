"""Data models for cpustat."""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field


@dataclass(slots=True, frozen=True, eq=False)
class StatSnapshot(Mapping[str, int]):
    """
    Immutable counter values for one processor or the aggregate.

    Equality is mapping equality over the counters, so a snapshot compares
    equal to a dict with the same items. Snapshots are not hashable.
    """

    cpu: int | None  # None for the all-processor sum
    counters: dict[str, int] = field(default_factory=dict)  # registry order

    @property
    def is_aggregate(self) -> bool:
        return self.cpu is None

    def __getitem__(self, name: str) -> int:
        return self.counters[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self.counters)

    def __len__(self) -> int:
        return len(self.counters)

    def __getattr__(self, name: str) -> int:
        # Only reached for names that are not slots or methods.
        if name.startswith("_") or name in ("cpu", "counters"):
            raise AttributeError(name)
        try:
            return self.counters[name]
        except KeyError:
            raise AttributeError(
                f"{type(self).__name__!r} has no counter {name!r}"
            ) from None

    def as_dict(self) -> dict[str, int]:
        """Return a fresh copy of the counters."""
        return dict(self.counters)


@dataclass(slots=True)
class CounterFrame:
    """One poll of every processor plus the aggregate."""

    timestamp: float
    count: int
    aggregate: StatSnapshot
    per_cpu: list[StatSnapshot]
