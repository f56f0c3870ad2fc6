"""Shared fixtures for cpustat tests."""

import logging
from pathlib import Path

import pytest

from cpustat import accessor as accessor_module
from cpustat.config import ENV_PREFIX
from cpustat.sources import StaticSource

# user nice system idle iowait irq softirq steal guest guest_nice
FOUR_CPU_VECTORS = [
    [100, 1, 50, 1000, 5, 2, 3, 0, 0, 0],
    [200, 2, 60, 2000, 6, 3, 4, 1, 0, 0],
    [300, 3, 70, 3000, 7, 4, 5, 2, 10, 1],
    [400, 4, 80, 4000, 8, 5, 6, 3, 20, 2],
]


def stat_text(vectors: dict[int, list[int]]) -> str:
    """Render a /proc/stat body for the given online CPUs."""
    total = [sum(column) for column in zip(*vectors.values())]
    lines = ["cpu  " + " ".join(map(str, total))]
    for cpu, vector in sorted(vectors.items()):
        lines.append(f"cpu{cpu} " + " ".join(map(str, vector)))
    lines += [
        "intr 12345 0 0",
        "ctxt 67890",
        "btime 1700000000",
        "processes 4242",
        "procs_running 2",
        "procs_blocked 0",
    ]
    return "\n".join(lines) + "\n"


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep CPUSTAT_* settings and the default accessor out of every test."""
    for name in ("SOURCE", "PROC_ROOT", "SYS_ROOT", "FORCEIDLE", "POLL_RATE", "LOG_LEVEL"):
        monkeypatch.delenv(f"{ENV_PREFIX}{name}", raising=False)
    monkeypatch.setattr(accessor_module, "_default", None)
    yield
    package_logger = logging.getLogger("cpustat")
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True


@pytest.fixture
def four_cpu_source() -> StaticSource:
    return StaticSource(FOUR_CPU_VECTORS)


@pytest.fixture
def proc_tree(tmp_path):
    """
    Factory writing a fake procfs/sysfs pair.

    Returns (proc_root, sys_root).
    """

    def build(
        vectors: dict[int, list[int]],
        possible: str | None = None,
        forceidle: bool = False,
    ) -> tuple[Path, Path]:
        proc_root = tmp_path / "proc"
        sys_root = tmp_path / "sys"
        proc_root.mkdir(exist_ok=True)
        (proc_root / "stat").write_text(stat_text(vectors))

        if possible is not None:
            cpu_dir = sys_root / "devices" / "system" / "cpu"
            cpu_dir.mkdir(parents=True, exist_ok=True)
            (cpu_dir / "possible").write_text(possible + "\n")

        cgroup_dir = sys_root / "fs" / "cgroup"
        cgroup_dir.mkdir(parents=True, exist_ok=True)
        lines = ["usage_usec 123", "user_usec 100", "system_usec 23"]
        if forceidle:
            lines.append("core_sched.force_idle_usec 0")
        (cgroup_dir / "cpu.stat").write_text("\n".join(lines) + "\n")
        return proc_root, sys_root

    return build
