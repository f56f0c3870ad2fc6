"""
Runtime settings for cpustat.

Settings come from ``CPUSTAT_*`` environment variables, optionally seeded
from a ``.env`` file.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from cpustat.accessor import CpuStat
from cpustat.errors import ConfigurationError
from cpustat.registry import build_registry, detect_forceidle
from cpustat.sources import CounterSource, ProcStatSource, PsutilSource

logger = logging.getLogger(__name__)

ENV_PREFIX = "CPUSTAT_"

SOURCES = ("procfs", "psutil")
FORCEIDLE_MODES = ("auto", "on", "off")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
MIN_POLL_RATE = 0.1


@dataclass(slots=True, frozen=True)
class Settings:
    """Resolved cpustat settings."""

    source: str = "procfs"
    proc_root: str = "/proc"
    sys_root: str = "/sys"
    forceidle: str = "auto"
    poll_rate: float = 2.0
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        _check_choice("source", self.source, SOURCES)
        _check_choice("forceidle", self.forceidle, FORCEIDLE_MODES)
        _check_choice("log_level", self.log_level, LOG_LEVELS)
        if self.poll_rate < MIN_POLL_RATE:
            raise ConfigurationError(
                f"poll_rate must be at least {MIN_POLL_RATE}s",
                {"poll_rate": self.poll_rate},
            )


def _check_choice(name: str, value: str, choices: tuple[str, ...]) -> None:
    if value not in choices:
        raise ConfigurationError(
            f"invalid {name}: {value!r}", {"choices": list(choices)}
        )


def load_settings(env_file: str | Path | None = None) -> Settings:
    """
    Load settings from the environment.

    Args:
        env_file: Optional ``.env`` file. Variables already present in the
            environment take precedence over the file.

    Raises:
        ConfigurationError: If a value has the wrong type or is outside its
            allowed choices.
    """
    if env_file is not None:
        if not Path(env_file).is_file():
            raise ConfigurationError("env file not found", {"path": str(env_file)})
        load_dotenv(env_file, override=False)

    defaults = Settings()
    raw_poll_rate = os.getenv(f"{ENV_PREFIX}POLL_RATE")
    try:
        poll_rate = float(raw_poll_rate) if raw_poll_rate else defaults.poll_rate
    except ValueError:
        raise ConfigurationError(
            "poll rate must be a number", {"value": raw_poll_rate}
        ) from None

    return Settings(
        source=os.getenv(f"{ENV_PREFIX}SOURCE", defaults.source).lower(),
        proc_root=os.getenv(f"{ENV_PREFIX}PROC_ROOT", defaults.proc_root),
        sys_root=os.getenv(f"{ENV_PREFIX}SYS_ROOT", defaults.sys_root),
        forceidle=os.getenv(f"{ENV_PREFIX}FORCEIDLE", defaults.forceidle).lower(),
        poll_rate=poll_rate,
        log_level=os.getenv(f"{ENV_PREFIX}LOG_LEVEL", defaults.log_level).upper(),
    )


def build_source(settings: Settings) -> CounterSource:
    """Create the counter source named by ``settings.source``."""
    if settings.source == "psutil":
        return PsutilSource(sys_root=settings.sys_root)
    return ProcStatSource(proc_root=settings.proc_root, sys_root=settings.sys_root)


def build_accessor(settings: Settings) -> CpuStat:
    """
    Create an accessor with the forced-idle counter resolved once.

    ``auto`` follows the source's capability and ``off`` drops the counter.
    ``on`` requires a source that reports per-processor forced-idle time.

    Raises:
        ConfigurationError: If ``on`` is requested but the source cannot
            report the counter.
    """
    source = build_source(settings)
    if settings.forceidle == "on" and not source.forceidle:
        raise ConfigurationError(
            "forceidle=on but the source has no per-CPU forced-idle column",
            {
                "source": type(source).__name__,
                "core_scheduling": detect_forceidle(settings.sys_root),
            },
        )
    if settings.forceidle == "auto":
        forceidle = source.forceidle
    else:
        forceidle = settings.forceidle == "on"
    logger.debug(
        "Using %s source, forceidle=%s", type(source).__name__, forceidle
    )
    return CpuStat(source=source, registry=build_registry(forceidle=forceidle))
