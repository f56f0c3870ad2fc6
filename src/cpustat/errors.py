"""Exception types for cpustat."""

from typing import Any


class CpuStatError(Exception):
    """Base exception for all cpustat errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class OutOfRangeError(CpuStatError, IndexError):
    """Raised when a processor index is not in ``[0, count())``."""

    def __init__(self, cpu: int, bound: int) -> None:
        super().__init__(
            f"invalid CPU number: {cpu} (max: {bound - 1})",
            {"cpu": cpu, "bound": bound},
        )
        self.cpu = cpu
        self.bound = bound


class SourceError(CpuStatError):
    """Raised when a counter source cannot be read or parsed."""


class ConfigurationError(CpuStatError):
    """Raised for invalid settings or a malformed counter registry."""
