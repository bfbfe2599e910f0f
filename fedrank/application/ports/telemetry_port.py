"""Telemetry port for selection and merging metrics."""

from typing import Any, Protocol


class TelemetryPort(Protocol):
    """Port for counters and value distributions recorded by the use cases."""

    def incr(self, name: str, tags: dict[str, Any] | None = None) -> None:
        """Count one event, e.g. a selection run or a skipped source."""
        ...

    def observe(self, name: str, value: float, tags: dict[str, Any] | None = None) -> None:
        """Record one value, e.g. the length of a merged ranking."""
        ...
