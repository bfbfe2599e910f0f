"""Application ports package.

Re-exports the ports from their individual modules.
"""

from fedrank.application.ports.searcher_port import SearcherPort
from fedrank.application.ports.telemetry_port import TelemetryPort

__all__ = [
    "SearcherPort",
    "TelemetryPort",
]
