"""OpenTelemetry adapter for selection and merging metrics.

Why: Measurability (selection runs, skipped sources, merged list sizes) without
coupling the domain to an observability vendor.
"""

import logging
from dataclasses import dataclass
from typing import Any

from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import ConsoleMetricExporter, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource as OtelResource

from fedrank.application.ports import TelemetryPort

logger = logging.getLogger(__name__)


@dataclass
class OtelConfig:
    """Configuration for OpenTelemetry."""

    service_name: str = "fedrank"
    otlp_endpoint: str | None = None  # e.g., "http://localhost:4317"
    environment: str = "production"
    enable_console: bool = False  # Debug: print metrics to console


class OpenTelemetryAdapter(TelemetryPort):
    """OpenTelemetry adapter for metrics.

    Metrics:
    - Counters: incr() for events (selection runs, skipped sources)
    - Histograms: observe() for distributions (merged list sizes)

    Tags/Attributes:
    - Environment, service, method
    """

    def __init__(self, cfg: OtelConfig) -> None:
        """Initialize OpenTelemetry adapter.

        Args:
            cfg: OtelConfig with service name and OTLP endpoint
        """
        self._cfg = cfg
        self._counters: dict[str, Any] = {}
        self._histograms: dict[str, Any] = {}
        self._meter = self._init_otel()

    def _init_otel(self) -> Any:
        """Set up the meter provider.

        Sets up:
        - OTLP exporter (if endpoint configured)
        - Console exporter (if enable_console=True)
        """
        resource = OtelResource.create(
            {
                "service.name": self._cfg.service_name,
                "deployment.environment": self._cfg.environment,
            }
        )

        readers = []
        if self._cfg.otlp_endpoint:
            from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
                OTLPMetricExporter,
            )

            readers.append(
                PeriodicExportingMetricReader(OTLPMetricExporter(endpoint=self._cfg.otlp_endpoint))
            )
        if self._cfg.enable_console:
            readers.append(PeriodicExportingMetricReader(ConsoleMetricExporter()))

        provider = MeterProvider(resource=resource, metric_readers=readers)
        return provider.get_meter(__name__)

    def incr(self, name: str, tags: dict[str, Any] | None = None) -> None:
        """Increment a counter metric.

        Examples:
            - incr("fedrank.selection.runs", {"method": "redde"})
            - incr("fedrank.merge.skipped", {"method": "ssl"})
        """
        try:
            if name not in self._counters:
                self._counters[name] = self._meter.create_counter(
                    name=name,
                    description=f"Counter for {name}",
                )
            self._counters[name].add(1, attributes=tags or {})
        except Exception as ex:
            # metric errors never break selection or merging
            logger.warning(f"failed to record counter {name}: {ex}")

    def observe(self, name: str, value: float, tags: dict[str, Any] | None = None) -> None:
        """Observe a value for histogram metric.

        Examples:
            - observe("fedrank.merge.documents", 250, {"method": "cori"})
        """
        try:
            if name not in self._histograms:
                self._histograms[name] = self._meter.create_histogram(
                    name=name,
                    description=f"Histogram for {name}",
                )
            self._histograms[name].record(value, attributes=tags or {})
        except Exception as ex:
            logger.warning(f"failed to record histogram {name}: {ex}")


class NullTelemetry(TelemetryPort):
    """Telemetry that records nothing (TELEMETRY_ENABLED=false)."""

    def incr(self, name: str, tags: dict[str, Any] | None = None) -> None:
        return None

    def observe(self, name: str, value: float, tags: dict[str, Any] | None = None) -> None:
        return None
