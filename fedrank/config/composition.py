"""Composition root: settings -> algorithms, adapters and use cases.

Why: Single place for wiring; domain and application layers remain pure.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from fedrank.application.ports import SearcherPort, TelemetryPort
from fedrank.application.use_cases.merge_federated_results import MergeFederatedResults
from fedrank.config.settings import AppSettings
from fedrank.domain.errors import ValidationError
from fedrank.domain.models import Resource
from fedrank.domain.services.ciss import ciss, ciss_approx
from fedrank.domain.services.merging import CORI, SAFE, SSL, ResultsMerging
from fedrank.domain.services.normalization import (
    ScoreNormalization,
    identity,
    minmax,
    sum_norm,
    zscore,
)
from fedrank.domain.services.redde import crcs_exp, crcs_linear, gavg_log, redde, redde_top
from fedrank.domain.services.selection import ResourceSelection
from fedrank.domain.services.sushi import sushi
from fedrank.infrastructure.telemetry.otel_adapter import (
    NullTelemetry,
    OpenTelemetryAdapter,
    OtelConfig,
)

logger = logging.getLogger(__name__)

SELECTION_METHODS: dict[str, Callable[[AppSettings], ResourceSelection]] = {
    "redde": lambda s: redde(s.complete_rank_cutoff, s.sample_rank_cutoff),
    "crcs-exp": lambda s: crcs_exp(s.complete_rank_cutoff, s.sample_rank_cutoff, beta=s.crcs_beta),
    "crcs-linear": lambda s: crcs_linear(s.complete_rank_cutoff, s.sample_rank_cutoff),
    "gavg-log": lambda s: gavg_log(s.complete_rank_cutoff, s.sample_rank_cutoff),
    "redde-top": lambda s: redde_top(s.complete_rank_cutoff, s.sample_rank_cutoff),
    "sushi": lambda s: sushi(
        s.complete_rank_cutoff,
        s.sample_rank_cutoff,
        min_docs=s.sushi_min_docs,
        rank_threshold=s.sushi_rank_threshold,
    ),
    "ciss": lambda s: ciss(s.complete_rank_cutoff, s.sample_rank_cutoff),
    "ciss-approx": lambda s: ciss_approx(s.complete_rank_cutoff, s.sample_rank_cutoff),
}

NORMALIZATION_METHODS: dict[str, Callable[[int | None], ScoreNormalization]] = {
    "identity": identity,
    "minmax": minmax,
    "zscore": zscore,
    "sum": sum_norm,
}

MERGING_METHODS: dict[str, Callable[[AppSettings], ResultsMerging]] = {
    "cori": lambda s: CORI(lam=s.cori_lambda, base=build_normalization(s)),
    "ssl": lambda s: SSL(),
    "safe": lambda s: SAFE(),
}


def _lookup(table: Mapping[str, Callable], kind: str, name: str) -> Callable:
    try:
        return table[name]
    except KeyError:
        supported = ", ".join(sorted(table))
        raise ValidationError(f"unknown {kind} method {name!r} (supported: {supported})") from None


def build_selection(settings: AppSettings) -> ResourceSelection:
    return _lookup(SELECTION_METHODS, "selection", settings.selection_method)(settings)


def build_normalization(settings: AppSettings) -> ScoreNormalization:
    factory = _lookup(NORMALIZATION_METHODS, "normalization", settings.normalization_method)
    return factory(settings.normalization_rank_cutoff)


def build_merging(settings: AppSettings) -> ResultsMerging:
    """Build the results-merging method.

    CORI wraps the configured base normalization (FEDRANK_NORMALIZATION);
    SSL and SAFE calibrate from sampled documents and ignore it.
    """
    return _lookup(MERGING_METHODS, "merging", settings.merging_method)(settings)


def build_telemetry(settings: AppSettings) -> TelemetryPort:
    """Build telemetry adapter for metrics.

    Returns:
        OpenTelemetryAdapter, or NullTelemetry when TELEMETRY_ENABLED=false.
    """
    if not settings.telemetry_enabled:
        return NullTelemetry()
    cfg = OtelConfig(
        service_name="fedrank",
        otlp_endpoint=settings.otlp_endpoint or None,
        environment=settings.telemetry_environment,
        enable_console=False,
    )
    return OpenTelemetryAdapter(cfg)


def configure_logging(settings: AppSettings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_merge_use_case(
    sample_searcher: SearcherPort,
    resource_searchers: Mapping[Resource, SearcherPort],
    doc_to_resource: Mapping[str, Resource],
    settings: AppSettings | None = None,
) -> MergeFederatedResults:
    """Build MergeFederatedResults with algorithms chosen from settings.

    Args:
        sample_searcher: Searcher over the centralized sample index
        resource_searchers: One searcher per source
        doc_to_resource: Maps sampled document ids to their source
        settings: Application settings (default: load from environment)
    """
    settings = settings or AppSettings()
    selection = build_selection(settings)
    merging = build_merging(settings)
    logger.info(f"federated merge: selection={selection.name} merging={merging.name}")
    return MergeFederatedResults(
        sample_searcher=sample_searcher,
        resource_searchers=resource_searchers,
        doc_to_resource=doc_to_resource,
        selection=selection,
        merging=merging,
        telemetry=build_telemetry(settings),
    )
