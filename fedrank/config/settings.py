"""Application settings with environment-driven configuration.

Why: Single place reading the environment; algorithm choice and parameters
are plain values injected everywhere else.
"""

import os
from dataclasses import dataclass, field


def _optional_int(name: str) -> int | None:
    # 0 or unset means "not configured"
    value = int(os.getenv(name, "0"))
    return value if value > 0 else None


@dataclass(frozen=True)
class AppSettings:
    """Application settings loaded from environment variables.

    This is the ONLY place where environment variables are read.
    All other layers receive settings via dependency injection.
    """

    # ===== Resource Selection =====
    selection_method: str = field(
        default_factory=lambda: os.getenv("FEDRANK_SELECTION", "redde").lower()
    )
    # Supported: "redde" | "crcs-exp" | "crcs-linear" | "gavg-log" | "redde-top"
    #            | "sushi" | "ciss" | "ciss-approx"

    complete_rank_cutoff: int = field(
        default_factory=lambda: int(os.getenv("FEDRANK_COMPLETE_RANK_CUTOFF", "100"))
    )
    sample_rank_cutoff: int | None = field(
        default_factory=lambda: _optional_int("FEDRANK_SAMPLE_RANK_CUTOFF")
    )
    # When set, overrides complete_rank_cutoff

    crcs_beta: float = field(default_factory=lambda: float(os.getenv("FEDRANK_CRCS_BETA", "0.5")))
    sushi_min_docs: int = field(
        default_factory=lambda: int(os.getenv("FEDRANK_SUSHI_MIN_DOCS", "5"))
    )
    sushi_rank_threshold: int = field(
        default_factory=lambda: int(os.getenv("FEDRANK_SUSHI_RANK_THRESHOLD", "1000"))
    )

    # ===== Score Normalization =====
    normalization_method: str = field(
        default_factory=lambda: os.getenv("FEDRANK_NORMALIZATION", "minmax").lower()
    )
    # Supported: "identity" | "minmax" | "zscore" | "sum"

    normalization_rank_cutoff: int | None = field(
        default_factory=lambda: _optional_int("FEDRANK_NORM_RANK_CUTOFF")
    )

    # ===== Results Merging =====
    merging_method: str = field(
        default_factory=lambda: os.getenv("FEDRANK_MERGING", "cori").lower()
    )
    # Supported: "cori" | "ssl" | "safe"

    cori_lambda: float = field(
        default_factory=lambda: float(os.getenv("FEDRANK_CORI_LAMBDA", "0.4"))
    )
    max_resources: int = field(
        default_factory=lambda: int(os.getenv("FEDRANK_MAX_RESOURCES", "0"))
    )
    # 0 = search and merge every ranked resource

    # ===== Logging =====
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    # ===== Telemetry Configuration =====
    telemetry_enabled: bool = field(
        default_factory=lambda: os.getenv("TELEMETRY_ENABLED", "true").lower() == "true"
    )
    otlp_endpoint: str = field(default_factory=lambda: os.getenv("OTLP_ENDPOINT", ""))
    # Empty string = no OTLP export

    telemetry_environment: str = field(
        default_factory=lambda: os.getenv("TELEMETRY_ENVIRONMENT", "production")
    )
