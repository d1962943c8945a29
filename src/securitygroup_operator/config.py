"""Operator configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass


def _get_float(name: str, default: str) -> float:
    value = os.getenv(name, default)
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}") from None


def _get_int(name: str, default: str) -> int:
    value = os.getenv(name, default)
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


def _get_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class OperatorConfig:
    """Settings for the operator process.

    Environment Variables:
        DCS_ENDPOINT: Base URL of the DCS API (default: http://127.0.0.1:30086)
        DCS_TIMEOUT_SECONDS: Per-request timeout for DCS calls (default: 30)
        DCS_RATE_LIMIT_PER_SECOND: Client-side DCS call rate (default: 5.0)
        K8S_RATE_LIMIT_PER_SECOND: Client-side Kubernetes call rate (default: 10.0)
        METRICS_PORT: Port for /metrics, /healthz and /readyz (default: 8080)
        SG_REQUEUE_DELAY_SECONDS: Delay before a failed pass is retried (default: 10)
        SG_MARK_CHANGING_ON_DIFF: Only report SpecChanging once a diff is found (default: false)
        MAX_WORKERS: Sync handler worker threads (default: 4)
        LOG_LEVEL: Root log level (default: INFO)
    """

    dcs_endpoint: str = "http://127.0.0.1:30086"
    dcs_timeout_seconds: float = 30.0
    dcs_rate_limit_per_second: float = 5.0
    k8s_rate_limit_per_second: float = 10.0
    metrics_port: int = 8080
    requeue_delay_seconds: float = 10.0
    mark_changing_on_diff: bool = False
    max_workers: int = 4
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.dcs_endpoint:
            raise ValueError("DCS_ENDPOINT must not be empty")
        if self.dcs_timeout_seconds <= 0:
            raise ValueError("DCS_TIMEOUT_SECONDS must be positive")
        if self.max_workers < 1:
            raise ValueError("MAX_WORKERS must be at least 1")

    @classmethod
    def from_env(cls) -> OperatorConfig:
        return cls(
            dcs_endpoint=os.getenv("DCS_ENDPOINT", cls.dcs_endpoint).rstrip("/"),
            dcs_timeout_seconds=_get_float("DCS_TIMEOUT_SECONDS", "30"),
            dcs_rate_limit_per_second=_get_float("DCS_RATE_LIMIT_PER_SECOND", "5.0"),
            k8s_rate_limit_per_second=_get_float("K8S_RATE_LIMIT_PER_SECOND", "10.0"),
            metrics_port=_get_int("METRICS_PORT", "8080"),
            requeue_delay_seconds=_get_float("SG_REQUEUE_DELAY_SECONDS", "10"),
            mark_changing_on_diff=_get_bool("SG_MARK_CHANGING_ON_DIFF", "false"),
            max_workers=_get_int("MAX_WORKERS", "4"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
